# Generated migration for recommendations app

from django.db import migrations, models
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PlaceEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('user_id', models.CharField(max_length=128)),
                ('place_id', models.CharField(max_length=255)),
                ('category', models.CharField(default='other', max_length=20)),
                ('event_type', models.CharField(choices=[('impression', 'Impression'), ('tap', 'Tap'), ('save', 'Save'), ('checkin', 'Check In'), ('map_open', 'Map Open')], help_text='Type of user interaction: impression, tap, save, checkin, map_open', max_length=20)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'db_table': 'recommendations_place_event',
                'indexes': [
                    models.Index(fields=['user_id', 'timestamp'], name='rec_event_user_ts_idx'),
                    models.Index(fields=['place_id', 'timestamp'], name='rec_event_place_ts_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CategoryAffinity',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('user_id', models.CharField(max_length=128)),
                ('category', models.CharField(max_length=20)),
                ('weight', models.FloatField(default=0.0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'recommendations_category_affinity',
                'constraints': [
                    models.UniqueConstraint(fields=('user_id', 'category'), name='unique_user_category_affinity'),
                ],
            },
        ),
        migrations.CreateModel(
            name='UserPreferenceProfile',
            fields=[
                ('user_id', models.CharField(max_length=128, primary_key=True, serialize=False)),
                ('preferred_noise_level', models.CharField(blank=True, choices=[('quiet', 'Quiet'), ('moderate', 'Moderate'), ('lively', 'Lively')], max_length=10, null=True)),
                ('preferred_busyness', models.CharField(blank=True, choices=[('empty', 'Empty'), ('moderate', 'Moderate'), ('busy', 'Busy')], max_length=10, null=True)),
                ('preferred_spot_types', models.JSONField(blank=True, default=list)),
                ('preferred_time_of_day', models.CharField(blank=True, choices=[('morning', 'Morning'), ('afternoon', 'Afternoon'), ('evening', 'Evening')], max_length=10, null=True)),
                ('wifi_importance', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High')], default='medium', max_length=10)),
                ('outlet_importance', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High')], default='medium', max_length=10)),
                ('frequent_spots', models.JSONField(blank=True, default=list, help_text='Place ids visited at least twice, top 10')),
                ('checkin_hours', models.JSONField(blank=True, default=list, help_text='Hours of the 20 most recent check-ins')),
                ('last_updated', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'recommendations_user_preference_profile',
            },
        ),
    ]
