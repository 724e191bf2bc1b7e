# Generated migration for checkins app

import django.contrib.gis.db.models.fields
from django.db import migrations, models
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='CheckinRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('user_id', models.CharField(db_index=True, max_length=128)),
                ('place_id', models.CharField(db_index=True, max_length=255)),
                ('spot_name', models.CharField(max_length=255)),
                ('spot_type', models.CharField(default='other', help_text='Spot category inferred through the category rule table', max_length=20)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('location', django.contrib.gis.db.models.fields.PointField(blank=True, help_text='Derived from latitude/longitude on save when both are present', null=True, srid=4326)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('caption', models.TextField(blank=True, default='')),
                ('wifi_speed', models.PositiveSmallIntegerField(blank=True, help_text='1 (unusable) to 5 (fast)', null=True)),
                ('noise_level', models.PositiveSmallIntegerField(blank=True, help_text='1 (silent) to 5 (very loud)', null=True)),
                ('busyness', models.PositiveSmallIntegerField(blank=True, help_text='1 (empty) to 5 (packed)', null=True)),
                ('laptop_friendly', models.BooleanField(blank=True, null=True)),
                ('outlet_availability', models.CharField(blank=True, choices=[('plenty', 'Plenty'), ('some', 'Some'), ('few', 'Few'), ('none', 'None')], max_length=10, null=True)),
            ],
            options={
                'db_table': 'checkins',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user_id', 'created_at'], name='checkins_user_created_idx'),
                    models.Index(fields=['place_id', 'created_at'], name='checkins_place_created_idx'),
                ],
            },
        ),
    ]
