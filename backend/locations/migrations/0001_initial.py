# Generated migration for locations app

import django.contrib.gis.db.models.fields
from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Spot',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('place_id', models.CharField(help_text='Stable place identifier from the places provider', max_length=255, unique=True)),
                ('name', models.CharField(help_text='The official name of the place', max_length=255)),
                ('address', models.CharField(blank=True, default='', max_length=512)),
                ('category', models.CharField(choices=[('cafe', 'Cafe'), ('library', 'Library'), ('coworking', 'Coworking'), ('campus', 'Campus'), ('bookstore', 'Bookstore'), ('other', 'Other')], default='other', max_length=20)),
                ('latitude', models.FloatField()),
                ('longitude', models.FloatField()),
                ('location', django.contrib.gis.db.models.fields.PointField(blank=True, help_text='Geometry (SRID=4326, lon/lat) derived from the coordinates on save', null=True, srid=4326)),
                ('geohash', models.CharField(blank=True, db_index=True, default='', help_text='Geohash (precision 7) derived from the coordinates on save', max_length=12)),
                ('indoor', models.BooleanField(default=True)),
                ('inferred_noise', models.CharField(blank=True, choices=[('quiet', 'Quiet'), ('moderate', 'Moderate'), ('loud', 'Loud')], max_length=10, null=True)),
                ('inferred_noise_confidence', models.FloatField(default=0.0)),
                ('has_wifi', models.BooleanField(blank=True, null=True)),
                ('wifi_confidence', models.FloatField(default=0.0)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'locations_spot',
                'indexes': [
                    models.Index(fields=['category'], name='locations_spot_category_idx'),
                ],
            },
        ),
    ]
