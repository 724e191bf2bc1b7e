# Generated migration for intelligence app

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('checkins', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='IntelligencePrediction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('place_id', models.CharField(blank=True, db_index=True, default='', max_length=255)),
                ('place_name', models.CharField(blank=True, default='', max_length=255)),
                ('user_id', models.CharField(blank=True, default='', max_length=128)),
                ('work_score', models.FloatField(help_text='Predicted work score, 0 to 100')),
                ('confidence', models.FloatField(help_text='Producer confidence, 0 to 1')),
                ('model_version', models.CharField(default='unknown', max_length=64)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
            ],
            options={
                'db_table': 'intelligence_predictions',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='intelligenceprediction',
            index=models.Index(fields=['place_id', 'created_at'], name='intel_pred_place_created_idx'),
        ),
        migrations.CreateModel(
            name='IntelligenceOutcome',
            fields=[
                ('id', models.CharField(help_text="Sanitized '<checkin>_<prediction>' key", max_length=255, primary_key=True, serialize=False)),
                ('place_id', models.CharField(db_index=True, max_length=255)),
                ('predicted_work_score', models.FloatField()),
                ('observed_work_score', models.FloatField()),
                ('signed_error', models.FloatField(help_text='predicted - observed')),
                ('abs_error', models.FloatField()),
                ('squared_error', models.FloatField()),
                ('confidence_bucket', models.CharField(choices=[('high', 'High'), ('medium', 'Medium'), ('low', 'Low')], max_length=10)),
                ('model_version', models.CharField(max_length=64)),
                ('match_score', models.FloatField()),
                ('signal_count', models.PositiveSmallIntegerField()),
                ('outcome_quality_label', models.CharField(choices=[('excellent', 'Excellent'), ('good', 'Good'), ('mixed', 'Mixed'), ('poor', 'Poor')], max_length=10)),
                ('outcome_quality_score', models.FloatField()),
                ('outcome_quality_confidence', models.FloatField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('checkin', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='intelligence_outcomes', to='checkins.checkinrecord')),
                ('prediction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='outcomes', to='intelligence.intelligenceprediction')),
            ],
            options={
                'db_table': 'intelligence_outcomes',
            },
        ),
        migrations.AddConstraint(
            model_name='intelligenceoutcome',
            constraint=models.UniqueConstraint(fields=('checkin', 'prediction'), name='unique_checkin_prediction_outcome'),
        ),
        migrations.CreateModel(
            name='CalibrationMetrics',
            fields=[
                ('sample_count', models.PositiveIntegerField(default=0)),
                ('abs_error_sum', models.FloatField(default=0.0)),
                ('squared_error_sum', models.FloatField(default=0.0)),
                ('signed_error_sum', models.FloatField(default=0.0)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('id', models.CharField(default='current', max_length=32, primary_key=True, serialize=False)),
            ],
            options={
                'db_table': 'intelligence_calibration_metrics',
                'verbose_name_plural': 'calibration metrics',
            },
        ),
        migrations.CreateModel(
            name='CalibrationBucket',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sample_count', models.PositiveIntegerField(default=0)),
                ('abs_error_sum', models.FloatField(default=0.0)),
                ('squared_error_sum', models.FloatField(default=0.0)),
                ('signed_error_sum', models.FloatField(default=0.0)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('dimension', models.CharField(choices=[('confidence', 'Confidence'), ('quality', 'Outcome quality'), ('model_version', 'Model version')], max_length=20)),
                ('bucket', models.CharField(max_length=64)),
            ],
            options={
                'db_table': 'intelligence_calibration_buckets',
                'ordering': ['dimension', 'bucket'],
            },
        ),
        migrations.AddConstraint(
            model_name='calibrationbucket',
            constraint=models.UniqueConstraint(fields=('dimension', 'bucket'), name='unique_calibration_bucket'),
        ),
    ]
