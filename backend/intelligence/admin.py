"""
Django admin configuration for intelligence models.
"""
from django.contrib import admin
from intelligence.models import CalibrationBucket, CalibrationMetrics, IntelligenceOutcome, IntelligencePrediction


@admin.register(IntelligencePrediction)
class IntelligencePredictionAdmin(admin.ModelAdmin):
    list_display = ['id', 'place_id', 'place_name', 'work_score', 'confidence', 'model_version', 'created_at']
    list_filter = ['model_version', 'created_at']
    search_fields = ['place_id', 'place_name', 'user_id']
    readonly_fields = ['id']


@admin.register(IntelligenceOutcome)
class IntelligenceOutcomeAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'place_id', 'predicted_work_score', 'observed_work_score', 'signed_error',
        'confidence_bucket', 'outcome_quality_label', 'created_at',
    ]
    list_filter = ['confidence_bucket', 'outcome_quality_label', 'model_version']
    search_fields = ['id', 'place_id']
    raw_id_fields = ['checkin', 'prediction']
    readonly_fields = ['created_at']


@admin.register(CalibrationMetrics)
class CalibrationMetricsAdmin(admin.ModelAdmin):
    list_display = ['id', 'sample_count', 'mean_abs_error', 'rmse', 'updated_at']
    readonly_fields = ['sample_count', 'abs_error_sum', 'squared_error_sum', 'signed_error_sum', 'updated_at']


@admin.register(CalibrationBucket)
class CalibrationBucketAdmin(admin.ModelAdmin):
    list_display = ['dimension', 'bucket', 'sample_count', 'mean_abs_error', 'rmse', 'updated_at']
    list_filter = ['dimension']
    readonly_fields = ['sample_count', 'abs_error_sum', 'squared_error_sum', 'signed_error_sum', 'updated_at']
