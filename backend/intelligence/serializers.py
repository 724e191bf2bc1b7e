"""
Serializers for the intelligence module.
"""
from rest_framework import serializers
from intelligence.models import CalibrationBucket, CalibrationMetrics, IntelligenceOutcome, IntelligencePrediction


class IntelligencePredictionSerializer(serializers.ModelSerializer):
    work_score = serializers.FloatField(min_value=0, max_value=100)
    confidence = serializers.FloatField(min_value=0, max_value=1)

    class Meta:
        model = IntelligencePrediction
        fields = ['id', 'place_id', 'place_name', 'user_id', 'work_score', 'confidence', 'model_version', 'created_at']
        read_only_fields = ['id']
        extra_kwargs = {'created_at': {'required': False}}

    def validate(self, attrs):
        if not attrs.get('place_id') and not attrs.get('place_name'):
            raise serializers.ValidationError("place_id or place_name is required")
        return attrs


class IntelligenceOutcomeSerializer(serializers.ModelSerializer):
    class Meta:
        model = IntelligenceOutcome
        fields = [
            'id',
            'checkin',
            'prediction',
            'place_id',
            'predicted_work_score',
            'observed_work_score',
            'signed_error',
            'abs_error',
            'squared_error',
            'confidence_bucket',
            'model_version',
            'match_score',
            'signal_count',
            'outcome_quality_label',
            'outcome_quality_score',
            'outcome_quality_confidence',
            'created_at',
        ]
        read_only_fields = fields


class ErrorSumsFields(serializers.ModelSerializer):
    """Stored sums plus the means derived from them at read time."""
    mean_abs_error = serializers.FloatField(read_only=True)
    mean_signed_error = serializers.FloatField(read_only=True)
    rmse = serializers.FloatField(read_only=True)

    class Meta:
        fields = [
            'sample_count',
            'abs_error_sum',
            'squared_error_sum',
            'signed_error_sum',
            'mean_abs_error',
            'mean_signed_error',
            'rmse',
            'updated_at',
        ]


class CalibrationBucketSerializer(ErrorSumsFields):
    class Meta(ErrorSumsFields.Meta):
        model = CalibrationBucket
        fields = ['dimension', 'bucket'] + ErrorSumsFields.Meta.fields
        read_only_fields = fields


class CalibrationMetricsSerializer(ErrorSumsFields):
    buckets = serializers.SerializerMethodField()

    class Meta(ErrorSumsFields.Meta):
        model = CalibrationMetrics
        fields = ['id'] + ErrorSumsFields.Meta.fields + ['buckets']
        read_only_fields = fields

    def get_buckets(self, obj):
        """Segment rows grouped by dimension: {'confidence': {'high': {...}}, ...}"""
        grouped = {}
        for bucket in CalibrationBucket.objects.all():
            grouped.setdefault(bucket.dimension, {})[bucket.bucket] = CalibrationBucketSerializer(bucket).data
        return grouped


class DisplayDataSerializer(serializers.Serializer):
    """Serializer for the blended DisplayData DTO"""
    noise = serializers.CharField(allow_null=True)
    noise_source = serializers.CharField()
    noise_label = serializers.CharField()
    busyness = serializers.CharField(allow_null=True)
    busyness_source = serializers.CharField()
    busyness_label = serializers.CharField()
    checkin_count = serializers.IntegerField()
    wifi_label = serializers.CharField(allow_null=True)
    wifi_confidence = serializers.FloatField()
