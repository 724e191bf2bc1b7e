"""
Serializers for check-in ingestion and output.
"""
from rest_framework import serializers
from checkins.models import CheckinRecord


class CheckinRecordSerializer(serializers.ModelSerializer):
    class Meta:
        model = CheckinRecord
        fields = [
            'id', 'user_id', 'place_id', 'spot_name', 'spot_type',
            'latitude', 'longitude', 'created_at', 'tags', 'caption',
            'wifi_speed', 'noise_level', 'busyness', 'laptop_friendly', 'outlet_availability',
        ]
        read_only_fields = fields


class CheckinCreateSerializer(serializers.Serializer):
    """
    Validates the identity part of an incoming check-in. Metrics are passed
    through untouched and normalized by the service, since legacy encodings
    (words, booleans, scores) must be accepted rather than rejected.
    """
    user_id = serializers.CharField(max_length=128)
    place_id = serializers.CharField(max_length=255)
    spot_name = serializers.CharField(max_length=255)
    spot_type = serializers.CharField(max_length=64, required=False, allow_blank=True)
    latitude = serializers.FloatField(min_value=-90, max_value=90, required=False, allow_null=True)
    longitude = serializers.FloatField(min_value=-180, max_value=180, required=False, allow_null=True)
    created_at = serializers.DateTimeField(required=False)
    caption = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        # Raw metric and tag values are forwarded for tolerant normalization
        raw = self.initial_data
        passthrough = {
            key: raw[key] for key in (
                'tags', 'metrics', 'wifi_speed', 'wifiSpeed', 'noise_level', 'noiseLevel', 'busyness',
                'laptop_friendly', 'laptopFriendly', 'outlet_availability', 'outletAvailability', 'outlets',
            ) if key in raw
        }
        return {**passthrough, **attrs}
