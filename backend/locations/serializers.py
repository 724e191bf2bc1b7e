"""
DRF Serializers for the Spot model.
"""
from rest_framework import serializers
from .models import Spot


class SpotSerializer(serializers.ModelSerializer):
    """Full spot payload, including the externally inferred attributes"""

    inferred_noise_confidence = serializers.FloatField(min_value=0, max_value=1, required=False)
    wifi_confidence = serializers.FloatField(min_value=0, max_value=1, required=False)
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)

    class Meta:
        model = Spot
        fields = [
            'id',
            'place_id',
            'name',
            'address',
            'category',
            'latitude',
            'longitude',
            'geohash',
            'indoor',
            'inferred_noise',
            'inferred_noise_confidence',
            'has_wifi',
            'wifi_confidence',
            'metadata',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'geohash', 'created_at', 'updated_at']


class SpotListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views"""

    class Meta:
        model = Spot
        fields = ['id', 'place_id', 'name', 'category', 'latitude', 'longitude']
