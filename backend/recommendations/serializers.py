"""
Serializers for the recommendations module.
"""
from rest_framework import serializers
from recommendations.models import PlaceEvent, PlaceEventType, UserPreferenceProfile


class PlaceEventSerializer(serializers.ModelSerializer):
    event_type = serializers.ChoiceField(choices=PlaceEventType.choices)
    category = serializers.CharField(max_length=20, required=False, allow_null=True)

    class Meta:
        model = PlaceEvent
        fields = ['id', 'user_id', 'place_id', 'category', 'event_type', 'timestamp']
        read_only_fields = ['id', 'timestamp']


class UserPreferenceProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserPreferenceProfile
        fields = [
            'user_id',
            'preferred_noise_level',
            'preferred_busyness',
            'preferred_spot_types',
            'preferred_time_of_day',
            'wifi_importance',
            'outlet_importance',
            'frequent_spots',
            'checkin_hours',
            'last_updated',
        ]
        read_only_fields = fields


class PointDTOSerializer(serializers.Serializer):
    """Serializer for PointDTO"""
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)


class ContextDTOSerializer(serializers.Serializer):
    """Serializer for ContextDTO"""
    user_location = PointDTOSerializer(required=True)
    time_of_day = serializers.ChoiceField(choices=['morning', 'afternoon', 'evening'], required=False)
    weather = serializers.ChoiceField(choices=['sunny', 'rainy', 'cloudy'], required=False)
    radius_km = serializers.FloatField(required=False, default=5.0, min_value=0.1, max_value=50)
    max_results = serializers.IntegerField(required=False, default=10, min_value=1, max_value=100)


class SpotRecommendationSerializer(serializers.Serializer):
    """Serializer for SpotRecommendation DTO"""
    place_id = serializers.CharField()
    name = serializers.CharField()
    score = serializers.FloatField()
    reasons = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    predicted_busyness = serializers.FloatField(allow_null=True)
    predicted_noise = serializers.FloatField(allow_null=True)
    best_time_to_visit = serializers.CharField(allow_null=True)
    match_score = serializers.FloatField(allow_null=True)
    category = serializers.CharField(allow_null=True)
    distance_km = serializers.FloatField(allow_null=True)


class TrendingSpotSerializer(serializers.Serializer):
    """Serializer for TrendingSpot DTO"""
    place_id = serializers.CharField()
    name = serializers.CharField()
    last7 = serializers.IntegerField()
    prev7 = serializers.IntegerField()
    percent_change = serializers.FloatField()
    trending_score = serializers.FloatField()
    direction = serializers.CharField()
    top_reason = serializers.CharField()
