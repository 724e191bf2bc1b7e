"""
Views for the recommendations module.

Read endpoints degrade to empty payloads when the engine fails; only
malformed requests produce errors.
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from recommendations.collaborative_filter import CollaborativeFilter
from recommendations.dtos import ContextDTO, PointDTO
from recommendations.events import record_place_event
from recommendations.preference_learner import PreferenceLearner
from recommendations.scoring_service import ScoringService
from recommendations.serializers import (
    ContextDTOSerializer,
    PlaceEventSerializer,
    SpotRecommendationSerializer,
    TrendingSpotSerializer,
    UserPreferenceProfileSerializer,
)
from recommendations.trend_analyzer import TrendAnalyzer


def _positive_int(value, default: int, maximum: int = 100) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(number, maximum))


class GenerateRecommendationsView(APIView):
    """
    API endpoint for generating personalized recommendations.

    POST /api/recommendations/generate/
    Body:
    {
        "user_id": "abc123",
        "context": {
            "user_location": {"latitude": 40.7128, "longitude": -74.0060},
            "time_of_day": "morning",
            "weather": "rainy",
            "radius_km": 5,
            "max_results": 10
        }
    }
    """

    def post(self, request):
        """Generate recommendations for a user"""
        user_id = request.data.get('user_id')
        context_data = request.data.get('context')

        if not user_id:
            return Response(
                {'error': 'user_id is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        if not context_data:
            return Response(
                {'error': 'context is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        context_serializer = ContextDTOSerializer(data=context_data)
        if not context_serializer.is_valid():
            return Response(
                {'error': context_serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        data = context_serializer.validated_data
        location = PointDTO(
            latitude=data['user_location']['latitude'],
            longitude=data['user_location']['longitude'],
        )
        context = ContextDTO(
            user_location=location,
            time_of_day=data.get('time_of_day'),
            weather=data.get('weather'),
            radius_km=data.get('radius_km', 5.0),
            max_results=data.get('max_results', 10),
        )

        recommendations = ScoringService().get_personalized_recommendations(str(user_id), location, context)
        serializer = SpotRecommendationSerializer(recommendations, many=True)
        return Response(
            {'recommendations': serializer.data},
            status=status.HTTP_200_OK
        )


class CollaborativeRecommendationsView(APIView):
    """
    API endpoint for user-overlap recommendations.

    GET /api/recommendations/collaborative/?user_id=abc123&place_id=ChIJ...&limit=5
    """

    def get(self, request):
        user_id = request.query_params.get('user_id')
        if not user_id:
            return Response(
                {'error': 'user_id parameter is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        limit = _positive_int(request.query_params.get('limit'), default=5, maximum=50)
        recommendations = CollaborativeFilter().get_recommendations(
            user_id,
            seed_place_id=request.query_params.get('place_id') or None,
            limit=limit,
        )
        serializer = SpotRecommendationSerializer(recommendations, many=True)
        return Response(
            {'recommendations': serializer.data},
            status=status.HTTP_200_OK
        )


class TrendingPlacesView(APIView):
    """
    API endpoint for getting trending spots, optionally inside a geohash area.

    GET /api/recommendations/trending/?geohash=sxk9&limit=10
    """

    def get(self, request):
        """Get trending spots"""
        geohash = request.query_params.get('geohash') or None
        limit = _positive_int(request.query_params.get('limit'), default=10)

        trending = TrendAnalyzer().get_trending_spots(geohash=geohash, limit=limit)
        serializer = TrendingSpotSerializer(trending, many=True)
        return Response(
            {'trending_places': serializer.data},
            status=status.HTTP_200_OK
        )


class UserPreferencesView(APIView):
    """
    API endpoint returning the current preference profile of a user.

    GET /api/recommendations/preferences/<user_id>/
    """

    def get(self, request, user_id):
        profile = PreferenceLearner().get_preferences(user_id)
        return Response(UserPreferenceProfileSerializer(profile).data, status=status.HTTP_200_OK)


class PlaceEventView(APIView):
    """
    API endpoint for recording implicit feedback.

    POST /api/recommendations/events/
    Body:
    {
        "user_id": "abc123",
        "place_id": "ChIJ...",
        "event_type": "save",
        "category": "cafe"
    }
    """

    def post(self, request):
        serializer = PlaceEventSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        data = serializer.validated_data
        event = record_place_event(
            data['user_id'],
            data['place_id'],
            data['event_type'],
            category=data.get('category'),
        )
        return Response(PlaceEventSerializer(event).data, status=status.HTTP_201_CREATED)
