"""
API views for locations app endpoints.
"""
import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import AllowAny

from locations.conf import engine_setting
from .models import Spot
from .serializers import SpotSerializer, SpotListSerializer
from .services import GeoService, PlaceSyncService

logger = logging.getLogger(__name__)


class SpotViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Spot CRUD operations and proximity queries.
    Upstream producers write the inferred attributes through this endpoint.
    """
    queryset = Spot.objects.all().order_by('-created_at')
    serializer_class = SpotSerializer
    permission_classes = [AllowAny]
    lookup_field = 'place_id'
    lookup_value_regex = '[^/]+'

    def get_serializer_class(self):
        """Use lightweight serializer for list views"""
        if self.action == 'list':
            return SpotListSerializer
        return SpotSerializer

    @action(detail=False, methods=['get'])
    def nearby(self, request):
        """
        Find spots near a location.

        Query parameters:
        - latitude: float (required)
        - longitude: float (required)
        - radius_km: float (default: CANDIDATE_RADIUS_KM)
        - category: str (optional filter)
        """
        try:
            lat = float(request.query_params.get('latitude'))
            lon = float(request.query_params.get('longitude'))
            radius_km = float(request.query_params.get('radius_km', engine_setting('CANDIDATE_RADIUS_KM')))
        except (TypeError, ValueError):
            return Response(
                {'error': 'Invalid parameters. Required: latitude, longitude (float), radius_km (float)'},
                status=status.HTTP_400_BAD_REQUEST
            )

        if not GeoService.is_location_valid(lat, lon) or radius_km <= 0:
            return Response(
                {'error': 'Invalid coordinates'},
                status=status.HTTP_400_BAD_REQUEST
            )

        spots = GeoService.find_nearby(lat, lon, radius_km, category=request.query_params.get('category'))

        results = []
        for spot, distance_km in spots:
            data = SpotListSerializer(spot).data
            data['distance_km'] = round(distance_km, 3)
            results.append(data)

        return Response({
            'count': len(results),
            'results': results
        })

    @action(detail=False, methods=['post'])
    def sync_external(self, request):
        """
        Trigger a places provider sync around a location.

        Body parameters:
        - latitude: float (required)
        - longitude: float (required)
        - radius_m: int (optional, default: 5000)
        """
        try:
            lat = float(request.data.get('latitude'))
            lon = float(request.data.get('longitude'))
            radius_m = int(request.data.get('radius_m', 5000))
        except (TypeError, ValueError):
            return Response(
                {'error': 'Invalid parameters. Required: latitude, longitude (float)'},
                status=status.HTTP_400_BAD_REQUEST
            )

        if not GeoService.is_location_valid(lat, lon):
            return Response(
                {'error': 'Invalid coordinates'},
                status=status.HTTP_400_BAD_REQUEST
            )

        new_count = PlaceSyncService().fetch_and_sync(lat, lon, radius_m)
        logger.info(f"Place sync around ({lat}, {lon}) added {new_count} spots")

        return Response({
            'status': 'success',
            'new_spots_added': new_count,
            'latitude': lat,
            'longitude': lon,
        })
