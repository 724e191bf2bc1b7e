"""
API views for predictions, calibration metrics and blended spot display data.
"""
from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from intelligence.live_blender import LiveBlender
from intelligence.models import CalibrationMetrics, IntelligencePrediction
from intelligence.serializers import (
    CalibrationMetricsSerializer,
    DisplayDataSerializer,
    IntelligenceOutcomeSerializer,
    IntelligencePredictionSerializer,
)


class IntelligencePredictionViewSet(mixins.CreateModelMixin,
                                    mixins.RetrieveModelMixin,
                                    mixins.ListModelMixin,
                                    viewsets.GenericViewSet):
    """
    POST /api/intelligence/predictions/            record an upstream prediction
    GET  /api/intelligence/predictions/?place_id=
    GET  /api/intelligence/predictions/<id>/outcomes/
    """
    queryset = IntelligencePrediction.objects.all()
    serializer_class = IntelligencePredictionSerializer

    def get_queryset(self):
        queryset = IntelligencePrediction.objects.all()
        place_id = self.request.query_params.get('place_id')
        if place_id:
            queryset = queryset.filter(place_id=place_id)
        return queryset.order_by('-created_at')

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return Response({'error': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def outcomes(self, request, pk=None):
        """Outcomes linked to this prediction."""
        prediction = self.get_object()
        serializer = IntelligenceOutcomeSerializer(prediction.outcomes.order_by('-created_at'), many=True)
        return Response(serializer.data)


class CalibrationMetricsView(APIView):
    """
    Calibration snapshot for dashboards. Means and RMSE are derived from the
    stored sums on every read.

    GET /api/intelligence/calibration/
    """

    def get(self, request):
        metrics = CalibrationMetrics.objects.filter(id=CalibrationMetrics.CURRENT).first()
        if metrics is None:
            metrics = CalibrationMetrics(id=CalibrationMetrics.CURRENT)
        return Response(CalibrationMetricsSerializer(metrics).data, status=status.HTTP_200_OK)


class SpotDisplayView(APIView):
    """
    Display-ready noise and busyness for a spot.

    GET /api/intelligence/spots/<place_id>/display/
    """

    def get(self, request, place_id):
        display = LiveBlender().display_for_place(place_id)
        return Response(DisplayDataSerializer(display).data, status=status.HTTP_200_OK)
