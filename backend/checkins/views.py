"""
API views for check-in ingestion.
"""
from rest_framework import mixins, viewsets, status
from rest_framework.response import Response

from checkins.models import CheckinRecord
from checkins.serializers import CheckinRecordSerializer, CheckinCreateSerializer
from checkins.services import CheckinService


class CheckinViewSet(mixins.CreateModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.UpdateModelMixin,
                     mixins.ListModelMixin,
                     viewsets.GenericViewSet):
    """
    POST   /api/checkins/       record a check-in (legacy encodings accepted)
    PATCH  /api/checkins/<id>/  update metrics, tags or caption
    GET    /api/checkins/?user_id=&place_id=
    """
    queryset = CheckinRecord.objects.all()
    serializer_class = CheckinRecordSerializer
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        """Filter check-ins by user or place if provided"""
        queryset = CheckinRecord.objects.all()
        user_id = self.request.query_params.get('user_id')
        place_id = self.request.query_params.get('place_id')
        if user_id:
            queryset = queryset.filter(user_id=user_id)
        if place_id:
            queryset = queryset.filter(place_id=place_id)
        return queryset.order_by('-created_at')

    def create(self, request, *args, **kwargs):
        serializer = CheckinCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'error': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        checkin = CheckinService().record_checkin(serializer.validated_data)
        return Response(CheckinRecordSerializer(checkin).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        checkin = self.get_object()
        if not isinstance(request.data, dict):
            return Response({'error': 'Expected a JSON object'}, status=status.HTTP_400_BAD_REQUEST)

        checkin = CheckinService().update_metrics(checkin, request.data)
        return Response(CheckinRecordSerializer(checkin).data)
