from django.urls import path, include
from rest_framework.routers import SimpleRouter
from intelligence.views import CalibrationMetricsView, IntelligencePredictionViewSet, SpotDisplayView

app_name = 'intelligence'

router = SimpleRouter()
router.register(r'predictions', IntelligencePredictionViewSet, basename='prediction')

urlpatterns = [
    path('', include(router.urls)),
    path('calibration/', CalibrationMetricsView.as_view(), name='calibration_metrics'),
    path('spots/<str:place_id>/display/', SpotDisplayView.as_view(), name='spot_display'),
]
