"""
URL routing for checkins app.
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter
from checkins.views import CheckinViewSet

router = SimpleRouter()
router.register(r'', CheckinViewSet, basename='checkin')

app_name = 'checkins'

urlpatterns = [
    path('', include(router.urls)),
]
