"""
URL routing for locations app.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import SpotViewSet

router = DefaultRouter()
router.register(r'spots', SpotViewSet, basename='spot')

app_name = 'locations'

urlpatterns = [
    path('', include(router.urls)),
]
