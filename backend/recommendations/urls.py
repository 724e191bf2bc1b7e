"""
URL configuration for the recommendations module.
"""
from django.urls import path
from recommendations.views import (
    GenerateRecommendationsView,
    CollaborativeRecommendationsView,
    TrendingPlacesView,
    UserPreferencesView,
    PlaceEventView,
)

app_name = 'recommendations'

urlpatterns = [
    path('generate/', GenerateRecommendationsView.as_view(), name='generate_recommendations'),
    path('collaborative/', CollaborativeRecommendationsView.as_view(), name='collaborative_recommendations'),
    path('trending/', TrendingPlacesView.as_view(), name='trending_places'),
    path('preferences/<str:user_id>/', UserPreferencesView.as_view(), name='user_preferences'),
    path('events/', PlaceEventView.as_view(), name='place_events'),
]
