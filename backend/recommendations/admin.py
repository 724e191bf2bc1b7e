"""
Django admin configuration for recommendations models.
"""
from django.contrib import admin
from recommendations.models import PlaceEvent, CategoryAffinity, UserPreferenceProfile


@admin.register(PlaceEvent)
class PlaceEventAdmin(admin.ModelAdmin):
    list_display = ['id', 'user_id', 'place_id', 'category', 'event_type', 'timestamp']
    list_filter = ['event_type', 'category', 'timestamp']
    search_fields = ['user_id', 'place_id']
    readonly_fields = ['id', 'timestamp']


@admin.register(CategoryAffinity)
class CategoryAffinityAdmin(admin.ModelAdmin):
    list_display = ['user_id', 'category', 'weight', 'updated_at']
    list_filter = ['category']
    search_fields = ['user_id']
    readonly_fields = ['weight', 'updated_at']


@admin.register(UserPreferenceProfile)
class UserPreferenceProfileAdmin(admin.ModelAdmin):
    list_display = ['user_id', 'preferred_noise_level', 'preferred_busyness', 'preferred_time_of_day', 'last_updated']
    list_filter = ['preferred_noise_level', 'preferred_busyness', 'wifi_importance', 'outlet_importance']
    search_fields = ['user_id']
    readonly_fields = ['last_updated']
