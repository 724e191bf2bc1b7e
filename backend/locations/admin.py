from django.contrib import admin
from .models import Spot


@admin.register(Spot)
class SpotAdmin(admin.ModelAdmin):
    list_display = ['name', 'place_id', 'category', 'inferred_noise', 'created_at']
    list_filter = ['category', 'indoor', 'inferred_noise', 'created_at']
    search_fields = ['name', 'address', 'place_id']
    readonly_fields = ['id', 'location', 'geohash', 'created_at', 'updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'place_id', 'name', 'address')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude', 'location', 'geohash', 'indoor')
        }),
        ('Classification', {
            'fields': ('category',)
        }),
        ('Inferred Attributes', {
            'fields': ('inferred_noise', 'inferred_noise_confidence', 'has_wifi', 'wifi_confidence')
        }),
        ('Metadata', {
            'fields': ('metadata',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
