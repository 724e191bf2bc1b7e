from django.contrib import admin
from checkins.models import CheckinRecord


@admin.register(CheckinRecord)
class CheckinRecordAdmin(admin.ModelAdmin):
    list_display = ['id', 'user_id', 'spot_name', 'spot_type', 'noise_level', 'busyness', 'created_at']
    list_filter = ['spot_type', 'outlet_availability', 'laptop_friendly', 'created_at']
    search_fields = ['user_id', 'place_id', 'spot_name', 'caption']
    readonly_fields = ['id', 'location']
