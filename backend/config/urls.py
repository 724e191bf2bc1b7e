from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/locations/', include('locations.urls', namespace='locations')),
    path('api/checkins/', include('checkins.urls', namespace='checkins')),
    path('api/recommendations/', include('recommendations.urls', namespace='recommendations')),
    path('api/intelligence/', include('intelligence.urls', namespace='intelligence')),
]
