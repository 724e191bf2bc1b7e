import uuid
import geohash2
from django.db import models
from django.contrib.gis.db import models as gis_models
from django.contrib.gis.geos import Point


class SpotCategory(models.TextChoices):
    """Enumeration for spot categories"""
    CAFE = 'cafe', 'Cafe'
    LIBRARY = 'library', 'Library'
    COWORKING = 'coworking', 'Coworking'
    CAMPUS = 'campus', 'Campus'
    BOOKSTORE = 'bookstore', 'Bookstore'
    OTHER = 'other', 'Other'


class InferredNoise(models.TextChoices):
    QUIET = 'quiet', 'Quiet'
    MODERATE = 'moderate', 'Moderate'
    LOUD = 'loud', 'Loud'


class Spot(models.Model):
    """
    Spot - a physical venue identified by a stable place identifier.
    Carries the externally inferred attributes (noise, wifi) produced upstream
    from reviews; live attributes are always derived from check-ins on read.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    place_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stable place identifier from the places provider"
    )
    name = models.CharField(max_length=255, help_text="The official name of the place")
    address = models.CharField(max_length=512, blank=True, default="")

    category = models.CharField(
        max_length=20,
        choices=SpotCategory.choices,
        default=SpotCategory.OTHER,
    )

    latitude = models.FloatField()
    longitude = models.FloatField()
    location = gis_models.PointField(
        srid=4326,
        null=True,
        blank=True,
        help_text="Geometry (SRID=4326, lon/lat) derived from the coordinates on save"
    )
    geohash = models.CharField(
        max_length=12,
        blank=True,
        default="",
        db_index=True,
        help_text="Geohash (precision 7) derived from the coordinates on save"
    )
    indoor = models.BooleanField(default=True)

    # Externally inferred attributes
    inferred_noise = models.CharField(
        max_length=10,
        choices=InferredNoise.choices,
        null=True,
        blank=True,
    )
    inferred_noise_confidence = models.FloatField(default=0.0)
    has_wifi = models.BooleanField(null=True, blank=True)
    wifi_confidence = models.FloatField(default=0.0)

    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'locations_spot'
        indexes = [
            models.Index(fields=['category'], name='locations_spot_category_idx'),
        ]

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        """
        Overridden save method to ensure coordinates are valid and keeps the
        geometry and geohash in sync with them.
        """
        if not (-90 <= self.latitude <= 90 and -180 <= self.longitude <= 180):
            raise ValueError("Invalid coordinates: latitude must be -90 to 90, longitude must be -180 to 180")

        self.location = Point(self.longitude, self.latitude, srid=4326)
        self.geohash = geohash2.encode(self.latitude, self.longitude, 7)
        super().save(*args, **kwargs)

    def get_lat_lon(self):
        """Coordinates in a frontend-friendly format."""
        return (self.latitude, self.longitude)
