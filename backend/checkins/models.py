import uuid
from django.contrib.gis.db import models as gis_models
from django.contrib.gis.geos import Point
from django.db import models
from django.utils import timezone


class OutletAvailability(models.TextChoices):
    """Canonical outlet availability levels"""
    PLENTY = 'plenty', 'Plenty'
    SOME = 'some', 'Some'
    FEW = 'few', 'Few'
    NONE = 'none', 'None'


# Fields whose changes feed the calibration tracker
METRIC_FIELDS = (
    'wifi_speed',
    'noise_level',
    'busyness',
    'laptop_friendly',
    'outlet_availability',
)


class CheckinRecord(models.Model):
    """
    A user-submitted record of visiting a spot, optionally annotated with
    quality metrics, tags and a caption.

    Metrics are stored in their canonical form only; legacy encodings are
    normalized by checkins.normalization before a row is written.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=128, db_index=True)
    place_id = models.CharField(max_length=255, db_index=True)
    spot_name = models.CharField(max_length=255)
    spot_type = models.CharField(
        max_length=20,
        default='other',
        help_text="Spot category inferred through the category rule table"
    )
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    location = gis_models.PointField(
        srid=4326,
        null=True,
        blank=True,
        help_text="Derived from latitude/longitude on save when both are present"
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    tags = models.JSONField(default=list, blank=True)
    caption = models.TextField(blank=True, default="")

    # Canonical metrics, all optional
    wifi_speed = models.PositiveSmallIntegerField(null=True, blank=True, help_text="1 (unusable) to 5 (fast)")
    noise_level = models.PositiveSmallIntegerField(null=True, blank=True, help_text="1 (silent) to 5 (very loud)")
    busyness = models.PositiveSmallIntegerField(null=True, blank=True, help_text="1 (empty) to 5 (packed)")
    laptop_friendly = models.BooleanField(null=True, blank=True)
    outlet_availability = models.CharField(
        max_length=10,
        choices=OutletAvailability.choices,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = 'checkins'
        indexes = [
            models.Index(fields=['user_id', 'created_at'], name='checkins_user_created_idx'),
            models.Index(fields=['place_id', 'created_at'], name='checkins_place_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.user_id} @ {self.spot_name}"

    def save(self, *args, **kwargs):
        if self.latitude is not None and self.longitude is not None:
            self.location = Point(self.longitude, self.latitude, srid=4326)
        else:
            self.location = None
        super().save(*args, **kwargs)

    @property
    def metrics(self):
        return {name: getattr(self, name) for name in METRIC_FIELDS}
