import uuid
from typing import Optional

from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from locations.conf import engine_setting


class PlaceEventType(models.TextChoices):
    """Enumeration for implicit-feedback place events"""
    IMPRESSION = 'impression', 'Impression'
    TAP = 'tap', 'Tap'
    SAVE = 'save', 'Save'
    CHECKIN = 'checkin', 'Check In'
    MAP_OPEN = 'map_open', 'Map Open'


# Affinity weight contributed by each event type
EVENT_WEIGHTS = {
    PlaceEventType.IMPRESSION: 0.2,
    PlaceEventType.TAP: 1.0,
    PlaceEventType.SAVE: 2.0,
    PlaceEventType.CHECKIN: 3.0,
    PlaceEventType.MAP_OPEN: 0.5,
}


class PlaceEvent(models.Model):
    """
    Records user interactions with spots as implicit feedback.
    Every event also adds its weight to the user x category CategoryAffinity row.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_id = models.CharField(max_length=128)
    place_id = models.CharField(max_length=255)
    category = models.CharField(max_length=20, default='other')
    event_type = models.CharField(
        max_length=20,
        choices=PlaceEventType.choices,
        help_text="Type of user interaction: impression, tap, save, checkin, map_open"
    )
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'recommendations_place_event'
        indexes = [
            models.Index(fields=['user_id', 'timestamp'], name='rec_event_user_ts_idx'),
            models.Index(fields=['place_id', 'timestamp'], name='rec_event_place_ts_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.event_type} - {self.place_id}"


class CategoryAffinity(models.Model):
    """
    Implicit-feedback weight per user x spot category, halving every
    AFFINITY_HALF_LIFE_DAYS. `weight` holds the decayed sum as of
    `updated_at`; every add first decays it to the present, which equals
    decaying each event on its own.
    """
    user_id = models.CharField(max_length=128)
    category = models.CharField(max_length=20)
    weight = models.FloatField(default=0.0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'recommendations_category_affinity'
        constraints = [
            models.UniqueConstraint(fields=['user_id', 'category'], name='unique_user_category_affinity'),
        ]

    def __str__(self):
        return f"{self.user_id} / {self.category}: {self.weight:.1f}"

    @staticmethod
    def decay_factor(since, now, half_life_days: Optional[float] = None) -> float:
        half_life_days = half_life_days or engine_setting('AFFINITY_HALF_LIFE_DAYS')
        age_days = max((now - since).total_seconds(), 0.0) / 86400
        return 0.5 ** (age_days / half_life_days)

    def weight_at(self, now=None) -> float:
        return self.weight * self.decay_factor(self.updated_at, now or timezone.now())

    @classmethod
    def add_weight(cls, user_id: str, category: str, amount: float, now=None) -> None:
        now = now or timezone.now()
        with transaction.atomic():
            cls.objects.get_or_create(user_id=user_id, category=category)
            row = cls.objects.select_for_update().get(user_id=user_id, category=category)
            cls.objects.filter(pk=row.pk).update(
                weight=F('weight') * cls.decay_factor(row.updated_at, now) + amount,
                updated_at=now,
            )

    @classmethod
    def for_user(cls, user_id: str, now=None) -> dict:
        """Returns {category: weight decayed to now} for the user."""
        now = now or timezone.now()
        return {row.category: row.weight_at(now) for row in cls.objects.filter(user_id=user_id)}


class NoisePreference(models.TextChoices):
    QUIET = 'quiet', 'Quiet'
    MODERATE = 'moderate', 'Moderate'
    LIVELY = 'lively', 'Lively'


class BusynessPreference(models.TextChoices):
    EMPTY = 'empty', 'Empty'
    MODERATE = 'moderate', 'Moderate'
    BUSY = 'busy', 'Busy'


class TimeOfDay(models.TextChoices):
    MORNING = 'morning', 'Morning'
    AFTERNOON = 'afternoon', 'Afternoon'
    EVENING = 'evening', 'Evening'


class Importance(models.TextChoices):
    LOW = 'low', 'Low'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'


class UserPreferenceProfile(models.Model):
    """
    Learned preferences of a user, derived from recent check-ins.
    Rebuilt lazily by PreferenceLearner once last_updated is older than
    PREFERENCE_MAX_AGE_DAYS; last_updated never moves backwards.
    """
    user_id = models.CharField(max_length=128, primary_key=True)
    preferred_noise_level = models.CharField(max_length=10, choices=NoisePreference.choices, null=True, blank=True)
    preferred_busyness = models.CharField(max_length=10, choices=BusynessPreference.choices, null=True, blank=True)
    preferred_spot_types = models.JSONField(default=list, blank=True)
    preferred_time_of_day = models.CharField(max_length=10, choices=TimeOfDay.choices, null=True, blank=True)
    wifi_importance = models.CharField(max_length=10, choices=Importance.choices, default=Importance.MEDIUM)
    outlet_importance = models.CharField(max_length=10, choices=Importance.choices, default=Importance.MEDIUM)
    frequent_spots = models.JSONField(default=list, blank=True, help_text="Place ids visited at least twice, top 10")
    checkin_hours = models.JSONField(default=list, blank=True, help_text="Hours of the 20 most recent check-ins")
    last_updated = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'recommendations_user_preference_profile'

    def __str__(self):
        return f"Preferences of {self.user_id}"

    @classmethod
    def neutral(cls, user_id: str) -> 'UserPreferenceProfile':
        """Unsaved default profile: no preferences, medium importance."""
        return cls(
            user_id=user_id,
            preferred_noise_level=None,
            preferred_busyness=None,
            preferred_spot_types=[],
            preferred_time_of_day=None,
            wifi_importance=Importance.MEDIUM,
            outlet_importance=Importance.MEDIUM,
            frequent_spots=[],
            checkin_hours=[],
            last_updated=None,
        )

    def is_fresh(self, max_age_days: int, now=None) -> bool:
        if self.last_updated is None:
            return False
        now = now or timezone.now()
        return (now - self.last_updated).total_seconds() < max_age_days * 86400
