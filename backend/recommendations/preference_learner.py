"""
PreferenceLearner: derives a UserPreferenceProfile from a user's recent check-ins.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from checkins.models import CheckinRecord
from checkins.normalization import outlet_score
from locations.conf import engine_setting
from recommendations.cache import CacheStore
from recommendations.models import (
    BusynessPreference,
    Importance,
    NoisePreference,
    TimeOfDay,
    UserPreferenceProfile,
)

logger = logging.getLogger(__name__)

# Hour ranges [start, end) per bucket; evening wraps past midnight
TIME_OF_DAY_RANGES = {
    TimeOfDay.MORNING: (6, 12),
    TimeOfDay.AFTERNOON: (12, 18),
    TimeOfDay.EVENING: (18, 6),
}


def hour_in_range(hour: int, start: int, end: int) -> bool:
    if start < end:
        return start <= hour < end
    return hour >= start or hour < end


def time_of_day_for_hour(hour: int) -> str:
    for time_of_day, (start, end) in TIME_OF_DAY_RANGES.items():
        if hour_in_range(hour % 24, start, end):
            return time_of_day
    return TimeOfDay.EVENING


def average(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def to_importance(avg_value: Optional[float]) -> str:
    if avg_value is None:
        return Importance.MEDIUM
    if avg_value >= 4:
        return Importance.HIGH
    if avg_value <= 2:
        return Importance.LOW
    return Importance.MEDIUM


def bucket_level(avg_value: Optional[float], low: str, mid: str, high: str) -> Optional[str]:
    """Mean 1-5 level to a bucket: <=2 low, >=4 high, else mid."""
    if avg_value is None:
        return None
    if avg_value <= 2:
        return low
    if avg_value >= 4:
        return high
    return mid


def most_frequent(values: Iterable[str], limit: int) -> List[str]:
    """Most common values first; ties keep first-seen order."""
    return [value for value, _ in Counter(values).most_common(limit)]


def preferred_time_of_day(hours: List[int]) -> Optional[str]:
    """Mode over the time-of-day buckets; ties resolve morning, afternoon, evening."""
    if not hours:
        return None
    counts = Counter(time_of_day_for_hour(hour) for hour in hours)
    morning = counts[TimeOfDay.MORNING]
    afternoon = counts[TimeOfDay.AFTERNOON]
    evening = counts[TimeOfDay.EVENING]

    if morning >= afternoon and morning >= evening:
        return TimeOfDay.MORNING
    if afternoon >= evening:
        return TimeOfDay.AFTERNOON
    return TimeOfDay.EVENING


class PreferenceLearner:
    """
    Learns per-user preferences from check-in history.

    Profiles are persisted and served from the 'preferences' cache alias.
    A profile older than MAX_AGE_DAYS is rebuilt on the next read. Any
    failure while reading degrades to the neutral default profile.
    """

    HISTORY_LIMIT = 50
    MAX_AGE_DAYS = 7
    TOP_SPOT_TYPES = 3
    FREQUENT_SPOTS_LIMIT = 10
    FREQUENT_SPOT_MIN_VISITS = 2
    CHECKIN_HOURS_LIMIT = 20

    def __init__(self, history_limit: Optional[int] = None, max_age_days: Optional[int] = None,
                 cache: Optional[CacheStore] = None):
        self.HISTORY_LIMIT = history_limit or engine_setting('PREFERENCE_HISTORY_LIMIT')
        self.MAX_AGE_DAYS = max_age_days or engine_setting('PREFERENCE_MAX_AGE_DAYS')
        self.cache = cache or CacheStore('preferences', prefix='profile')

    def get_preferences(self, user_id: str, now: Optional[datetime] = None) -> UserPreferenceProfile:
        """
        Returns the stored profile if it is fresh, otherwise a refreshed one.
        Never raises: errors yield the neutral default profile.
        """
        now = now or timezone.now()
        try:
            cached = self.cache.get(user_id)
            if cached is not None:
                if cached.is_fresh(self.MAX_AGE_DAYS, now):
                    return cached
                self.cache.evict(user_id)

            stored = UserPreferenceProfile.objects.filter(user_id=user_id).first()
            if stored is not None and stored.is_fresh(self.MAX_AGE_DAYS, now):
                self.cache.set(user_id, stored)
                return stored
        except Exception:
            logger.exception(f"Preference lookup failed for user {user_id}")
            return UserPreferenceProfile.neutral(user_id)

        return self.learn_preferences(user_id, now=now)

    def learn_preferences(self, user_id: str, now: Optional[datetime] = None) -> UserPreferenceProfile:
        """
        Rebuilds the profile from the HISTORY_LIMIT most recent check-ins.

        Users without history get the neutral default, which is not stored
        so their first check-ins are picked up on the next read.
        """
        now = now or timezone.now()
        try:
            checkins = list(
                CheckinRecord.objects.filter(user_id=user_id).order_by('-created_at')[:self.HISTORY_LIMIT]
            )
            if not checkins:
                return UserPreferenceProfile.neutral(user_id)

            profile = self._save_profile(user_id, self.build_profile_fields(checkins), now)
        except Exception:
            logger.exception(f"Preference learning failed for user {user_id}")
            return UserPreferenceProfile.neutral(user_id)

        self.cache.set(user_id, profile)
        return profile

    def build_profile_fields(self, checkins: List[CheckinRecord]) -> dict:
        """Pure aggregation of check-ins (newest first) into profile fields."""
        noise_levels = [c.noise_level for c in checkins if c.noise_level is not None]
        busyness_levels = [c.busyness for c in checkins if c.busyness is not None]
        wifi_speeds = [c.wifi_speed for c in checkins if c.wifi_speed is not None]
        outlet_scores = [
            outlet_score(c.outlet_availability) for c in checkins if outlet_score(c.outlet_availability) is not None
        ]
        spot_types = [c.spot_type for c in checkins if c.spot_type]
        hours = [timezone.localtime(c.created_at).hour for c in checkins if c.created_at]

        visits = Counter(c.place_id for c in checkins if c.place_id)
        frequent = sorted(
            (place_id for place_id, count in visits.items() if count >= self.FREQUENT_SPOT_MIN_VISITS),
            key=lambda place_id: -visits[place_id],
        )

        return {
            'preferred_noise_level': bucket_level(
                average(noise_levels), NoisePreference.QUIET, NoisePreference.MODERATE, NoisePreference.LIVELY
            ),
            'preferred_busyness': bucket_level(
                average(busyness_levels), BusynessPreference.EMPTY, BusynessPreference.MODERATE, BusynessPreference.BUSY
            ),
            'preferred_spot_types': most_frequent(spot_types, self.TOP_SPOT_TYPES),
            'preferred_time_of_day': preferred_time_of_day(hours),
            'wifi_importance': to_importance(average(wifi_speeds)),
            'outlet_importance': to_importance(average(outlet_scores)),
            'frequent_spots': frequent[:self.FREQUENT_SPOTS_LIMIT],
            'checkin_hours': hours[:self.CHECKIN_HOURS_LIMIT],
        }

    @staticmethod
    def _save_profile(user_id: str, fields: dict, now: datetime) -> UserPreferenceProfile:
        # last_updated never moves backwards, even if a caller passes an older clock
        with transaction.atomic():
            previous = (
                UserPreferenceProfile.objects.select_for_update()
                .filter(user_id=user_id)
                .values_list('last_updated', flat=True)
                .first()
            )
            last_updated = max(now, previous) if previous else now
            profile, _ = UserPreferenceProfile.objects.update_or_create(
                user_id=user_id,
                defaults={**fields, 'last_updated': last_updated},
            )
        return profile
