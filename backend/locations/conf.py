"""
Access to the PLACE_INTELLIGENCE settings block with module defaults.
"""
from django.conf import settings

DEFAULTS = {
    'PREFERENCE_MAX_AGE_DAYS': 7,
    'PREFERENCE_HISTORY_LIMIT': 50,
    'CANDIDATE_RADIUS_KM': 5.0,
    'CANDIDATE_CHECKIN_WINDOW': 200,
    'RECOMMENDATION_LIMIT': 10,
    'BATCH_SIZE': 10,
    'COLLABORATIVE_SAMPLE_SIZE': 100,
    'CALIBRATION_LOOKBACK_HOURS': 6,
    'CALIBRATION_LOOKAHEAD_MINUTES': 20,
    'CALIBRATION_RECENCY_HOURS': 5,
    'CALIBRATION_CANDIDATE_LIMIT': 50,
    'BLEND_HALF_LIFE_DAYS': 3.5,
    'BLEND_WINDOW_DAYS': 7,
    'BLEND_WINDOW_SIZE': 20,
    'AFFINITY_HALF_LIFE_DAYS': 14,
    'TREND_MIN_RECENT_CHECKINS': 2,
    'TREND_DIRECTION_THRESHOLD': 10.0,
    'EXTERNAL_TIMEOUT_SECONDS': 3.2,
}


def engine_setting(name: str):
    """Returns settings.PLACE_INTELLIGENCE[name], falling back to DEFAULTS."""
    overrides = getattr(settings, 'PLACE_INTELLIGENCE', None) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
