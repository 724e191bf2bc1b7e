"""
Ingestion normalization for check-in payloads.

Clients have sent several encodings over time: noise as a 1-5 level or as
a word ('quiet', 'moderate', 'lively'), outlet availability as an enum, a
boolean or a 1-5 score. Everything is folded into the canonical form stored
on CheckinRecord here, so no downstream code branches on raw encodings.

Every function is tolerant: unrecognized input yields None, never an error.
"""
from typing import Any, Dict, List, Optional

from checkins.models import OutletAvailability

LEGACY_NOISE_LEVELS = {
    'silent': 1,
    'quiet': 2,
    'moderate': 3,
    'lively': 4,
    'loud': 4,
    'very loud': 5,
}

OUTLET_SCORES = {
    OutletAvailability.PLENTY: 4,
    OutletAvailability.SOME: 3,
    OutletAvailability.FEW: 2,
    OutletAvailability.NONE: 1,
}

# Payload keys accepted for each canonical metric, canonical name first
METRIC_ALIASES = {
    'wifi_speed': ('wifi_speed', 'wifiSpeed'),
    'noise_level': ('noise_level', 'noiseLevel'),
    'busyness': ('busyness',),
    'laptop_friendly': ('laptop_friendly', 'laptopFriendly'),
    'outlet_availability': ('outlet_availability', 'outletAvailability', 'outlets'),
}

_TRUE_STRINGS = ('true', 'yes', '1', 'y')
_FALSE_STRINGS = ('false', 'no', '0', 'n')


def normalize_level(value: Any) -> Optional[int]:
    """Coerces a 1-5 rating to int; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    level = int(round(number))
    if 1 <= level <= 5:
        return level
    return None


def normalize_noise_level(value: Any) -> Optional[int]:
    if isinstance(value, str):
        word = value.strip().lower()
        if word in LEGACY_NOISE_LEVELS:
            return LEGACY_NOISE_LEVELS[word]
    return normalize_level(value)


def normalize_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return None


def normalize_outlet_availability(value: Any) -> Optional[str]:
    """
    Maps enum strings, legacy booleans and legacy 1-5 scores to
    an OutletAvailability value.

    Legacy booleans: True -> plenty, False -> none.
    Legacy scores: >=4 plenty, 3 some, 2 few, <=1 none.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return OutletAvailability.PLENTY if value else OutletAvailability.NONE

    if isinstance(value, str):
        text = value.strip().lower()
        if text in OutletAvailability.values:
            return text
        if text in ('true', 'yes'):
            return OutletAvailability.PLENTY
        if text in ('false', 'no'):
            return OutletAvailability.NONE

    score = normalize_level(value)
    if score is None:
        return None
    if score >= 4:
        return OutletAvailability.PLENTY
    if score == 3:
        return OutletAvailability.SOME
    if score == 2:
        return OutletAvailability.FEW
    return OutletAvailability.NONE


def outlet_score(value: Optional[str]) -> Optional[int]:
    """plenty=4, some=3, few=2, none=1."""
    if value is None:
        return None
    return OUTLET_SCORES.get(value)


def normalize_tags(value: Any) -> List[str]:
    """Accepts a list or a comma separated string; blanks are dropped."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(',')
    if not isinstance(value, (list, tuple)):
        return []
    tags = []
    for tag in value:
        if isinstance(tag, str) and tag.strip():
            tags.append(tag.strip().lower())
    return tags


NORMALIZERS = {
    'wifi_speed': normalize_level,
    'noise_level': normalize_noise_level,
    'busyness': normalize_level,
    'laptop_friendly': normalize_bool,
    'outlet_availability': normalize_outlet_availability,
}


def normalize_metrics(payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Extracts the canonical metrics from a raw payload.

    A nested 'metrics' dict takes precedence over top-level keys. With
    partial=True only the metrics present in the payload are returned, so an
    update never clears fields it did not mention; an explicit null clears.
    """
    if not isinstance(payload, dict):
        return {} if partial else {name: None for name in NORMALIZERS}

    sources = [payload]
    if isinstance(payload.get('metrics'), dict):
        sources.insert(0, payload['metrics'])

    metrics = {}
    for name, normalizer in NORMALIZERS.items():
        for source in sources:
            key = next((alias for alias in METRIC_ALIASES[name] if alias in source), None)
            if key is not None:
                value = normalizer(source[key])
                # an unrecognized value never clears a stored metric on update
                if not (partial and value is None and source[key] is not None):
                    metrics[name] = value
                break
        else:
            if not partial:
                metrics[name] = None
    return metrics
