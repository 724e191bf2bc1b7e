"""
LiveBlender: display values for a spot, blending the externally inferred
noise level with live check-in aggregates.

Strategy:
- New spots: inferred data is shown as soon as it exists
- Growing spots: live value, with the usual inferred value when they disagree
- Popular spots: live data only

w_live = min(checkin_count / 10, 0.9), so inference always keeps some weight.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from django.utils import timezone

from checkins.models import CheckinRecord
from locations.conf import engine_setting
from locations.models import Spot

logger = logging.getLogger(__name__)

NOISE_VALUES = ('quiet', 'moderate', 'loud')
BUSYNESS_VALUES = ('empty', 'some', 'packed')
BUSYNESS_LABELS = {
    'empty': 'Empty',
    'some': 'Some people',
    'packed': 'Packed',
}


def level_bucket(level: Optional[int], values: Tuple[str, str, str]) -> Optional[str]:
    """1-5 level -> low (<=2), mid (3) or high (>=4) value."""
    if level is None:
        return None
    if level <= 2:
        return values[0]
    if level >= 4:
        return values[2]
    return values[1]


def wifi_label(has_wifi: Optional[bool], confidence: float) -> Optional[str]:
    """Review-inferred wifi has no live counterpart; shown only when mentioned."""
    if not has_wifi:
        return None
    if confidence >= 0.8:
        return 'Likely strong'
    if confidence >= 0.5:
        return 'Likely available'
    return 'Mentioned in reviews'


def _checkins_label(count: int) -> str:
    return f"{count} check-in{'' if count == 1 else 's'}"


@dataclass
class InferredAttribute:
    value: Optional[str] = None
    confidence: float = 0.0


@dataclass
class LiveAggregate:
    noise: Optional[str] = None
    busyness: Optional[str] = None
    checkin_count: int = 0
    last_checkin_at: Optional[datetime] = None


@dataclass
class DisplayData:
    noise: Optional[str]
    noise_source: str  # 'live', 'inferred', 'blended'
    noise_label: str
    busyness: Optional[str]
    busyness_label: str
    checkin_count: int = 0
    busyness_source: str = 'live'
    wifi_label: Optional[str] = None
    wifi_confidence: float = 0.0


class LiveBlender:
    """
    Recomputes live aggregates from the raw check-in window on every call;
    nothing is persisted.
    """

    WINDOW_SIZE = 20
    WINDOW_DAYS = 7
    HALF_LIFE_DAYS = 3.5
    LIVE_WEIGHT_SCALE = 10
    LIVE_WEIGHT_CAP = 0.9
    LIVE_ONLY_THRESHOLD = 0.5

    def __init__(self, half_life_days: Optional[float] = None, window_days: Optional[int] = None,
                 window_size: Optional[int] = None):
        self.HALF_LIFE_DAYS = half_life_days or engine_setting('BLEND_HALF_LIFE_DAYS')
        self.WINDOW_DAYS = window_days or engine_setting('BLEND_WINDOW_DAYS')
        self.WINDOW_SIZE = window_size or engine_setting('BLEND_WINDOW_SIZE')

    def aggregate_live(self, place_id: str, now: Optional[datetime] = None) -> LiveAggregate:
        """
        Recency-weighted vote over the last WINDOW_SIZE check-ins within
        WINDOW_DAYS. Returns an empty aggregate if the store is unavailable.
        """
        now = now or timezone.now()
        try:
            checkins = list(
                CheckinRecord.objects.filter(
                    place_id=place_id,
                    created_at__gt=now - timedelta(days=self.WINDOW_DAYS),
                    created_at__lte=now,
                )
                .order_by('-created_at')[:self.WINDOW_SIZE]
            )
        except Exception:
            logger.exception(f"Live aggregation failed for spot {place_id}")
            return LiveAggregate()

        if not checkins:
            return LiveAggregate()

        noise_votes = [(level_bucket(c.noise_level, NOISE_VALUES), c.created_at) for c in checkins]
        busyness_votes = [(level_bucket(c.busyness, BUSYNESS_VALUES), c.created_at) for c in checkins]
        return LiveAggregate(
            noise=self.weighted_vote(noise_votes, NOISE_VALUES, now),
            busyness=self.weighted_vote(busyness_votes, BUSYNESS_VALUES, now),
            checkin_count=len(checkins),
            last_checkin_at=checkins[0].created_at,
        )

    def weighted_vote(self, votes: Iterable[Tuple[Optional[str], datetime]], values: Tuple[str, ...],
                      now: datetime) -> Optional[str]:
        """
        Each vote weighs exp(-age / HALF_LIFE_DAYS). Ties go to the value
        listed first.
        """
        totals = dict.fromkeys(values, 0.0)
        for value, created_at in votes:
            if value not in totals:
                continue
            age_days = max((now - created_at).total_seconds(), 0.0) / 86400
            totals[value] += math.exp(-age_days / self.HALF_LIFE_DAYS)

        best = max(totals.values())
        if best <= 0:
            return None
        return next(value for value in values if totals[value] == best)

    def live_weight(self, checkin_count: int) -> float:
        return min(checkin_count / self.LIVE_WEIGHT_SCALE, self.LIVE_WEIGHT_CAP)

    def blend_noise(self, inferred: InferredAttribute, live: LiveAggregate) -> Tuple[Optional[str], str, str]:
        """
        Returns:
            (noise, source, label)
        """
        if not inferred.value and not live.noise:
            return None, 'inferred', 'No data yet'

        if not live.noise or live.checkin_count == 0:
            return inferred.value, 'inferred', f"{(inferred.value or 'unknown').capitalize()} (inferred from reviews)"

        label = f"{live.noise.capitalize()} ({_checkins_label(live.checkin_count)})"
        if self.live_weight(live.checkin_count) > self.LIVE_ONLY_THRESHOLD:
            return live.noise, 'live', label

        if live.noise != inferred.value:
            label = f"{live.noise.capitalize()} ({_checkins_label(live.checkin_count)}, usually {inferred.value or 'varies'})"
        return live.noise, 'blended', label

    @staticmethod
    def blend_busyness(live: LiveAggregate) -> Tuple[Optional[str], str]:
        """Busyness has no inferred counterpart: live or nothing."""
        if not live.busyness or live.checkin_count == 0:
            return None, 'No recent data'
        return live.busyness, f"{BUSYNESS_LABELS[live.busyness]} (live)"

    def display_data(self, inferred: InferredAttribute, live: LiveAggregate,
                     has_wifi: Optional[bool] = None, wifi_confidence: float = 0.0) -> DisplayData:
        noise, noise_source, noise_label = self.blend_noise(inferred, live)
        busyness, busyness_label = self.blend_busyness(live)
        return DisplayData(
            noise=noise,
            noise_source=noise_source,
            noise_label=noise_label,
            busyness=busyness,
            busyness_label=busyness_label,
            checkin_count=live.checkin_count,
            wifi_label=wifi_label(has_wifi, wifi_confidence),
            wifi_confidence=wifi_confidence if has_wifi else 0.0,
        )

    def display_for_place(self, place_id: str, now: Optional[datetime] = None) -> DisplayData:
        """
        Display data for a place. Unknown places, or a failing spot lookup,
        only get live data.
        """
        try:
            spot = Spot.objects.filter(place_id=place_id).first()
        except Exception:
            logger.exception(f"Spot lookup failed for {place_id}")
            spot = None

        if spot is None:
            return self.display_data(InferredAttribute(), self.aggregate_live(place_id, now))

        return self.display_data(
            InferredAttribute(spot.inferred_noise, spot.inferred_noise_confidence),
            self.aggregate_live(place_id, now),
            has_wifi=spot.has_wifi,
            wifi_confidence=spot.wifi_confidence,
        )
