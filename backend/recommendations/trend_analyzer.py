"""
TrendAnalyzer: week-over-week check-in velocity per spot.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from django.db.models import Count, Max, Q
from django.utils import timezone

from checkins.models import CheckinRecord
from locations.conf import engine_setting
from locations.services import GeoService
from recommendations.dtos import TrendingSpot

logger = logging.getLogger(__name__)


class TrendAnalyzer:
    """
    Analytical service comparing each spot's check-ins in the last 7 days
    (last7) with the 7 days before (prev7). Spots below MIN_RECENT_CHECKINS
    in the last week never qualify as trending.
    """

    WINDOW_DAYS = 7
    MIN_RECENT_CHECKINS = 2
    DIRECTION_THRESHOLD = 10.0

    def __init__(self, min_recent_checkins: Optional[int] = None, direction_threshold: Optional[float] = None):
        """Initialize TrendAnalyzer with custom thresholds if provided"""
        self.MIN_RECENT_CHECKINS = min_recent_checkins or engine_setting('TREND_MIN_RECENT_CHECKINS')
        self.DIRECTION_THRESHOLD = direction_threshold or engine_setting('TREND_DIRECTION_THRESHOLD')

    @staticmethod
    def percent_change(last7: int, prev7: int) -> float:
        if prev7 > 0:
            return (last7 - prev7) / prev7 * 100
        return 100.0 if last7 > 0 else 0.0

    def compute_trend(self, last7: int, prev7: int) -> Tuple[float, float, str]:
        """
        Returns:
            (percent_change, trending_score, direction)

        trending_score = clamp(50 + percent_change / 2 + 2 * last7, 0, 100)
        """
        change = self.percent_change(last7, prev7)
        score = max(0.0, min(100.0, 50 + change / 2 + last7 * 2))

        if change > self.DIRECTION_THRESHOLD:
            direction = 'up'
        elif change < -self.DIRECTION_THRESHOLD:
            direction = 'down'
        else:
            direction = 'stable'
        return change, score, direction

    @staticmethod
    def top_reason(last7: int, prev7: int, change: float) -> str:
        if last7 > prev7:
            return f"{last7} check-ins this week (+{round(change)}%)"
        return f"{last7} check-ins this week"

    def get_trending_spots(self, geohash: Optional[str] = None, limit: int = 10,
                           now: Optional[datetime] = None) -> List[TrendingSpot]:
        """
        Identifies trending spots, optionally restricted to a geohash area.

        Args:
            geohash: Geohash string; only check-ins inside its cell are counted
            limit: maximum number of spots returned
            now: reference time, defaults to timezone.now()

        Returns:
            List[TrendingSpot] sorted by trending score, [] on error
        """
        now = now or timezone.now()
        try:
            rows = self._weekly_counts(now, geohash)
        except Exception:
            logger.exception(f"Trend analysis failed for area {geohash or 'all'}")
            return []

        trending = []
        for row in rows:
            last7, prev7 = row['last7'], row['prev7']
            if last7 < self.MIN_RECENT_CHECKINS:
                continue
            change, score, direction = self.compute_trend(last7, prev7)
            trending.append(TrendingSpot(
                place_id=row['place_id'],
                name=row['name'] or 'Unknown',
                last7=last7,
                prev7=prev7,
                percent_change=round(change, 1),
                trending_score=round(score, 1),
                direction=direction,
                top_reason=self.top_reason(last7, prev7, change),
            ))

        trending.sort(key=lambda spot: (-spot.trending_score, -spot.last7, spot.place_id))
        return trending[:limit]

    def _weekly_counts(self, now: datetime, geohash: Optional[str]):
        week_ago = now - timedelta(days=self.WINDOW_DAYS)
        two_weeks_ago = now - timedelta(days=2 * self.WINDOW_DAYS)

        queryset = CheckinRecord.objects.filter(created_at__gte=two_weeks_ago, created_at__lt=now)
        if geohash:
            queryset = queryset.filter(location__contained=GeoService.geohash_polygon(geohash))

        return (
            queryset.values('place_id')
            .annotate(
                last7=Count('id', filter=Q(created_at__gte=week_ago)),
                prev7=Count('id', filter=Q(created_at__lt=week_ago)),
                name=Max('spot_name'),
            )
            .order_by('place_id')
        )
