"""
CollaborativeFilter: "people who checked in here also checked in at..." recommendations.
"""
import logging
from collections import Counter
from typing import Dict, List, Optional

from django.db.models import Max

from checkins.models import CheckinRecord
from locations.conf import engine_setting
from recommendations.dtos import SpotRecommendation

logger = logging.getLogger(__name__)


class CollaborativeFilter:
    """
    User-overlap recommendations around a seed spot.

    Users who checked in at the seed are sampled (most recent first), their
    recent histories are read in batches of BATCH_SIZE users per query and
    every spot the requesting user has not visited is counted.
    """

    SAMPLE_SIZE = 100
    BATCH_SIZE = 10
    USER_HISTORY_LIMIT = 50
    HISTORY_PER_USER = 30
    MIN_OVERLAP_USERS = 2

    def __init__(self, sample_size: Optional[int] = None, batch_size: Optional[int] = None):
        self.SAMPLE_SIZE = sample_size or engine_setting('COLLABORATIVE_SAMPLE_SIZE')
        self.BATCH_SIZE = batch_size or engine_setting('BATCH_SIZE')

    def get_recommendations(self, user_id: str, seed_place_id: Optional[str] = None,
                            limit: int = 5) -> List[SpotRecommendation]:
        """
        Args:
            user_id: requesting user
            seed_place_id: seed spot; defaults to the user's most recent check-in
            limit: maximum number of recommendations

        Returns:
            List[SpotRecommendation] ordered by supporting count, [] when
            fewer than MIN_OVERLAP_USERS users overlap or on any error
        """
        try:
            return self._recommend(user_id, seed_place_id, limit)
        except Exception:
            logger.exception(f"Collaborative recommendations failed for user {user_id}")
            return []

    def _recommend(self, user_id: str, seed_place_id: Optional[str], limit: int) -> List[SpotRecommendation]:
        history = list(
            CheckinRecord.objects.filter(user_id=user_id)
            .order_by('-created_at')
            .values_list('place_id', flat=True)[:self.USER_HISTORY_LIMIT]
        )
        visited = set(history)

        seed = seed_place_id or (history[0] if history else None)
        if not seed:
            return []

        overlap_users = self.sample_overlap_users(seed, exclude_user_id=user_id)
        if len(overlap_users) < self.MIN_OVERLAP_USERS:
            return []

        counts, names = self._count_visits(overlap_users, exclude=visited | {seed})

        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
        denominator = max(len(overlap_users), 1)
        return [
            SpotRecommendation(
                place_id=place_id,
                name=names.get(place_id) or 'Unknown',
                score=min(100.0, 100.0 * count / denominator),
                reasons=[
                    f"{count} users with similar taste checked in here",
                    'Popular among people who like similar spots',
                ],
            )
            for place_id, count in ranked
        ]

    def sample_overlap_users(self, place_id: str, exclude_user_id: str) -> List[str]:
        """Distinct users who checked in at place_id, most recent visitors first."""
        rows = (
            CheckinRecord.objects.filter(place_id=place_id)
            .exclude(user_id=exclude_user_id)
            .values('user_id')
            .annotate(last_seen=Max('created_at'))
            .order_by('-last_seen', 'user_id')[:self.SAMPLE_SIZE]
        )
        return [row['user_id'] for row in rows]

    def _count_visits(self, user_ids: List[str], exclude: set):
        counts: Dict[str, int] = Counter()
        names: Dict[str, str] = {}

        for start in range(0, len(user_ids), self.BATCH_SIZE):
            batch = user_ids[start:start + self.BATCH_SIZE]
            rows = (
                CheckinRecord.objects.filter(user_id__in=batch)
                .order_by('-created_at')
                .values_list('place_id', 'spot_name')[:len(batch) * self.HISTORY_PER_USER]
            )
            for place_id, spot_name in rows:
                if not place_id or place_id in exclude:
                    continue
                counts[place_id] += 1
                names.setdefault(place_id, spot_name)

        return counts, names
