"""
CandidateRetriever: nearby spots with aggregated recent check-in metrics.
"""
import logging
from collections import Counter, OrderedDict
from typing import Dict, List, Optional

from checkins.models import CheckinRecord
from locations.conf import engine_setting
from locations.services import GeoService
from recommendations.cache import CacheStore
from recommendations.dtos import PointDTO, SpotCandidate
from recommendations.preference_learner import average

logger = logging.getLogger(__name__)


class CandidateRetriever:
    """
    Builds SpotCandidate lists for a location. Candidates are the union of
    known Spot rows inside the radius and spots seen in the most recent
    CHECKIN_WINDOW located check-ins. Results are cached per location
    rounded to 0.01 degrees and radius.
    """

    RADIUS_KM = 5.0
    CHECKIN_WINDOW = 200

    def __init__(self, radius_km: Optional[float] = None, checkin_window: Optional[int] = None,
                 cache: Optional[CacheStore] = None):
        self.RADIUS_KM = radius_km or engine_setting('CANDIDATE_RADIUS_KM')
        self.CHECKIN_WINDOW = checkin_window or engine_setting('CANDIDATE_CHECKIN_WINDOW')
        self.cache = cache or CacheStore('candidates', prefix='candidates')

    def get_candidates(self, location: PointDTO, radius_km: Optional[float] = None) -> List[SpotCandidate]:
        """
        Returns candidates ordered by distance, or [] if the store is unavailable.
        """
        radius_km = radius_km or self.RADIUS_KM
        cache_key = f"{location.latitude:.2f}:{location.longitude:.2f}:{radius_km:.1f}"
        try:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

            candidates = self._build_candidates(location, radius_km)
            self.cache.set(cache_key, candidates)
        except Exception:
            logger.exception(f"Candidate retrieval failed near {cache_key}")
            return []

        return candidates

    def _build_candidates(self, location: PointDTO, radius_km: float) -> List[SpotCandidate]:
        lat, lon = location.latitude, location.longitude
        candidates: Dict[str, SpotCandidate] = OrderedDict()

        for spot, distance in GeoService.find_nearby(lat, lon, radius_km):
            candidates[spot.place_id] = SpotCandidate(
                place_id=spot.place_id,
                name=spot.name,
                category=spot.category,
                latitude=spot.latitude,
                longitude=spot.longitude,
                distance_km=distance,
                indoor=spot.indoor,
            )

        recent = GeoService.within_radius(
            CheckinRecord.objects.all(), lat, lon, radius_km
        ).order_by('-created_at')[:self.CHECKIN_WINDOW]

        grouped: Dict[str, List[CheckinRecord]] = OrderedDict()
        for checkin in recent:
            grouped.setdefault(checkin.place_id, []).append(checkin)
            if checkin.place_id not in candidates:
                candidates[checkin.place_id] = SpotCandidate(
                    place_id=checkin.place_id,
                    name=checkin.spot_name,
                    category=checkin.spot_type,
                    latitude=checkin.latitude,
                    longitude=checkin.longitude,
                    distance_km=checkin.distance.km,
                )

        for place_id, checkins in grouped.items():
            self._aggregate(candidates[place_id], checkins)

        return sorted(candidates.values(), key=lambda c: (c.distance_km, c.place_id))

    @staticmethod
    def _aggregate(candidate: SpotCandidate, checkins: List[CheckinRecord]) -> None:
        candidate.avg_noise_level = average([c.noise_level for c in checkins if c.noise_level is not None])
        candidate.avg_busyness = average([c.busyness for c in checkins if c.busyness is not None])
        candidate.avg_wifi_speed = average([c.wifi_speed for c in checkins if c.wifi_speed is not None])

        outlets = Counter(c.outlet_availability for c in checkins if c.outlet_availability)
        candidate.top_outlet_availability = outlets.most_common(1)[0][0] if outlets else None
        candidate.checkin_count = len(checkins)

