"""
ScoringService: The core algorithmic engine for the recommendation system.
Ranks candidate spots against a learned preference profile and the request context.
"""
import logging
import math
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional

from django.utils import timezone

from checkins.models import CheckinRecord
from locations.conf import engine_setting
from recommendations.cache import CacheStore
from recommendations.candidates import CandidateRetriever
from recommendations.dtos import ContextDTO, PointDTO, SpotCandidate, SpotRecommendation, TimePattern
from recommendations.models import CategoryAffinity, UserPreferenceProfile
from recommendations.preference_learner import (
    PreferenceLearner,
    TIME_OF_DAY_RANGES,
    average,
    hour_in_range,
    time_of_day_for_hour,
)

logger = logging.getLogger(__name__)


def _number(value) -> Optional[float]:
    """Finite float or None, so malformed candidate fields count as missing."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def format_visit_window(hour: int) -> str:
    """14 -> '2-4 PM', 11 -> '11 AM-1 PM'."""
    def display(h):
        h %= 24
        return (h - 12 if h > 12 else 12 if h == 0 else h), ('PM' if h >= 12 else 'AM')

    start, start_period = display(hour)
    end, end_period = display(hour + 2)
    if start_period == end_period:
        return f"{start}-{end} {start_period}"
    return f"{start} {start_period}-{end} {end_period}"


class ScoringService:
    """
    Algorithm Service: weighted multi-factor ranking of spots.

    score() starts from BASE_SCORE and applies, in order: noise match,
    category match, behavioral affinity multiplier, frequency bonus,
    time-of-day match, weather bonus, distance penalty, wifi and outlet
    quality bonuses, popularity. Only the final value is clamped to [0, 100].
    """

    BASE_SCORE = 50.0
    NOISE_MATCH_MAX = 20.0
    NOISE_FALLOFF = 5.0
    DEFAULT_SPOT_NOISE = 3.0
    CATEGORY_BONUS = 15.0
    AFFINITY_FACTOR = 0.3
    FREQUENT_SPOT_BONUS = 10.0
    TIME_OF_DAY_BONUS = 10.0
    RAINY_INDOOR_BONUS = 15.0
    DISTANCE_PENALTY_PER_KM = 2.0
    DISTANCE_PENALTY_MAX = 20.0
    QUALITY_BONUS_HIGH = 10.0
    QUALITY_BONUS = 5.0
    WIFI_QUALITY_FLOOR = 4.0
    POPULARITY_DIVISOR = 10.0
    POPULARITY_MAX = 10.0
    POPULAR_CHECKIN_COUNT = 50
    PROXIMITY_REASON_KM = 1.0

    NOISE_ANCHORS = {
        'quiet': 1.5,
        'moderate': 3.0,
        'lively': 4.5,
    }

    MAX_RESULTS = 10
    PATTERN_WINDOW = 200

    def __init__(self, preference_learner: Optional[PreferenceLearner] = None,
                 candidate_retriever: Optional[CandidateRetriever] = None,
                 cache: Optional[CacheStore] = None,
                 max_results: Optional[int] = None):
        self.preference_learner = preference_learner or PreferenceLearner()
        self.candidate_retriever = candidate_retriever or CandidateRetriever()
        self.cache = cache or CacheStore('recommendations', prefix='personalized')
        self.MAX_RESULTS = max_results or engine_setting('RECOMMENDATION_LIMIT')
        self.BATCH_SIZE = engine_setting('BATCH_SIZE')

    def score(self, spot: SpotCandidate, profile: UserPreferenceProfile, context: ContextDTO) -> float:
        """
        Pure scoring function: the result depends only on the arguments.

        Returns:
            float: score clamped to [0, 100]
        """
        score = self.BASE_SCORE

        # 1. Noise match, linear falloff around the preferred anchor
        anchor = self.NOISE_ANCHORS.get(profile.preferred_noise_level)
        if anchor is not None:
            spot_noise = _number(spot.avg_noise_level) or self.DEFAULT_SPOT_NOISE
            score += max(0.0, self.NOISE_MATCH_MAX - self.NOISE_FALLOFF * abs(spot_noise - anchor))

        # 2. Category match
        if profile.preferred_spot_types and spot.category in profile.preferred_spot_types:
            score += self.CATEGORY_BONUS

        # 3. Behavioral multiplier from implicit feedback
        affinity = _number((context.category_affinity or {}).get(spot.category)) or 0.0
        if affinity > 0:
            score *= 1 + self.AFFINITY_FACTOR * min(affinity, 1.0)

        # 4. Frequency
        if spot.place_id in (profile.frequent_spots or []):
            score += self.FREQUENT_SPOT_BONUS

        # 5. Time of day
        if context.time_of_day and profile.preferred_time_of_day == context.time_of_day:
            score += self.TIME_OF_DAY_BONUS

        # 6. Weather
        if context.weather == 'rainy' and spot.indoor:
            score += self.RAINY_INDOOR_BONUS

        # 7. Distance penalty; negative distances count as zero
        distance = _number(spot.distance_km)
        if distance is not None:
            score -= min(max(distance, 0.0) * self.DISTANCE_PENALTY_PER_KM, self.DISTANCE_PENALTY_MAX)

        # 8. Quality
        wifi = _number(spot.avg_wifi_speed)
        if wifi is not None and wifi >= self.WIFI_QUALITY_FLOOR:
            score += self.QUALITY_BONUS_HIGH if profile.wifi_importance == 'high' else self.QUALITY_BONUS

        if spot.top_outlet_availability == 'plenty':
            score += self.QUALITY_BONUS_HIGH if profile.outlet_importance == 'high' else self.QUALITY_BONUS

        # 9. Popularity
        checkin_count = _number(spot.checkin_count)
        if checkin_count and checkin_count > 0:
            score += min(checkin_count / self.POPULARITY_DIVISOR, self.POPULARITY_MAX)

        return max(0.0, min(100.0, score))

    def generate_reasons(self, spot: SpotCandidate, profile: UserPreferenceProfile,
                         context: ContextDTO) -> List[str]:
        """Human readable reasons in fixed precedence order."""
        reasons = []

        spot_noise = _number(spot.avg_noise_level)
        if profile.preferred_noise_level and spot_noise is not None:
            if profile.preferred_noise_level == 'quiet' and spot_noise <= 2:
                reasons.append('Usually quiet - matches your preference')
            elif profile.preferred_noise_level == 'lively' and spot_noise >= 4:
                reasons.append('Lively atmosphere - matches your preference')

        if spot.place_id in (profile.frequent_spots or []):
            reasons.append('One of your favorite spots')

        wifi = _number(spot.avg_wifi_speed)
        if wifi is not None and wifi >= self.WIFI_QUALITY_FLOOR:
            reasons.append('Great WiFi (4+ Mbps)')

        if spot.top_outlet_availability == 'plenty':
            reasons.append('Plenty of outlets available')

        distance = _number(spot.distance_km)
        if distance is not None and distance < self.PROXIMITY_REASON_KM:
            reasons.append(f"Only {max(distance, 0.0):.1f}km away")

        if context.weather == 'rainy' and spot.indoor:
            reasons.append('Perfect for rainy weather')

        checkin_count = _number(spot.checkin_count)
        if checkin_count and checkin_count > self.POPULAR_CHECKIN_COUNT:
            reasons.append('Very popular with students')

        return reasons or ['Based on your activity']

    def get_personalized_recommendations(self, user_id: str, location: PointDTO,
                                         context: Optional[ContextDTO] = None) -> List[SpotRecommendation]:
        """
        Orchestrator method that returns the top MAX_RESULTS spots for a user.

        Steps:
        1. Serve from cache (user, location rounded to 0.01 degrees, radius,
           weather and requested time of day)
        2. Load the preference profile and category affinity
        3. Fetch candidates and score each one
        4. Stable sort by score, attach time-pattern predictions

        The cached ranking always holds MAX_RESULTS entries; context.max_results
        only slices what is returned. Returns [] instead of raising when any
        dependency fails.
        """
        context = context or ContextDTO(user_location=location)
        limit = min(self.MAX_RESULTS, context.max_results or self.MAX_RESULTS)
        radius_km = context.radius_km or engine_setting('CANDIDATE_RADIUS_KM')
        cache_key = (
            f"{user_id}:{location.latitude:.2f}:{location.longitude:.2f}:{radius_km:.1f}"
            f":{context.weather or '-'}:{context.time_of_day or '-'}"
        )

        now = timezone.localtime()
        try:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached[:limit]

            profile = self.preference_learner.get_preferences(user_id)
            context = replace(
                context,
                category_affinity=context.category_affinity or CategoryAffinity.for_user(user_id),
                time_of_day=context.time_of_day or time_of_day_for_hour(now.hour),
            )

            candidates = self.candidate_retriever.get_candidates(location, radius_km)
            scored = [(self.score(spot, profile, context), spot) for spot in candidates]
            scored.sort(key=lambda item: item[0], reverse=True)
            top = scored[:self.MAX_RESULTS]

            patterns = self.get_time_patterns([spot.place_id for _, spot in top])
            recommendations = [
                self._build_recommendation(spot, score, profile, context, patterns.get(spot.place_id, []), now)
                for score, spot in top
            ]
            self.cache.set(cache_key, recommendations)
        except Exception:
            logger.exception(f"Personalized recommendations failed for user {user_id}")
            return []

        return recommendations[:limit]

    def get_time_patterns(self, place_ids: List[str]) -> Dict[str, List[TimePattern]]:
        """
        Weekday x hour averages of busyness and noise per spot, from each
        spot's most recent PATTERN_WINDOW check-ins. Lookups are batched.
        """
        sums = defaultdict(lambda: {'busyness': [], 'noise': [], 'count': 0})
        for start in range(0, len(place_ids), self.BATCH_SIZE):
            batch = place_ids[start:start + self.BATCH_SIZE]
            rows = (
                CheckinRecord.objects.filter(place_id__in=batch)
                .order_by('-created_at')
                .values_list('place_id', 'created_at', 'busyness', 'noise_level')[:len(batch) * self.PATTERN_WINDOW]
            )
            for place_id, created_at, busyness, noise in rows:
                local = timezone.localtime(created_at)
                slot = sums[(place_id, local.weekday(), local.hour)]
                slot['count'] += 1
                if busyness is not None:
                    slot['busyness'].append(busyness)
                if noise is not None:
                    slot['noise'].append(noise)

        patterns: Dict[str, List[TimePattern]] = defaultdict(list)
        for (place_id, day, hour), slot in sorted(sums.items()):
            patterns[place_id].append(TimePattern(
                day_of_week=day,
                hour=hour,
                avg_busyness=average(slot['busyness']),
                avg_noise=average(slot['noise']),
                checkin_count=slot['count'],
            ))
        return patterns

    def get_best_time_to_visit(self, patterns: List[TimePattern], profile: UserPreferenceProfile) -> Optional[str]:
        """
        Picks the hour whose average busyness best suits the user: quietest
        for 'empty', busiest for 'busy', closest to 3 otherwise. Patterns in
        the preferred time of day are considered first.
        """
        usable = [p for p in patterns if p.avg_busyness is not None]
        if not usable:
            return None

        relevant = usable
        if profile.preferred_time_of_day in TIME_OF_DAY_RANGES:
            start, end = TIME_OF_DAY_RANGES[profile.preferred_time_of_day]
            relevant = [p for p in usable if hour_in_range(p.hour, start, end)] or usable

        if profile.preferred_busyness == 'empty':
            best = min(relevant, key=lambda p: p.avg_busyness)
        elif profile.preferred_busyness == 'busy':
            best = max(relevant, key=lambda p: p.avg_busyness)
        else:
            best = min(relevant, key=lambda p: abs(p.avg_busyness - 3))

        return format_visit_window(best.hour)

    def _build_recommendation(self, spot: SpotCandidate, score: float, profile: UserPreferenceProfile,
                              context: ContextDTO, patterns: List[TimePattern], now) -> SpotRecommendation:
        current = next(
            (p for p in patterns if p.day_of_week == now.weekday() and p.hour == now.hour),
            None,
        )
        predicted_busyness = current.avg_busyness if current and current.avg_busyness else spot.avg_busyness
        predicted_noise = current.avg_noise if current and current.avg_noise else spot.avg_noise_level

        return SpotRecommendation(
            place_id=spot.place_id,
            name=spot.name,
            score=round(score, 2),
            reasons=self.generate_reasons(spot, profile, context),
            predicted_busyness=predicted_busyness,
            predicted_noise=predicted_noise,
            best_time_to_visit=self.get_best_time_to_visit(patterns, profile),
            match_score=round(score, 2),
            category=spot.category,
            distance_km=round(spot.distance_km, 3) if spot.distance_km is not None else None,
        )
