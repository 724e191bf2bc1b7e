"""
Tests for the recommendations module.
"""
import math
from datetime import timedelta
from unittest.mock import MagicMock, patch

from django.core.cache import caches
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from checkins.models import CheckinRecord
from checkins.services import CheckinService
from locations.models import Spot, SpotCategory
from locations.services import GeoService
from recommendations.candidates import CandidateRetriever
from recommendations.collaborative_filter import CollaborativeFilter
from recommendations.dtos import ContextDTO, PointDTO, SpotCandidate, TimePattern
from recommendations.events import record_place_event
from recommendations.models import CategoryAffinity, PlaceEvent, UserPreferenceProfile
from recommendations.preference_learner import PreferenceLearner, preferred_time_of_day, time_of_day_for_hour
from recommendations.scoring_service import ScoringService, format_visit_window
from recommendations.trend_analyzer import TrendAnalyzer


def clear_engine_caches():
    for alias in ('preferences', 'recommendations', 'candidates'):
        caches[alias].clear()


def make_checkin(user_id, place_id, spot_name='Spot', days_ago=0, hours_ago=0, **fields):
    fields.setdefault('created_at', timezone.now() - timedelta(days=days_ago, hours=hours_ago))
    return CheckinRecord.objects.create(user_id=user_id, place_id=place_id, spot_name=spot_name, **fields)


class PreferenceLearnerTestCase(TestCase):
    """Test cases for PreferenceLearner"""

    def setUp(self):
        clear_engine_caches()
        self.learner = PreferenceLearner()

    def test_no_history_returns_neutral_default(self):
        profile = self.learner.get_preferences('nobody')

        self.assertIsNone(profile.preferred_noise_level)
        self.assertIsNone(profile.preferred_busyness)
        self.assertEqual(profile.preferred_spot_types, [])
        self.assertIsNone(profile.preferred_time_of_day)
        self.assertEqual(profile.wifi_importance, 'medium')
        self.assertEqual(profile.outlet_importance, 'medium')
        self.assertEqual(profile.frequent_spots, [])
        self.assertFalse(UserPreferenceProfile.objects.filter(user_id='nobody').exists())

        again = self.learner.get_preferences('nobody')
        self.assertEqual(again.preferred_spot_types, profile.preferred_spot_types)
        self.assertEqual(again.last_updated, profile.last_updated)

    def test_quiet_empty_library_user(self):
        for i in range(10):
            make_checkin('u1', 'lib-a', 'Library A', hours_ago=i, noise_level=1, busyness=1, spot_type='library')

        profile = self.learner.learn_preferences('u1')

        self.assertEqual(profile.preferred_noise_level, 'quiet')
        self.assertEqual(profile.preferred_busyness, 'empty')
        self.assertEqual(profile.preferred_spot_types, ['library'])
        self.assertEqual(profile.frequent_spots, ['lib-a'])
        self.assertTrue(UserPreferenceProfile.objects.filter(user_id='u1').exists())

    def test_frequent_spots_need_two_visits_and_sort_by_count(self):
        for i in range(3):
            make_checkin('u1', 'a', hours_ago=i)
        for i in range(2):
            make_checkin('u1', 'b', hours_ago=10 + i)
        make_checkin('u1', 'c', hours_ago=20)

        profile = self.learner.learn_preferences('u1')

        self.assertEqual(profile.frequent_spots, ['a', 'b'])

    def test_importance_and_busy_lively_buckets(self):
        for i in range(4):
            make_checkin(
                'u1', f'p{i}', hours_ago=i, wifi_speed=5, noise_level=5, busyness=4, outlet_availability='none'
            )

        profile = self.learner.learn_preferences('u1')

        self.assertEqual(profile.wifi_importance, 'high')
        self.assertEqual(profile.outlet_importance, 'low')
        self.assertEqual(profile.preferred_noise_level, 'lively')
        self.assertEqual(profile.preferred_busyness, 'busy')

    def test_preferred_time_of_day_ties(self):
        self.assertEqual(preferred_time_of_day([8, 14, 20]), 'morning')
        self.assertEqual(preferred_time_of_day([14, 20]), 'afternoon')
        self.assertEqual(preferred_time_of_day([20, 2, 14]), 'evening')
        self.assertIsNone(preferred_time_of_day([]))

    def test_fresh_profile_is_served_as_stored(self):
        UserPreferenceProfile.objects.create(
            user_id='u1', preferred_noise_level='lively', last_updated=timezone.now() - timedelta(days=1)
        )
        make_checkin('u1', 'lib-a', noise_level=1)

        profile = self.learner.get_preferences('u1')

        self.assertEqual(profile.preferred_noise_level, 'lively')

    def test_stale_profile_is_refreshed(self):
        UserPreferenceProfile.objects.create(
            user_id='u1', preferred_noise_level='lively', last_updated=timezone.now() - timedelta(days=8)
        )
        make_checkin('u1', 'lib-a', noise_level=1)

        profile = self.learner.get_preferences('u1')

        self.assertEqual(profile.preferred_noise_level, 'quiet')
        self.assertGreater(profile.last_updated, timezone.now() - timedelta(minutes=1))

    def test_stale_cached_profile_is_evicted(self):
        stale = UserPreferenceProfile(
            user_id='gone', preferred_noise_level='lively', last_updated=timezone.now() - timedelta(days=8)
        )
        self.learner.cache.set('gone', stale)

        profile = self.learner.get_preferences('gone')

        self.assertIsNone(profile.preferred_noise_level)
        self.assertIsNone(self.learner.cache.get('gone'))

    def test_last_updated_is_monotonic(self):
        make_checkin('u1', 'lib-a', noise_level=1)
        later = timezone.now()
        earlier = later - timedelta(days=1)

        self.learner.learn_preferences('u1', now=later)
        profile = self.learner.learn_preferences('u1', now=earlier)

        self.assertEqual(profile.last_updated, later)
        self.assertEqual(UserPreferenceProfile.objects.get(user_id='u1').last_updated, later)

    @patch('recommendations.preference_learner.CheckinRecord')
    def test_data_source_error_returns_neutral(self, mock_checkins):
        mock_checkins.objects.filter.side_effect = DatabaseError("store unreachable")

        profile = self.learner.learn_preferences('u1')

        self.assertIsNone(profile.preferred_noise_level)
        self.assertEqual(profile.wifi_importance, 'medium')


class ScoringServiceTestCase(TestCase):
    """Test cases for the pure scoring function"""

    def setUp(self):
        clear_engine_caches()
        self.service = ScoringService()
        self.neutral = UserPreferenceProfile.neutral('u1')
        self.context = ContextDTO()

    def quiet_profile(self, **overrides):
        fields = {
            'user_id': 'u1',
            'preferred_noise_level': 'quiet',
            'preferred_busyness': 'empty',
            'preferred_spot_types': ['library'],
            'frequent_spots': [],
        }
        fields.update(overrides)
        return UserPreferenceProfile(**fields)

    def test_base_score_for_neutral_profile(self):
        spot = SpotCandidate(place_id='p1', name='Spot')
        self.assertEqual(self.service.score(spot, self.neutral, self.context), 50.0)

    def test_score_is_deterministic(self):
        spot = SpotCandidate(
            place_id='p1', name='Spot', category='library', distance_km=1.3,
            avg_noise_level=2.2, avg_wifi_speed=4.1, top_outlet_availability='plenty', checkin_count=33,
        )
        profile = self.quiet_profile()
        context = ContextDTO(weather='rainy', category_affinity={'library': 0.4})

        first = self.service.score(spot, profile, context)
        for _ in range(5):
            self.assertEqual(self.service.score(spot, profile, context), first)

    def test_adversarial_inputs_stay_in_range(self):
        profile = self.quiet_profile(frequent_spots=['p1'], preferred_time_of_day='morning')
        spots = [
            SpotCandidate(place_id='p1', name='Neg', distance_km=-5.0),
            SpotCandidate(place_id='p1', name='NaN', distance_km=float('nan'), avg_noise_level=float('inf')),
            SpotCandidate(place_id='p1', name='Huge', category='library', checkin_count=10 ** 9,
                          avg_wifi_speed=5, top_outlet_availability='plenty', avg_noise_level=1.5),
            SpotCandidate(place_id='p2', name='Far', distance_km=10 ** 6, avg_noise_level=-40),
            SpotCandidate(place_id='p3', name='Garbage', category=None, checkin_count='many'),
        ]
        context = ContextDTO(time_of_day='morning', weather='rainy', category_affinity={'library': 50})

        for spot in spots:
            score = self.service.score(spot, profile, context)
            self.assertTrue(0.0 <= score <= 100.0, f"{spot.name}: {score}")
            self.assertFalse(math.isnan(score))

    def test_negative_distance_counts_as_zero(self):
        near = SpotCandidate(place_id='p1', name='Spot', distance_km=0.0)
        negative = SpotCandidate(place_id='p1', name='Spot', distance_km=-3.0)
        self.assertEqual(
            self.service.score(near, self.neutral, self.context),
            self.service.score(negative, self.neutral, self.context),
        )

    def test_noise_match_linear_falloff(self):
        profile = self.quiet_profile(preferred_spot_types=[])
        exact = SpotCandidate(place_id='p1', name='Spot', avg_noise_level=1.5)
        loud = SpotCandidate(place_id='p1', name='Spot', avg_noise_level=5)
        missing = SpotCandidate(place_id='p1', name='Spot')

        self.assertEqual(self.service.score(exact, profile, self.context), 70.0)
        self.assertEqual(self.service.score(loud, profile, self.context), 52.5)
        # missing noise is treated as 3
        self.assertEqual(self.service.score(missing, profile, self.context), 62.5)

    def test_affinity_multiplier_and_late_clamp(self):
        profile = self.quiet_profile()
        spot = SpotCandidate(place_id='p1', name='Spot', category='library', avg_noise_level=1.5, distance_km=10)
        context = ContextDTO(category_affinity={'library': 3.0})

        # (50 + 20 + 15) * 1.3 = 110.5, then -20 for distance; no clamp in between
        self.assertAlmostEqual(self.service.score(spot, profile, context), 90.5)

    def test_quality_bonuses_depend_on_importance(self):
        spot = SpotCandidate(place_id='p1', name='Spot', avg_wifi_speed=4.5, top_outlet_availability='plenty')
        high = UserPreferenceProfile(user_id='u1', wifi_importance='high', outlet_importance='high')

        self.assertEqual(self.service.score(spot, self.neutral, self.context), 60.0)
        self.assertEqual(self.service.score(spot, high, self.context), 70.0)

    def test_popularity_is_capped(self):
        spot = SpotCandidate(place_id='p1', name='Spot', checkin_count=250)
        self.assertEqual(self.service.score(spot, self.neutral, self.context), 60.0)

    def test_reasons_follow_precedence(self):
        profile = self.quiet_profile(frequent_spots=['p1'])
        spot = SpotCandidate(
            place_id='p1', name='Spot', avg_noise_level=1.5, avg_wifi_speed=4.5,
            top_outlet_availability='plenty', distance_km=0.42, indoor=True, checkin_count=60,
        )

        reasons = self.service.generate_reasons(spot, profile, ContextDTO(weather='rainy'))

        self.assertEqual(reasons, [
            'Usually quiet - matches your preference',
            'One of your favorite spots',
            'Great WiFi (4+ Mbps)',
            'Plenty of outlets available',
            'Only 0.4km away',
            'Perfect for rainy weather',
            'Very popular with students',
        ])

    def test_reasons_fallback(self):
        spot = SpotCandidate(place_id='p1', name='Spot', distance_km=3.0)
        self.assertEqual(self.service.generate_reasons(spot, self.neutral, self.context), ['Based on your activity'])

    def test_best_time_to_visit(self):
        patterns = [
            TimePattern(day_of_week=0, hour=9, avg_busyness=4.0, avg_noise=3.0, checkin_count=3),
            TimePattern(day_of_week=0, hour=14, avg_busyness=1.0, avg_noise=2.0, checkin_count=2),
            TimePattern(day_of_week=1, hour=19, avg_busyness=3.2, avg_noise=3.0, checkin_count=1),
        ]

        self.assertEqual(self.service.get_best_time_to_visit(patterns, self.quiet_profile()), '2-4 PM')
        busy = self.quiet_profile(preferred_busyness='busy')
        self.assertEqual(self.service.get_best_time_to_visit(patterns, busy), '9-11 AM')
        self.assertEqual(self.service.get_best_time_to_visit(patterns, self.neutral), '7-9 PM')
        evening_empty = self.quiet_profile(preferred_time_of_day='evening')
        self.assertEqual(self.service.get_best_time_to_visit(patterns, evening_empty), '7-9 PM')
        self.assertIsNone(self.service.get_best_time_to_visit([], self.neutral))

    def test_best_time_for_evening_user_includes_late_night(self):
        patterns = [
            TimePattern(day_of_week=0, hour=14, avg_busyness=1.0, avg_noise=2.0, checkin_count=2),
            TimePattern(day_of_week=0, hour=20, avg_busyness=4.0, avg_noise=3.0, checkin_count=3),
            TimePattern(day_of_week=1, hour=1, avg_busyness=1.5, avg_noise=1.0, checkin_count=1),
        ]
        night_owl = self.quiet_profile(preferred_time_of_day='evening')

        self.assertEqual(self.service.get_best_time_to_visit(patterns, night_owl), '1-3 AM')
        self.assertEqual(time_of_day_for_hour(1), 'evening')
        self.assertEqual(time_of_day_for_hour(5), 'evening')
        self.assertEqual(time_of_day_for_hour(6), 'morning')
        self.assertEqual(time_of_day_for_hour(18), 'evening')

    def test_format_visit_window(self):
        self.assertEqual(format_visit_window(14), '2-4 PM')
        self.assertEqual(format_visit_window(11), '11 AM-1 PM')
        self.assertEqual(format_visit_window(0), '12-2 AM')
        self.assertEqual(format_visit_window(23), '11 PM-1 AM')


class PersonalizedRecommendationsTestCase(TestCase):
    """End-to-end ranking over stored spots and check-ins"""

    def setUp(self):
        clear_engine_caches()
        self.location = PointDTO(latitude=41.0, longitude=29.0)
        Spot.objects.create(
            place_id='lib-a', name='Library A', latitude=41.0, longitude=29.0, category=SpotCategory.LIBRARY
        )
        Spot.objects.create(
            place_id='cafe-b', name='Cafe B', latitude=41.005, longitude=29.0, category=SpotCategory.CAFE
        )
        for i in range(10):
            make_checkin(
                'u1', 'lib-a', 'Library A', days_ago=1, hours_ago=i,
                noise_level=1, busyness=1, spot_type='library', latitude=41.0, longitude=29.0,
            )
        for i in range(3):
            make_checkin(
                'u2', 'cafe-b', 'Cafe B', hours_ago=i,
                noise_level=5, busyness=5, spot_type='cafe', latitude=41.005, longitude=29.0,
            )

    def test_library_user_gets_library_first(self):
        recommendations = ScoringService().get_personalized_recommendations('u1', self.location)

        self.assertEqual([r.place_id for r in recommendations], ['lib-a', 'cafe-b'])
        top = recommendations[0]
        self.assertGreaterEqual(top.score, 80)
        self.assertIn('One of your favorite spots', top.reasons)
        self.assertIn('Usually quiet - matches your preference', top.reasons)
        self.assertEqual(top.predicted_noise, 1)
        self.assertIsNotNone(top.best_time_to_visit)

    def test_results_are_cached_per_location(self):
        service = ScoringService()
        first = service.get_personalized_recommendations('u1', self.location)

        CheckinRecord.objects.all().delete()
        Spot.objects.all().delete()
        nearby = PointDTO(latitude=41.001, longitude=29.001)

        self.assertEqual(service.get_personalized_recommendations('u1', nearby), first)

    def test_cached_ranking_is_not_truncated_by_max_results(self):
        service = ScoringService()

        single = service.get_personalized_recommendations(
            'u1', self.location, ContextDTO(user_location=self.location, max_results=1)
        )
        full = service.get_personalized_recommendations(
            'u1', self.location, ContextDTO(user_location=self.location, max_results=10)
        )

        self.assertEqual([r.place_id for r in single], ['lib-a'])
        self.assertEqual([r.place_id for r in full], ['lib-a', 'cafe-b'])

    def test_cache_is_keyed_by_radius(self):
        service = ScoringService()

        narrow = service.get_personalized_recommendations(
            'u1', self.location, ContextDTO(user_location=self.location, radius_km=0.1)
        )
        wide = service.get_personalized_recommendations(
            'u1', self.location, ContextDTO(user_location=self.location, radius_km=5.0)
        )

        self.assertEqual([r.place_id for r in narrow], ['lib-a'])
        self.assertEqual([r.place_id for r in wide], ['lib-a', 'cafe-b'])

    def test_cache_failure_returns_empty_list(self):
        cache = MagicMock()
        cache.get.side_effect = RuntimeError("cache backend down")
        service = ScoringService(cache=cache)

        self.assertEqual(service.get_personalized_recommendations('u1', self.location), [])

    def test_dependency_failure_returns_empty_list(self):
        retriever = MagicMock()
        retriever.get_candidates.side_effect = RuntimeError("candidate store down")
        service = ScoringService(candidate_retriever=retriever)

        self.assertEqual(service.get_personalized_recommendations('u1', self.location), [])

    def test_max_results_limit(self):
        service = ScoringService(max_results=1)
        recommendations = service.get_personalized_recommendations('u1', self.location)
        self.assertEqual(len(recommendations), 1)


class CandidateRetrieverTestCase(TestCase):
    def setUp(self):
        clear_engine_caches()
        self.location = PointDTO(latitude=41.0, longitude=29.0)

    def test_aggregates_recent_checkins(self):
        Spot.objects.create(place_id='s1', name='Known', latitude=41.0, longitude=29.0, indoor=False)
        make_checkin('u1', 's1', 'Known', latitude=41.0, longitude=29.0, noise_level=2, wifi_speed=4,
                     outlet_availability='plenty')
        make_checkin('u2', 's1', 'Known', latitude=41.0, longitude=29.0, noise_level=4,
                     outlet_availability='plenty')
        make_checkin('u3', 's1', 'Known', latitude=41.0, longitude=29.0, outlet_availability='few')
        make_checkin('u1', 'walk-in', 'Walk In Cafe', latitude=41.01, longitude=29.0, spot_type='cafe')
        make_checkin('u1', 'far', 'Far Away', latitude=42.0, longitude=29.0)

        candidates = CandidateRetriever().get_candidates(self.location)

        self.assertEqual([c.place_id for c in candidates], ['s1', 'walk-in'])
        known = candidates[0]
        self.assertEqual(known.avg_noise_level, 3.0)
        self.assertEqual(known.avg_wifi_speed, 4.0)
        self.assertIsNone(known.avg_busyness)
        self.assertEqual(known.top_outlet_availability, 'plenty')
        self.assertEqual(known.checkin_count, 3)
        self.assertFalse(known.indoor)
        self.assertEqual(candidates[1].category, 'cafe')
        # 0.01 degrees of latitude is roughly 1.11km
        self.assertAlmostEqual(candidates[1].distance_km, 1.11, delta=0.01)

    def test_candidates_are_cached(self):
        retriever = CandidateRetriever()
        make_checkin('u1', 's1', 'Known', latitude=41.0, longitude=29.0)
        first = retriever.get_candidates(self.location)

        make_checkin('u1', 's2', 'New', latitude=41.0, longitude=29.0)

        self.assertEqual(retriever.get_candidates(self.location), first)

    def test_cache_failure_returns_empty_list(self):
        cache = MagicMock()
        cache.get.side_effect = RuntimeError("cache backend down")
        make_checkin('u1', 's1', 'Known', latitude=41.0, longitude=29.0)

        self.assertEqual(CandidateRetriever(cache=cache).get_candidates(self.location), [])


class CollaborativeFilterTestCase(TestCase):
    def setUp(self):
        make_checkin('u1', 'seed', 'Seed Spot', hours_ago=1)
        make_checkin('u1', 'z', 'Z', hours_ago=5)

    def test_counts_unvisited_spots_of_overlap_users(self):
        make_checkin('u2', 'seed', 'Seed Spot')
        make_checkin('u2', 'x', 'Spot X')
        make_checkin('u2', 'z', 'Z')
        make_checkin('u3', 'seed', 'Seed Spot')
        make_checkin('u3', 'x', 'Spot X')
        make_checkin('u3', 'y', 'Spot Y')

        results = CollaborativeFilter().get_recommendations('u1', seed_place_id='seed')

        self.assertEqual([r.place_id for r in results], ['x', 'y'])
        self.assertEqual(results[0].name, 'Spot X')
        self.assertEqual(results[0].score, 100.0)
        self.assertEqual(results[1].score, 50.0)
        self.assertEqual(results[0].reasons[0], '2 users with similar taste checked in here')

    def test_single_overlap_user_returns_empty(self):
        make_checkin('u2', 'seed', 'Seed Spot')
        make_checkin('u2', 'x', 'Spot X')

        self.assertEqual(CollaborativeFilter().get_recommendations('u1', seed_place_id='seed'), [])

    def test_seed_defaults_to_most_recent_checkin(self):
        for user in ('u2', 'u3'):
            make_checkin(user, 'seed', 'Seed Spot')
            make_checkin(user, 'x', 'Spot X')

        results = CollaborativeFilter().get_recommendations('u1')

        self.assertEqual([r.place_id for r in results], ['x'])

    def test_unknown_user_without_seed(self):
        self.assertEqual(CollaborativeFilter().get_recommendations('stranger'), [])

    def test_small_batches_give_same_counts(self):
        for i in range(5):
            make_checkin(f'v{i}', 'seed', 'Seed Spot')
            make_checkin(f'v{i}', 'x', 'Spot X')

        results = CollaborativeFilter(batch_size=2).get_recommendations('u1', seed_place_id='seed')

        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].reasons[0], '5 users with similar taste checked in here')
        self.assertEqual(results[0].score, 100.0)


class TrendAnalyzerTestCase(TestCase):
    """Test cases for TrendAnalyzer"""

    def setUp(self):
        self.analyzer = TrendAnalyzer()
        self.now = timezone.now()

    def add(self, place_id, count, days_ago, lat=41.0, lon=29.0):
        for i in range(count):
            make_checkin(
                f'user{i}', place_id, f'Spot {place_id}',
                created_at=self.now - timedelta(days=days_ago, minutes=i + 1), latitude=lat, longitude=lon,
            )

    def test_new_activity_is_trending_up(self):
        change, score, direction = self.analyzer.compute_trend(5, 0)
        self.assertEqual(change, 100.0)
        self.assertEqual(score, 100.0)
        self.assertEqual(direction, 'up')

    def test_drop_is_trending_down(self):
        change, score, direction = self.analyzer.compute_trend(2, 10)
        self.assertEqual(change, -80.0)
        self.assertEqual(score, 14.0)
        self.assertEqual(direction, 'down')

    @override_settings(PLACE_INTELLIGENCE={'TREND_MIN_RECENT_CHECKINS': 6, 'TREND_DIRECTION_THRESHOLD': 200.0})
    def test_thresholds_come_from_settings(self):
        analyzer = TrendAnalyzer()
        self.add('a', 5, days_ago=1)

        self.assertEqual(analyzer.get_trending_spots(now=self.now), [])
        self.assertEqual(analyzer.compute_trend(5, 0)[2], 'stable')

    def test_flat_is_stable(self):
        self.assertEqual(self.analyzer.compute_trend(10, 10), (0.0, 70.0, 'stable'))
        self.assertEqual(self.analyzer.compute_trend(0, 0), (0.0, 50.0, 'stable'))

    def test_get_trending_spots(self):
        self.add('a', 5, days_ago=1)
        self.add('b', 2, days_ago=2)
        self.add('b', 10, days_ago=9)
        self.add('c', 1, days_ago=1)
        self.add('old', 6, days_ago=20)

        trending = self.analyzer.get_trending_spots(now=self.now)

        self.assertEqual([t.place_id for t in trending], ['a', 'b'])
        self.assertEqual(trending[0].direction, 'up')
        self.assertEqual(trending[0].top_reason, '5 check-ins this week (+100%)')
        self.assertEqual(trending[1].direction, 'down')
        self.assertEqual(trending[1].prev7, 10)
        self.assertEqual(trending[1].top_reason, '2 check-ins this week')

    def test_geohash_area_filter(self):
        self.add('istanbul', 3, days_ago=1, lat=41.0, lon=29.0)
        self.add('ankara', 3, days_ago=1, lat=39.93, lon=32.85)

        area = GeoService.encode_geohash(41.0, 29.0, 5)
        trending = self.analyzer.get_trending_spots(geohash=area, now=self.now)

        self.assertEqual([t.place_id for t in trending], ['istanbul'])


class PlaceEventTestCase(TestCase):
    def setUp(self):
        clear_engine_caches()

    def test_events_accumulate_category_affinity(self):
        Spot.objects.create(place_id='c1', name='Cafe', latitude=41.0, longitude=29.0, category=SpotCategory.CAFE)

        record_place_event('u1', 'c1', 'save')
        record_place_event('u1', 'c1', 'impression')
        record_place_event('u1', 'unknown-place', 'tap', category='library')

        self.assertEqual(PlaceEvent.objects.filter(user_id='u1').count(), 3)
        affinity = CategoryAffinity.for_user('u1')
        self.assertAlmostEqual(affinity['cafe'], 2.2)
        self.assertAlmostEqual(affinity['library'], 1.0)

    def test_affinity_halves_every_fourteen_days(self):
        now = timezone.now()
        CategoryAffinity.add_weight('u1', 'cafe', 3.0, now=now - timedelta(days=14))
        CategoryAffinity.add_weight('u1', 'library', 3.0, now=now)

        affinity = CategoryAffinity.for_user('u1', now=now)
        self.assertAlmostEqual(affinity['cafe'], 1.5)
        self.assertAlmostEqual(affinity['library'], 3.0)

        CategoryAffinity.add_weight('u1', 'cafe', 1.0, now=now)
        self.assertAlmostEqual(CategoryAffinity.for_user('u1', now=now)['cafe'], 2.5)
        self.assertAlmostEqual(
            CategoryAffinity.for_user('u1', now=now + timedelta(days=14))['cafe'], 1.25
        )

    def test_old_events_weaken_the_scoring_multiplier(self):
        CategoryAffinity.add_weight('u1', 'cafe', 1.0, now=timezone.now() - timedelta(days=28))
        Spot.objects.create(place_id='c1', name='Cafe', latitude=41.0, longitude=29.0, category=SpotCategory.CAFE)

        location = PointDTO(latitude=41.0, longitude=29.0)
        context = ContextDTO(user_location=location, time_of_day='morning')
        recommendations = ScoringService().get_personalized_recommendations('u1', location, context)

        # 50 * (1 + 0.3 * 0.25): two half-lives have passed
        self.assertEqual(recommendations[0].score, 53.75)

    def test_new_checkin_records_checkin_event(self):
        with self.captureOnCommitCallbacks(execute=True):
            CheckinService().record_checkin({'user_id': 'u1', 'place_id': 'p1', 'spot_name': 'Campus Library'})

        event = PlaceEvent.objects.get(user_id='u1')
        self.assertEqual(event.event_type, 'checkin')
        self.assertAlmostEqual(CategoryAffinity.for_user('u1')['library'], 3.0)

    def test_affinity_feeds_scoring(self):
        record_place_event('u1', 'c1', 'tap', category='cafe')
        Spot.objects.create(place_id='c1', name='Cafe', latitude=41.0, longitude=29.0, category=SpotCategory.CAFE)

        service = ScoringService()
        location = PointDTO(latitude=41.0, longitude=29.0)
        context = ContextDTO(user_location=location, time_of_day='morning')
        recommendations = service.get_personalized_recommendations('u1', location, context)

        # 50 * 1.3 with no other signal
        self.assertEqual(recommendations[0].score, 65.0)


class RecommendationsAPITestCase(APITestCase):
    def setUp(self):
        clear_engine_caches()
        Spot.objects.create(place_id='lib-a', name='Library A', latitude=41.0, longitude=29.0,
                            category=SpotCategory.LIBRARY)

    def test_generate_requires_user_id(self):
        url = reverse('recommendations:generate_recommendations')
        response = self.client.post(url, {'context': {}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_generate_validates_context(self):
        url = reverse('recommendations:generate_recommendations')
        payload = {'user_id': 'u1', 'context': {'user_location': {'latitude': 100, 'longitude': 29.0}}}
        response = self.client.post(url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_generate_returns_ranked_spots(self):
        url = reverse('recommendations:generate_recommendations')
        payload = {
            'user_id': 'u1',
            'context': {'user_location': {'latitude': 41.0, 'longitude': 29.0}, 'weather': 'rainy'},
        }
        response = self.client.post(url, payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['recommendations'][0]['place_id'], 'lib-a')
        self.assertIn('Perfect for rainy weather', response.data['recommendations'][0]['reasons'])

    def test_collaborative_requires_user(self):
        response = self.client.get(reverse('recommendations:collaborative_recommendations'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_collaborative_empty_for_new_user(self):
        response = self.client.get(reverse('recommendations:collaborative_recommendations'), {'user_id': 'new'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['recommendations'], [])

    def test_trending(self):
        for i in range(3):
            make_checkin(f'u{i}', 'lib-a', 'Library A', hours_ago=i + 1)

        response = self.client.get(reverse('recommendations:trending_places'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['trending_places'][0]['place_id'], 'lib-a')
        self.assertEqual(response.data['trending_places'][0]['direction'], 'up')

    def test_preferences_for_unknown_user(self):
        url = reverse('recommendations:user_preferences', kwargs={'user_id': 'ghost'})
        response = self.client.get(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['preferred_noise_level'])
        self.assertEqual(response.data['wifi_importance'], 'medium')

    def test_record_event(self):
        url = reverse('recommendations:place_events')
        response = self.client.post(url, {'user_id': 'u1', 'place_id': 'lib-a', 'event_type': 'save'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category'], 'library')
        self.assertAlmostEqual(CategoryAffinity.for_user('u1')['library'], 2.0)

    def test_record_event_rejects_unknown_type(self):
        url = reverse('recommendations:place_events')
        response = self.client.post(url, {'user_id': 'u1', 'place_id': 'lib-a', 'event_type': 'like'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
