"""
Tests for the intelligence module.
"""
from datetime import timedelta
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from checkins.models import CheckinRecord
from checkins.services import CheckinService
from intelligence.calibration_tracker import CalibrationStatus, CalibrationTracker, keyword_delta, quality_label
from intelligence.live_blender import InferredAttribute, LiveAggregate, LiveBlender
from intelligence.models import (
    CalibrationBucket,
    CalibrationMetrics,
    IntelligenceOutcome,
    IntelligencePrediction,
    confidence_bucket,
)
from locations.models import Spot


class CalibrationTrackerTestCase(TestCase):
    """Test cases for CalibrationTracker"""

    def setUp(self):
        self.tracker = CalibrationTracker()
        self.now = timezone.now()

    def make_checkin(self, **fields):
        defaults = {
            'user_id': 'u1',
            'place_id': 'p1',
            'spot_name': 'Library A',
            'created_at': self.now,
        }
        defaults.update(fields)
        return CheckinRecord.objects.create(**defaults)

    def make_prediction(self, minutes_before=60, **fields):
        defaults = {
            'place_id': 'p1',
            'place_name': 'Library A',
            'work_score': 80.0,
            'confidence': 0.8,
            'model_version': 'v2',
            'created_at': self.now - timedelta(minutes=minutes_before),
        }
        defaults.update(fields)
        return IntelligencePrediction.objects.create(**defaults)

    def test_observed_work_score(self):
        best = self.make_checkin(wifi_speed=5, noise_level=1)
        middling = self.make_checkin(
            wifi_speed=3, noise_level=3, busyness=3, laptop_friendly=True, outlet_availability='some'
        )
        reweighted = self.make_checkin(wifi_speed=5, laptop_friendly=False)

        self.assertEqual(self.tracker.observed_work_score(best), (100.0, 2))
        score, signals = self.tracker.observed_work_score(middling)
        self.assertAlmostEqual(score, 57.333, places=2)
        self.assertEqual(signals, 5)
        self.assertAlmostEqual(self.tracker.observed_work_score(reweighted)[0], 35 / 0.47, places=2)

    def test_single_signal_is_skipped(self):
        self.make_prediction()
        checkin = self.make_checkin(wifi_speed=5)

        result = self.tracker.process_checkin(checkin)

        self.assertEqual(result.status, CalibrationStatus.SKIPPED_INSUFFICIENT_SIGNAL)
        self.assertFalse(IntelligenceOutcome.objects.exists())
        self.assertFalse(CalibrationMetrics.objects.exists())

    def test_links_and_increments(self):
        prediction = self.make_prediction()
        checkin = self.make_checkin(wifi_speed=5, noise_level=1)

        result = self.tracker.process_checkin(checkin)

        self.assertEqual(result.status, CalibrationStatus.LINKED)
        self.assertEqual(result.outcome_id, f"{checkin.id}_{prediction.id}")
        outcome = IntelligenceOutcome.objects.get(pk=result.outcome_id)
        self.assertEqual(outcome.signed_error, -20.0)
        self.assertEqual(outcome.abs_error, 20.0)
        self.assertEqual(outcome.squared_error, 400.0)
        self.assertEqual(outcome.confidence_bucket, 'high')
        self.assertEqual(outcome.outcome_quality_label, 'excellent')

        metrics = CalibrationMetrics.current()
        self.assertEqual(metrics.sample_count, 1)
        self.assertEqual(metrics.abs_error_sum, 20.0)
        self.assertEqual(metrics.squared_error_sum, 400.0)
        self.assertEqual(metrics.mean_abs_error, 20.0)
        self.assertEqual(metrics.rmse, 20.0)

        buckets = {(b.dimension, b.bucket): b.sample_count for b in CalibrationBucket.objects.all()}
        self.assertEqual(buckets, {
            ('confidence', 'high'): 1,
            ('quality', 'excellent'): 1,
            ('model_version', 'v2'): 1,
        })

    def test_same_pair_is_counted_once(self):
        self.make_prediction()
        checkin = self.make_checkin(wifi_speed=5, noise_level=1)

        first = self.tracker.process_checkin(checkin)
        second = self.tracker.process_checkin(checkin)

        self.assertEqual(first.status, CalibrationStatus.LINKED)
        self.assertEqual(second.status, CalibrationStatus.DUPLICATE)
        self.assertEqual(IntelligenceOutcome.objects.count(), 1)
        self.assertEqual(CalibrationMetrics.current().sample_count, 1)
        self.assertEqual(CalibrationBucket.objects.get(dimension='confidence', bucket='high').sample_count, 1)

    def test_sums_accumulate_across_checkins(self):
        self.make_prediction(confidence=0.6)
        self.tracker.process_checkin(self.make_checkin(wifi_speed=5, noise_level=1))
        self.tracker.process_checkin(self.make_checkin(wifi_speed=1, noise_level=5, user_id='u2'))

        metrics = CalibrationMetrics.current()
        self.assertEqual(metrics.sample_count, 2)
        self.assertEqual(metrics.abs_error_sum, 100.0)
        self.assertEqual(metrics.signed_error_sum, 60.0)
        self.assertEqual(CalibrationBucket.objects.get(dimension='confidence', bucket='medium').sample_count, 2)

    def test_no_matching_prediction(self):
        self.make_prediction(place_id='elsewhere', place_name='Other Cafe')
        self.make_prediction(minutes_before=7 * 60)
        checkin = self.make_checkin(wifi_speed=5, noise_level=1)

        result = self.tracker.process_checkin(checkin)

        self.assertEqual(result.status, CalibrationStatus.SKIPPED_NO_MATCH)
        self.assertEqual(result.observed_work_score, 100.0)

    def test_match_scores(self):
        checkin = CheckinRecord(user_id='u1', place_id='p1', spot_name='Library A', created_at=self.now)

        by_place = IntelligencePrediction(place_id='p1', created_at=self.now - timedelta(hours=1))
        by_name = IntelligencePrediction(place_name=' library a ', created_at=self.now - timedelta(hours=1))
        same_user = IntelligencePrediction(place_id='p1', user_id='u1', created_at=self.now)
        after = IntelligencePrediction(place_id='p1', created_at=self.now + timedelta(minutes=30))
        unrelated = IntelligencePrediction(place_id='p9', place_name='Cafe', user_id='u1', created_at=self.now)

        self.assertAlmostEqual(self.tracker.match_score(by_place, checkin), 6.6)
        self.assertAlmostEqual(self.tracker.match_score(by_name, checkin), 5.6)
        self.assertAlmostEqual(self.tracker.match_score(same_user, checkin), 9.0)
        self.assertAlmostEqual(self.tracker.match_score(after, checkin), 5.9)
        self.assertEqual(self.tracker.match_score(unrelated, checkin), 0.0)

    def test_best_prediction_prefers_place_then_most_recent(self):
        self.make_prediction(place_id="", minutes_before=4.5 * 60)
        older = self.make_prediction(minutes_before=5.8 * 60)
        newer = self.make_prediction(minutes_before=5.5 * 60)
        checkin = self.make_checkin(wifi_speed=5, noise_level=1)

        best, score = self.tracker.find_best_prediction(checkin)
        self.assertEqual(score, 5.0)
        self.assertNotEqual(best.id, older.id)
        self.assertEqual(best.id, newer.id)

    def test_outcome_quality_sentiment(self):
        positive = CheckinRecord(tags=['quiet', 'fast wifi'], caption='Perfect and productive afternoon')
        label, score, confidence = self.tracker.outcome_quality(90.0, positive, 2)
        self.assertEqual((label, score), ('excellent', 100.0))
        self.assertAlmostEqual(confidence, 0.56)

        negative = CheckinRecord(tags=['loud', 'crowded', 'no outlets'], caption='so noisy and crowded')
        label, score, confidence = self.tracker.outcome_quality(50.0, negative, 2)
        self.assertEqual((label, score), ('poor', 24.0))
        self.assertAlmostEqual(confidence, 0.59)

        self.assertEqual(self.tracker.outcome_quality(50.0, CheckinRecord(), 0)[2], 0.2)
        self.assertAlmostEqual(self.tracker.outcome_quality(50.0, negative, 5)[2], 0.95)

    def test_keyword_delta_checks_negatives_first(self):
        self.assertEqual(keyword_delta(['no outlets'], ('no outlets',), ('outlets',), 4, 5, 14), -5)
        self.assertEqual(keyword_delta(['outlets'], ('no outlets',), ('outlets',), 4, 5, 14), 4)

    def test_quality_labels_and_confidence_buckets(self):
        self.assertEqual(quality_label(80), 'excellent')
        self.assertEqual(quality_label(65), 'good')
        self.assertEqual(quality_label(50), 'mixed')
        self.assertEqual(quality_label(44.9), 'poor')
        self.assertEqual(confidence_bucket(0.75), 'high')
        self.assertEqual(confidence_bucket(0.5), 'medium')
        self.assertEqual(confidence_bucket(0.49), 'low')

    @patch('intelligence.calibration_tracker.IntelligencePrediction')
    def test_failures_are_reported_not_raised(self, mock_predictions):
        mock_predictions.objects.filter.side_effect = DatabaseError("store unreachable")
        checkin = self.make_checkin(wifi_speed=5, noise_level=1)

        result = self.tracker.process_checkin(checkin)

        self.assertEqual(result.status, CalibrationStatus.FAILED)
        self.assertFalse(result.ok)

    def test_update_without_metric_changes_is_ignored(self):
        checkin = self.make_checkin(wifi_speed=5, noise_level=1)
        result = self.tracker.handle_event(checkin, created=False, changed_fields=[])
        self.assertEqual(result.status, CalibrationStatus.SKIPPED_IRRELEVANT)


class CheckinEventCalibrationTestCase(TestCase):
    """The calibration receiver runs after committed check-in writes"""

    def setUp(self):
        IntelligencePrediction.objects.create(
            place_id='p1', place_name='Cafe', work_score=70, confidence=0.9,
            created_at=timezone.now() - timedelta(minutes=30),
        )

    def test_new_checkin_is_calibrated(self):
        with self.captureOnCommitCallbacks(execute=True):
            checkin = CheckinService().record_checkin({
                'user_id': 'u1', 'place_id': 'p1', 'spot_name': 'Cafe', 'wifi_speed': 5, 'noise_level': 'quiet',
            })

        self.assertEqual(IntelligenceOutcome.objects.filter(checkin=checkin).count(), 1)
        self.assertEqual(CalibrationMetrics.current().sample_count, 1)

    def test_metric_update_completes_calibration(self):
        service = CheckinService()
        with self.captureOnCommitCallbacks(execute=True):
            checkin = service.record_checkin({'user_id': 'u1', 'place_id': 'p1', 'spot_name': 'Cafe', 'wifi_speed': 4})
        self.assertFalse(IntelligenceOutcome.objects.exists())

        with self.captureOnCommitCallbacks(execute=True):
            service.update_metrics(checkin, {'busyness': 2})

        self.assertEqual(IntelligenceOutcome.objects.filter(checkin=checkin).count(), 1)

        with self.captureOnCommitCallbacks(execute=True):
            service.update_metrics(checkin, {'busyness': 1})

        self.assertEqual(CalibrationMetrics.current().sample_count, 1)


class LiveBlenderTestCase(TestCase):
    """Test cases for LiveBlender"""

    def setUp(self):
        self.blender = LiveBlender()
        self.inferred = InferredAttribute('quiet', 0.8)
        self.now = timezone.now()

    def test_no_checkins_shows_inferred(self):
        noise, source, label = self.blender.blend_noise(self.inferred, LiveAggregate())
        self.assertEqual((noise, source, label), ('quiet', 'inferred', 'Quiet (inferred from reviews)'))

    def test_five_checkins_are_blended(self):
        live = LiveAggregate(noise='loud', checkin_count=5)
        self.assertEqual(self.blender.live_weight(5), 0.5)
        self.assertEqual(
            self.blender.blend_noise(self.inferred, live),
            ('loud', 'blended', 'Loud (5 check-ins, usually quiet)'),
        )

        agreeing = LiveAggregate(noise='quiet', checkin_count=5)
        self.assertEqual(self.blender.blend_noise(self.inferred, agreeing)[2], 'Quiet (5 check-ins)')

    def test_ten_checkins_are_live(self):
        live = LiveAggregate(noise='loud', checkin_count=10)
        self.assertEqual(self.blender.live_weight(10), 0.9)
        self.assertEqual(self.blender.live_weight(100), 0.9)
        self.assertEqual(self.blender.blend_noise(self.inferred, live), ('loud', 'live', 'Loud (10 check-ins)'))

    def test_labels(self):
        single = LiveAggregate(noise='moderate', checkin_count=1)
        self.assertEqual(
            self.blender.blend_noise(InferredAttribute(), single)[2], 'Moderate (1 check-in, usually varies)'
        )
        self.assertEqual(self.blender.blend_noise(InferredAttribute(), LiveAggregate()), (None, 'inferred', 'No data yet'))
        self.assertEqual(
            LiveBlender.blend_busyness(LiveAggregate(busyness='some', checkin_count=3)), ('some', 'Some people (live)')
        )
        self.assertEqual(LiveBlender.blend_busyness(LiveAggregate()), (None, 'No recent data'))

    def add_checkin(self, age, **metrics):
        return CheckinRecord.objects.create(
            user_id='u1', place_id='p1', spot_name='Spot', created_at=self.now - age, **metrics
        )

    def test_recent_checkins_outweigh_older_ones(self):
        self.add_checkin(timedelta(days=6), noise_level=5, busyness=5)
        self.add_checkin(timedelta(days=6, hours=1), noise_level=5, busyness=5)
        newest = self.add_checkin(timedelta(hours=1), noise_level=1)
        self.add_checkin(timedelta(days=8), noise_level=5)

        live = self.blender.aggregate_live('p1', now=self.now)

        self.assertEqual(live.noise, 'quiet')
        self.assertEqual(live.busyness, 'packed')
        self.assertEqual(live.checkin_count, 3)
        self.assertEqual(live.last_checkin_at, newest.created_at)

    def test_window_is_bounded(self):
        for i in range(25):
            self.add_checkin(timedelta(hours=i + 1), noise_level=3)

        live = self.blender.aggregate_live('p1', now=self.now)

        self.assertEqual(live.checkin_count, 20)
        self.assertEqual(live.noise, 'moderate')

    def test_display_for_place(self):
        Spot.objects.create(place_id='p1', name='Spot', latitude=41.0, longitude=29.0,
                            inferred_noise='moderate', inferred_noise_confidence=0.7)
        for i in range(10):
            self.add_checkin(timedelta(hours=i + 1), noise_level=4, busyness=2)

        display = self.blender.display_for_place('p1', now=self.now)

        self.assertEqual(display.noise, 'loud')
        self.assertEqual(display.noise_source, 'live')
        self.assertEqual(display.busyness_label, 'Empty (live)')
        self.assertEqual(display.checkin_count, 10)
        self.assertIsNone(display.wifi_label)

    def test_display_includes_inferred_wifi(self):
        Spot.objects.create(place_id='p1', name='Spot', latitude=41.0, longitude=29.0,
                            has_wifi=True, wifi_confidence=0.85)
        Spot.objects.create(place_id='p2', name='Other', latitude=41.0, longitude=29.0,
                            has_wifi=True, wifi_confidence=0.3)

        strong = self.blender.display_for_place('p1', now=self.now)
        weak = self.blender.display_for_place('p2', now=self.now)

        self.assertEqual(strong.wifi_label, 'Likely strong')
        self.assertEqual(strong.wifi_confidence, 0.85)
        self.assertEqual(weak.wifi_label, 'Mentioned in reviews')

    def test_spot_lookup_failure_falls_back_to_live_data(self):
        for i in range(3):
            self.add_checkin(timedelta(hours=i + 1), noise_level=1)

        with patch('intelligence.live_blender.Spot.objects.filter', side_effect=DatabaseError('store down')):
            display = self.blender.display_for_place('p1', now=self.now)

        self.assertEqual(display.noise, 'quiet')
        self.assertEqual(display.noise_source, 'blended')
        self.assertEqual(display.checkin_count, 3)
        self.assertIsNone(display.wifi_label)


class IntelligenceAPITestCase(APITestCase):
    def test_record_prediction(self):
        url = reverse('intelligence:prediction-list')
        payload = {'place_id': 'p1', 'place_name': 'Cafe', 'work_score': 72, 'confidence': 0.6, 'model_version': 'v3'}

        response = self.client.post(url, payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(IntelligencePrediction.objects.get().model_version, 'v3')

    def test_prediction_validation(self):
        url = reverse('intelligence:prediction-list')
        out_of_range = {'place_id': 'p1', 'work_score': 72, 'confidence': 1.5}
        no_venue = {'work_score': 72, 'confidence': 0.5}

        self.assertEqual(self.client.post(url, out_of_range, format='json').status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.post(url, no_venue, format='json').status_code, status.HTTP_400_BAD_REQUEST)

    def test_empty_calibration_snapshot(self):
        response = self.client.get(reverse('intelligence:calibration_metrics'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sample_count'], 0)
        self.assertIsNone(response.data['mean_abs_error'])
        self.assertEqual(response.data['buckets'], {})

    def test_calibration_snapshot_and_outcomes(self):
        now = timezone.now()
        prediction = IntelligencePrediction.objects.create(
            place_id='p1', work_score=80, confidence=0.3, model_version='v1', created_at=now - timedelta(hours=1)
        )
        checkin = CheckinRecord.objects.create(
            user_id='u1', place_id='p1', spot_name='Cafe', created_at=now, wifi_speed=5, noise_level=1
        )
        CalibrationTracker().process_checkin(checkin)

        response = self.client.get(reverse('intelligence:calibration_metrics'))

        self.assertEqual(response.data['sample_count'], 1)
        self.assertEqual(response.data['mean_abs_error'], 20.0)
        self.assertEqual(response.data['rmse'], 20.0)
        self.assertEqual(response.data['buckets']['confidence']['low']['sample_count'], 1)

        url = reverse('intelligence:prediction-outcomes', kwargs={'pk': prediction.id})
        outcomes = self.client.get(url)
        self.assertEqual(outcomes.status_code, status.HTTP_200_OK)
        self.assertEqual(len(outcomes.data), 1)
        self.assertEqual(outcomes.data[0]['signed_error'], -20.0)

    def test_spot_display(self):
        Spot.objects.create(place_id='p1', name='Spot', latitude=41.0, longitude=29.0, inferred_noise='quiet')

        response = self.client.get(reverse('intelligence:spot_display', kwargs={'place_id': 'p1'}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['noise_source'], 'inferred')
        self.assertEqual(response.data['noise_label'], 'Quiet (inferred from reviews)')
        self.assertEqual(response.data['busyness_label'], 'No recent data')
        self.assertIsNone(response.data['wifi_label'])
