from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from locations.models import Spot, SpotCategory
from .models import CheckinRecord, OutletAvailability
from .normalization import (
    normalize_bool,
    normalize_level,
    normalize_metrics,
    normalize_noise_level,
    normalize_outlet_availability,
    normalize_tags,
    outlet_score,
)
from .services import CheckinService
from .signals import checkin_recorded


class NormalizationTests(TestCase):
    def test_levels(self):
        self.assertEqual(normalize_level(3), 3)
        self.assertEqual(normalize_level("4"), 4)
        self.assertEqual(normalize_level(4.6), 5)
        self.assertIsNone(normalize_level(0))
        self.assertIsNone(normalize_level(9))
        self.assertIsNone(normalize_level("fast"))
        self.assertIsNone(normalize_level(True))
        self.assertIsNone(normalize_level(float('nan')))

    def test_legacy_noise_words(self):
        self.assertEqual(normalize_noise_level('quiet'), 2)
        self.assertEqual(normalize_noise_level('Moderate'), 3)
        self.assertEqual(normalize_noise_level('lively'), 4)
        self.assertEqual(normalize_noise_level(1), 1)
        self.assertIsNone(normalize_noise_level('thunderous'))

    def test_outlet_encodings(self):
        self.assertEqual(normalize_outlet_availability('plenty'), OutletAvailability.PLENTY)
        self.assertEqual(normalize_outlet_availability('FEW'), OutletAvailability.FEW)
        self.assertEqual(normalize_outlet_availability(True), OutletAvailability.PLENTY)
        self.assertEqual(normalize_outlet_availability(False), OutletAvailability.NONE)
        self.assertEqual(normalize_outlet_availability(5), OutletAvailability.PLENTY)
        self.assertEqual(normalize_outlet_availability(3), OutletAvailability.SOME)
        self.assertEqual(normalize_outlet_availability(2), OutletAvailability.FEW)
        self.assertEqual(normalize_outlet_availability(1), OutletAvailability.NONE)
        self.assertIsNone(normalize_outlet_availability('lots'))
        self.assertIsNone(normalize_outlet_availability({'a': 1}))

    def test_outlet_score(self):
        self.assertEqual(outlet_score(OutletAvailability.PLENTY), 4)
        self.assertEqual(outlet_score('none'), 1)
        self.assertIsNone(outlet_score(None))

    def test_bool_and_tags(self):
        self.assertTrue(normalize_bool('yes'))
        self.assertFalse(normalize_bool(0))
        self.assertIsNone(normalize_bool('maybe'))
        self.assertEqual(normalize_tags('Quiet, good coffee ,'), ['quiet', 'good coffee'])
        self.assertEqual(normalize_tags(['Focus', 3, '']), ['focus'])
        self.assertEqual(normalize_tags(42), [])

    def test_normalize_metrics_aliases(self):
        metrics = normalize_metrics({
            'wifiSpeed': 5,
            'noiseLevel': 'quiet',
            'metrics': {'busyness': 2},
            'outlets': True,
        })
        self.assertEqual(metrics, {
            'wifi_speed': 5,
            'noise_level': 2,
            'busyness': 2,
            'laptop_friendly': None,
            'outlet_availability': OutletAvailability.PLENTY,
        })

    def test_normalize_metrics_partial(self):
        self.assertEqual(normalize_metrics({'busyness': 4}, partial=True), {'busyness': 4})
        self.assertEqual(normalize_metrics(None, partial=True), {})


class CheckinServiceTests(TestCase):
    def setUp(self):
        self.events = []

        def receiver(sender, checkin, created, changed_fields, **kwargs):
            self.events.append((checkin.id, created, changed_fields))

        checkin_recorded.connect(receiver, weak=False, dispatch_uid='checkins-test-receiver')
        self.addCleanup(checkin_recorded.disconnect, dispatch_uid='checkins-test-receiver')
        self.service = CheckinService()

    def test_record_checkin_normalizes_and_emits(self):
        with self.captureOnCommitCallbacks(execute=True):
            checkin = self.service.record_checkin({
                'user_id': 'u1',
                'place_id': 'p1',
                'spot_name': 'Central Library',
                'noiseLevel': 'quiet',
                'outletAvailability': 4,
                'wifi_speed': '5',
                'tags': ['Quiet'],
            })

        checkin.refresh_from_db()
        self.assertEqual(checkin.noise_level, 2)
        self.assertEqual(checkin.outlet_availability, 'plenty')
        self.assertEqual(checkin.wifi_speed, 5)
        self.assertEqual(checkin.spot_type, SpotCategory.LIBRARY)
        self.assertEqual(checkin.tags, ['quiet'])
        self.assertEqual(
            self.events,
            [(checkin.id, True, ['wifi_speed', 'noise_level', 'outlet_availability'])],
        )

    def test_event_not_sent_before_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            self.service.record_checkin({'user_id': 'u1', 'place_id': 'p1', 'spot_name': 'Cafe'})

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(self.events, [])

    def test_known_spot_supplies_location_and_category(self):
        Spot.objects.create(
            place_id='p9', name='Hub', latitude=41.0, longitude=29.0, category=SpotCategory.COWORKING
        )
        checkin = self.service.record_checkin({'user_id': 'u1', 'place_id': 'p9', 'spot_name': 'Hub'})

        self.assertEqual(checkin.spot_type, SpotCategory.COWORKING)
        self.assertEqual((checkin.latitude, checkin.longitude), (41.0, 29.0))
        self.assertEqual((checkin.location.x, checkin.location.y), (29.0, 41.0))

    def test_unlocated_checkin_has_no_geometry(self):
        checkin = self.service.record_checkin({'user_id': 'u1', 'place_id': 'nowhere', 'spot_name': 'Somewhere'})
        self.assertIsNone(checkin.location)

    def test_update_metrics_reports_changed_fields(self):
        checkin = CheckinRecord.objects.create(
            user_id='u1', place_id='p1', spot_name='Cafe', wifi_speed=3, busyness=2
        )

        with self.captureOnCommitCallbacks(execute=True):
            self.service.update_metrics(checkin, {'wifiSpeed': 3, 'busyness': 'packed?', 'noise_level': 4})

        checkin.refresh_from_db()
        self.assertEqual(checkin.wifi_speed, 3)
        self.assertEqual(checkin.busyness, 2)
        self.assertEqual(checkin.noise_level, 4)
        self.assertEqual(self.events, [(checkin.id, False, ['noise_level'])])

    def test_update_without_changes_sends_nothing(self):
        checkin = CheckinRecord.objects.create(user_id='u1', place_id='p1', spot_name='Cafe', wifi_speed=3)

        with self.captureOnCommitCallbacks(execute=True):
            self.service.update_metrics(checkin, {'wifi_speed': 3})

        self.assertEqual(self.events, [])

    def test_failing_receiver_does_not_break_write(self):
        def broken(sender, **kwargs):
            raise RuntimeError("downstream outage")

        checkin_recorded.connect(broken, weak=False, dispatch_uid='checkins-broken-receiver')
        self.addCleanup(checkin_recorded.disconnect, dispatch_uid='checkins-broken-receiver')

        with self.captureOnCommitCallbacks(execute=True):
            checkin = self.service.record_checkin({
                'user_id': 'u1', 'place_id': 'p1', 'spot_name': 'Cafe', 'wifi_speed': 4, 'busyness': 2,
            })

        self.assertTrue(CheckinRecord.objects.filter(id=checkin.id).exists())
        self.assertEqual(len(self.events), 1)


class CheckinAPITests(APITestCase):
    def setUp(self):
        self.list_url = reverse('checkins:checkin-list')

    def test_create_with_legacy_encodings(self):
        payload = {
            'user_id': 'u1',
            'place_id': 'p1',
            'spot_name': 'Boomtown Coffee',
            'metrics': {'noiseLevel': 'lively', 'outletAvailability': False, 'laptopFriendly': True},
            'tags': ['cozy'],
        }
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.list_url, payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['noise_level'], 4)
        self.assertEqual(response.data['outlet_availability'], 'none')
        self.assertTrue(response.data['laptop_friendly'])
        self.assertEqual(response.data['spot_type'], 'cafe')

    def test_create_requires_identity_fields(self):
        response = self.client.post(self.list_url, {'user_id': 'u1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(CheckinRecord.objects.count(), 0)

    def test_patch_updates_metrics(self):
        checkin = CheckinRecord.objects.create(user_id='u1', place_id='p1', spot_name='Cafe')
        url = reverse('checkins:checkin-detail', kwargs={'pk': str(checkin.id)})

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(url, {'busyness': 5, 'caption': 'packed today'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        checkin.refresh_from_db()
        self.assertEqual(checkin.busyness, 5)
        self.assertEqual(checkin.caption, 'packed today')

    def test_put_not_allowed(self):
        checkin = CheckinRecord.objects.create(user_id='u1', place_id='p1', spot_name='Cafe')
        url = reverse('checkins:checkin-detail', kwargs={'pk': str(checkin.id)})
        response = self.client.put(url, {'busyness': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_list_filters_by_user(self):
        now = timezone.now()
        CheckinRecord.objects.create(user_id='u1', place_id='p1', spot_name='A', created_at=now)
        CheckinRecord.objects.create(user_id='u1', place_id='p2', spot_name='B', created_at=now - timedelta(hours=1))
        CheckinRecord.objects.create(user_id='u2', place_id='p1', spot_name='A', created_at=now)

        response = self.client.get(self.list_url, {'user_id': 'u1'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['place_id'] for row in response.data['results']], ['p1', 'p2'])
