from unittest.mock import MagicMock

import geohash2
import requests
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from .category_rules import infer_category, match_category
from .models import Spot, SpotCategory
from .services import GeoService, PlaceSyncService


class SpotModelTests(TestCase):
    def setUp(self):
        self.spot = Spot.objects.create(
            place_id="place-1",
            name="Test Library",
            address="123 Test St",
            latitude=20.0,
            longitude=10.0,
            category=SpotCategory.LIBRARY,
        )

    def test_create_spot(self):
        """Test that a Spot can be created successfully."""
        self.assertEqual(Spot.objects.count(), 1)
        self.assertEqual(self.spot.name, "Test Library")
        self.assertEqual(self.spot.get_lat_lon(), (20.0, 10.0))

    def test_geohash_derived_on_save(self):
        self.assertEqual(self.spot.geohash, geohash2.encode(20.0, 10.0, 7))

        self.spot.latitude = 21.0
        self.spot.save()
        self.assertEqual(self.spot.geohash, geohash2.encode(21.0, 10.0, 7))

    def test_invalid_coordinates(self):
        """Test that invalid coordinates raise a ValueError during save."""
        spot = Spot(place_id="bad", name="Bad Location", latitude=100.0, longitude=200.0)
        with self.assertRaises(ValueError):
            spot.save()


class GeoServiceTests(TestCase):
    def setUp(self):
        self.center = Spot.objects.create(place_id="center", name="Center", latitude=0.0, longitude=0.0)
        # ~1km away
        self.nearby = Spot.objects.create(
            place_id="nearby", name="Nearby", latitude=0.0, longitude=0.009, category=SpotCategory.CAFE
        )
        # ~100km away
        self.far = Spot.objects.create(place_id="far", name="Far", latitude=0.0, longitude=1.0)

    def test_find_nearby_distances(self):
        results = dict((spot.place_id, distance) for spot, distance in GeoService.find_nearby(0.0, 0.0, 2.0))
        self.assertAlmostEqual(results['center'], 0.0, places=6)
        # 0.009 degrees of longitude at the equator is roughly 1km
        self.assertAlmostEqual(results['nearby'], 1.0, delta=0.01)

    def test_geometry_derived_on_save(self):
        self.assertEqual((self.nearby.location.x, self.nearby.location.y), (0.009, 0.0))
        self.assertEqual(self.nearby.location.srid, 4326)

    def test_find_nearby(self):
        """Test finding spots within a specific radius."""
        results = GeoService.find_nearby(0.0, 0.0, radius_km=2.0)
        spots = [spot for spot, _ in results]

        self.assertEqual(spots, [self.center, self.nearby])
        self.assertNotIn(self.far, spots)

    def test_find_nearby_category_filter(self):
        results = GeoService.find_nearby(0.0, 0.0, radius_km=2.0, category=SpotCategory.CAFE)
        self.assertEqual([spot for spot, _ in results], [self.nearby])

    def test_geohash_bounds_contains_point(self):
        geohash = GeoService.encode_geohash(41.01, 28.97, 6)
        min_lat, max_lat, min_lon, max_lon = GeoService.geohash_bounds(geohash)
        self.assertTrue(min_lat <= 41.01 <= max_lat)
        self.assertTrue(min_lon <= 28.97 <= max_lon)

    def test_geohash_polygon_contains_point(self):
        polygon = GeoService.geohash_polygon(GeoService.encode_geohash(41.01, 28.97, 6))
        self.assertTrue(polygon.contains(GeoService.point(41.01, 28.97)))
        self.assertFalse(polygon.contains(GeoService.point(41.5, 28.97)))


class CategoryRuleTests(TestCase):
    def test_provider_types(self):
        self.assertEqual(match_category('coffee_shop'), SpotCategory.CAFE)
        self.assertEqual(match_category('library'), SpotCategory.LIBRARY)
        self.assertEqual(match_category('book_store'), SpotCategory.BOOKSTORE)
        self.assertEqual(match_category('university'), SpotCategory.CAMPUS)

    def test_spot_names(self):
        self.assertEqual(match_category('Boomtown Coffee'), SpotCategory.CAFE)
        self.assertEqual(match_category('WeWork Levent'), SpotCategory.COWORKING)
        self.assertIsNone(match_category('Shell Station'))
        self.assertIsNone(match_category(None))

    def test_first_rule_wins(self):
        # Both library and cafe patterns match; library comes first
        self.assertEqual(match_category('Library Cafe'), SpotCategory.LIBRARY)

    def test_infer_category_sources_in_order(self):
        self.assertEqual(infer_category(['point_of_interest', 'cafe'], 'Central Library'), SpotCategory.CAFE)
        self.assertEqual(infer_category(None, 'Central Library'), SpotCategory.LIBRARY)
        self.assertEqual(infer_category('Coworking'), SpotCategory.COWORKING)
        self.assertEqual(infer_category([], 'Gas Station'), SpotCategory.OTHER)


class PlaceSyncServiceTests(TestCase):
    def _session(self, payload):
        response = MagicMock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        session = MagicMock()
        session.get.return_value = response
        return session

    def test_fetch_and_sync_creates_spots(self):
        session = self._session({
            'results': [
                {
                    'place_id': 'g-1',
                    'name': 'Boomtown Coffee',
                    'vicinity': 'Main St',
                    'geometry': {'location': {'lat': 41.0, 'lng': 29.0}},
                    'types': ['cafe', 'food'],
                    'rating': 4.6,
                },
                {'name': 'Broken payload'},
            ]
        })
        service = PlaceSyncService(api_key='test-key', timeout=1.5, session=session)

        new_count = service.fetch_and_sync(41.0, 29.0)

        self.assertEqual(new_count, 1)
        spot = Spot.objects.get(place_id='g-1')
        self.assertEqual(spot.category, SpotCategory.CAFE)
        self.assertEqual(spot.metadata['rating'], 4.6)
        self.assertEqual(session.get.call_args.kwargs['timeout'], 1.5)

    def test_existing_spot_is_updated_not_counted(self):
        Spot.objects.create(place_id='g-1', name='Old name', latitude=41.0, longitude=29.0)
        session = self._session({
            'results': [{
                'place_id': 'g-1',
                'name': 'New name',
                'geometry': {'location': {'lat': 41.0, 'lng': 29.0}},
                'types': ['library'],
            }]
        })

        new_count = PlaceSyncService(api_key='k', session=session).fetch_and_sync(41.0, 29.0)

        self.assertEqual(new_count, 0)
        self.assertEqual(Spot.objects.get(place_id='g-1').name, 'New name')

    def test_provider_failure_degrades_to_zero(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("timed out")

        new_count = PlaceSyncService(api_key='k', session=session).fetch_and_sync(41.0, 29.0)

        self.assertEqual(new_count, 0)
        self.assertEqual(Spot.objects.count(), 0)

    @override_settings(GOOGLE_PLACES_API_KEY=None)
    def test_missing_api_key_skips_request(self):
        session = MagicMock()
        self.assertEqual(PlaceSyncService(session=session).fetch_and_sync(41.0, 29.0), 0)
        session.get.assert_not_called()


class SpotAPITests(APITestCase):
    def setUp(self):
        self.spot = Spot.objects.create(
            place_id="api-spot",
            name="API Test Spot",
            address="API St",
            latitude=40.0,
            longitude=30.0,
            category=SpotCategory.CAFE,
        )
        self.list_url = reverse('locations:spot-list')
        self.nearby_url = reverse('locations:spot-nearby')

    def test_list_spots(self):
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['name'], "API Test Spot")

    def test_create_spot_with_inferred_attributes(self):
        payload = {
            'place_id': 'new-spot',
            'name': 'Quiet Library',
            'latitude': 40.1,
            'longitude': 30.1,
            'category': 'library',
            'inferred_noise': 'quiet',
            'inferred_noise_confidence': 0.8,
        }
        response = self.client.post(self.list_url, payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Spot.objects.get(place_id='new-spot').inferred_noise, 'quiet')

    def test_retrieve_by_place_id(self):
        url = reverse('locations:spot-detail', kwargs={'place_id': 'api-spot'})
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], str(self.spot.id))

    def test_nearby_endpoint(self):
        params = {'latitude': 40.0, 'longitude': 30.0, 'radius_km': 1}
        response = self.client.get(self.nearby_url, params)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], str(self.spot.id))

    def test_nearby_rejects_missing_params(self):
        response = self.client.get(self.nearby_url, {'latitude': 40.0})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
