"""
Domain services for the locations app implementing business logic
for geospatial operations and external data synchronization.
"""
import logging
from typing import Dict, List, Optional, Tuple

import geohash2
import requests
from django.conf import settings
from django.contrib.gis.db.models.functions import Distance as DistanceFunc
from django.contrib.gis.geos import Point, Polygon
from django.contrib.gis.measure import Distance
from django.db.models import QuerySet

from locations.category_rules import infer_category
from locations.conf import engine_setting
from locations.models import Spot

logger = logging.getLogger(__name__)


class GeoService:
    """
    Domain Service that encapsulates all spatial business logic.
    Radius and area queries run against the spatial index on Spot.location;
    views and the recommendation engine never build spatial lookups themselves.
    """

    @staticmethod
    def point(lat: float, lon: float) -> Point:
        """GIS Point for a coordinate pair. Point(x, y) maps to (lon, lat)."""
        return Point(lon, lat, srid=4326)

    @staticmethod
    def geohash_bounds(geohash: str) -> Tuple[float, float, float, float]:
        """
        Decodes a geohash into (min_lat, max_lat, min_lon, max_lon).
        """
        lat, lon, lat_err, lon_err = geohash2.decode_exactly(geohash)
        return lat - lat_err, lat + lat_err, lon - lon_err, lon + lon_err

    @staticmethod
    def geohash_polygon(geohash: str) -> Polygon:
        """The cell of a geohash as a bounding-box Polygon."""
        min_lat, max_lat, min_lon, max_lon = GeoService.geohash_bounds(geohash)
        polygon = Polygon.from_bbox((min_lon, min_lat, max_lon, max_lat))
        polygon.srid = 4326
        return polygon

    @staticmethod
    def encode_geohash(lat: float, lon: float, precision: int = 6) -> str:
        """
        Generates a Geohash string to be used as an area key.
        """
        return geohash2.encode(lat, lon, precision)

    @staticmethod
    def within_radius(queryset: QuerySet, lat: float, lon: float, radius_km: float) -> QuerySet:
        """
        Restricts a queryset of a model with a `location` PointField to rows
        within radius_km of the point and annotates `distance`.
        """
        center = GeoService.point(lat, lon)
        return (
            queryset.filter(location__distance_lte=(center, Distance(km=radius_km)))
            .annotate(distance=DistanceFunc('location', center))
        )

    @staticmethod
    def find_nearby(lat: float, lon: float, radius_km: float, category: Optional[str] = None) -> List[Tuple[Spot, float]]:
        """
        Finds spots within radius_km of a point.

        Returns:
            List of (spot, distance_km) tuples ordered by distance ascending
        """
        queryset = GeoService.within_radius(Spot.objects.all(), lat, lon, radius_km)
        if category:
            queryset = queryset.filter(category=category)

        return [(spot, spot.distance.km) for spot in queryset.order_by('distance', 'place_id')]

    @staticmethod
    def is_location_valid(lat: float, lon: float) -> bool:
        return -90 <= lat <= 90 and -180 <= lon <= 180


class PlaceSyncService:
    """
    Integration Service responsible for populating the Spot table from the
    places provider. Every request carries a timeout and failures degrade to
    "nothing synced" instead of raising.
    """

    NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None, session=None):
        self.api_key = api_key or getattr(settings, 'GOOGLE_PLACES_API_KEY', None)
        self.timeout = timeout if timeout is not None else engine_setting('EXTERNAL_TIMEOUT_SECONDS')
        self.session = session or requests.Session()

    def fetch_and_sync(self, lat: float, lon: float, radius_m: int = 5000) -> int:
        """
        Queries the provider for places near the coordinates and upserts them.

        Returns:
            Integer count of newly added Spot records
        """
        new_count = 0
        for place_data in self._fetch_nearby(lat, lon, radius_m):
            try:
                dto = self._parse_place(place_data)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed place payload: {e}")
                continue
            if self.upsert_spot(dto):
                new_count += 1
        return new_count

    def upsert_spot(self, data: 'ExternalPlaceDTO') -> Optional[Spot]:
        """
        "Update or Insert" keyed by place_id.

        Returns:
            Spot instance when a new row was created, otherwise None
        """
        try:
            spot, created = Spot.objects.update_or_create(
                place_id=data.place_id,
                defaults={
                    'name': data.name,
                    'address': data.address or "",
                    'latitude': data.lat,
                    'longitude': data.lon,
                    'category': infer_category(data.types, data.name),
                    'metadata': data.metadata,
                },
            )
            return spot if created else None
        except (ValueError, TypeError) as e:
            logger.error(f"Error upserting spot {data.place_id}: {e}")
            return None

    def _fetch_nearby(self, lat: float, lon: float, radius_m: int) -> List[Dict]:
        if not self.api_key:
            return []

        params = {
            'location': f"{lat},{lon}",
            'radius': radius_m,
            'key': self.api_key,
        }
        try:
            response = self.session.get(self.NEARBY_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json().get('results', [])
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Places provider unavailable: {e}")
            return []

    @staticmethod
    def _parse_place(place_data: Dict) -> 'ExternalPlaceDTO':
        location = place_data['geometry']['location']
        return ExternalPlaceDTO(
            place_id=place_data['place_id'],
            name=place_data.get('name') or 'Unknown',
            address=place_data.get('vicinity'),
            lat=float(location['lat']),
            lon=float(location['lng']),
            types=place_data.get('types', []),
            metadata={
                'rating': place_data.get('rating'),
                'user_ratings_total': place_data.get('user_ratings_total'),
                'open_now': (place_data.get('opening_hours') or {}).get('open_now'),
            },
        )


class ExternalPlaceDTO:
    """Data Transfer Object for external place data"""

    def __init__(
        self,
        place_id: str,
        name: str,
        address: Optional[str],
        lat: float,
        lon: float,
        types: List[str] = None,
        metadata: Dict = None,
    ):
        self.place_id = place_id
        self.name = name
        self.address = address
        self.lat = lat
        self.lon = lon
        self.types = types or []
        self.metadata = metadata or {}
