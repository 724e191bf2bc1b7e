"""
Data Transfer Objects (DTOs) for context passing and results in the recommendation system.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class PointDTO:
    """Represents a geographic point (latitude, longitude)"""
    latitude: float
    longitude: float


@dataclass
class ContextDTO:
    """
    Request context passed to the scoring engine.
    Everything score() needs beyond the spot and the profile lives here,
    including the user's category affinity, so scoring does no I/O.
    """
    user_location: Optional[PointDTO] = None
    time_of_day: Optional[str] = None  # 'morning', 'afternoon', 'evening'
    weather: Optional[str] = None  # 'sunny', 'rainy', 'cloudy'
    radius_km: float = 5.0
    max_results: int = 10
    category_affinity: Dict[str, float] = field(default_factory=dict)


@dataclass
class TimePattern:
    """Average conditions at a spot for one weekday x hour slot"""
    day_of_week: int  # 0 = Monday
    hour: int
    avg_busyness: float
    avg_noise: float
    checkin_count: int


@dataclass
class SpotCandidate:
    """
    Nearby spot with aggregated recent check-in metrics.
    Built by CandidateRetriever from a bounded recent window.
    """
    place_id: str
    name: str
    category: str = 'other'
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_km: Optional[float] = None
    avg_noise_level: Optional[float] = None
    avg_busyness: Optional[float] = None
    avg_wifi_speed: Optional[float] = None
    top_outlet_availability: Optional[str] = None
    indoor: bool = True
    checkin_count: int = 0


@dataclass
class SpotRecommendation:
    """
    Ranked spot returned by ScoringService.get_personalized_recommendations().
    """
    place_id: str
    name: str
    score: float
    reasons: List[str] = field(default_factory=list)
    predicted_busyness: Optional[float] = None
    predicted_noise: Optional[float] = None
    best_time_to_visit: Optional[str] = None
    match_score: Optional[float] = None
    category: Optional[str] = None
    distance_km: Optional[float] = None


@dataclass
class TrendingSpot:
    """Week-over-week activity of a spot, see TrendAnalyzer"""
    place_id: str
    name: str
    last7: int
    prev7: int
    percent_change: float
    trending_score: float
    direction: str  # 'up', 'down', 'stable'
    top_reason: str = ''
