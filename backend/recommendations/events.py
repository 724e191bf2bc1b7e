"""
Implicit feedback: place events and the category affinity they accumulate.
"""
import logging
from typing import Optional

from django.db import transaction

from locations.category_rules import infer_category
from locations.models import Spot
from recommendations.models import CategoryAffinity, EVENT_WEIGHTS, PlaceEvent

logger = logging.getLogger(__name__)


def record_place_event(user_id: str, place_id: str, event_type: str,
                       category: Optional[str] = None) -> PlaceEvent:
    """
    Stores the event and adds its weight to the user x category affinity.
    The spot category is looked up when the caller does not know it.
    """
    if category is None:
        category = Spot.objects.filter(place_id=place_id).values_list('category', flat=True).first()
    category = infer_category(category)

    with transaction.atomic():
        event = PlaceEvent.objects.create(
            user_id=user_id,
            place_id=place_id,
            category=category,
            event_type=event_type,
        )
        CategoryAffinity.add_weight(user_id, category, EVENT_WEIGHTS[event_type], now=event.timestamp)

    logger.debug(f"Place event {event_type} for {user_id} on {place_id} ({category})")
    return event
