"""
Check-in write path: normalization, persistence and event emission.
"""
import logging
from typing import Any, Dict, List

from django.db import transaction
from django.utils import timezone

from checkins.models import CheckinRecord, METRIC_FIELDS
from checkins.normalization import normalize_metrics, normalize_tags
from checkins.signals import checkin_recorded
from locations.category_rules import infer_category
from locations.models import Spot, SpotCategory

logger = logging.getLogger(__name__)


class CheckinService:
    """
    Records check-ins in canonical form and announces each committed write
    through the checkin_recorded signal. Consumers (calibration) run after
    the commit and can never fail the write itself.
    """

    def record_checkin(self, data: Dict[str, Any]) -> CheckinRecord:
        """
        Creates a check-in from an already validated payload.

        Args:
            data: dict with user_id, place_id, spot_name and optional
                spot_type, latitude, longitude, created_at, tags, caption
                and raw metrics in any supported encoding

        Returns:
            CheckinRecord: the persisted record
        """
        metrics = normalize_metrics(data)
        spot = Spot.objects.filter(place_id=data['place_id']).first()

        latitude = data.get('latitude')
        longitude = data.get('longitude')
        if spot is not None and (latitude is None or longitude is None):
            latitude, longitude = spot.latitude, spot.longitude

        known_category = spot.category if spot is not None and spot.category != SpotCategory.OTHER else None
        spot_type = infer_category(data.get('spot_type'), known_category, data['spot_name'])

        with transaction.atomic():
            checkin = CheckinRecord.objects.create(
                user_id=data['user_id'],
                place_id=data['place_id'],
                spot_name=data['spot_name'],
                spot_type=spot_type,
                latitude=latitude,
                longitude=longitude,
                created_at=data.get('created_at') or timezone.now(),
                tags=normalize_tags(data.get('tags')),
                caption=data.get('caption') or "",
                **metrics,
            )
            changed = [name for name in METRIC_FIELDS if metrics.get(name) is not None]
            self._emit_on_commit(checkin, created=True, changed_fields=changed)

        logger.info(f"Recorded check-in {checkin.id} for user {checkin.user_id} at {checkin.place_id}")
        return checkin

    def update_metrics(self, checkin: CheckinRecord, data: Dict[str, Any]) -> CheckinRecord:
        """
        Applies a partial metric update. Only metrics present in the payload
        are touched; the event lists those whose value actually changed.
        """
        metrics = normalize_metrics(data, partial=True)
        changed = [name for name, value in metrics.items() if getattr(checkin, name) != value]

        update_fields = list(changed)
        if 'tags' in data:
            checkin.tags = normalize_tags(data.get('tags'))
            update_fields.append('tags')
        if 'caption' in data:
            checkin.caption = data.get('caption') or ""
            update_fields.append('caption')

        if not update_fields:
            return checkin

        for name in changed:
            setattr(checkin, name, metrics[name])

        with transaction.atomic():
            checkin.save(update_fields=update_fields)
            self._emit_on_commit(checkin, created=False, changed_fields=changed)

        return checkin

    def _emit_on_commit(self, checkin: CheckinRecord, created: bool, changed_fields: List[str]) -> None:
        def send():
            responses = checkin_recorded.send_robust(
                sender=CheckinRecord,
                checkin=checkin,
                created=created,
                changed_fields=changed_fields,
            )
            for receiver, response in responses:
                if isinstance(response, Exception):
                    logger.error(f"checkin_recorded receiver {receiver} failed for {checkin.id}: {response}")

        transaction.on_commit(send)
