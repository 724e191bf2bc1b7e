"""
Signal receivers connecting the check-in write path to implicit feedback.
"""
from django.dispatch import receiver

from checkins.models import CheckinRecord
from checkins.signals import checkin_recorded
from recommendations.events import record_place_event
from recommendations.models import PlaceEventType


@receiver(checkin_recorded, sender=CheckinRecord, dispatch_uid='recommendations.checkin_place_event')
def record_checkin_event(sender, checkin, created, **kwargs):
    """A new check-in counts as a 'checkin' place event for its category."""
    if not created:
        return
    record_place_event(checkin.user_id, checkin.place_id, PlaceEventType.CHECKIN, category=checkin.spot_type)
