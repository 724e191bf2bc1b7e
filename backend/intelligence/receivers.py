"""
Signal receivers feeding committed check-ins to the calibration tracker.
"""
from django.dispatch import receiver

from checkins.models import CheckinRecord
from checkins.signals import checkin_recorded
from intelligence.calibration_tracker import CalibrationTracker


@receiver(checkin_recorded, sender=CheckinRecord, dispatch_uid='intelligence.calibrate_checkin')
def calibrate_checkin(sender, checkin, created, changed_fields=None, **kwargs):
    CalibrationTracker().handle_event(checkin, created, changed_fields)
