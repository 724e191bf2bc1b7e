"""
Events emitted by the check-in write path.

checkin_recorded is sent after the write has committed, with:
    checkin: the CheckinRecord instance
    created: True for a new check-in, False for an update
    changed_fields: names of the metric fields written by this operation
"""
from django.dispatch import Signal

checkin_recorded = Signal()
