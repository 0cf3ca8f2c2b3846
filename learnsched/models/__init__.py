"""
Database models for the scheduling core.

- Booking: the lifecycle-managed session request
- AvailabilitySlot: instructor-published bookable windows
- AuditLog: append-only transition and escalation trail
- InstructorScheduleLock: per-instructor write serialisation rows
"""

from .audit_log import AuditLog
from .availability import AvailabilitySlot
from .booking import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, Booking, BookingStatus
from .schedule_lock import InstructorScheduleLock

__all__ = [
    "ALLOWED_TRANSITIONS",
    "AuditLog",
    "AvailabilitySlot",
    "Booking",
    "BookingStatus",
    "InstructorScheduleLock",
    "TERMINAL_STATUSES",
]
