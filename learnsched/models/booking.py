# learnsched/models/booking.py
"""
Booking model for the scheduling core.

A booking is a student's request for a training session in a half-open
interval ``[start_at, end_at)``. It starts in REQUESTED, is moved through
its lifecycle only by BookingService, and is never physically deleted.

Lifecycle:
    REQUESTED -> APPROVED -> ASSIGNED -> COMPLETED
    REQUESTED / APPROVED / ASSIGNED -> CANCELLED
    (REQUESTED may go straight to ASSIGNED via assign/accept)
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import CheckConstraint, Column, Index, String
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    REQUESTED = "REQUESTED"  # Created by a student, waiting for admin/instructor
    APPROVED = "APPROVED"  # Approved by an admin, still without instructor
    ASSIGNED = "ASSIGNED"  # Instructor attached (assigned by admin or accepted)
    COMPLETED = "COMPLETED"  # Session delivered
    CANCELLED = "CANCELLED"  # Cancelled by student, instructor or admin


TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.REQUESTED: frozenset(
        {BookingStatus.APPROVED, BookingStatus.ASSIGNED, BookingStatus.CANCELLED}
    ),
    BookingStatus.APPROVED: frozenset({BookingStatus.ASSIGNED, BookingStatus.CANCELLED}),
    BookingStatus.ASSIGNED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """Tenant-owned booking between a student and (eventually) an instructor."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    tenant_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(64), nullable=False)
    instructor_id = Column(String(64), nullable=True)

    name = Column(String(200), nullable=False)

    requested_at = Column(UTCDateTime(), nullable=False)
    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.REQUESTED.value, index=True)

    # Transition stamps: each is written once by its transition and never cleared
    approved_at = Column(UTCDateTime(), nullable=True)
    assigned_at = Column(UTCDateTime(), nullable=True)
    completed_at = Column(UTCDateTime(), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)

    created_at = Column(UTCDateTime(), nullable=False, default=_now_utc, server_default=func.now())
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=_now_utc)

    __table_args__ = (
        CheckConstraint(
            "status IN ('REQUESTED', 'APPROVED', 'ASSIGNED', 'COMPLETED', 'CANCELLED')",
            name="ck_bookings_status",
        ),
        CheckConstraint("end_at > start_at", name="ck_bookings_time_order"),
        CheckConstraint("start_at >= requested_at", name="ck_bookings_start_after_request"),
        CheckConstraint("length(name) >= 1", name="ck_bookings_name_not_empty"),
        Index("ix_bookings_tenant_instructor_window", "tenant_id", "instructor_id", "start_at"),
        Index("ix_bookings_status_requested_at", "status", "requested_at"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.REQUESTED.value

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: tenant={self.tenant_id}, student={self.student_id}, "
            f"instructor={self.instructor_id}, window={self.start_at}-{self.end_at}, "
            f"status={self.status}>"
        )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.status_enum in TERMINAL_STATUSES

    def can_transition_to(self, target: BookingStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status_enum]

    def is_party(self, user_id: Optional[str]) -> bool:
        """Return True if ``user_id`` is the student or the assigned instructor."""
        return user_id is not None and user_id in (self.student_id, self.instructor_id)

    def snapshot(self) -> Dict[str, Any]:
        """Status/instructor view used for audit before/after payloads."""
        return {"status": self.status, "instructor_id": self.instructor_id}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses and cache payloads."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "student_id": self.student_id,
            "instructor_id": self.instructor_id,
            "name": self.name,
            "status": self.status,
            "requested_at": self.requested_at.isoformat() if self.requested_at else None,
            "start_at": self.start_at.isoformat() if self.start_at else None,
            "end_at": self.end_at.isoformat() if self.end_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
