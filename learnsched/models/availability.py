# learnsched/models/availability.py
"""
Availability models for the scheduling core.

An AvailabilitySlot is an instructor's open offer to be booked inside
``[start_at, end_at)``. Slots may overlap each other and are not checked
against existing bookings; the double-booking invariant lives on bookings.
"""

from datetime import datetime, timezone
import logging

from sqlalchemy import CheckConstraint, Column, Index, String
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class AvailabilitySlot(Base):
    """Instructor-published bookable window"""

    __tablename__ = "availability_slots"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False)
    instructor_id = Column(String(64), nullable=False)
    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=_now_utc, server_default=func.now())

    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_availability_slots_time_order"),
        Index("idx_availability_slots_tenant_instructor", "tenant_id", "instructor_id", "start_at"),
    )

    def __repr__(self) -> str:
        return f"<AvailabilitySlot {self.instructor_id} {self.start_at}-{self.end_at}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "instructor_id": self.instructor_id,
            "start_at": self.start_at.isoformat() if self.start_at else None,
            "end_at": self.end_at.isoformat() if self.end_at else None,
        }
