# learnsched/schemas/booking.py
"""
Booking schemas for the scheduling core.

``BookingCreate`` validates create-booking input before anything touches
the database; the service converts its ``ValidationError`` into the
domain ``ValidationException``.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.config import settings
from ..core.intervals import ensure_utc
from ..models.booking import BookingStatus
from ._strict_base import StandardizedModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """A student's request for a session in ``[start_at, end_at)``."""

    tenant_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    name: str = Field(..., description="Session label")
    requested_at: datetime
    start_at: datetime
    end_at: datetime

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Booking name must not be empty")
        limit = settings.booking_name_max_length
        if len(v) > limit:
            raise ValueError(f"Booking name cannot exceed {limit} characters")
        return v

    @field_validator("requested_at", "start_at", "end_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_time_order(self) -> "BookingCreate":
        """Ensure end_at is after start_at and the slot does not precede the request."""
        if self.end_at <= self.start_at:
            raise ValueError("End time must be after start time")
        if self.start_at < self.requested_at:
            raise ValueError("Start time cannot be earlier than the request time")
        return self


class BookingResponse(StandardizedModel):
    """Booking as returned to callers and stored in list caches."""

    id: str
    tenant_id: str
    student_id: str
    instructor_id: Optional[str] = None
    name: str
    status: BookingStatus
    requested_at: datetime
    start_at: datetime
    end_at: datetime
    approved_at: Optional[datetime] = None
    assigned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class BookingListResponse(StandardizedModel):
    """One page of bookings."""

    items: List[BookingResponse]
    total: int
    page: int
    limit: int
