"""Pydantic request/response schemas for the scheduling core."""

from .availability import (
    AvailabilityListResponse,
    AvailabilitySlotCreate,
    AvailabilitySlotResponse,
)
from .booking import BookingCreate, BookingListResponse, BookingResponse

__all__ = [
    "AvailabilityListResponse",
    "AvailabilitySlotCreate",
    "AvailabilitySlotResponse",
    "BookingCreate",
    "BookingListResponse",
    "BookingResponse",
]
