# learnsched/schemas/availability.py
"""Availability slot schemas."""

from datetime import datetime
from typing import List

from pydantic import Field, field_validator, model_validator

from ..core.intervals import ensure_utc
from ._strict_base import StandardizedModel, StrictRequestModel


class AvailabilitySlotCreate(StrictRequestModel):
    tenant_id: str = Field(..., min_length=1)
    instructor_id: str = Field(..., min_length=1)
    start_at: datetime
    end_at: datetime

    @field_validator("start_at", "end_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_time_order(self) -> "AvailabilitySlotCreate":
        if self.end_at <= self.start_at:
            raise ValueError("End time must be after start time")
        return self


class AvailabilitySlotResponse(StandardizedModel):
    id: str
    tenant_id: str
    instructor_id: str
    start_at: datetime
    end_at: datetime


class AvailabilityListResponse(StandardizedModel):
    items: List[AvailabilitySlotResponse]
    total: int
    page: int
    limit: int
