from __future__ import annotations

from pydantic import BaseModel, ValidationError, field_validator
import pytest

from learnsched.core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NoAvailabilityException,
    NotFoundException,
    ServiceException,
    ValidationException,
)


@pytest.mark.parametrize(
    "exc,status,code",
    [
        (ValidationException("bad"), 400, "VALIDATION_ERROR"),
        (NotFoundException("missing"), 404, "NOT_FOUND"),
        (ForbiddenException("nope"), 403, "FORBIDDEN"),
        (BookingConflictException(), 409, "BOOKING_CONFLICT"),
        (NoAvailabilityException(), 400, "NO_AVAILABILITY"),
        (InvalidTransitionException("b1", "CANCELLED", "assign"), 400, "INVALID_TRANSITION"),
        (ServiceException("db down"), 500, "ServiceException"),
    ],
)
def test_http_mapping(exc, status, code) -> None:
    http = exc.to_http_exception()
    assert http.status_code == status
    assert http.detail["code"] == code


def test_conflict_is_distinguishable_from_validation() -> None:
    conflict = BookingConflictException()
    assert not isinstance(conflict, ValidationException)
    assert conflict.code != ValidationException("x").code


def test_no_availability_is_a_validation_error() -> None:
    assert isinstance(NoAvailabilityException(), ValidationException)


def test_invalid_transition_message_and_details() -> None:
    exc = InvalidTransitionException("b1", "COMPLETED", "cancel")
    assert exc.message == "Cannot cancel a booking in status COMPLETED"
    assert exc.details == {"booking_id": "b1", "status": "COMPLETED", "action": "cancel"}


def test_from_pydantic_flattens_errors() -> None:
    class _Input(BaseModel):
        name: str

        @field_validator("name")
        @classmethod
        def not_blank(cls, v: str) -> str:
            if not v.strip():
                raise ValueError("Name must not be empty")
            return v

    with pytest.raises(ValidationError) as info:
        _Input(name=" ")

    exc = ValidationException.from_pydantic(info.value)
    assert exc.message == "Name must not be empty"
    assert exc.details["errors"][0]["field"] == "name"
    assert exc.code == "VALIDATION_ERROR"
