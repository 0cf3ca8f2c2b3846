# learnsched/core/exceptions.py
"""
Domain-specific exceptions for the scheduling core.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Every kind maps to exactly one HTTP status so callers can tell a
double-booking apart from bad input.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from pydantic import ValidationError as PydanticValidationError


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        """Convert to the HTTPException the routing layer returns."""
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: Optional[str] = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)

    @classmethod
    def from_pydantic(cls, error: PydanticValidationError) -> "ValidationException":
        """Flatten a schema ``ValidationError`` into one domain error."""
        errors = [
            {
                "field": ".".join(str(part) for part in item.get("loc", ())) or None,
                "message": item.get("msg", ""),
            }
            for item in error.errors()
        ]
        message = errors[0]["message"] if errors else "Invalid input"
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        return cls(message, details={"errors": errors})


class NotFoundException(DomainException):
    """
    Raised when a requested resource is not found.

    Also used when the resource exists in another tenant, so callers can
    never discover cross-tenant ids.
    """

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(
        self,
        message: str,
        code: Optional[str] = "NOT_FOUND",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str,
        code: Optional[str] = "FORBIDDEN",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when an instructor is already booked for an overlapping interval."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Instructor is already booked for this time slot",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class NoAvailabilityException(ValidationException):
    """Raised when an instructor accepts a booking outside their published availability."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message
            or "You do not have availability for this time slot. Add availability first.",
            code="NO_AVAILABILITY",
            details=details or {},
        )


class InvalidTransitionException(ValidationException):
    """Raised when a booking is asked to move to a state its lifecycle does not allow."""

    def __init__(self, booking_id: str, current_status: str, action: str):
        super().__init__(
            message=f"Cannot {action} a booking in status {current_status}",
            code="INVALID_TRANSITION",
            details={
                "booking_id": booking_id,
                "status": current_status,
                "action": action,
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
