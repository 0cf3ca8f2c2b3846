# learnsched/repositories/factory.py
"""
Repository Factory for the scheduling core

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .audit_repository import AuditRepository
    from .availability_repository import AvailabilityRepository
    from .booking_repository import BookingRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .schedule_lock_repository import ScheduleLockRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for availability operations."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking queries."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_schedule_lock_repository(db: Session) -> "ScheduleLockRepository":
        """Create repository for per-instructor lock rows."""
        from .schedule_lock_repository import ScheduleLockRepository

        return ScheduleLockRepository(db)

    @staticmethod
    def create_audit_repository(db: Session) -> "AuditRepository":
        """Create repository for audit trail rows."""
        from .audit_repository import AuditRepository

        return AuditRepository(db)
