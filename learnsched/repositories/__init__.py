# learnsched/repositories/__init__.py
"""
Repository Pattern Implementation for the scheduling core

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- RepositoryFactory: Factory for creating repository instances
- BookingRepository: Tenant-scoped booking reads and snapshot updates
- ConflictCheckerRepository: Instructor overlap queries
- AvailabilityRepository: Instructor availability slots
- ScheduleLockRepository: Per-instructor row locks
- AuditRepository: Audit trail persistence

Usage:
    from learnsched.repositories import RepositoryFactory

    repository = RepositoryFactory.create_conflict_checker_repository(db)
    rows = repository.get_bookings_for_conflict_check(tenant_id, instructor_id, start, end)
"""

from .audit_repository import AuditRepository
from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .schedule_lock_repository import ScheduleLockRepository

__all__ = [
    "AuditRepository",
    "AvailabilityRepository",
    "BaseRepository",
    "BookingRepository",
    "ConflictCheckerRepository",
    "RepositoryFactory",
    "ScheduleLockRepository",
]
