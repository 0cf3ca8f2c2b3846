# learnsched/services/conflict_checker.py
"""
Conflict Checker Service for the scheduling core

Decides whether an instructor can take on an interval. A conflict is any
non-cancelled booking in the same tenant, for the same instructor, whose
``[start_at, end_at)`` overlaps the candidate. Touching endpoints are not
conflicts.

The repository narrows candidates in SQL; the overlap rule is re-applied
here with ``core.intervals.overlaps`` so both sides agree on the
convention.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import BookingConflictException
from ..core.intervals import ensure_utc, overlaps
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class ConflictChecker(BaseService):
    """
    Service for checking instructor double-booking.

    Always reads the database directly; results are never cached.
    """

    def __init__(self, db: Session, repository: Optional[ConflictCheckerRepository] = None):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional ConflictCheckerRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("check_booking_conflicts")
    def check_booking_conflicts(
        self,
        tenant_id: str,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Check if an interval conflicts with the instructor's existing bookings.

        Args:
            tenant_id: Tenant scope
            instructor_id: The instructor to check
            start_at: Candidate start (inclusive)
            end_at: Candidate end (exclusive)
            exclude_booking_id: Optional booking ID to exclude from check

        Returns:
            List of conflicts with booking details
        """
        start_at = ensure_utc(start_at)
        end_at = ensure_utc(end_at)
        bookings = self.repository.get_bookings_for_conflict_check(
            tenant_id, instructor_id, start_at, end_at, exclude_booking_id
        )

        conflicts = []
        for booking in bookings:
            if overlaps(start_at, end_at, booking.start_at, booking.end_at):
                conflicts.append(
                    {
                        "booking_id": booking.id,
                        "start_at": booking.start_at.isoformat(),
                        "end_at": booking.end_at.isoformat(),
                        "status": booking.status,
                    }
                )

        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} booking conflicts for {instructor_id} "
                f"between {start_at.isoformat()}-{end_at.isoformat()}"
            )

        return conflicts

    def has_conflict(
        self,
        tenant_id: str,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """Boolean form of ``check_booking_conflicts``."""
        return bool(
            self.check_booking_conflicts(
                tenant_id, instructor_id, start_at, end_at, exclude_booking_id
            )
        )

    def assert_no_instructor_conflict(
        self,
        tenant_id: str,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        """
        Raises:
            BookingConflictException: If any overlapping booking exists
        """
        conflicts = self.check_booking_conflicts(
            tenant_id, instructor_id, start_at, end_at, exclude_booking_id
        )
        if conflicts:
            prometheus_metrics.record_booking_conflict("scan")
            raise BookingConflictException(
                details={
                    "instructor_id": instructor_id,
                    "conflicting_booking_ids": [c["booking_id"] for c in conflicts],
                }
            )
