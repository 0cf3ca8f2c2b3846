# learnsched/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for the scheduling core

Finds bookings that would double-book an instructor. The SQL predicate is
the half-open overlap test ``start_at < :end AND end_at > :start``, the
same rule as ``core.intervals.overlaps``.

Cancelled bookings never conflict. The booking being assigned is excluded
so re-assigning it cannot collide with its own row.
"""

from datetime import datetime
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[Booking]):
    """
    Repository for conflict checking data access.

    Reads only; never consults any cache.
    """

    def __init__(self, db: Session):
        """Initialize with Booking model as primary."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_bookings_for_conflict_check(
        self,
        tenant_id: str,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Get non-cancelled bookings for an instructor overlapping a candidate interval.

        Args:
            tenant_id: Tenant scope
            instructor_id: The instructor to check
            start_at: Candidate interval start (inclusive)
            end_at: Candidate interval end (exclusive)
            exclude_booking_id: Optional booking ID to exclude from results

        Returns:
            Overlapping bookings ordered by start
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.tenant_id == tenant_id,
                Booking.instructor_id == instructor_id,
                Booking.status != BookingStatus.CANCELLED.value,
                Booking.start_at < end_at,
                Booking.end_at > start_at,
            )

            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)

            return cast(List[Booking], query.order_by(Booking.start_at).all())

        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}")
