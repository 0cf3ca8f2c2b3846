# learnsched/repositories/booking_repository.py
"""
Booking Repository for the scheduling core

Every read except the escalation scan is scoped to one tenant. A booking
that exists in another tenant is indistinguishable from a missing one.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, Optional, Tuple, cast

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_for_tenant(
        self,
        tenant_id: str,
        booking_id: str,
        *,
        status: Optional[BookingStatus] = None,
        for_update: bool = False,
    ) -> Optional[Booking]:
        """
        Point lookup scoped to a tenant.

        Args:
            tenant_id: Owning tenant
            booking_id: Booking ID
            status: Optional status the booking must currently have
            for_update: Lock the row until the surrounding transaction ends

        Returns:
            The booking, or None when absent or owned by another tenant
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.id == booking_id,
                Booking.tenant_id == tenant_id,
            )
            if status is not None:
                query = query.filter(Booking.status == status.value)
            if for_update:
                query = query.with_for_update()
            return cast(Optional[Booking], query.first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to get booking: {str(e)}")

    def list_for_tenant(
        self,
        tenant_id: str,
        *,
        skip: int = 0,
        limit: int = 20,
        student_id: Optional[str] = None,
    ) -> Tuple[List[Booking], int]:
        """Return one page of bookings (newest start first) and the total count."""
        try:
            query = self.db.query(Booking).filter(Booking.tenant_id == tenant_id)
            if student_id:
                query = query.filter(Booking.student_id == student_id)
            total = query.count()
            rows = query.order_by(Booking.start_at.desc()).offset(skip).limit(limit).all()
            return cast(List[Booking], rows), int(total)
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def get_active_in_window(
        self, tenant_id: str, window_start: datetime, window_end: datetime
    ) -> List[Booking]:
        """Non-cancelled bookings whose interval overlaps ``[window_start, window_end)``."""
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.tenant_id == tenant_id,
                    Booking.status != BookingStatus.CANCELLED.value,
                    Booking.start_at < window_end,
                    Booking.end_at > window_start,
                )
                .order_by(Booking.start_at)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings in window: {str(e)}")
            raise RepositoryException(f"Failed to get weekly bookings: {str(e)}")

    def get_stale_unassigned(self, cutoff: datetime) -> List[Booking]:
        """
        REQUESTED bookings without an instructor requested before ``cutoff``.

        Spans all tenants; used only by the escalation sweep.
        """
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.status == BookingStatus.REQUESTED.value,
                    Booking.instructor_id.is_(None),
                    Booking.requested_at < cutoff,
                )
                .order_by(Booking.requested_at)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting stale bookings: {str(e)}")
            raise RepositoryException(f"Failed to get stale bookings: {str(e)}")

    def update_with_snapshot(self, booking: Booking, **changes: Any) -> Dict[str, Any]:
        """
        Apply ``changes`` to ``booking`` and flush.

        Returns:
            The booking's status/instructor snapshot taken before the change

        Raises:
            RepositoryException: If the flush fails (chained to the original
                IntegrityError for constraint violations)
        """
        before = booking.snapshot()
        try:
            for key, value in changes.items():
                setattr(booking, key, value)
            self.db.flush()
        except IntegrityError as exc:
            self.logger.warning("Integrity error updating booking %s: %s", booking.id, exc)
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating booking {booking.id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking: {str(e)}") from e
        return before
