# learnsched/repositories/availability_repository.py
"""
Availability Repository for the scheduling core

Slots are plain per-instructor windows; nothing here enforces that slots
are disjoint.
"""

from datetime import datetime
import logging
from typing import List, Optional, Tuple, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import AvailabilitySlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[AvailabilitySlot]):
    """Repository for availability slot data access."""

    def __init__(self, db: Session):
        super().__init__(db, AvailabilitySlot)
        self.logger = logging.getLogger(__name__)

    def list_for_tenant(
        self, tenant_id: str, *, skip: int = 0, limit: int = 20
    ) -> Tuple[List[AvailabilitySlot], int]:
        """Return one page of slots (earliest first) and the total count."""
        try:
            query = self.db.query(AvailabilitySlot).filter(AvailabilitySlot.tenant_id == tenant_id)
            total = query.count()
            rows = query.order_by(AvailabilitySlot.start_at.asc()).offset(skip).limit(limit).all()
            return cast(List[AvailabilitySlot], rows), int(total)
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing availability for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to list availability: {str(e)}")

    def get_overlapping_slots(
        self,
        tenant_id: str,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> List[AvailabilitySlot]:
        """Slots for the instructor whose window overlaps ``[start_at, end_at)``."""
        try:
            return cast(
                List[AvailabilitySlot],
                self.db.query(AvailabilitySlot)
                .filter(
                    AvailabilitySlot.tenant_id == tenant_id,
                    AvailabilitySlot.instructor_id == instructor_id,
                    AvailabilitySlot.start_at < end_at,
                    AvailabilitySlot.end_at > start_at,
                )
                .order_by(AvailabilitySlot.start_at)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting overlapping availability: {str(e)}")
            raise RepositoryException(f"Failed to get availability: {str(e)}")

    def find_matching_slot(
        self,
        tenant_id: str,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> Optional[AvailabilitySlot]:
        slots = self.get_overlapping_slots(tenant_id, instructor_id, start_at, end_at)
        return slots[0] if slots else None
