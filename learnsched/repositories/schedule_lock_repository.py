# learnsched/repositories/schedule_lock_repository.py
"""
Schedule lock repository.

Row-level ``SELECT ... FOR UPDATE`` on ``instructor_schedule_locks`` is the
cross-process half of the per-instructor write lock. The row lock is held
until the caller's transaction commits or rolls back. SQLite ignores
``FOR UPDATE``; there the process-local lock in ``core.schedule_lock``
is the only serialisation.
"""

from datetime import datetime, timezone
import logging
from typing import Optional, cast

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.schedule_lock import InstructorScheduleLock
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ScheduleLockRepository(BaseRepository[InstructorScheduleLock]):
    """Get-or-create and lock per-instructor rows."""

    def __init__(self, db: Session):
        super().__init__(db, InstructorScheduleLock)
        self.logger = logging.getLogger(__name__)

    def _select_for_update(
        self, tenant_id: str, instructor_id: str
    ) -> Optional[InstructorScheduleLock]:
        return cast(
            Optional[InstructorScheduleLock],
            self.db.query(InstructorScheduleLock)
            .filter(
                InstructorScheduleLock.tenant_id == tenant_id,
                InstructorScheduleLock.instructor_id == instructor_id,
            )
            .with_for_update()
            .first(),
        )

    def lock_instructor(self, tenant_id: str, instructor_id: str) -> InstructorScheduleLock:
        """
        Lock the instructor's row, creating it on first use.

        Two first-time writers may race on the insert; the loser's savepoint
        rolls back on the unique constraint and it re-selects the winner's row.
        """
        try:
            row = self._select_for_update(tenant_id, instructor_id)
            if row is None:
                try:
                    with self.db.begin_nested():
                        row = InstructorScheduleLock(
                            tenant_id=tenant_id, instructor_id=instructor_id
                        )
                        self.db.add(row)
                except IntegrityError:
                    self.logger.debug(
                        "Schedule lock row for %s/%s created concurrently",
                        tenant_id,
                        instructor_id,
                    )
                    row = self._select_for_update(tenant_id, instructor_id)
                    if row is None:
                        raise RepositoryException(
                            f"Schedule lock row missing for instructor {instructor_id}"
                        )
            row.last_locked_at = datetime.now(timezone.utc)
            self.db.flush()
            return row
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking schedule for instructor {instructor_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock instructor schedule: {str(e)}") from e
