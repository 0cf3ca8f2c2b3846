"""Per-instructor lock rows serialising assign/accept."""

from __future__ import annotations

from sqlalchemy import Column, String, UniqueConstraint
import ulid

from ..database import Base
from .types import UTCDateTime


class InstructorScheduleLock(Base):
    """
    One row per (tenant, instructor).

    Assign and accept lock this row ``FOR UPDATE`` for the duration of the
    conflict scan and booking update, so writers for the same instructor run
    one at a time across processes.
    """

    __tablename__ = "instructor_schedule_locks"
    __table_args__ = (
        UniqueConstraint("tenant_id", "instructor_id", name="uq_instructor_schedule_locks"),
    )

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=False)
    instructor_id = Column(String(64), nullable=False)
    last_locked_at = Column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return f"<InstructorScheduleLock tenant={self.tenant_id} instructor={self.instructor_id}>"
