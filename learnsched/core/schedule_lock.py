"""
Per-instructor write lock used by assign and accept.

Two layers, both keyed by ``(tenant_id, instructor_id)``:

* a process-local ``threading.Lock`` so threads in one worker queue up
  instead of racing on the same session pool
* the ``instructor_schedule_locks`` row taken ``FOR UPDATE`` inside the
  caller's transaction, which serialises writers across processes

The row lock is released by the caller's commit or rollback, so the
transaction must finish inside the ``with`` block.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
from typing import Iterator, Optional, Tuple
import weakref

from sqlalchemy.orm import Session

from ..repositories.schedule_lock_repository import ScheduleLockRepository
from .config import settings
from .exceptions import ConflictException

logger = logging.getLogger(__name__)

_LockKey = Tuple[str, str]

# Entries vanish once no caller holds the lock object
_LOCKS: "weakref.WeakValueDictionary[_LockKey, threading.Lock]" = weakref.WeakValueDictionary()
_LOCKS_GUARD = threading.Lock()


def _local_lock(tenant_id: str, instructor_id: str) -> threading.Lock:
    key = (tenant_id, instructor_id)
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[key] = lock
        return lock


class ScheduleLockTimeout(ConflictException):
    """Raised when the instructor's schedule stays locked past the timeout."""

    def __init__(self, tenant_id: str, instructor_id: str, timeout: float):
        super().__init__(
            message="Instructor schedule is being updated, please retry",
            code="SCHEDULE_LOCKED",
            details={
                "tenant_id": tenant_id,
                "instructor_id": instructor_id,
                "timeout_seconds": timeout,
            },
        )


@contextmanager
def instructor_schedule_lock(
    db: Session,
    tenant_id: str,
    instructor_id: str,
    timeout: Optional[float] = None,
) -> Iterator[None]:
    """
    Hold the instructor's write lock for the duration of the block.

    Raises:
        ScheduleLockTimeout: If the process-local lock is not acquired in time
    """
    wait = settings.instructor_lock_timeout_seconds if timeout is None else timeout
    lock = _local_lock(tenant_id, instructor_id)
    if not lock.acquire(timeout=wait):
        logger.warning(
            "Timed out waiting for schedule lock",
            extra={"tenant_id": tenant_id, "instructor_id": instructor_id, "timeout": wait},
        )
        raise ScheduleLockTimeout(tenant_id, instructor_id, wait)
    try:
        try:
            ScheduleLockRepository(db).lock_instructor(tenant_id, instructor_id)
        except Exception:
            db.rollback()
            raise
        yield
    finally:
        lock.release()
