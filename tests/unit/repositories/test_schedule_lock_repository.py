from __future__ import annotations

from learnsched.models.schedule_lock import InstructorScheduleLock
from learnsched.repositories import RepositoryFactory
from tests._utils.scheduling import INSTRUCTOR_X, TENANT


def test_lock_creates_row_once(db) -> None:
    repo = RepositoryFactory.create_schedule_lock_repository(db)

    first = repo.lock_instructor(TENANT, INSTRUCTOR_X)
    db.commit()
    second = repo.lock_instructor(TENANT, INSTRUCTOR_X)
    db.commit()

    assert first.id == second.id
    assert db.query(InstructorScheduleLock).count() == 1
    assert second.last_locked_at is not None
