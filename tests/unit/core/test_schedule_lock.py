from __future__ import annotations

import gc
import threading
import time
from typing import List
from unittest.mock import MagicMock, patch

import pytest

from learnsched.core import schedule_lock
from learnsched.core.schedule_lock import ScheduleLockTimeout, instructor_schedule_lock


def test_same_key_shares_one_lock() -> None:
    assert schedule_lock._local_lock("t1", "i1") is schedule_lock._local_lock("t1", "i1")
    assert schedule_lock._local_lock("t1", "i1") is not schedule_lock._local_lock("t2", "i1")


def test_times_out_when_held_elsewhere() -> None:
    lock = schedule_lock._local_lock("t-timeout", "i-timeout")
    lock.acquire()
    try:
        with pytest.raises(ScheduleLockTimeout) as info:
            with instructor_schedule_lock(MagicMock(), "t-timeout", "i-timeout", timeout=0.01):
                pass
        assert info.value.status_code == 409
        assert info.value.code == "SCHEDULE_LOCKED"
    finally:
        lock.release()


def test_writers_for_one_instructor_do_not_interleave() -> None:
    events: List[str] = []

    def _writer(name: str) -> None:
        with instructor_schedule_lock(MagicMock(), "t-race", "i-race", timeout=5):
            events.append(f"{name}:enter")
            time.sleep(0.05)
            events.append(f"{name}:exit")

    with patch.object(schedule_lock, "ScheduleLockRepository"):
        threads = [threading.Thread(target=_writer, args=(n,)) for n in ("a", "b")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    assert len(events) == 4
    assert events[0].split(":")[0] == events[1].split(":")[0]
    assert events[2].split(":")[0] == events[3].split(":")[0]


def test_row_lock_failure_rolls_back_and_releases() -> None:
    db = MagicMock()
    with patch.object(schedule_lock, "ScheduleLockRepository") as repo_cls:
        repo_cls.return_value.lock_instructor.side_effect = RuntimeError("db gone")
        with pytest.raises(RuntimeError):
            with instructor_schedule_lock(db, "t-fail", "i-fail", timeout=1):
                pass
    db.rollback.assert_called_once()
    lock = schedule_lock._local_lock("t-fail", "i-fail")
    assert lock.acquire(blocking=False)
    lock.release()


def test_unused_locks_are_dropped() -> None:
    lock = schedule_lock._local_lock("t-gc", "i-gc")
    assert ("t-gc", "i-gc") in schedule_lock._LOCKS

    del lock
    gc.collect()

    assert ("t-gc", "i-gc") not in schedule_lock._LOCKS


def test_lock_survives_while_a_writer_waits() -> None:
    held = schedule_lock._local_lock("t-wait", "i-wait")
    held.acquire()
    try:
        assert schedule_lock._local_lock("t-wait", "i-wait") is held
    finally:
        held.release()
