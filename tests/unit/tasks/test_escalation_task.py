from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from learnsched.core.config import settings
from learnsched.services.escalation_service import EscalationReport
from learnsched.tasks import celery_app
from learnsched.tasks.beat_schedule import ESCALATION_SWEEP_TASK, get_beat_schedule
from learnsched.tasks.escalation import run_escalation_sweep_task, sweep_with_retry


def _report(**counts) -> EscalationReport:
    return EscalationReport(
        threshold_hours=24,
        cutoff=datetime(2030, 1, 6, tzinfo=timezone.utc),
        **counts,
    )


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(settings, "escalation_retry_base_delay_seconds", 0.0)


async def test_sweep_with_retry_recovers_from_failed_cycle() -> None:
    with patch(
        "learnsched.tasks.escalation.run_escalation_sweep",
        side_effect=[RuntimeError("db down"), _report(selected=2, escalated=2)],
    ) as sweep:
        result = await sweep_with_retry(threshold_hours=12)

    assert result["escalated"] == 2
    assert sweep.call_count == 2
    sweep.assert_called_with(12)


async def test_sweep_with_retry_gives_up_after_max_attempts() -> None:
    with patch(
        "learnsched.tasks.escalation.run_escalation_sweep",
        side_effect=RuntimeError("db down"),
    ) as sweep:
        with pytest.raises(RuntimeError, match="db down"):
            await sweep_with_retry(max_attempts=3)

    assert sweep.call_count == 3


def test_task_returns_report_dict() -> None:
    with patch(
        "learnsched.tasks.escalation.run_escalation_sweep",
        return_value=_report(selected=1, escalated=1),
    ):
        result = run_escalation_sweep_task.run()

    assert result["selected"] == 1
    assert result["failed"] == 0
    assert result["cutoff"] == "2030-01-06T00:00:00+00:00"


def test_task_runs_eagerly_through_celery() -> None:
    with patch(
        "learnsched.tasks.escalation.run_escalation_sweep",
        return_value=_report(selected=3, escalated=2, failed=1, failed_booking_ids=["b1"]),
    ):
        result = run_escalation_sweep_task.apply(kwargs={"threshold_hours": 6}).get()

    assert result["failed_booking_ids"] == ["b1"]


def test_beat_schedule_runs_sweep_hourly() -> None:
    entry = get_beat_schedule()["run-escalation-sweep"]

    assert entry["task"] == ESCALATION_SWEEP_TASK
    assert entry["schedule"] == timedelta(minutes=settings.escalation_interval_minutes)
    assert entry["options"]["queue"] == "scheduling"


def test_beat_schedule_interval_override() -> None:
    entry = get_beat_schedule(interval_minutes=15)["run-escalation-sweep"]

    assert entry["schedule"] == timedelta(minutes=15)
    assert entry["options"]["expires"] == 900


def test_tasks_are_registered() -> None:
    assert ESCALATION_SWEEP_TASK in celery_app.tasks
    assert "schedule.health_check" in celery_app.tasks
    assert celery_app.conf.task_routes["schedule.*"] == {"queue": "scheduling"}


def test_health_check_runs_eagerly() -> None:
    result = celery_app.tasks["schedule.health_check"].apply().get()

    assert result["status"] == "healthy"
    assert "timestamp" in result
