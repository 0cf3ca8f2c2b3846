# learnsched/tasks/escalation.py
"""
Periodic escalation sweep.

Beat enqueues ``schedule.run_escalation_sweep``; the task runs the sweep
through ``run_with_retry`` so a failing cycle is retried with linear
backoff and, once attempts are exhausted, fails the task.
"""

import asyncio
from typing import Any, Dict, Optional

from celery.utils.log import get_task_logger

from ..core.config import settings
from ..core.retry import run_with_retry
from ..services.escalation_service import run_escalation_sweep
from .beat_schedule import ESCALATION_SWEEP_TASK
from .celery_app import celery_app

logger = get_task_logger(__name__)


async def sweep_with_retry(
    threshold_hours: Optional[int] = None,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
) -> Dict[str, Any]:
    """Run one sweep in a worker thread, retrying on failure."""

    async def _attempt() -> Dict[str, Any]:
        report = await asyncio.to_thread(run_escalation_sweep, threshold_hours)
        return report.to_dict()

    return await run_with_retry(
        _attempt,
        max_attempts=max_attempts or settings.escalation_max_attempts,
        base_delay=(
            settings.escalation_retry_base_delay_seconds if base_delay is None else base_delay
        ),
        op_name="run_escalation_sweep",
    )


@celery_app.task(name=ESCALATION_SWEEP_TASK, bind=True, ignore_result=False)  # type: ignore[misc]
def run_escalation_sweep_task(self: Any, threshold_hours: Optional[int] = None) -> Dict[str, Any]:
    """
    Escalate stale REQUESTED bookings.

    Returns:
        The sweep report as a dict
    """
    logger.info("Starting escalation sweep (task %s)", self.request.id)
    result = asyncio.run(sweep_with_retry(threshold_hours))
    logger.info(
        "Escalation sweep done: %s escalated, %s failed",
        result["escalated"],
        result["failed"],
    )
    return result
