# learnsched/tasks/__init__.py
"""
Celery tasks package for the scheduling core.

- schedule.run_escalation_sweep: periodic escalation of stale bookings
- schedule.health_check: worker liveness check
"""

from .celery_app import BaseTask, celery_app
from .escalation import run_escalation_sweep_task, sweep_with_retry

__all__ = [
    "BaseTask",
    "celery_app",
    "run_escalation_sweep_task",
    "sweep_with_retry",
]
