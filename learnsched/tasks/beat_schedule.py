# learnsched/tasks/beat_schedule.py
"""
Celery Beat schedule for the scheduling core.

The escalation sweep is the only periodic job. Its interval comes from
``escalation_interval_minutes`` (hourly by default).
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from ..core.config import settings

ESCALATION_SWEEP_TASK = "schedule.run_escalation_sweep"


def get_beat_schedule(interval_minutes: Optional[int] = None) -> Dict[str, Dict[str, Any]]:
    """Build the beat schedule mapping."""
    minutes = interval_minutes or settings.escalation_interval_minutes
    return {
        "run-escalation-sweep": {
            "task": ESCALATION_SWEEP_TASK,
            "schedule": timedelta(minutes=minutes),
            "options": {
                "queue": "scheduling",
                # A sweep that waited longer than one interval is superseded by the next
                "expires": minutes * 60,
            },
        },
    }
