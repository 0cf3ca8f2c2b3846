# learnsched/core/intervals.py
"""
Half-open interval helpers.

Every interval in the scheduling core is ``[start, end)``: the end instant
is excluded, so two intervals that only share an endpoint do not overlap.
Conflict detection, availability matching and weekly filtering all go
through ``overlaps`` (or its SQL twin in the repositories) so the
convention cannot drift between call sites.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """
    Return True when ``[a_start, a_end)`` and ``[b_start, b_end)`` share any instant.

    Touching endpoints (``a_end == b_start``) do not count as overlap.
    """
    return a_start < b_end and b_start < a_end


def week_window(week_start: date) -> Tuple[datetime, datetime]:
    """Return the half-open UTC window covering seven days from ``week_start``."""
    start = datetime.combine(week_start, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=7)
