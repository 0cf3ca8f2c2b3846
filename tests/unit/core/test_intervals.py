from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from learnsched.core.intervals import ensure_utc, overlaps, week_window


def _t(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 1, 7, hour, minute, tzinfo=timezone.utc)


class TestOverlaps:
    def test_partial_overlap(self) -> None:
        assert overlaps(_t(10), _t(11), _t(10, 30), _t(11, 30)) is True

    def test_touching_endpoints_do_not_overlap(self) -> None:
        assert overlaps(_t(10), _t(11), _t(11), _t(12)) is False
        assert overlaps(_t(11), _t(12), _t(10), _t(11)) is False

    def test_containment_overlaps(self) -> None:
        assert overlaps(_t(9), _t(17), _t(10), _t(11)) is True
        assert overlaps(_t(10), _t(11), _t(9), _t(17)) is True

    def test_identical_intervals_overlap(self) -> None:
        assert overlaps(_t(10), _t(11), _t(10), _t(11)) is True

    def test_disjoint(self) -> None:
        assert overlaps(_t(8), _t(9), _t(10), _t(11)) is False

    @pytest.mark.parametrize(
        "a,b",
        [
            ((10, 11), (10, 12)),
            ((10, 11), (11, 12)),
            ((8, 9), (12, 13)),
            ((9, 14), (10, 11)),
        ],
    )
    def test_symmetric(self, a, b) -> None:
        a_start, a_end = _t(a[0]), _t(a[1])
        b_start, b_end = _t(b[0]), _t(b[1])
        assert overlaps(a_start, a_end, b_start, b_end) == overlaps(b_start, b_end, a_start, a_end)


def test_ensure_utc_treats_naive_as_utc() -> None:
    naive = datetime(2030, 1, 7, 10, 0)
    assert ensure_utc(naive) == datetime(2030, 1, 7, 10, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_offsets() -> None:
    plus_two = timezone(timedelta(hours=2))
    value = datetime(2030, 1, 7, 12, 0, tzinfo=plus_two)
    converted = ensure_utc(value)
    assert converted.tzinfo == timezone.utc
    assert converted.hour == 10


def test_week_window_is_seven_days_half_open() -> None:
    start, end = week_window(date(2030, 1, 7))
    assert start == datetime(2030, 1, 7, tzinfo=timezone.utc)
    assert end - start == timedelta(days=7)
    # a session starting exactly at the window end belongs to the next week
    assert overlaps(start, end, end, end + timedelta(hours=1)) is False
