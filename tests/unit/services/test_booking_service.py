"""Lifecycle tests for BookingService against an in-memory database."""

from __future__ import annotations

from datetime import date

import pytest

from learnsched.core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NoAvailabilityException,
    NotFoundException,
    ValidationException,
)
from learnsched.models.booking import BookingStatus
from tests._utils.scheduling import (
    ADMIN,
    INSTRUCTOR_X,
    INSTRUCTOR_Y,
    OTHER_STUDENT,
    OTHER_TENANT,
    STUDENT,
    TENANT,
    at,
)


def test_create_booking_starts_requested(make_booking, audit_sink) -> None:
    booking = make_booking(at(10), at(11))

    assert booking.status == BookingStatus.REQUESTED.value
    assert booking.instructor_id is None
    assert audit_sink.actions() == ["CREATE"]
    event = audit_sink.events[0]
    assert event.user_id == STUDENT
    assert event.before_state is None
    assert event.after_state == {"status": "REQUESTED", "instructor_id": None}


def test_create_rejects_start_before_request(make_booking, audit_sink) -> None:
    with pytest.raises(ValidationException) as exc_info:
        make_booking(at(9), at(10), requested_at=at(10))

    assert "earlier than the request time" in exc_info.value.message
    assert audit_sink.events == []


def test_create_rejects_end_not_after_start(make_booking) -> None:
    with pytest.raises(ValidationException) as exc_info:
        make_booking(at(10), at(10))
    assert exc_info.value.message == "End time must be after start time"


@pytest.mark.parametrize("name", ["", "   "])
def test_create_rejects_blank_name(make_booking, name) -> None:
    with pytest.raises(ValidationException):
        make_booking(at(10), at(11), name=name)


def test_create_rejects_overlong_name(make_booking) -> None:
    with pytest.raises(ValidationException) as exc_info:
        make_booking(at(10), at(11), name="x" * 201)
    assert exc_info.value.message == "Booking name cannot exceed 200 characters"


def test_name_length_is_measured_after_stripping(make_booking) -> None:
    booking = make_booking(at(10), at(11), name="  " + "x" * 195 + " " * 10)
    assert booking.name == "x" * 195


def test_approve_then_assign(booking_service, make_booking, audit_sink) -> None:
    booking = make_booking(at(10), at(11))

    approved = booking_service.approve_booking(TENANT, booking.id)
    assert approved.status == BookingStatus.APPROVED.value
    assert approved.approved_at is not None

    assigned = booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)
    assert assigned.status == BookingStatus.ASSIGNED.value
    assert assigned.instructor_id == INSTRUCTOR_X
    assert assigned.assigned_at is not None

    assert audit_sink.actions() == ["CREATE", "APPROVAL", "ASSIGN"]
    assign_event = audit_sink.events[-1]
    assert assign_event.before_state == {"status": "APPROVED", "instructor_id": None}
    assert assign_event.after_state == {"status": "ASSIGNED", "instructor_id": INSTRUCTOR_X}


def test_approve_requires_requested_status(booking_service, make_booking) -> None:
    booking = make_booking(at(10), at(11))
    booking_service.approve_booking(TENANT, booking.id)

    with pytest.raises(NotFoundException):
        booking_service.approve_booking(TENANT, booking.id)


def test_overlapping_assignment_to_same_instructor_conflicts(booking_service, make_booking) -> None:
    first = make_booking(at(10), at(11))
    booking_service.approve_booking(TENANT, first.id)
    booking_service.assign_instructor(TENANT, first.id, INSTRUCTOR_X)

    second = make_booking(at(10, 30), at(11, 30))
    with pytest.raises(BookingConflictException) as exc_info:
        booking_service.assign_instructor(TENANT, second.id, INSTRUCTOR_X)

    assert exc_info.value.details["conflicting_booking_ids"] == [first.id]
    reloaded = booking_service.get_booking(TENANT, second.id)
    assert reloaded.status == BookingStatus.REQUESTED.value
    assert reloaded.instructor_id is None


def test_overlapping_assignment_to_other_instructor_succeeds(booking_service, make_booking) -> None:
    first = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, first.id, INSTRUCTOR_X)

    second = make_booking(at(10, 30), at(11, 30))
    assigned = booking_service.assign_instructor(TENANT, second.id, INSTRUCTOR_Y)
    assert assigned.instructor_id == INSTRUCTOR_Y


def test_cancelled_booking_frees_the_interval(booking_service, make_booking) -> None:
    first = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, first.id, INSTRUCTOR_X)
    booking_service.cancel_booking(TENANT, first.id, ADMIN, True)

    second = make_booking(at(10), at(11))
    assigned = booking_service.assign_instructor(TENANT, second.id, INSTRUCTOR_X)
    assert assigned.status == BookingStatus.ASSIGNED.value


def test_touching_intervals_do_not_conflict(booking_service, make_booking) -> None:
    first = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, first.id, INSTRUCTOR_X)

    second = make_booking(at(11), at(12))
    assert booking_service.assign_instructor(TENANT, second.id, INSTRUCTOR_X).instructor_id == INSTRUCTOR_X


def test_same_instructor_in_other_tenant_does_not_conflict(booking_service, make_booking) -> None:
    first = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, first.id, INSTRUCTOR_X)

    other = make_booking(at(10), at(11), tenant_id=OTHER_TENANT)
    assigned = booking_service.assign_instructor(OTHER_TENANT, other.id, INSTRUCTOR_X)
    assert assigned.status == BookingStatus.ASSIGNED.value


def test_reassigning_same_instructor_is_noop(booking_service, make_booking, audit_sink) -> None:
    booking = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)

    again = booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)
    assert again.instructor_id == INSTRUCTOR_X
    assert audit_sink.actions() == ["CREATE", "ASSIGN"]


def test_assigning_different_instructor_is_rejected(booking_service, make_booking) -> None:
    booking = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)

    with pytest.raises(ValidationException) as exc_info:
        booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_Y)
    assert exc_info.value.code == "INSTRUCTOR_ALREADY_ASSIGNED"


def test_accept_without_availability(booking_service, make_booking) -> None:
    booking = make_booking(at(10), at(11))

    with pytest.raises(NoAvailabilityException):
        booking_service.accept_booking(TENANT, booking.id, INSTRUCTOR_X)


def test_accept_reports_missing_availability_before_conflicts(booking_service, make_booking) -> None:
    first = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, first.id, INSTRUCTOR_X)

    second = make_booking(at(10), at(11))
    with pytest.raises(NoAvailabilityException):
        booking_service.accept_booking(TENANT, second.id, INSTRUCTOR_X)


def test_accept_with_overlapping_slot(booking_service, make_booking, add_slot, audit_sink) -> None:
    add_slot(INSTRUCTOR_X, at(10, 30), at(12))
    booking = make_booking(at(10), at(11))

    accepted = booking_service.accept_booking(TENANT, booking.id, INSTRUCTOR_X)
    assert accepted.status == BookingStatus.ASSIGNED.value
    assert accepted.instructor_id == INSTRUCTOR_X
    assert audit_sink.events[-1].action.value == "ACCEPT"
    assert audit_sink.events[-1].user_id == INSTRUCTOR_X


def test_accept_ignores_slot_that_only_touches(booking_service, make_booking, add_slot) -> None:
    add_slot(INSTRUCTOR_X, at(11), at(12))
    booking = make_booking(at(10), at(11))

    with pytest.raises(NoAvailabilityException):
        booking_service.accept_booking(TENANT, booking.id, INSTRUCTOR_X)


def test_accept_conflicts_with_existing_assignment(booking_service, make_booking, add_slot) -> None:
    add_slot(INSTRUCTOR_X, at(9), at(13))
    first = make_booking(at(10), at(11))
    booking_service.accept_booking(TENANT, first.id, INSTRUCTOR_X)

    second = make_booking(at(10, 30), at(11, 30))
    with pytest.raises(BookingConflictException):
        booking_service.accept_booking(TENANT, second.id, INSTRUCTOR_X)


def test_accept_already_assigned_booking(booking_service, make_booking, add_slot) -> None:
    add_slot(INSTRUCTOR_Y, at(9), at(13))
    booking = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)

    with pytest.raises(ValidationException) as exc_info:
        booking_service.accept_booking(TENANT, booking.id, INSTRUCTOR_Y)
    assert exc_info.value.code == "INSTRUCTOR_ALREADY_ASSIGNED"


def test_complete_by_assigned_instructor(booking_service, make_booking) -> None:
    booking = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)

    done = booking_service.complete_booking(TENANT, booking.id, INSTRUCTOR_X, False)
    assert done.status == BookingStatus.COMPLETED.value
    assert done.completed_at is not None


def test_complete_by_other_instructor_is_forbidden(booking_service, make_booking) -> None:
    booking = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)

    with pytest.raises(ForbiddenException):
        booking_service.complete_booking(TENANT, booking.id, INSTRUCTOR_Y, False)


def test_complete_requires_assigned(booking_service, make_booking) -> None:
    booking = make_booking(at(10), at(11))

    with pytest.raises(InvalidTransitionException):
        booking_service.complete_booking(TENANT, booking.id, ADMIN, True)


def test_cancel_by_student(booking_service, make_booking, audit_sink) -> None:
    booking = make_booking(at(10), at(11))

    cancelled = booking_service.cancel_booking(TENANT, booking.id, STUDENT, False)
    assert cancelled.status == BookingStatus.CANCELLED.value
    assert cancelled.cancelled_at is not None
    assert audit_sink.actions()[-1] == "CANCEL"


def test_cancel_by_stranger_is_forbidden(booking_service, make_booking) -> None:
    booking = make_booking(at(10), at(11))

    with pytest.raises(ForbiddenException):
        booking_service.cancel_booking(TENANT, booking.id, OTHER_STUDENT, False)


@pytest.mark.parametrize("final", ["complete", "cancel"])
def test_terminal_bookings_reject_every_transition(booking_service, make_booking, final) -> None:
    booking = make_booking(at(10), at(11))
    booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)
    if final == "complete":
        booking_service.complete_booking(TENANT, booking.id, ADMIN, True)
    else:
        booking_service.cancel_booking(TENANT, booking.id, ADMIN, True)

    with pytest.raises(InvalidTransitionException):
        booking_service.cancel_booking(TENANT, booking.id, ADMIN, True)
    with pytest.raises(InvalidTransitionException):
        booking_service.assign_instructor(TENANT, booking.id, INSTRUCTOR_X)
    with pytest.raises(InvalidTransitionException):
        booking_service.accept_booking(TENANT, booking.id, INSTRUCTOR_Y)
    with pytest.raises(NotFoundException):
        booking_service.approve_booking(TENANT, booking.id)


def test_other_tenant_cannot_see_booking(booking_service, make_booking) -> None:
    booking = make_booking(at(10), at(11))

    with pytest.raises(NotFoundException):
        booking_service.get_booking(OTHER_TENANT, booking.id)
    with pytest.raises(NotFoundException):
        booking_service.assign_instructor(OTHER_TENANT, booking.id, INSTRUCTOR_X)


def test_audit_failure_does_not_fail_transition(booking_service, make_booking, audit_sink) -> None:
    booking = make_booking(at(10), at(11))
    audit_sink.fail_all = True

    approved = booking_service.approve_booking(TENANT, booking.id)
    assert approved.status == BookingStatus.APPROVED.value
    assert booking_service.get_booking(TENANT, booking.id).status == BookingStatus.APPROVED.value


def test_list_bookings_is_cached_and_invalidated(booking_service, make_booking, cache) -> None:
    early = make_booking(at(10), at(11))

    first = booking_service.list_bookings(TENANT)
    assert first["total"] == 1
    assert cache.get("bookings:tenant-a:1:20") == first

    late = make_booking(at(12), at(13))
    assert cache.get("bookings:tenant-a:1:20") is None

    second = booking_service.list_bookings(TENANT)
    assert second["total"] == 2
    assert [item["id"] for item in second["items"]] == [late.id, early.id]


def test_list_bookings_filters_by_student(booking_service, make_booking) -> None:
    make_booking(at(10), at(11))
    make_booking(at(12), at(13), student_id=OTHER_STUDENT)

    result = booking_service.list_bookings(TENANT, student_id=OTHER_STUDENT)
    assert result["total"] == 1
    assert result["items"][0]["student_id"] == OTHER_STUDENT


def test_weekly_bookings_use_overlap(booking_service, make_booking) -> None:
    inside = make_booking(at(10), at(11))
    cancelled = make_booking(at(12), at(13))
    booking_service.cancel_booking(TENANT, cancelled.id, ADMIN, True)
    later = make_booking(at(24 * 7 + 1), at(24 * 7 + 2))

    rows = booking_service.get_weekly_bookings(TENANT, date(2030, 1, 7))
    ids = [r.id for r in rows]
    assert ids == [inside.id]
    assert later.id not in ids
