# learnsched/services/booking_service.py
"""
Booking Service for the scheduling core

Owns every booking status change:

    create   -> REQUESTED
    approve  REQUESTED -> APPROVED
    assign   REQUESTED|APPROVED -> ASSIGNED   (admin picks the instructor)
    accept   REQUESTED|APPROVED -> ASSIGNED   (instructor takes it)
    complete ASSIGNED -> COMPLETED
    cancel   any non-terminal -> CANCELLED

Assign and accept hold the per-instructor schedule lock across the
conflict scan and the update, so two racing writers for overlapping
intervals cannot both succeed. Every transition is written and committed
first; the audit event and cache invalidation follow and never change the
result.
"""

from datetime import date, datetime, timezone
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import AuditAction, PermissionName
from ..core.exceptions import (
    BookingConflictException,
    ForbiddenException,
    InvalidTransitionException,
    NoAvailabilityException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..core.intervals import week_window
from ..core.permissions import require_approved_student, require_permission, require_same_tenant
from ..core.request_context import get_correlation_id
from ..core.schedule_lock import instructor_schedule_lock
from ..models.booking import Booking, BookingStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import AuthContext
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..schemas.booking import BookingCreate, BookingListResponse, BookingResponse
from .audit_service import AuditEvent, AuditService, SqlAuditSink
from .availability_service import AvailabilityService
from .base import BaseService
from .cache_service import CacheKeyBuilder, CacheService
from .conflict_checker import ConflictChecker

logger = logging.getLogger(__name__)

INSTRUCTOR_CONFLICT_CONSTRAINT = "bookings_no_overlap_per_instructor"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BookingService(BaseService):
    """
    Service layer for booking operations.

    ``actor`` is optional on every operation: when supplied, capability and
    tenant checks run against it; when omitted the caller is trusted.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheService] = None,
        audit_service: Optional[AuditService] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        availability_service: Optional[AvailabilityService] = None,
        repository: Optional[BookingRepository] = None,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            cache: Optional cache for booking list pages
            audit_service: Audit front door (defaults to audit_log rows in ``db``)
            conflict_checker: Optional conflict checker instance
            availability_service: Optional availability service instance
            repository: Optional BookingRepository instance
        """
        super().__init__(db, cache)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db)
        self.availability_service = availability_service or AvailabilityService(db)
        self.audit_service = audit_service or AuditService(SqlAuditSink(db=db))

    # Transitions

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        tenant_id: str,
        student_id: str,
        name: str,
        requested_at: datetime,
        start_at: datetime,
        end_at: datetime,
        *,
        actor: Optional[AuthContext] = None,
    ) -> Booking:
        """
        Create a REQUESTED booking.

        Raises:
            ValidationException: Empty/long name, ``end_at <= start_at`` or
                ``start_at < requested_at``
            ForbiddenException: Actor lacks the request capability, is an
                unapproved student, or books on behalf of another student
        """
        require_permission(actor, PermissionName.REQUEST_BOOKING)
        require_approved_student(actor)
        require_same_tenant(actor, tenant_id, "Tenant")
        if actor is not None and actor.is_student and actor.user_id != student_id:
            raise ForbiddenException("Students can only request bookings for themselves")

        try:
            data = BookingCreate(
                tenant_id=tenant_id,
                student_id=student_id,
                name=name,
                requested_at=requested_at,
                start_at=start_at,
                end_at=end_at,
            )
        except ValidationError as exc:
            raise ValidationException.from_pydantic(exc) from exc

        with self.transaction():
            booking = self.repository.create(
                **data.model_dump(), status=BookingStatus.REQUESTED.value
            )

        self._after_transition(
            AuditAction.CREATE,
            booking,
            before=None,
            user_id=actor.user_id if actor else student_id,
            actor=actor,
        )
        return booking

    @BaseService.measure_operation("approve_booking")
    def approve_booking(
        self,
        tenant_id: str,
        booking_id: str,
        *,
        actor: Optional[AuthContext] = None,
    ) -> Booking:
        """
        Approve a REQUESTED booking.

        Bookings in any other status are reported as not found.
        """
        require_permission(actor, PermissionName.APPROVE_BOOKING)
        require_same_tenant(actor, tenant_id, "Booking")

        with self.transaction():
            booking = self._get_or_404(
                tenant_id, booking_id, status=BookingStatus.REQUESTED, for_update=True
            )
            before = self.repository.update_with_snapshot(
                booking,
                status=BookingStatus.APPROVED.value,
                approved_at=_now(),
            )

        self._after_transition(
            AuditAction.APPROVAL, booking, before=before, user_id=_user_id(actor), actor=actor
        )
        return booking

    @BaseService.measure_operation("assign_instructor")
    def assign_instructor(
        self,
        tenant_id: str,
        booking_id: str,
        instructor_id: str,
        *,
        actor: Optional[AuthContext] = None,
    ) -> Booking:
        """
        Attach ``instructor_id`` to a booking.

        Re-assigning the instructor a booking already has is a no-op.

        Raises:
            NotFoundException: Booking absent in this tenant
            ValidationException: Booking is terminal or has another instructor
            BookingConflictException: Instructor has an overlapping booking
        """
        require_permission(actor, PermissionName.ASSIGN_INSTRUCTOR)
        require_same_tenant(actor, tenant_id, "Booking")
        if not instructor_id:
            raise ValidationException("instructor_id is required", details={"field": "instructor_id"})

        with instructor_schedule_lock(self.db, tenant_id, instructor_id):
            with self.transaction():
                booking = self._get_or_404(tenant_id, booking_id, for_update=True)
                if booking.is_terminal:
                    raise InvalidTransitionException(booking.id, booking.status, "assign")
                if booking.instructor_id and booking.instructor_id != instructor_id:
                    raise ValidationException(
                        "Booking already has an instructor",
                        code="INSTRUCTOR_ALREADY_ASSIGNED",
                        details={"booking_id": booking.id},
                    )

                self.conflict_checker.assert_no_instructor_conflict(
                    tenant_id,
                    instructor_id,
                    booking.start_at,
                    booking.end_at,
                    exclude_booking_id=booking.id,
                )

                if booking.instructor_id == instructor_id:
                    self.logger.info(
                        "Booking %s already assigned to %s", booking.id, instructor_id
                    )
                    return booking

                self._ensure_transition(booking, BookingStatus.ASSIGNED, "assign")
                before = self._apply_assignment(booking, instructor_id)

        self._after_transition(
            AuditAction.ASSIGN, booking, before=before, user_id=_user_id(actor), actor=actor
        )
        return booking

    @BaseService.measure_operation("accept_booking")
    def accept_booking(
        self,
        tenant_id: str,
        booking_id: str,
        instructor_id: str,
        *,
        actor: Optional[AuthContext] = None,
    ) -> Booking:
        """
        Let an instructor take an unassigned booking.

        Raises:
            NotFoundException: Booking absent in this tenant
            ValidationException: Booking is terminal or already has an instructor
            NoAvailabilityException: No slot of the instructor overlaps the booking
            BookingConflictException: Instructor has an overlapping booking
        """
        require_permission(actor, PermissionName.ACCEPT_BOOKING)
        require_same_tenant(actor, tenant_id, "Booking")
        if actor is not None and actor.user_id != instructor_id:
            raise ForbiddenException("Instructors can only accept bookings for themselves")

        with instructor_schedule_lock(self.db, tenant_id, instructor_id):
            with self.transaction():
                booking = self._get_or_404(tenant_id, booking_id, for_update=True)
                if booking.is_terminal:
                    raise InvalidTransitionException(booking.id, booking.status, "accept")
                if booking.instructor_id is not None:
                    raise ValidationException(
                        "Booking already has an instructor",
                        code="INSTRUCTOR_ALREADY_ASSIGNED",
                        details={"booking_id": booking.id},
                    )
                self._ensure_transition(booking, BookingStatus.ASSIGNED, "accept")

                if not self.availability_service.instructor_has_availability(
                    tenant_id, instructor_id, booking.start_at, booking.end_at
                ):
                    raise NoAvailabilityException(
                        details={"booking_id": booking.id, "instructor_id": instructor_id}
                    )

                self.conflict_checker.assert_no_instructor_conflict(
                    tenant_id,
                    instructor_id,
                    booking.start_at,
                    booking.end_at,
                    exclude_booking_id=booking.id,
                )
                before = self._apply_assignment(booking, instructor_id)

        self._after_transition(
            AuditAction.ACCEPT, booking, before=before, user_id=instructor_id, actor=actor
        )
        return booking

    @BaseService.measure_operation("complete_booking")
    def complete_booking(
        self,
        tenant_id: str,
        booking_id: str,
        actor_id: str,
        actor_is_admin: bool,
        *,
        actor: Optional[AuthContext] = None,
    ) -> Booking:
        """
        Mark an ASSIGNED booking as delivered.

        Only the assigned instructor or an admin may complete.
        """
        require_same_tenant(actor, tenant_id, "Booking")
        _require_matching_actor(actor, actor_id, actor_is_admin)

        with self.transaction():
            booking = self._get_or_404(tenant_id, booking_id, for_update=True)
            if not actor_is_admin and (
                booking.instructor_id is None or booking.instructor_id != actor_id
            ):
                raise ForbiddenException("Only the assigned instructor or an admin can complete")
            self._ensure_transition(booking, BookingStatus.COMPLETED, "complete")
            before = self.repository.update_with_snapshot(
                booking,
                status=BookingStatus.COMPLETED.value,
                completed_at=_now(),
            )

        self._after_transition(
            AuditAction.COMPLETE, booking, before=before, user_id=actor_id, actor=actor
        )
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        tenant_id: str,
        booking_id: str,
        actor_id: str,
        actor_is_admin: bool,
        *,
        actor: Optional[AuthContext] = None,
    ) -> Booking:
        """
        Cancel a non-terminal booking.

        Allowed for the student, the assigned instructor, or an admin.
        """
        require_same_tenant(actor, tenant_id, "Booking")
        _require_matching_actor(actor, actor_id, actor_is_admin)

        with self.transaction():
            booking = self._get_or_404(tenant_id, booking_id, for_update=True)
            if not actor_is_admin and not booking.is_party(actor_id):
                raise ForbiddenException("You are not allowed to cancel this booking")
            self._ensure_transition(booking, BookingStatus.CANCELLED, "cancel")
            before = self.repository.update_with_snapshot(
                booking,
                status=BookingStatus.CANCELLED.value,
                cancelled_at=_now(),
            )

        self._after_transition(
            AuditAction.CANCEL, booking, before=before, user_id=actor_id, actor=actor
        )
        return booking

    # Reads

    @BaseService.measure_operation("get_booking")
    def get_booking(
        self, tenant_id: str, booking_id: str, *, actor: Optional[AuthContext] = None
    ) -> Booking:
        require_same_tenant(actor, tenant_id, "Booking")
        return self._get_or_404(tenant_id, booking_id)

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        tenant_id: str,
        page: int = 1,
        limit: int = 20,
        student_id: Optional[str] = None,
        *,
        actor: Optional[AuthContext] = None,
    ) -> Dict[str, Any]:
        """
        One page of the tenant's bookings, newest start first.

        Students only ever see their own bookings. Pages are cached for
        ``booking_list_cache_ttl_seconds``.
        """
        require_same_tenant(actor, tenant_id, "Tenant")
        if actor is not None and actor.is_student:
            student_id = actor.user_id
        page = max(1, page)
        limit = max(1, min(limit, 100))

        cache_key = CacheKeyBuilder.booking_list(tenant_id, page, limit, student_id)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        rows, total = self.repository.list_for_tenant(
            tenant_id, skip=(page - 1) * limit, limit=limit, student_id=student_id
        )
        result = BookingListResponse(
            items=[BookingResponse.model_validate(r) for r in rows],
            total=total,
            page=page,
            limit=limit,
        ).model_dump(mode="json")
        if self.cache is not None:
            self.cache.set(cache_key, result, ttl=settings.booking_list_cache_ttl_seconds)
        return result

    @BaseService.measure_operation("get_weekly_bookings")
    def get_weekly_bookings(
        self, tenant_id: str, week_start: date, *, actor: Optional[AuthContext] = None
    ) -> List[Booking]:
        """Non-cancelled bookings overlapping the seven days from ``week_start``."""
        require_same_tenant(actor, tenant_id, "Tenant")
        window_start, window_end = week_window(week_start)
        return self.repository.get_active_in_window(tenant_id, window_start, window_end)

    # Helpers

    def _get_or_404(
        self,
        tenant_id: str,
        booking_id: str,
        *,
        status: Optional[BookingStatus] = None,
        for_update: bool = False,
    ) -> Booking:
        booking = self.repository.get_for_tenant(
            tenant_id, booking_id, status=status, for_update=for_update
        )
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    @staticmethod
    def _ensure_transition(booking: Booking, target: BookingStatus, action: str) -> None:
        if not booking.can_transition_to(target):
            raise InvalidTransitionException(booking.id, booking.status, action)

    def _apply_assignment(self, booking: Booking, instructor_id: str) -> Dict[str, Any]:
        try:
            return self.repository.update_with_snapshot(
                booking,
                instructor_id=instructor_id,
                status=BookingStatus.ASSIGNED.value,
                assigned_at=_now(),
            )
        except RepositoryException as exc:
            if self._is_instructor_overlap_violation(exc):
                prometheus_metrics.record_booking_conflict("constraint")
                raise BookingConflictException(
                    details={"instructor_id": instructor_id, "booking_id": booking.id}
                ) from exc
            raise

    @staticmethod
    def _is_instructor_overlap_violation(exc: RepositoryException) -> bool:
        """True when the repository error came from the instructor exclusion constraint."""
        cause = exc.__cause__
        if not isinstance(cause, IntegrityError):
            return False
        orig = getattr(cause, "orig", None)
        diag = getattr(orig, "diag", None)
        constraint_name = getattr(diag, "constraint_name", "") or ""
        if constraint_name:
            return constraint_name == INSTRUCTOR_CONFLICT_CONSTRAINT
        return INSTRUCTOR_CONFLICT_CONSTRAINT in str(orig)

    def _after_transition(
        self,
        action: AuditAction,
        booking: Booking,
        *,
        before: Optional[Dict[str, Any]],
        user_id: Optional[str],
        actor: Optional[AuthContext],
    ) -> None:
        prometheus_metrics.record_booking_transition(action.value)
        self.invalidate_pattern(CacheKeyBuilder.booking_list_pattern(booking.tenant_id))
        self.log_operation(
            action.value.lower(),
            tenant_id=booking.tenant_id,
            booking_id=booking.id,
            status=booking.status,
        )
        self.audit_service.record(
            AuditEvent(
                tenant_id=booking.tenant_id,
                user_id=user_id,
                action=action,
                resource_id=booking.id,
                before_state=before,
                after_state=booking.snapshot(),
                correlation_id=(actor.correlation_id if actor else None) or get_correlation_id(),
            )
        )


def _user_id(actor: Optional[AuthContext]) -> Optional[str]:
    return actor.user_id if actor is not None else None


def _require_matching_actor(
    actor: Optional[AuthContext], actor_id: str, actor_is_admin: bool
) -> None:
    """Reject explicit actor arguments that disagree with the identity context."""
    if actor is None:
        return
    if actor.user_id != actor_id or actor.is_admin != actor_is_admin:
        raise ForbiddenException(
            "Actor does not match the authenticated user",
            details={"user_id": actor.user_id},
        )
