# learnsched/services/escalation_service.py
"""
Escalation sweep for bookings nobody has picked up.

A REQUESTED booking with no instructor whose ``requested_at`` is older than
the threshold gets one ESCALATE audit row and a warning log per sweep. The
booking itself is never modified. Each booking is committed on its own, so
one failure is rolled back, logged and counted while the rest of the batch
carries on, and rows already committed survive a later failure.

Concurrent sweeps may escalate the same booking twice; consumers of the
audit trail treat ESCALATE as at-least-once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import AuditAction
from ..core.intervals import ensure_utc
from ..database import SessionLocal
from ..models.audit_log import AuditLog
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from .audit_service import AuditEvent, AuditSink
from .base import BaseService

logger = logging.getLogger(__name__)

ESCALATION_REASON = "no instructor assigned within threshold"


@dataclass
class EscalationReport:
    """Outcome of one sweep."""

    threshold_hours: int
    cutoff: datetime
    selected: int = 0
    escalated: int = 0
    failed: int = 0
    failed_booking_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold_hours": self.threshold_hours,
            "cutoff": self.cutoff.isoformat(),
            "selected": self.selected,
            "escalated": self.escalated,
            "failed": self.failed,
            "failed_booking_ids": list(self.failed_booking_ids),
        }


class _SessionAuditSink:
    """Adds audit rows to the sweep's session; the sweep commits per booking."""

    def __init__(self, db: Session):
        self.repository = RepositoryFactory.create_audit_repository(db)

    def write(self, event: AuditEvent) -> None:
        self.repository.write(AuditLog.from_event(event))


class EscalationService(BaseService):
    """Finds stale unassigned bookings and records an escalation for each."""

    def __init__(
        self,
        db: Session,
        sink: Optional[AuditSink] = None,
        repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.sink = sink or _SessionAuditSink(db)

    @BaseService.measure_operation("run_escalation_sweep")
    def run_escalation_sweep(
        self,
        threshold_hours: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> EscalationReport:
        """
        Escalate every stale REQUESTED booking across all tenants.

        Args:
            threshold_hours: Hours a booking may wait (defaults to settings)
            now: Reference time (defaults to the current UTC time)

        Returns:
            Counts of selected, escalated and failed bookings
        """
        hours = settings.escalation_threshold_hours if threshold_hours is None else threshold_hours
        if hours < 0:
            raise ValueError("threshold_hours must not be negative")
        reference = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        cutoff = reference - timedelta(hours=hours)

        stale = self.repository.get_stale_unassigned(cutoff)
        report = EscalationReport(threshold_hours=hours, cutoff=cutoff, selected=len(stale))

        for booking in stale:
            # Plain attributes: a failed commit expires the instance
            booking_id = booking.id
            tenant_id = booking.tenant_id
            student_id = booking.student_id
            try:
                self._escalate(booking, hours)
                self.db.commit()
            except Exception as exc:
                self.db.rollback()
                report.failed += 1
                report.failed_booking_ids.append(booking_id)
                prometheus_metrics.record_escalation("failed")
                self.logger.error(
                    "Failed to escalate booking %s: %s",
                    booking_id,
                    exc,
                    extra={
                        "event": "escalation_failed",
                        "booking_id": booking_id,
                        "tenant_id": tenant_id,
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                continue

            report.escalated += 1
            prometheus_metrics.record_escalation("escalated")
            self.logger.warning(
                "Booking %s for student %s in tenant %s has had no instructor for over %sh",
                booking_id,
                student_id,
                tenant_id,
                hours,
                extra={
                    "event": "booking_escalated",
                    "booking_id": booking_id,
                    "tenant_id": tenant_id,
                    "student_id": student_id,
                },
            )

        self.logger.info(
            "Escalation sweep finished: %s selected, %s escalated, %s failed",
            report.selected,
            report.escalated,
            report.failed,
            extra={"event": "escalation_sweep_finished", **report.to_dict()},
        )
        return report

    def _escalate(self, booking: Booking, threshold_hours: int) -> None:
        self.sink.write(
            AuditEvent(
                tenant_id=booking.tenant_id,
                user_id=None,
                action=AuditAction.ESCALATE,
                resource_id=booking.id,
                before_state=booking.snapshot(),
                after_state={
                    "reason": ESCALATION_REASON,
                    "requested_at": booking.requested_at.isoformat(),
                    "threshold_hours": threshold_hours,
                },
            )
        )


def run_escalation_sweep(
    threshold_hours: Optional[int] = None, now: Optional[datetime] = None
) -> EscalationReport:
    """Entry point for external schedulers: one sweep in a fresh session."""
    db = SessionLocal()
    try:
        return EscalationService(db).run_escalation_sweep(threshold_hours=threshold_hours, now=now)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
