"""
Audit trail for booking transitions and escalations.

Events are handed to an ``AuditSink``. The default sink writes ``audit_log``
rows in its own short transaction, after the booking change has committed.
``AuditService.record`` never raises: a failed write is logged and counted
and the already-committed booking change stands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Mapping, Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from ..core.config import settings
from ..core.enums import SCHEDULE_RESOURCE, AuditAction
from ..core.request_context import get_correlation_id
from ..models.audit_log import AuditLog
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    """One auditable change to a resource."""

    tenant_id: Optional[str]
    user_id: Optional[str]
    action: AuditAction
    resource_id: Optional[str]
    before_state: Optional[Mapping[str, Any]] = None
    after_state: Optional[Mapping[str, Any]] = None
    resource: str = SCHEDULE_RESOURCE
    correlation_id: Optional[str] = field(default_factory=get_correlation_id)


class AuditSink(Protocol):
    """Destination for audit events."""

    def write(self, event: AuditEvent) -> None:
        ...


class SqlAuditSink:
    """
    Persists events as ``audit_log`` rows.

    With a ``session_factory`` each event gets its own session and commit;
    otherwise the row is added to ``db`` and committed there.
    """

    def __init__(
        self,
        db: Optional[Session] = None,
        session_factory: Optional[sessionmaker] = None,
    ):
        if db is None and session_factory is None:
            raise ValueError("SqlAuditSink needs a session or a session factory")
        self.db = db
        self.session_factory = session_factory

    def write(self, event: AuditEvent) -> None:
        row = AuditLog.from_event(event)
        if self.session_factory is not None:
            session = self.session_factory()
            try:
                RepositoryFactory.create_audit_repository(session).write(row)
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()
            return

        db = self.db
        if db is None:
            raise RuntimeError("SqlAuditSink has neither a session nor a session factory")
        try:
            RepositoryFactory.create_audit_repository(db).write(row)
            db.commit()
        except Exception:
            db.rollback()
            raise


class AuditService:
    """Best-effort front door for emitting audit events."""

    def __init__(self, sink: AuditSink, enabled: Optional[bool] = None):
        self.sink = sink
        self.enabled = settings.audit_enabled if enabled is None else enabled

    def record(self, event: AuditEvent) -> bool:
        """
        Write ``event`` to the sink.

        Returns:
            True if the sink accepted the event, False if auditing is
            disabled or the write failed
        """
        if not self.enabled:
            return False
        try:
            self.sink.write(event)
            return True
        except Exception as exc:
            prometheus_metrics.record_audit_failure(event.action.value)
            logger.error(
                "Audit write failed for %s %s on %s",
                event.action.value,
                event.resource,
                event.resource_id,
                extra={
                    "event": "audit_write_failed",
                    "tenant_id": event.tenant_id,
                    "action": event.action.value,
                    "resource_id": event.resource_id,
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return False
