# learnsched/models/audit_log.py
"""
Audit logging model capturing every booking transition and escalation.

Rows are append-only. ``before_state``/``after_state`` hold small JSON
snapshots rather than full entity dumps.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy import Column, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
import ulid

from ..database import Base
from .types import UTCDateTime


def _now_utc() -> datetime:
    """Return timezone-aware UTC timestamp for defaults."""
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """Persistence model for audit trail entries."""

    __tablename__ = "audit_log"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(64), nullable=True)
    user_id = Column(String(64), nullable=True)
    action = Column(String(30), nullable=False)
    resource = Column(String(50), nullable=False)
    resource_id = Column(String(64), nullable=True)
    before_state = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    after_state = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    correlation_id = Column(String(128), nullable=True)
    occurred_at = Column(
        UTCDateTime(),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_audit_log_resource", "resource", "resource_id"),
        Index("ix_audit_log_tenant_occurred", "tenant_id", "occurred_at"),
    )

    @classmethod
    def from_event(cls, event: Any) -> "AuditLog":
        """Build a row from an ``AuditEvent``-shaped object."""
        return cls(
            tenant_id=event.tenant_id,
            user_id=event.user_id,
            action=str(getattr(event.action, "value", event.action)),
            resource=event.resource,
            resource_id=event.resource_id,
            before_state=_copy(event.before_state),
            after_state=_copy(event.after_state),
            correlation_id=event.correlation_id,
        )


def _copy(payload: Mapping[str, Any] | None) -> dict[str, Any] | None:
    return dict(payload) if payload is not None else None
