# learnsched/repositories/audit_repository.py
"""
Repository helpers for audit_log persistence and querying.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import Select, and_, func, select
from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog


class AuditRepository:
    """Persist and query audit trail entries."""

    def __init__(self, db: Session):
        self.db = db

    def write(self, audit: AuditLog) -> None:
        """Persist a new audit row inside the active transaction."""
        self.db.add(audit)
        self.db.flush()

    def list(
        self,
        *,
        tenant_id: Optional[str] = None,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuditLog], int]:
        """Return audit rows matching supplied filters ordered oldest first."""
        limit = max(0, limit)
        offset = max(0, offset)

        conditions = _build_filters(tenant_id, resource, resource_id, action)

        stmt: Select[Any] = select(AuditLog).order_by(AuditLog.occurred_at.asc(), AuditLog.id.asc())
        count_stmt = select(func.count()).select_from(AuditLog)

        if conditions:
            stmt = stmt.where(and_(*conditions))
            count_stmt = count_stmt.where(and_(*conditions))

        stmt = stmt.offset(offset).limit(limit)

        rows = list(self.db.execute(stmt).scalars().all())
        total = self.db.execute(count_stmt).scalar_one()

        return rows, int(total)


def _build_filters(
    tenant_id: Optional[str],
    resource: Optional[str],
    resource_id: Optional[str],
    action: Optional[str],
) -> list[Any]:
    clauses: list[Any] = []
    if tenant_id:
        clauses.append(AuditLog.tenant_id == tenant_id)
    if resource:
        clauses.append(AuditLog.resource == resource)
    if resource_id:
        clauses.append(AuditLog.resource_id == resource_id)
    if action:
        clauses.append(AuditLog.action == action)
    return clauses
