# learnsched/core/permissions.py
"""
Capability checks applied by services when a caller context is supplied.

These helpers raise domain exceptions instead of HTTP errors so the same
checks work from Celery tasks, scripts and the routing layer.
"""

from typing import Optional

from ..principal import AuthContext
from .enums import PermissionName
from .exceptions import ForbiddenException, NotFoundException


def require_permission(actor: Optional[AuthContext], *permissions: PermissionName) -> None:
    """
    Require that ``actor`` holds at least one of ``permissions``.

    A missing actor means the call comes from a trusted internal caller and
    is allowed through.

    Raises:
        ForbiddenException: If the actor holds none of the permissions
    """
    if actor is None:
        return
    if not any(actor.has_permission(permission) for permission in permissions):
        names = ", ".join(permission.value for permission in permissions)
        raise ForbiddenException(
            f"User does not have required permission: {names}",
            details={"role": actor.role.value, "required": [p.value for p in permissions]},
        )


def require_approved_student(actor: Optional[AuthContext]) -> None:
    """Students must be approved by an admin before they can request bookings."""
    if actor is None or not actor.is_student:
        return
    if not actor.approved:
        raise ForbiddenException(
            "Student account is pending approval",
            code="STUDENT_NOT_APPROVED",
        )


def require_same_tenant(actor: Optional[AuthContext], tenant_id: str, resource: str) -> None:
    """
    Reject callers acting on another tenant.

    Surfaces as not-found so the response never confirms the tenant exists.
    """
    if actor is None:
        return
    if actor.tenant_id != tenant_id:
        raise NotFoundException(f"{resource} not found")
