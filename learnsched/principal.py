"""Identity context handed to the scheduling core by the request pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core.enums import ROLE_PERMISSIONS, PermissionName, RoleName


@dataclass(frozen=True)
class AuthContext:
    """
    Authenticated caller as resolved by the external auth layer.

    The core trusts these values completely and performs no credential
    checks of its own.
    """

    tenant_id: str
    user_id: str
    role: RoleName
    approved: bool = True
    correlation_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN

    @property
    def is_instructor(self) -> bool:
        return self.role == RoleName.INSTRUCTOR

    @property
    def is_student(self) -> bool:
        return self.role == RoleName.STUDENT

    def has_permission(self, permission: PermissionName) -> bool:
        return permission in ROLE_PERMISSIONS.get(self.role, frozenset())
