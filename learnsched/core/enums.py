# learnsched/core/enums.py
"""
Core enums for the scheduling core.

Role and permission names mirror the identity context handed to the core by
the request-authentication layer. The core never issues or verifies
credentials; it only checks that the supplied role carries a capability.
"""

from enum import Enum
from typing import Dict, FrozenSet


class RoleName(str, Enum):
    """Roles a caller can hold within a tenant."""

    ADMIN = "ADMIN"
    INSTRUCTOR = "INSTRUCTOR"
    STUDENT = "STUDENT"


class PermissionName(str, Enum):
    """Capabilities that guard booking and availability operations."""

    # Student capabilities
    REQUEST_BOOKING = "student:request_booking"
    VIEW_CONTENT = "student:view_content"

    # Instructor capabilities
    ACCEPT_BOOKING = "instructor:accept_booking"
    MANAGE_AVAILABILITY = "instructor:manage_availability"

    # Admin capabilities
    APPROVE_BOOKING = "admin:approve_booking"
    ASSIGN_INSTRUCTOR = "admin:assign_instructor"


ROLE_PERMISSIONS: Dict[RoleName, FrozenSet[PermissionName]] = {
    RoleName.ADMIN: frozenset(
        {
            PermissionName.APPROVE_BOOKING,
            PermissionName.ASSIGN_INSTRUCTOR,
            PermissionName.MANAGE_AVAILABILITY,
            PermissionName.VIEW_CONTENT,
            PermissionName.REQUEST_BOOKING,
        }
    ),
    RoleName.INSTRUCTOR: frozenset(
        {
            PermissionName.MANAGE_AVAILABILITY,
            PermissionName.ACCEPT_BOOKING,
            PermissionName.VIEW_CONTENT,
        }
    ),
    RoleName.STUDENT: frozenset(
        {
            PermissionName.VIEW_CONTENT,
            PermissionName.REQUEST_BOOKING,
        }
    ),
}


class AuditAction(str, Enum):
    """Actions recorded against the SCHEDULE resource."""

    CREATE = "CREATE"
    APPROVAL = "APPROVAL"
    ASSIGN = "ASSIGN"
    ACCEPT = "ACCEPT"
    COMPLETE = "COMPLETE"
    CANCEL = "CANCEL"
    ESCALATE = "ESCALATE"


SCHEDULE_RESOURCE = "SCHEDULE"
