# learnsched/services/availability_service.py
"""
Availability Service for the scheduling core

Instructors publish the windows they can teach in. Accepting a booking
requires a slot that overlaps the booking's interval; slots are never
checked against bookings or against each other.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..core.enums import PermissionName
from ..core.exceptions import ValidationException
from ..core.intervals import ensure_utc
from ..core.permissions import require_permission, require_same_tenant
from ..models.availability import AvailabilitySlot
from ..principal import AuthContext
from ..repositories import RepositoryFactory
from ..repositories.availability_repository import AvailabilityRepository
from ..schemas.availability import (
    AvailabilityListResponse,
    AvailabilitySlotCreate,
    AvailabilitySlotResponse,
)
from .base import BaseService

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    """Publishes and queries instructor availability slots."""

    def __init__(self, db: Session, repository: Optional[AvailabilityRepository] = None):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_availability_repository(db)

    @BaseService.measure_operation("add_availability")
    def add_availability(
        self,
        tenant_id: str,
        actor: Optional[AuthContext],
        start_at: datetime,
        end_at: datetime,
        instructor_id: Optional[str] = None,
    ) -> AvailabilitySlot:
        """
        Publish a slot.

        Instructors always add for themselves. Admins (and trusted internal
        callers with no actor) must name the instructor.

        Raises:
            ForbiddenException: If the actor cannot manage availability
            ValidationException: On bad timestamps or a missing instructor
        """
        require_permission(actor, PermissionName.MANAGE_AVAILABILITY)
        require_same_tenant(actor, tenant_id, "Tenant")

        if actor is not None and actor.is_instructor:
            instructor_id = actor.user_id
        if not instructor_id:
            raise ValidationException("instructor_id is required", details={"field": "instructor_id"})

        try:
            data = AvailabilitySlotCreate(
                tenant_id=tenant_id,
                instructor_id=instructor_id,
                start_at=start_at,
                end_at=end_at,
            )
        except ValidationError as exc:
            raise ValidationException.from_pydantic(exc) from exc

        with self.transaction():
            slot = self.repository.create(**data.model_dump())

        self.log_operation(
            "add_availability",
            tenant_id=tenant_id,
            instructor_id=instructor_id,
            slot_id=slot.id,
        )
        return slot

    @BaseService.measure_operation("list_availability")
    def list_availability(self, tenant_id: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        page = max(1, page)
        limit = max(1, min(limit, 100))
        rows, total = self.repository.list_for_tenant(
            tenant_id, skip=(page - 1) * limit, limit=limit
        )
        return AvailabilityListResponse(
            items=[AvailabilitySlotResponse.model_validate(r) for r in rows],
            total=total,
            page=page,
            limit=limit,
        ).model_dump(mode="json")

    def instructor_has_availability(
        self,
        tenant_id: str,
        instructor_id: str,
        start_at: datetime,
        end_at: datetime,
    ) -> bool:
        """True if any slot of the instructor overlaps ``[start_at, end_at)``."""
        slot = self.repository.find_matching_slot(
            tenant_id, instructor_id, ensure_utc(start_at), ensure_utc(end_at)
        )
        return slot is not None
