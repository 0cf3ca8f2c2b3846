from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from learnsched.database import Base, create_db_engine

# Import models so Base.metadata is populated for create_all.
import learnsched.models  # noqa: F401
from learnsched.models.availability import AvailabilitySlot
from learnsched.models.booking import Booking
from learnsched.services.audit_service import AuditService
from learnsched.services.availability_service import AvailabilityService
from learnsched.services.booking_service import BookingService
from learnsched.services.cache_service import CacheService
from tests._utils.scheduling import REQUESTED_AT, STUDENT, TENANT, RecordingAuditSink


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def cache(db: Session) -> CacheService:
    return CacheService(db, connect=False)


@pytest.fixture
def booking_service(db: Session, cache: CacheService, audit_sink: RecordingAuditSink) -> BookingService:
    return BookingService(db, cache=cache, audit_service=AuditService(audit_sink, enabled=True))


@pytest.fixture
def availability_service(db: Session) -> AvailabilityService:
    return AvailabilityService(db)


@pytest.fixture
def make_booking(booking_service: BookingService) -> Callable[..., Booking]:
    def _make(
        start: datetime,
        end: datetime,
        *,
        tenant_id: str = TENANT,
        student_id: str = STUDENT,
        name: str = "Intro session",
        requested_at: Optional[datetime] = None,
    ) -> Booking:
        return booking_service.create_booking(
            tenant_id,
            student_id,
            name,
            requested_at or REQUESTED_AT,
            start,
            end,
        )

    return _make


@pytest.fixture
def add_slot(availability_service: AvailabilityService) -> Callable[..., AvailabilitySlot]:
    def _add(
        instructor_id: str, start: datetime, end: datetime, *, tenant_id: str = TENANT
    ) -> AvailabilitySlot:
        return availability_service.add_availability(
            tenant_id, None, start, end, instructor_id=instructor_id
        )

    return _add
