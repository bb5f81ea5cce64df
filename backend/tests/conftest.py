# backend/tests/conftest.py
"""
Pytest configuration for the DriveBook backend.

Every test gets a fresh in-memory SQLite schema, a frozen clock and an
explicit Settings copy, so expiry and lead-time behaviour is simulated by
advancing the clock instead of sleeping.
"""

import os

# Set testing mode BEFORE any app imports so the engine binds to in-memory SQLite
os.environ["is_testing"] = "true"
os.environ.setdefault("SITE_MODE", "test")

from datetime import date, time
from typing import Callable, Iterator

from fastapi.testclient import TestClient
from pydantic import SecretStr
import pytest
from sqlalchemy.orm import Session

from app.api.dependencies import get_clock, get_db
from app.core.config import Settings, get_settings, override_settings
from app.core.enums import ResolverMode
from app.database import Base, SessionLocal, engine
from app.main import fastapi_app
from app.models.group_session import GroupSession
from app.models.schedule import ScheduleTemplate
from app.services.admission_controller import ReservationAdmissionController
from app.services.availability_resolver import AvailabilityResolver
from app.services.group_session_service import GroupSessionService
from app.services.hold_reaper import HoldReaper
from app.services.reservation_service import ReservationService
from app.services.schedule_service import ScheduleService
from tests.helpers.clock import ADMIN_TOKEN, FIXED_NOW, REAPER_SECRET, WEDNESDAY, FrozenClock


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(FIXED_NOW)


@pytest.fixture
def test_settings() -> Settings:
    return override_settings(
        environment="test",
        schedule_timezone="Europe/Stockholm",
        resource_key="default",
        slot_granularity_minutes=30,
        default_duration_minutes=45,
        max_resolve_days=62,
        resolver_mode=ResolverMode.STRICT_OVERLAP,
        hold_ttl_minutes=10,
        pending_confirmation_ttl_minutes=24 * 60,
        cancelled_retention_minutes=15,
        lead_time_minutes=120,
        admin_token=SecretStr(ADMIN_TOKEN),
        reaper_secret=SecretStr(REAPER_SECRET),
    )


@pytest.fixture
def db() -> Iterator[Session]:
    """Fresh schema per test on the shared in-memory connection."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


# Services


@pytest.fixture
def resolver(db, test_settings, clock) -> AvailabilityResolver:
    return AvailabilityResolver(db, settings=test_settings, clock=clock)


@pytest.fixture
def controller(db, test_settings, clock) -> ReservationAdmissionController:
    return ReservationAdmissionController(db, settings=test_settings, clock=clock)


@pytest.fixture
def reservation_service(db, test_settings, clock) -> ReservationService:
    return ReservationService(db, settings=test_settings, clock=clock)


@pytest.fixture
def schedule_service(db, test_settings, clock) -> ScheduleService:
    return ScheduleService(db, settings=test_settings, clock=clock)


@pytest.fixture
def group_session_service(db, test_settings, clock) -> GroupSessionService:
    return GroupSessionService(db, settings=test_settings, clock=clock)


@pytest.fixture
def reaper(db, test_settings, clock) -> HoldReaper:
    return HoldReaper(db, settings=test_settings, clock=clock)


# Data


@pytest.fixture
def make_template(schedule_service) -> Callable[..., ScheduleTemplate]:
    def _make(day_of_week: int, start: str = "08:00", end: str = "17:00") -> ScheduleTemplate:
        return schedule_service.create_template(day_of_week, start, end)

    return _make


@pytest.fixture
def wednesday_template(make_template) -> ScheduleTemplate:
    """Wednesdays 08:00-17:00."""
    return make_template(3)


@pytest.fixture
def tuesday_template(make_template) -> ScheduleTemplate:
    return make_template(2)


@pytest.fixture
def make_session(group_session_service) -> Callable[..., GroupSession]:
    def _make(
        max_participants: int = 2,
        session_date: date = WEDNESDAY,
        start: time = time(10, 0),
        end: time = time(12, 0),
        title: str = "Supervisor course",
    ) -> GroupSession:
        return group_session_service.create_session(
            title, session_date, start, end, max_participants
        )

    return _make


# HTTP


@pytest.fixture
def client(db, test_settings, clock) -> Iterator[TestClient]:
    """TestClient bound to the test session, settings and clock."""

    def _override_get_db() -> Iterator[Session]:
        yield db

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_settings] = lambda: test_settings
    fastapi_app.dependency_overrides[get_clock] = lambda: clock
    try:
        with TestClient(fastapi_app) as test_client:
            yield test_client
    finally:
        fastapi_app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Token": ADMIN_TOKEN}


@pytest.fixture
def reaper_headers() -> dict:
    return {"Authorization": f"Bearer {REAPER_SECRET}"}
