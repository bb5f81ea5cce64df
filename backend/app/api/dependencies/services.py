# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Tests override
``get_db``, ``get_settings`` or ``get_clock`` to control the store,
configuration and current time.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.config import Settings, get_settings
from ...models.types import utc_now
from ...services.admission_controller import ReservationAdmissionController
from ...services.availability_resolver import AvailabilityResolver
from ...services.base import Clock
from ...services.event_dispatch_service import EventDispatchService
from ...services.group_session_service import GroupSessionService
from ...services.hold_reaper import HoldReaper
from ...services.reservation_service import ReservationService
from ...services.schedule_service import ScheduleService
from .database import get_db

logger = logging.getLogger(__name__)


def get_clock() -> Clock:
    """Current-time source; overridden in tests with a fixed clock."""
    return utc_now


def get_availability_resolver(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> AvailabilityResolver:
    return AvailabilityResolver(db, settings=settings, clock=clock)


def get_admission_controller(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> ReservationAdmissionController:
    return ReservationAdmissionController(db, settings=settings, clock=clock)


def get_reservation_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> ReservationService:
    return ReservationService(db, settings=settings, clock=clock)


def get_schedule_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> ScheduleService:
    return ScheduleService(db, settings=settings, clock=clock)


def get_group_session_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> GroupSessionService:
    return GroupSessionService(db, settings=settings, clock=clock)


def get_hold_reaper(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> HoldReaper:
    return HoldReaper(db, settings=settings, clock=clock)


def get_event_dispatch_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
) -> EventDispatchService:
    return EventDispatchService(db, settings=settings, clock=clock)
