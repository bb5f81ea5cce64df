# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import require_admin_token, require_reaper_secret
from .database import get_db
from .services import (
    get_admission_controller,
    get_availability_resolver,
    get_clock,
    get_event_dispatch_service,
    get_group_session_service,
    get_hold_reaper,
    get_reservation_service,
    get_schedule_service,
)

__all__ = [
    # Auth
    "require_admin_token",
    "require_reaper_secret",
    # Database
    "get_db",
    # Services
    "get_admission_controller",
    "get_availability_resolver",
    "get_clock",
    "get_event_dispatch_service",
    "get_group_session_service",
    "get_hold_reaper",
    "get_reservation_service",
    "get_schedule_service",
]
