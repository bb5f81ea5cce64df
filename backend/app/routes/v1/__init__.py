# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
All new endpoints should be added here.
"""

from . import (
    admin_diagnostics,
    admin_schedule,
    admin_sessions,
    availability,
    health,
    internal,
    prometheus,
    reservations,
)

__all__ = [
    "admin_diagnostics",
    "admin_schedule",
    "admin_sessions",
    "availability",
    "health",
    "internal",
    "prometheus",
    "reservations",
]
