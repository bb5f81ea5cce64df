# backend/app/tasks/__init__.py
"""
Celery tasks package for DriveBook.

This package contains the periodic reservation housekeeping tasks:
- Hold reaper
- Group session capacity reconciliation
- Reservation event outbox dispatch
"""

from app.tasks.celery_app import BaseTask, celery_app
from app.tasks.reservation_tasks import (
    dispatch_reservation_events,
    reap_expired_holds,
    reconcile_session_capacity,
)

__all__ = [
    "BaseTask",
    "celery_app",
    "dispatch_reservation_events",
    "reap_expired_holds",
    "reconcile_session_capacity",
]
