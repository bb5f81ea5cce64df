# backend/app/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for DriveBook.

Intervals come from settings so a deployment can tighten the reaper
without a code change.
"""

from datetime import timedelta
from typing import Any, Dict

from app.core.config import Settings


def get_beat_schedule(settings: Settings) -> Dict[str, Dict[str, Any]]:
    """
    Build the periodic task schedule.

    Args:
        settings: Runtime settings carrying the intervals

    Returns:
        Mapping of schedule entry name to Celery beat configuration dict
    """
    return {
        # Release expired holds and stale cancellations
        "reap-expired-holds": {
            "task": "app.tasks.reservation_tasks.reap_expired_holds",
            "schedule": timedelta(seconds=settings.reaper_interval_seconds),
            "options": {
                "queue": "reservations",
                "priority": 9,
                # A missed tick is superseded by the next one
                "expires": settings.reaper_interval_seconds,
            },
        },
        # Recompute group session counters from the reservation rows
        "reconcile-session-capacity": {
            "task": "app.tasks.reservation_tasks.reconcile_session_capacity",
            "schedule": timedelta(minutes=settings.capacity_reconcile_minutes),
            "options": {"queue": "reservations", "priority": 5},
        },
        # Deliver reservation events written to the outbox
        "dispatch-reservation-events": {
            "task": "app.tasks.reservation_tasks.dispatch_reservation_events",
            "schedule": timedelta(seconds=settings.outbox_dispatch_seconds),
            "options": {"queue": "reservations", "priority": 7},
        },
    }
