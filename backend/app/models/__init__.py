"""
Database models for the DriveBook reservation engine.

The models are organized by functionality:
- Schedule: weekly templates, blocked intervals, extra slots
- Reservations: one-to-one and group-session claims, per-day admission locks
- Group sessions: capacity-tracked shared windows
- Event outbox: transactional domain-event queue
"""

from .event_outbox import EventOutbox, EventOutboxStatus
from .group_session import GroupSession
from .reservation import Reservation, ScheduleDayLock
from .schedule import BlockedInterval, ExtraSlot, ScheduleTemplate

__all__ = [
    "BlockedInterval",
    "EventOutbox",
    "EventOutboxStatus",
    "ExtraSlot",
    "GroupSession",
    "Reservation",
    "ScheduleDayLock",
    "ScheduleTemplate",
]
