"""Reservation domain events and the outbox publisher."""

from app.events.publisher import EventPublisher
from app.events.reservation_events import (
    ReservationCancelled,
    ReservationConfirmed,
    ReservationCreated,
    ReservationExpired,
)

__all__ = [
    "EventPublisher",
    "ReservationCancelled",
    "ReservationConfirmed",
    "ReservationCreated",
    "ReservationExpired",
]
