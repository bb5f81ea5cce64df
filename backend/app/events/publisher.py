"""Event publisher - writes domain events to the transactional outbox."""
from datetime import date, datetime
from typing import Any, Dict, Protocol

from app.models.event_outbox import EventOutbox
from app.repositories.event_outbox_repository import EventOutboxRepository


class Event(Protocol):
    """Protocol for event types."""

    reservation_id: str

    def to_dict(self) -> Dict[str, Any]:
        ...


class EventPublisher:
    """
    Publishes domain events through the event outbox.

    The row is added to the caller's session, so the event commits or rolls
    back together with the state change that produced it.
    """

    def __init__(self, outbox_repository: EventOutboxRepository):
        self.outbox_repo = outbox_repository

    def publish(self, event: Event) -> EventOutbox:
        event_type = type(event).__name__
        payload = event.to_dict()

        # Convert date/datetime objects to ISO strings for JSON serialization
        for key, value in payload.items():
            if isinstance(value, (datetime, date)):
                payload[key] = value.isoformat()

        return self.outbox_repo.enqueue(
            event_type=f"event:{event_type}",
            aggregate_id=event.reservation_id,
            payload=payload,
            idempotency_key=f"{event_type}:{event.reservation_id}",
        )
