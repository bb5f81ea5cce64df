# backend/app/models/event_outbox.py
"""
Event outbox persistence model.

Reservation domain events are written to this table in the same transaction
as the state change that produced them, then delivered by a background task.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON
import ulid

from app.database import Base

from .types import UTCDateTime, utc_now


class EventOutboxStatus(str, Enum):
    """Lifecycle states for an outbox event."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class EventOutbox(Base):
    """Transactional outbox entry pending delivery."""

    __tablename__ = "event_outbox"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    event_type = Column(String(100), nullable=False, index=True)
    aggregate_id = Column(String(64), nullable=False, index=True)
    idempotency_key = Column(String(255), nullable=False)
    payload = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
        default=dict,
    )
    status = Column(String(20), nullable=False, default=EventOutboxStatus.PENDING.value, index=True)
    attempt_count = Column(Integer, nullable=False, default=0)
    next_attempt_at = Column(UTCDateTime, nullable=True, index=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (UniqueConstraint("idempotency_key", name="uq_event_outbox_idempotency_key"),)

    def mark_pending(self, next_attempt_at: datetime, attempt_count: int) -> None:
        """Update row state for another delivery attempt."""
        self.status = EventOutboxStatus.PENDING.value
        self.attempt_count = attempt_count
        self.next_attempt_at = next_attempt_at
        self.updated_at = utc_now()

    def mark_sent(self, attempt_count: int) -> None:
        """Mark the event as successfully delivered."""
        self.status = EventOutboxStatus.SENT.value
        self.attempt_count = attempt_count
        self.updated_at = utc_now()

    def mark_failed(self, attempt_count: int, error: str | None = None) -> None:
        """Mark the event as permanently failed."""
        self.status = EventOutboxStatus.FAILED.value
        self.attempt_count = attempt_count
        if error:
            self.last_error = error[:1000]
        self.updated_at = utc_now()
