# backend/app/repositories/event_outbox_repository.py
"""
Repository for reservation event outbox operations.

Implements transactional enqueue, pending fetch with locking, and status updates
required by the outbox dispatcher task.
"""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import Any, Optional, cast

from sqlalchemy import Select, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import Session
import ulid

from app.models.event_outbox import EventOutbox, EventOutboxStatus
from app.models.types import utc_now

from .base_repository import dialect_of

logger = logging.getLogger(__name__)


class EventOutboxRepository:
    """Data access helpers for event outbox rows."""

    def __init__(self, db: Session):
        self.db = db
        self._dialect = dialect_of(db, default="postgresql")

    def enqueue(
        self,
        event_type: str,
        aggregate_id: str,
        payload: Optional[dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        next_attempt_at: Optional[datetime] = None,
    ) -> EventOutbox:
        """
        Insert a new outbox row unless one already exists for the idempotency key.

        Returns the persisted row (existing or newly created).
        """
        payload = payload or {}
        next_attempt = next_attempt_at or utc_now()
        key = idempotency_key or f"{event_type}:{aggregate_id}:{int(next_attempt.timestamp())}"
        event_id = str(ulid.ULID())
        values = {
            "id": event_id,
            "event_type": event_type,
            "aggregate_id": aggregate_id,
            "payload": payload,
            "idempotency_key": key,
            "status": EventOutboxStatus.PENDING.value,
            "attempt_count": 0,
            "next_attempt_at": next_attempt,
        }

        inserted = False
        if self._dialect == "postgresql":
            stmt = (
                pg_insert(EventOutbox)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["idempotency_key"])
                .returning(EventOutbox.id)
            )
            inserted = self.db.execute(stmt).scalar_one_or_none() is not None
        else:
            plain = insert(EventOutbox).values(**values)
            if self._dialect == "sqlite":
                plain = plain.prefix_with("OR IGNORE")
            result = self.db.execute(plain)
            inserted = bool(getattr(result, "rowcount", 0))

        if inserted:
            self.db.flush()
            row = cast(Optional[EventOutbox], self.db.get(EventOutbox, event_id))
            if row is None:
                raise RuntimeError("Inserted outbox row could not be reloaded")
            return row

        existing = cast(
            Optional[EventOutbox],
            self.db.execute(
                select(EventOutbox).where(EventOutbox.idempotency_key == key)
            ).scalar_one_or_none(),
        )
        if existing is None:
            raise RuntimeError("Outbox row not found after enqueue conflict")
        logger.debug("Outbox event %s already enqueued", key)
        return existing

    def fetch_pending(self, limit: int = 200, now: Optional[datetime] = None) -> list[EventOutbox]:
        """Return pending events eligible for delivery ordered by attempt time."""
        cutoff = now or utc_now()
        stmt: Select[Any] = (
            select(EventOutbox)
            .where(EventOutbox.status == EventOutboxStatus.PENDING.value)
            .where(EventOutbox.next_attempt_at <= cutoff)
            .order_by(EventOutbox.next_attempt_at.asc(), EventOutbox.id.asc())
            .limit(limit)
        )
        if self._dialect == "postgresql":
            stmt = stmt.with_for_update(skip_locked=True)
        return cast(list[EventOutbox], self.db.execute(stmt).scalars().all())

    def list_for_aggregate(self, aggregate_id: str) -> list[EventOutbox]:
        stmt = (
            select(EventOutbox)
            .where(EventOutbox.aggregate_id == aggregate_id)
            .order_by(EventOutbox.created_at.asc(), EventOutbox.id.asc())
        )
        return cast(list[EventOutbox], self.db.execute(stmt).scalars().all())

    def mark_sent(self, event_id: str, attempt_count: int) -> None:
        now = utc_now()
        self.db.execute(
            update(EventOutbox)
            .where(EventOutbox.id == event_id)
            .values(
                status=EventOutboxStatus.SENT.value,
                attempt_count=attempt_count,
                last_error=None,
                next_attempt_at=now,
                updated_at=now,
            )
        )
        self.db.flush()

    def mark_failed(
        self,
        event_id: str,
        *,
        attempt_count: int,
        backoff_seconds: int,
        error: str | None = None,
        terminal: bool = False,
    ) -> None:
        """Update row after a delivery failure; terminal failures stop retrying."""
        now = utc_now()
        values: dict[str, Any] = {
            "attempt_count": attempt_count,
            "updated_at": now,
            "last_error": (error[:1000] if error else None),
        }
        if terminal:
            values["status"] = EventOutboxStatus.FAILED.value
            values["next_attempt_at"] = now
        else:
            values["status"] = EventOutboxStatus.PENDING.value
            values["next_attempt_at"] = now + timedelta(seconds=max(backoff_seconds, 1))

        self.db.execute(update(EventOutbox).where(EventOutbox.id == event_id).values(**values))
        self.db.flush()
