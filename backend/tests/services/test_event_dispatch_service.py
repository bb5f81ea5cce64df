"""Outbox delivery: success, retry with backoff, terminal failure."""

from unittest.mock import patch

import pytest

from app.domain.intervals import TimeInterval
from app.models.event_outbox import EventOutbox, EventOutboxStatus
from app.repositories.event_outbox_repository import EventOutboxRepository
from app.services.event_dispatch_service import (
    MAX_DELIVERY_ATTEMPTS,
    EventDispatchService,
    next_backoff,
)
from tests.helpers.clock import WEDNESDAY


@pytest.fixture
def dispatcher(db, test_settings, clock) -> EventDispatchService:
    return EventDispatchService(db, settings=test_settings, clock=clock)


@pytest.fixture
def created_event(controller, db, wednesday_template) -> EventOutbox:
    reservation = controller.admit(WEDNESDAY, TimeInterval.of("09:00", "09:45"))
    return db.query(EventOutbox).filter(EventOutbox.aggregate_id == reservation.id).one()


def test_backoff_grows_and_caps():
    assert next_backoff(1) == 30
    assert next_backoff(2) == 120
    assert next_backoff(99) == next_backoff(MAX_DELIVERY_ATTEMPTS)


def test_pending_events_are_sent_once(dispatcher, created_event, db):
    first = dispatcher.dispatch_pending()
    second = dispatcher.dispatch_pending()

    db.refresh(created_event)
    assert first == {"sent": 1, "retrying": 0, "failed": 0}
    assert second == {"sent": 0, "retrying": 0, "failed": 0}
    assert created_event.status == EventOutboxStatus.SENT.value
    assert created_event.attempt_count == 1


def test_handler_error_schedules_retry(dispatcher, created_event, db):
    with patch(
        "app.services.event_dispatch_service.process_event",
        side_effect=RuntimeError("smtp down"),
    ):
        summary = dispatcher.dispatch_pending()

    db.refresh(created_event)
    assert summary == {"sent": 0, "retrying": 1, "failed": 0}
    assert created_event.status == EventOutboxStatus.PENDING.value
    assert created_event.attempt_count == 1
    assert created_event.last_error == "smtp down"


def test_last_attempt_fails_permanently(dispatcher, created_event, db):
    created_event.attempt_count = MAX_DELIVERY_ATTEMPTS - 1
    db.commit()

    with patch(
        "app.services.event_dispatch_service.process_event",
        side_effect=RuntimeError("still down"),
    ):
        summary = dispatcher.dispatch_pending()

    db.refresh(created_event)
    assert summary["failed"] == 1
    assert created_event.status == EventOutboxStatus.FAILED.value
    assert dispatcher.dispatch_pending() == {"sent": 0, "retrying": 0, "failed": 0}


def test_unknown_event_type_fails(dispatcher, db):
    event = EventOutboxRepository(db).enqueue("event:SomethingElse", "aggregate-1")
    db.commit()

    summary = dispatcher.dispatch_pending()

    db.refresh(event)
    assert summary == {"sent": 0, "retrying": 0, "failed": 1}
    assert event.status == EventOutboxStatus.FAILED.value
    assert "No handler" in event.last_error
