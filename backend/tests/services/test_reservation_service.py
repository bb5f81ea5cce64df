from datetime import timedelta

import pytest

from app.core.enums import ReservationKind, ReservationStatus
from app.core.exceptions import (
    BusinessRuleException,
    NotFoundException,
    ReservationConflictException,
)
from app.database import engine
from app.domain.intervals import TimeInterval
from app.models.event_outbox import EventOutbox
from tests.helpers.clock import FIXED_NOW, WEDNESDAY
from tests.helpers.statements import captured_statements, first_write_to


@pytest.fixture
def hold(controller, wednesday_template):
    return controller.admit(WEDNESDAY, TimeInterval.of("09:00", "09:45"))


def test_get_unknown_reservation(reservation_service):
    with pytest.raises(NotFoundException) as exc_info:
        reservation_service.get("missing")

    assert exc_info.value.code == "RESERVATION_NOT_FOUND"


def test_confirm_hold(reservation_service, hold, clock):
    clock.advance(minutes=5)

    confirmed = reservation_service.confirm(hold.id)

    assert confirmed.status == ReservationStatus.CONFIRMED
    assert confirmed.confirmed_at == FIXED_NOW + timedelta(minutes=5)
    assert confirmed.expires_at is None


def test_confirm_is_idempotent(reservation_service, hold, clock, db):
    first = reservation_service.confirm(hold.id)
    confirmed_at = first.confirmed_at
    clock.advance(minutes=1)

    again = reservation_service.confirm(hold.id)

    assert again.status == ReservationStatus.CONFIRMED
    assert again.confirmed_at == confirmed_at
    assert (
        db.query(EventOutbox)
        .filter(EventOutbox.event_type == "event:ReservationConfirmed")
        .count()
        == 1
    )


def test_confirm_expired_hold_rejected(reservation_service, hold, clock):
    clock.advance(minutes=11)

    with pytest.raises(ReservationConflictException) as exc_info:
        reservation_service.confirm(hold.id)

    assert exc_info.value.code == "HOLD_EXPIRED"


def test_confirm_pending(reservation_service, controller, wednesday_template):
    pending = controller.admit(
        WEDNESDAY,
        TimeInterval.of("11:00", "11:45"),
        initial_status=ReservationStatus.PENDING_CONFIRMATION,
    )

    assert reservation_service.confirm(pending.id).status == ReservationStatus.CONFIRMED


def test_cancel_records_reason(reservation_service, hold):
    cancelled = reservation_service.cancel(hold.id, "sick")

    assert cancelled.status == ReservationStatus.CANCELLED
    assert cancelled.cancellation_reason == "sick"
    assert cancelled.cancelled_at == FIXED_NOW


def test_cancel_twice_is_noop(reservation_service, hold, db):
    reservation_service.cancel(hold.id)
    again = reservation_service.cancel(hold.id, "second attempt")

    assert again.status == ReservationStatus.CANCELLED
    assert again.cancellation_reason is None
    assert (
        db.query(EventOutbox)
        .filter(EventOutbox.event_type == "event:ReservationCancelled")
        .count()
        == 1
    )


def test_cancelled_reservation_cannot_be_confirmed(reservation_service, hold):
    reservation_service.cancel(hold.id)

    with pytest.raises(BusinessRuleException) as exc_info:
        reservation_service.confirm(hold.id)

    assert exc_info.value.code == "INVALID_TRANSITION"
    assert exc_info.value.details["from_status"] == "CANCELLED"


def test_cancel_confirmed_releases_window(reservation_service, controller, hold):
    reservation_service.confirm(hold.id)
    reservation_service.cancel(hold.id)

    again = controller.admit(WEDNESDAY, TimeInterval.of("09:00", "09:45"))

    assert again.status == ReservationStatus.HOLD


def test_cancel_group_reservation_returns_seat(
    reservation_service, controller, make_session, db
):
    session = make_session(max_participants=1)
    seat = controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

    reservation_service.cancel(seat.id)

    db.refresh(session)
    assert session.current_participants == 0


def test_cancel_locks_session_before_reservation(
    reservation_service, controller, make_session
):
    session = make_session(max_participants=2)
    seat = controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

    with captured_statements(engine) as statements:
        reservation_service.cancel(seat.id)

    assert first_write_to(statements, "group_sessions") < first_write_to(
        statements, "reservations"
    )
