"""Atomic admission of one-to-one and group session reservations."""

from datetime import timedelta

import pytest
from sqlalchemy import text

from app.core.enums import AvailabilityReason, ReservationKind, ReservationStatus
from app.core.exceptions import (
    CapacityExceededException,
    NotFoundException,
    ReservationConflictException,
    ValidationException,
)
from app.domain.intervals import TimeInterval
from app.models.event_outbox import EventOutbox
from app.models.reservation import Reservation
from app.services.admission_controller import ParticipantInfo
from tests.helpers.clock import FIXED_NOW, TUESDAY, WEDNESDAY


def iv(start: str, end: str) -> TimeInterval:
    return TimeInterval.of(start, end)


class TestOneToOne:
    def test_admits_hold_with_ttl(self, controller, wednesday_template):
        reservation = controller.admit(
            WEDNESDAY,
            iv("09:00", "09:45"),
            participant=ParticipantInfo(name="Alva", email="alva@example.com"),
        )

        assert reservation.status == ReservationStatus.HOLD
        assert reservation.kind == ReservationKind.ONE_TO_ONE
        assert reservation.duration_minutes == 45
        assert reservation.expires_at == FIXED_NOW + timedelta(minutes=10)
        assert reservation.participant_email == "alva@example.com"

    def test_pending_confirmation_gets_longer_deadline(self, controller, wednesday_template):
        reservation = controller.admit(
            WEDNESDAY,
            iv("09:00", "09:45"),
            initial_status=ReservationStatus.PENDING_CONFIRMATION,
        )

        assert reservation.status == ReservationStatus.PENDING_CONFIRMATION
        assert reservation.expires_at == FIXED_NOW + timedelta(minutes=24 * 60)

    def test_overlapping_admission_conflicts(self, controller, wednesday_template):
        controller.admit(WEDNESDAY, iv("09:00", "09:45"))

        with pytest.raises(ReservationConflictException) as exc_info:
            controller.admit(WEDNESDAY, iv("09:30", "10:15"))

        exc = exc_info.value
        assert exc.status_code == 409
        assert exc.reason == AvailabilityReason.RESERVED
        assert exc.details["start_time"] == "09:00"
        assert exc.details["end_time"] == "09:45"
        assert exc.details["requested_start_time"] == "09:30"

    def test_touching_admission_succeeds(self, controller, wednesday_template):
        controller.admit(WEDNESDAY, iv("09:00", "09:45"))
        second = controller.admit(WEDNESDAY, iv("09:45", "10:30"))

        assert second.start_time.strftime("%H:%M") == "09:45"

    def test_identical_window_admitted_once(self, controller, db, wednesday_template):
        controller.admit(WEDNESDAY, iv("09:00", "09:45"))

        with pytest.raises(ReservationConflictException):
            controller.admit(WEDNESDAY, iv("09:00", "09:45"))

        assert db.query(Reservation).count() == 1

    def test_unique_index_backstops_a_lost_race(
        self, controller, db, monkeypatch, wednesday_template
    ):
        controller.admit(WEDNESDAY, iv("09:00", "09:45"))
        # Simulate a second writer whose overlap check ran before the first insert
        monkeypatch.setattr(
            controller.reservation_repository,
            "first_overlapping_active",
            lambda *args, **kwargs: None,
        )

        with pytest.raises(ReservationConflictException) as exc_info:
            controller.admit(WEDNESDAY, iv("09:00", "09:45"))

        assert exc_info.value.code == "RESERVATION_CONFLICT"
        assert db.query(Reservation).count() == 1

    def test_expired_hold_is_replaced(self, controller, db, clock, wednesday_template):
        stale = controller.admit(WEDNESDAY, iv("09:00", "09:45"))
        stale_id = stale.id
        clock.advance(minutes=10, seconds=1)

        active = controller.reservation_repository.active_reservations_for(WEDNESDAY, clock())
        assert active == []

        fresh = controller.admit(WEDNESDAY, iv("09:00", "09:45"))

        assert fresh.id != stale_id
        assert db.get(Reservation, stale_id) is None
        expired_events = (
            db.query(EventOutbox)
            .filter(EventOutbox.event_type == "event:ReservationExpired")
            .all()
        )
        assert [event.aggregate_id for event in expired_events] == [stale_id]

    def test_all_day_block_rejects(self, controller, schedule_service, wednesday_template):
        schedule_service.create_blocked(WEDNESDAY, is_all_day=True)

        with pytest.raises(ReservationConflictException) as exc_info:
            controller.admit(WEDNESDAY, iv("09:00", "09:45"))

        assert exc_info.value.reason == AvailabilityReason.BLOCKED

    def test_timed_block_rejects_with_block_window(
        self, controller, schedule_service, wednesday_template
    ):
        schedule_service.create_blocked(WEDNESDAY, "09:30", "11:00")

        with pytest.raises(ReservationConflictException) as exc_info:
            controller.admit(WEDNESDAY, iv("09:00", "09:45"))

        assert exc_info.value.reason == AvailabilityReason.BLOCKED
        assert exc_info.value.details["start_time"] == "09:30"
        assert exc_info.value.details["end_time"] == "11:00"

    def test_outside_opening_hours_rejected(self, controller, wednesday_template):
        with pytest.raises(ReservationConflictException) as exc_info:
            controller.admit(WEDNESDAY, iv("16:30", "17:15"))

        assert exc_info.value.reason == AvailabilityReason.BLOCKED

    def test_extra_slot_opens_window(self, controller, schedule_service, wednesday_template):
        schedule_service.create_extra(WEDNESDAY, "18:00", "19:00")

        reservation = controller.admit(WEDNESDAY, iv("18:00", "18:45"))

        assert reservation.status == ReservationStatus.HOLD

    def test_lead_time_enforced(self, controller, tuesday_template):
        with pytest.raises(ReservationConflictException) as exc_info:
            controller.admit(TUESDAY, iv("10:00", "10:45"))

        assert exc_info.value.reason == AvailabilityReason.WITHIN_LEAD_TIME

    def test_lead_time_can_be_waived(self, controller, tuesday_template):
        reservation = controller.admit(TUESDAY, iv("10:00", "10:45"), enforce_lead_time=False)

        assert reservation.reservation_date == TUESDAY

    def test_rejects_confirmed_as_initial_status(self, controller, wednesday_template):
        with pytest.raises(ValidationException) as exc_info:
            controller.admit(
                WEDNESDAY, iv("09:00", "09:45"), initial_status=ReservationStatus.CONFIRMED
            )

        assert exc_info.value.code == "INVALID_INITIAL_STATUS"

    def test_requires_window(self, controller):
        with pytest.raises(ValidationException) as exc_info:
            controller.admit(WEDNESDAY, None)

        assert exc_info.value.code == "MISSING_WINDOW"

    def test_created_event_is_enqueued(self, controller, db, wednesday_template):
        reservation = controller.admit(WEDNESDAY, iv("09:00", "09:45"))

        event = db.query(EventOutbox).filter(EventOutbox.aggregate_id == reservation.id).one()
        assert event.event_type == "event:ReservationCreated"
        assert event.payload["start_time"] == "09:00"
        assert event.payload["reservation_date"] == WEDNESDAY.isoformat()


class TestGroupSessions:
    def test_capacity_ceiling_and_reuse_after_cancel(
        self, controller, reservation_service, make_session, db
    ):
        session = make_session(max_participants=2)

        first = controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
        controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
        db.refresh(session)
        assert session.current_participants == 2

        with pytest.raises(CapacityExceededException) as exc_info:
            controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
        assert exc_info.value.code == "CAPACITY_EXCEEDED"
        db.refresh(session)
        assert session.current_participants == 2

        reservation_service.cancel(first.id, "changed plans")
        db.refresh(session)
        assert session.current_participants == 1

        controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
        db.refresh(session)
        assert session.current_participants == 2

    def test_counter_never_exceeds_capacity(self, controller, make_session, db):
        session = make_session(max_participants=3)
        outcomes = []
        for _ in range(5):
            try:
                controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
                outcomes.append("admitted")
            except CapacityExceededException:
                outcomes.append("full")

        db.refresh(session)
        assert outcomes == ["admitted"] * 3 + ["full"] * 2
        assert session.current_participants == 3

    def test_capacity_checked_against_stored_counter(self, controller, make_session, db):
        session = make_session(max_participants=2)
        db.execute(
            text("UPDATE group_sessions SET current_participants = 2 WHERE id = :id"),
            {"id": session.id},
        )
        db.commit()
        assert session.current_participants == 0

        with pytest.raises(CapacityExceededException):
            controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

        assert db.query(Reservation).filter(Reservation.session_id == session.id).count() == 0

    def test_interval_copied_from_session(self, controller, make_session):
        session = make_session()

        reservation = controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

        assert reservation.reservation_date == session.session_date
        assert reservation.start_time == session.start_time
        assert reservation.end_time == session.end_time
        assert reservation.session_id == session.id

    def test_expired_hold_frees_seat_at_admission(self, controller, make_session, clock, db):
        session = make_session(max_participants=1)
        controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
        clock.advance(minutes=11)

        controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

        db.refresh(session)
        assert session.current_participants == 1
        assert db.query(Reservation).filter(Reservation.session_id == session.id).count() == 1

    def test_unknown_session(self, controller):
        with pytest.raises(NotFoundException) as exc_info:
            controller.admit(None, None, ReservationKind.GROUP_SESSION, "missing-session")

        assert exc_info.value.code == "SESSION_NOT_FOUND"

    def test_inactive_session_rejected(self, controller, group_session_service, make_session):
        session = make_session()
        group_session_service.update_session(session.id, is_active=False)

        with pytest.raises(ReservationConflictException) as exc_info:
            controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

        assert exc_info.value.reason == AvailabilityReason.BLOCKED

    def test_blocked_session_rejected(self, controller, schedule_service, make_session):
        session = make_session()
        schedule_service.create_blocked(WEDNESDAY, is_all_day=True)

        with pytest.raises(ReservationConflictException):
            controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

    def test_requires_session_id(self, controller):
        with pytest.raises(ValidationException) as exc_info:
            controller.admit(None, None, ReservationKind.GROUP_SESSION)

        assert exc_info.value.code == "MISSING_SESSION"
