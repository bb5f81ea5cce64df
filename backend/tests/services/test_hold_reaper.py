"""Hold reaper: expiry, retention purge and counter reconciliation."""

from app.core.enums import ReservationKind, ReservationStatus
from app.database import engine
from app.domain.intervals import TimeInterval
from app.models.reservation import Reservation
from app.services.hold_reaper import EXPIRED_REASON
from tests.helpers.clock import WEDNESDAY
from tests.helpers.statements import captured_statements, first_write_to


def iv(start: str, end: str) -> TimeInterval:
    return TimeInterval.of(start, end)


def test_nothing_to_reap(reaper):
    report = reaper.reap()

    assert report.total == 0
    assert report.to_dict() == {
        "released_one_to_one": 0,
        "released_group_slots": 0,
        "expired_pending": 0,
        "purged_cancelled": 0,
    }


def test_unexpired_hold_is_kept(reaper, controller, db, wednesday_template):
    controller.admit(WEDNESDAY, iv("09:00", "09:45"))

    assert reaper.reap().total == 0
    assert db.query(Reservation).count() == 1


def test_second_run_releases_nothing(reaper, controller, clock, db, wednesday_template):
    controller.admit(WEDNESDAY, iv("09:00", "09:45"))
    controller.admit(WEDNESDAY, iv("10:00", "10:45"))
    clock.advance(minutes=11)

    first = reaper.reap()
    second = reaper.reap()

    assert first.released_one_to_one == 2
    assert second.total == 0
    assert db.query(Reservation).count() == 0


def test_expired_group_hold_returns_seat(reaper, controller, make_session, clock, db):
    session = make_session(max_participants=2)
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
    clock.advance(minutes=11)

    report = reaper.reap()

    db.refresh(session)
    assert report.released_group_slots == 2
    assert session.current_participants == 0


def test_hold_released_at_admission_is_not_released_again(
    reaper, controller, make_session, clock, db
):
    session = make_session(max_participants=1)
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
    clock.advance(minutes=11)
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

    report = reaper.reap()

    db.refresh(session)
    assert report.total == 0
    assert session.current_participants == 1


def test_confirmed_reservation_survives(
    reaper, controller, reservation_service, clock, db, wednesday_template
):
    hold = controller.admit(WEDNESDAY, iv("09:00", "09:45"))
    reservation_service.confirm(hold.id)
    clock.advance(days=1)

    assert reaper.reap().total == 0
    assert db.get(Reservation, hold.id).status == ReservationStatus.CONFIRMED


def test_overdue_pending_is_cancelled(reaper, controller, clock, db, wednesday_template):
    pending = controller.admit(
        WEDNESDAY, iv("09:00", "09:45"), initial_status=ReservationStatus.PENDING_CONFIRMATION
    )
    clock.advance(minutes=24 * 60 + 1)

    report = reaper.reap()

    row = db.get(Reservation, pending.id)
    assert report.expired_pending == 1
    assert row.status == ReservationStatus.CANCELLED
    assert row.cancellation_reason == EXPIRED_REASON


def test_overdue_pending_group_seat_released(reaper, controller, make_session, clock, db):
    session = make_session(max_participants=1)
    controller.admit(
        None,
        None,
        ReservationKind.GROUP_SESSION,
        session.id,
        initial_status=ReservationStatus.PENDING_CONFIRMATION,
    )
    clock.advance(minutes=24 * 60 + 1)

    reaper.reap()

    db.refresh(session)
    assert session.current_participants == 0


def test_reaper_locks_sessions_before_reservations(reaper, controller, make_session, clock):
    session = make_session(max_participants=2)
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
    clock.advance(minutes=11)

    with captured_statements(engine) as statements:
        report = reaper.reap()

    assert report.released_group_slots == 1
    assert first_write_to(statements, "group_sessions") < first_write_to(
        statements, "reservations"
    )


def test_reaper_skips_hold_confirmed_after_it_was_read(
    reaper, controller, reservation_service, clock, db, wednesday_template
):
    hold = controller.admit(WEDNESDAY, iv("09:00", "09:45"))
    clock.advance(minutes=11)
    candidates = reaper.reservation_repository.expired_holds(clock())
    db.get(Reservation, hold.id).status = ReservationStatus.CONFIRMED
    db.commit()

    locked = reaper.reservation_repository.lock_expired_holds(
        [r.id for r in candidates], clock()
    )
    db.rollback()

    assert [r.id for r in candidates] == [hold.id]
    assert locked == []


def test_cancelled_rows_purged_after_retention(
    reaper, controller, reservation_service, clock, db, wednesday_template
):
    abandoned = controller.admit(WEDNESDAY, iv("09:00", "09:45"))
    reservation_service.cancel(abandoned.id)

    clock.advance(minutes=10)
    assert reaper.reap().purged_cancelled == 0

    clock.advance(minutes=6)
    assert reaper.reap().purged_cancelled == 1
    assert db.query(Reservation).filter(Reservation.id == abandoned.id).count() == 0


def test_confirmed_then_cancelled_rows_are_kept(
    reaper, controller, reservation_service, clock, db, wednesday_template
):
    lesson = controller.admit(WEDNESDAY, iv("09:00", "09:45"))
    reservation_service.confirm(lesson.id)
    reservation_service.cancel(lesson.id, "weather")
    clock.advance(hours=2)

    assert reaper.reap().purged_cancelled == 0
    assert db.query(Reservation).filter(Reservation.id == lesson.id).count() == 1


def test_stats_report_backlog(reaper, controller, clock, wednesday_template):
    controller.admit(WEDNESDAY, iv("09:00", "09:45"))
    clock.advance(minutes=11)
    controller.admit(WEDNESDAY, iv("13:00", "13:45"))

    stats = reaper.stats()

    assert stats["holds"] == 2
    assert stats["expired_holds"] == 1
    assert stats["confirmed"] == 0
    assert stats["hold_ttl_minutes"] == 10
    assert stats["now"] == clock().isoformat()


def test_reconcile_repairs_drifted_counter(reaper, controller, make_session, db):
    session = make_session(max_participants=3)
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
    session.current_participants = 3
    db.commit()

    corrections = reaper.reconcile_capacity()

    db.refresh(session)
    assert [c.to_dict() for c in corrections] == [
        {"session_id": session.id, "recorded": 3, "actual": 1}
    ]
    assert session.current_participants == 1
    assert reaper.reconcile_capacity() == []
