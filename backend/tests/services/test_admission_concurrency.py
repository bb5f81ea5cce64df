"""
Concurrent admissions against a file-backed SQLite database.

Each worker has its own connection and session; a barrier releases them
together so the admissions genuinely interleave.
"""

import threading
from typing import Any, Callable, Iterator, List

import pytest
from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker

from app.core.enums import ReservationKind
from app.core.exceptions import (
    CapacityExceededException,
    ReservationConflictException,
    StoreUnavailableException,
)
from app.database import Base, build_engine
from app.domain.intervals import TimeInterval
from app.models.group_session import GroupSession
from app.models.reservation import Reservation
from app.services.admission_controller import ReservationAdmissionController
from app.services.group_session_service import GroupSessionService
from app.services.schedule_service import ScheduleService
from tests.helpers.clock import WEDNESDAY

WORKERS = 8


@pytest.fixture
def session_factory(tmp_path) -> Iterator[Callable[[], Session]]:
    file_engine = build_engine(f"sqlite:///{tmp_path / 'drivebook.db'}")

    @event.listens_for(file_engine, "connect")
    def _wait_for_writers(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA busy_timeout = 30000")
        cursor.close()

    Base.metadata.create_all(bind=file_engine)
    try:
        yield sessionmaker(bind=file_engine, autoflush=False, expire_on_commit=False)
    finally:
        file_engine.dispose()


def run_together(
    session_factory: Callable[[], Session],
    test_settings,
    clock,
    attempt: Callable[[ReservationAdmissionController], Any],
) -> List[str]:
    barrier = threading.Barrier(WORKERS)
    outcomes: List[str] = []
    outcomes_lock = threading.Lock()

    def worker() -> None:
        db = session_factory()
        try:
            controller = ReservationAdmissionController(db, settings=test_settings, clock=clock)
            barrier.wait(timeout=30)
            try:
                attempt(controller)
                outcome = "admitted"
            except (ReservationConflictException, CapacityExceededException):
                outcome = "rejected"
            except StoreUnavailableException:
                outcome = "unavailable"
        finally:
            db.close()
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(WORKERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    assert not any(thread.is_alive() for thread in threads)
    return outcomes


def test_identical_one_to_one_windows_admit_once(session_factory, test_settings, clock):
    setup = session_factory()
    ScheduleService(setup, settings=test_settings, clock=clock).create_template(
        3, "08:00", "17:00"
    )
    setup.close()

    outcomes = run_together(
        session_factory,
        test_settings,
        clock,
        lambda controller: controller.admit(WEDNESDAY, TimeInterval.of("09:00", "09:45")),
    )

    check = session_factory()
    try:
        assert len(outcomes) == WORKERS
        assert outcomes.count("admitted") == 1
        assert check.query(Reservation).count() == 1
    finally:
        check.close()


def test_overlapping_one_to_one_windows_never_double_book(
    session_factory, test_settings, clock
):
    setup = session_factory()
    ScheduleService(setup, settings=test_settings, clock=clock).create_template(
        3, "08:00", "17:00"
    )
    setup.close()
    starts = iter(["09:00", "09:15", "09:30", "09:00", "09:15", "09:30", "09:00", "09:15"])
    starts_lock = threading.Lock()

    def attempt(controller: ReservationAdmissionController) -> Any:
        with starts_lock:
            start = next(starts)
        return controller.admit(WEDNESDAY, TimeInterval.from_duration(start, 45))

    outcomes = run_together(session_factory, test_settings, clock, attempt)

    check = session_factory()
    try:
        rows = check.query(Reservation).all()
        assert outcomes.count("admitted") == len(rows) == 1
    finally:
        check.close()


@pytest.mark.parametrize("capacity", [1, 3])
def test_group_counter_never_exceeds_capacity(session_factory, test_settings, clock, capacity):
    setup = session_factory()
    session = GroupSessionService(setup, settings=test_settings, clock=clock).create_session(
        "Supervisor course", WEDNESDAY, "10:00", "12:00", capacity
    )
    session_id = session.id
    setup.close()

    outcomes = run_together(
        session_factory,
        test_settings,
        clock,
        lambda controller: controller.admit(
            None, None, ReservationKind.GROUP_SESSION, session_id
        ),
    )

    check = session_factory()
    try:
        counter = check.get(GroupSession, session_id).current_participants
        rows = check.query(Reservation).filter(Reservation.session_id == session_id).count()
        assert outcomes.count("admitted") == capacity
        assert outcomes.count("rejected") == WORKERS - capacity
        assert counter == rows == capacity
    finally:
        check.close()


def test_expired_seat_reclaimed_once_under_contention(session_factory, test_settings, clock):
    setup = session_factory()
    session = GroupSessionService(setup, settings=test_settings, clock=clock).create_session(
        "Supervisor course", WEDNESDAY, "10:00", "12:00", 1
    )
    session_id = session.id
    ReservationAdmissionController(setup, settings=test_settings, clock=clock).admit(
        None, None, ReservationKind.GROUP_SESSION, session_id
    )
    setup.close()
    clock.advance(minutes=test_settings.hold_ttl_minutes + 1)

    outcomes = run_together(
        session_factory,
        test_settings,
        clock,
        lambda controller: controller.admit(
            None, None, ReservationKind.GROUP_SESSION, session_id
        ),
    )

    check = session_factory()
    try:
        counter = check.get(GroupSession, session_id).current_participants
        rows = check.query(Reservation).filter(Reservation.session_id == session_id).count()
        assert outcomes.count("admitted") == 1
        assert counter == rows == 1
    finally:
        check.close()
