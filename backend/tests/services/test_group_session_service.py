from datetime import time

import pytest

from app.core.enums import ReservationKind
from app.core.exceptions import (
    ConflictException,
    InvalidIntervalException,
    NotFoundException,
    ValidationException,
)
from tests.helpers.clock import THURSDAY, WEDNESDAY


def test_create_session_starts_empty(make_session):
    session = make_session(max_participants=4)

    assert session.current_participants == 0
    assert session.max_participants == 4
    assert session.is_active


@pytest.mark.parametrize("capacity", [0, -1])
def test_capacity_must_be_positive(group_session_service, capacity):
    with pytest.raises(ValidationException) as exc_info:
        group_session_service.create_session(
            "Theory night", WEDNESDAY, "18:00", "20:00", capacity
        )

    assert exc_info.value.code == "INVALID_CAPACITY"


def test_title_required(group_session_service):
    with pytest.raises(ValidationException):
        group_session_service.create_session("  ", WEDNESDAY, "18:00", "20:00", 5)


def test_reversed_times_rejected(group_session_service):
    with pytest.raises(InvalidIntervalException):
        group_session_service.create_session("Theory", WEDNESDAY, "20:00", "18:00", 5)


def test_list_sessions_in_range(group_session_service, make_session):
    make_session(title="Wednesday")
    make_session(title="Thursday", session_date=THURSDAY)

    sessions = group_session_service.list_sessions(THURSDAY, THURSDAY)

    assert [s.title for s in sessions] == ["Thursday"]
    assert len(group_session_service.list_sessions()) == 2


def test_capacity_cannot_drop_below_taken_seats(group_session_service, controller, make_session):
    session = make_session(max_participants=3)
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

    with pytest.raises(ConflictException) as exc_info:
        group_session_service.update_session(session.id, max_participants=1)

    assert exc_info.value.code == "CAPACITY_BELOW_PARTICIPANTS"
    assert group_session_service.get_session(session.id).max_participants == 3

    updated = group_session_service.update_session(session.id, max_participants=2)
    assert updated.max_participants == 2


def test_update_times_and_title(group_session_service, make_session):
    session = make_session()

    updated = group_session_service.update_session(
        session.id, title="Night driving", end_time="13:00"
    )

    assert updated.title == "Night driving"
    assert updated.start_time == time(10, 0)
    assert updated.end_time == time(13, 0)


def test_update_unknown_session(group_session_service):
    with pytest.raises(NotFoundException):
        group_session_service.update_session("missing", title="x")


def test_delete_unused_session(group_session_service, make_session):
    session = make_session()

    group_session_service.delete_session(session.id)

    with pytest.raises(NotFoundException):
        group_session_service.get_session(session.id)


def test_delete_refused_once_reserved(group_session_service, controller, make_session):
    session = make_session()
    controller.admit(None, None, ReservationKind.GROUP_SESSION, session.id)

    with pytest.raises(ConflictException) as exc_info:
        group_session_service.delete_session(session.id)

    assert exc_info.value.code == "SESSION_HAS_RESERVATIONS"
    assert group_session_service.get_session(session.id).current_participants == 1
