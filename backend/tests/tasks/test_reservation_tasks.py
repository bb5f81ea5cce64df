"""Celery housekeeping tasks delegate to the reaper and the outbox dispatcher."""

from contextlib import contextmanager
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from app.services.hold_reaper import CapacityCorrection, ReapReport
from app.tasks.beat_schedule import get_beat_schedule
from app.tasks.reservation_tasks import (
    dispatch_reservation_events,
    reap_expired_holds,
    reconcile_session_capacity,
)


@pytest.fixture
def task_session():
    session = MagicMock(name="session")

    @contextmanager
    def _scope():
        yield session

    with patch("app.tasks.reservation_tasks.session_scope", _scope):
        yield session


def test_reap_task_returns_report(task_session):
    report = ReapReport(released_one_to_one=2, released_group_slots=1)
    with patch("app.tasks.reservation_tasks.HoldReaper") as reaper_cls:
        reaper_cls.return_value.reap.return_value = report

        result = reap_expired_holds()

    assert reaper_cls.call_args.args == (task_session,)
    assert result == report.to_dict()
    assert result["released_one_to_one"] == 2


def test_reconcile_task_lists_corrections(task_session):
    correction = CapacityCorrection(session_id="s1", recorded=3, actual=1)
    with patch("app.tasks.reservation_tasks.HoldReaper") as reaper_cls:
        reaper_cls.return_value.reconcile_capacity.return_value = [correction]

        result = reconcile_session_capacity()

    assert result == {
        "corrected": 1,
        "corrections": [{"session_id": "s1", "recorded": 3, "actual": 1}],
    }


def test_dispatch_task_passes_limit(task_session):
    with patch("app.tasks.reservation_tasks.EventDispatchService") as service_cls:
        service_cls.return_value.dispatch_pending.return_value = {
            "sent": 4,
            "retrying": 0,
            "failed": 0,
        }

        result = dispatch_reservation_events(limit=10)

    service_cls.return_value.dispatch_pending.assert_called_once_with(limit=10)
    assert result["sent"] == 4


def test_beat_schedule_uses_settings(test_settings):
    tuned = test_settings.model_copy(update={"reaper_interval_seconds": 15})

    schedule = get_beat_schedule(tuned)

    assert set(schedule) == {
        "reap-expired-holds",
        "reconcile-session-capacity",
        "dispatch-reservation-events",
    }
    reap = schedule["reap-expired-holds"]
    assert reap["task"] == "app.tasks.reservation_tasks.reap_expired_holds"
    assert reap["schedule"] == timedelta(seconds=15)
    assert reap["options"]["expires"] == 15
