from datetime import time

import pytest

from app.core.exceptions import InvalidIntervalException
from app.domain.intervals import (
    TimeInterval,
    covers,
    merge,
    overlaps,
    parse_time,
    split_windows,
)


def iv(start: str, end: str) -> TimeInterval:
    return TimeInterval.of(start, end)


@pytest.mark.parametrize(
    "a, b",
    [
        (iv("09:00", "10:00"), iv("09:30", "10:30")),
        (iv("09:00", "12:00"), iv("10:00", "11:00")),
        (iv("09:00", "10:00"), iv("10:00", "11:00")),
        (iv("08:00", "08:30"), iv("14:00", "15:00")),
    ],
)
def test_overlap_is_symmetric(a, b):
    assert overlaps(a, b) == overlaps(b, a)


def test_interval_overlaps_itself():
    a = iv("09:00", "09:45")
    assert overlaps(a, a)


def test_touching_intervals_do_not_overlap():
    assert not overlaps(iv("09:00", "10:00"), iv("10:00", "11:00"))


def test_partial_overlap_detected():
    assert overlaps(iv("09:00", "09:45"), iv("09:30", "10:15"))


def test_degenerate_interval_rejected():
    with pytest.raises(InvalidIntervalException):
        iv("10:00", "10:00")
    with pytest.raises(InvalidIntervalException):
        iv("11:00", "10:00")


def test_parse_time_drops_seconds():
    assert parse_time("09:30:45") == time(9, 30)
    assert parse_time(time(9, 30, 12)) == time(9, 30)


def test_parse_time_rejects_garbage():
    with pytest.raises(InvalidIntervalException):
        parse_time("nine-thirty")


def test_from_duration_builds_end():
    interval = TimeInterval.from_duration("09:00", 45)
    assert interval == iv("09:00", "09:45")
    assert interval.duration_minutes == 45


def test_from_duration_cannot_cross_midnight():
    with pytest.raises(InvalidIntervalException) as exc_info:
        TimeInterval.from_duration("23:30", 45)
    assert exc_info.value.code == "INVALID_INTERVAL"


def test_from_duration_rejects_non_positive_duration():
    with pytest.raises(InvalidIntervalException):
        TimeInterval.from_duration("09:00", 0)


def test_covers():
    assert covers(iv("08:00", "17:00"), iv("08:00", "08:45"))
    assert covers(iv("08:00", "17:00"), iv("16:15", "17:00"))
    assert not covers(iv("08:00", "17:00"), iv("16:30", "17:15"))


def test_merge_joins_overlapping_and_touching():
    merged = merge(
        [iv("13:00", "14:00"), iv("09:00", "10:00"), iv("10:00", "11:00"), iv("09:30", "10:30")]
    )
    assert merged == [iv("09:00", "11:00"), iv("13:00", "14:00")]


def test_merge_keeps_contained_intervals_once():
    assert merge([iv("09:00", "12:00"), iv("10:00", "11:00")]) == [iv("09:00", "12:00")]


def test_split_windows_steps_by_granularity():
    windows = list(split_windows(iv("08:00", "10:00"), 45, 30))
    assert [str(w) for w in windows] == ["08:00-08:45", "08:30-09:15", "09:00-09:45"]


def test_split_windows_drops_window_that_does_not_fit():
    assert list(split_windows(iv("08:00", "08:30"), 45, 30)) == []


def test_split_windows_requires_positive_arguments():
    with pytest.raises(ValueError):
        list(split_windows(iv("08:00", "10:00"), 0, 30))
