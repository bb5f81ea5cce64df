"""
Same-day time interval algebra.

Intervals are half-open ``[start, end)``: touching endpoints do not overlap.
Everything here is pure; callers hand in already-validated intervals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Union

from app.core.exceptions import InvalidIntervalException

_REFERENCE_DAY = date(2000, 1, 1)


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def parse_time(value: Union[str, time]) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a ``time`` (seconds dropped)."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    try:
        parsed = time.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidIntervalException(value, value, message=f"Invalid time {value!r}") from exc
    return parsed.replace(second=0, microsecond=0)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True, order=True)
class TimeInterval:
    """A same-day half-open interval."""

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidIntervalException(self.start, self.end)

    @classmethod
    def of(cls, start: Union[str, time], end: Union[str, time]) -> "TimeInterval":
        return cls(parse_time(start), parse_time(end))

    @classmethod
    def from_duration(cls, start: Union[str, time], duration_minutes: int) -> "TimeInterval":
        """Build ``[start, start + duration)``; intervals may not cross midnight."""
        start_t = parse_time(start)
        if duration_minutes <= 0:
            raise InvalidIntervalException(
                start_t, start_t, message="Duration must be a positive number of minutes"
            )
        end_minutes = _minutes(start_t) + duration_minutes
        if end_minutes >= 24 * 60:
            raise InvalidIntervalException(
                start_t,
                f"+{duration_minutes}min",
                message="Interval may not extend past midnight",
            )
        return cls(start_t, time(end_minutes // 60, end_minutes % 60))

    @property
    def duration_minutes(self) -> int:
        return _minutes(self.end) - _minutes(self.start)

    def on(self, day: date) -> tuple[datetime, datetime]:
        """Naive datetimes for this interval on ``day``."""
        return datetime.combine(day, self.start), datetime.combine(day, self.end)

    def __str__(self) -> str:
        return f"{format_time(self.start)}-{format_time(self.end)}"


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """True iff the half-open intervals share at least one instant."""
    return a.start < b.end and b.start < a.end


def covers(outer: TimeInterval, inner: TimeInterval) -> bool:
    """True iff ``inner`` lies entirely within ``outer``."""
    return outer.start <= inner.start and inner.end <= outer.end


def merge(intervals: Iterable[TimeInterval]) -> List[TimeInterval]:
    """
    Merge overlapping or touching intervals.

    Touching intervals are joined (``start <= previous.end``), so this is for
    display only; overlap tests use the stricter half-open rule.
    """
    ordered = sorted(intervals, key=lambda interval: (interval.start, interval.end))
    merged: List[TimeInterval] = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = TimeInterval(last.start, interval.end)
            continue
        merged.append(interval)
    return merged


def split_windows(
    container: TimeInterval, duration_minutes: int, step_minutes: int
) -> Iterator[TimeInterval]:
    """
    Yield ``duration_minutes`` long windows inside ``container``.

    Window starts step by ``step_minutes`` from ``container.start``; a window
    is only yielded if it fits entirely.
    """
    if duration_minutes <= 0 or step_minutes <= 0:
        raise ValueError("duration_minutes and step_minutes must be positive")
    cursor = datetime.combine(_REFERENCE_DAY, container.start)
    limit = datetime.combine(_REFERENCE_DAY, container.end)
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    while cursor + duration <= limit:
        yield TimeInterval(cursor.time(), (cursor + duration).time())
        cursor += step


def any_overlap(candidate: TimeInterval, others: Iterable[TimeInterval]) -> bool:
    return any(overlaps(candidate, other) for other in others)
