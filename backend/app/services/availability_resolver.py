# backend/app/services/availability_resolver.py
"""
Availability Resolver for the DriveBook reservation engine.

Combines weekly templates, per-date exceptions and active reservations into
a per-date list of candidate windows, each annotated with a reason:

    BLOCKED           all-day block, or overlap with a timed block
    RESERVED          overlap with an active one-to-one reservation
    WITHIN_LEAD_TIME  starts at or before now + lead time (call to book)
    OK                bookable

Every store is read once per call for the whole range; the number of
queries does not grow with the number of dates.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
import logging
from typing import Dict, Iterable, List, Optional, Sequence

import pytz
from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.enums import AvailabilityReason, ResolverMode
from ..core.exceptions import InvalidRangeException, ValidationException
from ..domain.intervals import TimeInterval, any_overlap, format_time, split_windows
from ..models.group_session import GroupSession
from ..models.reservation import Reservation
from ..models.schedule import BlockedInterval, ExtraSlot, ScheduleTemplate
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)


def day_of_week_for(target_date: date) -> int:
    """Weekday index with 0 = Sunday ... 6 = Saturday."""
    return (target_date.weekday() + 1) % 7


def iter_dates(start_date: date, end_date: date) -> Iterable[date]:
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def window_start_utc(tz: pytz.BaseTzInfo, target_date: date, start: time) -> datetime:
    """UTC instant of a wall-clock start time in the schedule timezone."""
    return tz.localize(datetime.combine(target_date, start)).astimezone(pytz.utc)


@dataclass(frozen=True)
class AvailabilityWindow:
    """One candidate window on a date and whether it can be booked."""

    interval: TimeInterval
    available: bool
    reason: AvailabilityReason
    is_extra: bool = False
    note: Optional[str] = None

    @property
    def start(self) -> time:
        return self.interval.start

    @property
    def end(self) -> time:
        return self.interval.end


@dataclass(frozen=True)
class SessionAvailability:
    """A group session with its bookability for the requesting client."""

    session: GroupSession
    seats_left: int
    available: bool
    reason: AvailabilityReason


@dataclass
class DateDiagnostics:
    """Per-date explanation of which template/extra windows survived."""

    target_date: date
    day_of_week: int
    template_count: int
    extra_count: int
    reservation_count: int
    all_day_blocked: bool
    available: List[str] = field(default_factory=list)
    pruned: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class _DayInputs:
    templates: Sequence[ScheduleTemplate]
    extras: Sequence[ExtraSlot]
    blocked: Sequence[BlockedInterval]
    reservations: Sequence[Reservation]

    @property
    def all_day_blocked(self) -> bool:
        return any(block.is_all_day for block in self.blocked)

    @property
    def timed_blocks(self) -> List[TimeInterval]:
        return [block.interval for block in self.blocked if block.interval is not None]

    @property
    def reserved(self) -> List[TimeInterval]:
        return [reservation.interval for reservation in self.reservations]


class AvailabilityResolver(BaseService):
    """
    Read side of the engine.

    Holds no cache: every call reads the current stores, so schedule edits
    are visible immediately.
    """

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, settings=settings, clock=clock)
        self.schedule_repository = RepositoryFactory.create_schedule_repository(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.group_session_repository = RepositoryFactory.create_group_session_repository(db)
        self._tz = pytz.timezone(self.settings.schedule_timezone)

    # Public API

    @BaseService.measure_operation("resolve_availability")
    def resolve(
        self,
        start_date: date,
        end_date: date,
        duration_minutes: Optional[int] = None,
        mode: Optional[ResolverMode] = None,
        now: Optional[datetime] = None,
    ) -> Dict[date, List[AvailabilityWindow]]:
        """
        Resolve bookable windows for every date in ``[start_date, end_date]``.

        Dates without any template or extra slot map to an empty list.
        """
        self._validate_range(start_date, end_date)
        duration = duration_minutes or self.settings.default_duration_minutes
        if duration <= 0:
            raise ValidationException(
                "duration_minutes must be positive",
                code="INVALID_DURATION",
                details={"duration_minutes": duration},
            )
        resolver_mode = mode or self.settings.resolver_mode
        current = now or self.now()

        inputs = self._load_range(start_date, end_date, current)
        lead_cutoff = current + timedelta(minutes=self.settings.lead_time_minutes)

        result: Dict[date, List[AvailabilityWindow]] = {}
        for target_date in iter_dates(start_date, end_date):
            result[target_date] = self._resolve_day(
                target_date, inputs[target_date], duration, resolver_mode, lead_cutoff
            )

        self.logger.debug(
            "Resolved %d dates (%s..%s) duration=%s mode=%s",
            len(result),
            start_date,
            end_date,
            duration,
            resolver_mode.value,
        )
        return result

    @BaseService.measure_operation("resolve_sessions")
    def resolve_sessions(
        self, start_date: date, end_date: date, now: Optional[datetime] = None
    ) -> List[SessionAvailability]:
        """Group sessions in the range with remaining seats and a reason."""
        self._validate_range(start_date, end_date)
        current = now or self.now()
        lead_cutoff = current + timedelta(minutes=self.settings.lead_time_minutes)

        sessions = self.group_session_repository.sessions_between(start_date, end_date)
        blocked = self.schedule_repository.blocked_between(start_date, end_date)
        # Counters still include expired holds the reaper has not removed yet.
        stale = self.reservation_repository.expired_counts_by_session(
            [session.id for session in sessions], current
        )

        results: List[SessionAvailability] = []
        for session in sessions:
            occupied = max((session.current_participants or 0) - stale.get(session.id, 0), 0)
            seats_left = max(session.max_participants - occupied, 0)
            day_blocks = blocked.get(session.session_date, [])
            if any(block.is_all_day for block in day_blocks) or any_overlap(
                session.interval,
                [block.interval for block in day_blocks if block.interval is not None],
            ):
                reason = AvailabilityReason.BLOCKED
            elif seats_left <= 0:
                reason = AvailabilityReason.RESERVED
            elif self._starts_before(session.session_date, session.start_time, lead_cutoff):
                reason = AvailabilityReason.WITHIN_LEAD_TIME
            else:
                reason = AvailabilityReason.OK
            results.append(
                SessionAvailability(
                    session=session,
                    seats_left=seats_left,
                    available=reason == AvailabilityReason.OK,
                    reason=reason,
                )
            )
        return results

    @BaseService.measure_operation("diagnose_availability")
    def diagnose(
        self, dates: Sequence[date], now: Optional[datetime] = None
    ) -> List[DateDiagnostics]:
        """
        Explain, per date, which template and extra windows survive.

        Uses the date-level ``ANY_ROW_ON_DATE`` reservation check and whole
        template/extra windows (no duration split), so an operator sees
        exactly why a day shows nothing.
        """
        wanted = sorted(set(dates))
        if not wanted:
            return []
        if len(wanted) > self.settings.max_resolve_days:
            raise InvalidRangeException(
                wanted[0],
                wanted[-1],
                message=f"At most {self.settings.max_resolve_days} dates can be diagnosed at once",
            )
        current = now or self.now()
        lead_cutoff = current + timedelta(minutes=self.settings.lead_time_minutes)

        templates = self.schedule_repository.templates_for_days(
            day_of_week_for(target_date) for target_date in wanted
        )
        blocked = self.schedule_repository.blocked_on_dates(wanted)
        extras = self.schedule_repository.extras_on_dates(wanted)
        reservations = self.reservation_repository.active_one_to_one_on_dates(
            self.settings.resource_key, wanted, current
        )

        report: List[DateDiagnostics] = []
        for target_date in wanted:
            dow = day_of_week_for(target_date)
            day = _DayInputs(
                templates=templates.get(dow, []),
                extras=extras.get(target_date, []),
                blocked=blocked.get(target_date, []),
                reservations=reservations.get(target_date, []),
            )
            entry = DateDiagnostics(
                target_date=target_date,
                day_of_week=dow,
                template_count=len(day.templates),
                extra_count=len(day.extras),
                reservation_count=len(day.reservations),
                all_day_blocked=day.all_day_blocked,
            )
            containers = [(t.interval, False) for t in day.templates] + [
                (e.interval, True) for e in day.extras
            ]
            for interval, is_extra in sorted(containers, key=lambda item: item[0].start):
                reason = self._classify(
                    target_date, interval, day, ResolverMode.ANY_ROW_ON_DATE, lead_cutoff
                )
                label = format_time(interval.start)
                if reason == AvailabilityReason.OK:
                    entry.available.append(label)
                else:
                    entry.pruned.append(
                        {
                            "time": label,
                            "end_time": format_time(interval.end),
                            "reason": reason.value,
                            "source": "extra" if is_extra else "template",
                        }
                    )
            report.append(entry)
        return report

    # Internals

    def _validate_range(self, start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise InvalidRangeException(start_date, end_date)
        span = (end_date - start_date).days + 1
        if span > self.settings.max_resolve_days:
            raise InvalidRangeException(
                start_date,
                end_date,
                message=f"Date range may cover at most {self.settings.max_resolve_days} days",
            )

    def _load_range(
        self, start_date: date, end_date: date, now: datetime
    ) -> Dict[date, _DayInputs]:
        dates = list(iter_dates(start_date, end_date))
        templates = self.schedule_repository.templates_for_days(
            {day_of_week_for(target_date) for target_date in dates}
        )
        blocked = self.schedule_repository.blocked_between(start_date, end_date)
        extras = self.schedule_repository.extras_between(start_date, end_date)
        reservations = self.reservation_repository.active_one_to_one_between(
            self.settings.resource_key, start_date, end_date, now
        )

        return {
            target_date: _DayInputs(
                templates=templates.get(day_of_week_for(target_date), []),
                extras=extras.get(target_date, []),
                blocked=blocked.get(target_date, []),
                reservations=reservations.get(target_date, []),
            )
            for target_date in dates
        }

    def _resolve_day(
        self,
        target_date: date,
        day: _DayInputs,
        duration: int,
        mode: ResolverMode,
        lead_cutoff: datetime,
    ) -> List[AvailabilityWindow]:
        step = self.settings.slot_granularity_minutes
        windows: List[AvailabilityWindow] = []

        for template in day.templates:
            for candidate in split_windows(template.interval, duration, step):
                reason = self._classify(target_date, candidate, day, mode, lead_cutoff)
                windows.append(
                    AvailabilityWindow(
                        interval=candidate,
                        available=reason == AvailabilityReason.OK,
                        reason=reason,
                    )
                )
        for extra in day.extras:
            for candidate in split_windows(extra.interval, duration, step):
                reason = self._classify(target_date, candidate, day, mode, lead_cutoff)
                windows.append(
                    AvailabilityWindow(
                        interval=candidate,
                        available=reason == AvailabilityReason.OK,
                        reason=reason,
                        is_extra=True,
                        note=extra.reason,
                    )
                )

        # sorted() is stable: template windows stay ahead of identical extras
        return sorted(windows, key=lambda window: (window.start, window.end))

    def _classify(
        self,
        target_date: date,
        candidate: TimeInterval,
        day: _DayInputs,
        mode: ResolverMode,
        lead_cutoff: datetime,
    ) -> AvailabilityReason:
        if day.all_day_blocked or any_overlap(candidate, day.timed_blocks):
            return AvailabilityReason.BLOCKED
        if mode == ResolverMode.ANY_ROW_ON_DATE:
            if day.reservations:
                return AvailabilityReason.RESERVED
        elif any_overlap(candidate, day.reserved):
            return AvailabilityReason.RESERVED
        if self._starts_before(target_date, candidate.start, lead_cutoff):
            return AvailabilityReason.WITHIN_LEAD_TIME
        return AvailabilityReason.OK

    def _starts_before(self, target_date: date, start: time, cutoff: datetime) -> bool:
        """True if the local wall-clock start is at or before ``cutoff``."""
        return window_start_utc(self._tz, target_date, start) <= cutoff
