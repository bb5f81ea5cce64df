# backend/app/schemas/availability.py
"""
Availability schemas for the DriveBook reservation engine.

Windows are reported per date with a reason; only ``OK`` windows are
bookable online. Times are local wall-clock ``HH:MM`` strings.
"""

import datetime
from typing import Dict, List, Optional

from pydantic import ConfigDict, Field

from ..core.enums import AvailabilityReason, ResolverMode
from .base import StandardizedModel, StrictModel, hhmm

DateType = datetime.date


class AvailabilityWindowResponse(StandardizedModel):
    """One candidate window."""

    time: str = Field(description="Window start, HH:MM")
    end_time: str = Field(description="Window end, HH:MM")
    available: bool
    reason: AvailabilityReason
    is_extra: bool = False
    note: Optional[str] = None

    @classmethod
    def from_window(cls, window) -> "AvailabilityWindowResponse":
        return cls(
            time=hhmm(window.start),
            end_time=hhmm(window.end),
            available=window.available,
            reason=window.reason,
            is_extra=window.is_extra,
            note=window.note,
        )


class AvailabilityResponse(StandardizedModel):
    """Resolved windows keyed by ISO date; dates without windows map to []."""

    start_date: DateType
    end_date: DateType
    duration_minutes: int
    mode: ResolverMode
    slots: Dict[str, List[AvailabilityWindowResponse]]


class SessionAvailabilityResponse(StandardizedModel):
    id: str
    title: str
    description: Optional[str] = None
    date: DateType
    time: str
    end_time: str
    max_participants: int
    seats_left: int
    available: bool
    reason: AvailabilityReason

    @classmethod
    def from_result(cls, result) -> "SessionAvailabilityResponse":
        session = result.session
        return cls(
            id=session.id,
            title=session.title,
            description=session.description,
            date=session.session_date,
            time=hhmm(session.start_time),
            end_time=hhmm(session.end_time),
            max_participants=session.max_participants,
            seats_left=result.seats_left,
            available=result.available,
            reason=result.reason,
        )


class SessionAvailabilityListResponse(StandardizedModel):
    start_date: DateType
    end_date: DateType
    sessions: List[SessionAvailabilityResponse]


class PrunedWindow(StrictModel):
    time: str
    end_time: str
    reason: AvailabilityReason
    source: str = Field(description="template or extra")


class DateDiagnosticsResponse(StandardizedModel):
    """Why a date shows the windows it shows."""

    date: DateType
    day_of_week: int = Field(description="0 = Sunday ... 6 = Saturday")
    template_count: int
    extra_count: int
    reservation_count: int
    all_day_blocked: bool
    available: List[str] = Field(default_factory=list)
    pruned: List[PrunedWindow] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)

    @classmethod
    def from_diagnostics(cls, entry) -> "DateDiagnosticsResponse":
        return cls(
            date=entry.target_date,
            day_of_week=entry.day_of_week,
            template_count=entry.template_count,
            extra_count=entry.extra_count,
            reservation_count=entry.reservation_count,
            all_day_blocked=entry.all_day_blocked,
            available=list(entry.available),
            pruned=[PrunedWindow(**item) for item in entry.pruned],
        )


class DiagnosticsResponse(StandardizedModel):
    dates: List[DateDiagnosticsResponse]
