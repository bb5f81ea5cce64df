# backend/app/schemas/group_session.py
"""Group session administration schemas."""

import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from .base import StandardizedModel, StrictRequestModel, hhmm
from .reservation import ParticipantIn

DateType = datetime.date
TimeType = datetime.time
DateTimeType = datetime.datetime


class GroupSessionCreate(StrictRequestModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    date: DateType
    start_time: TimeType
    end_time: TimeType
    max_participants: int = Field(..., gt=0)
    is_active: bool = True

    @field_validator("end_time")
    @classmethod
    def validate_time_order(cls, v: TimeType, info: Any) -> TimeType:
        """Ensure end time is after start time."""
        if (
            isinstance(getattr(info, "data", None), dict)
            and info.data.get("start_time")
            and v <= info.data["start_time"]
        ):
            raise ValueError("End time must be after start time")
        return v


class GroupSessionUpdate(StrictRequestModel):
    """Partial update; capacity may not drop below the seats already taken."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    date: Optional[DateType] = None
    start_time: Optional[TimeType] = None
    end_time: Optional[TimeType] = None
    max_participants: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None


class SessionBookingCreate(StrictRequestModel):
    """
    Booking added by an administrator, e.g. a participant who phoned in.

    Skips the lead-time check. ``mark_paid`` confirms the seat at once;
    otherwise it waits in PENDING_CONFIRMATION for payment.
    """

    participant: ParticipantIn
    mark_paid: bool = False

    @field_validator("participant")
    @classmethod
    def require_name(cls, v: ParticipantIn) -> ParticipantIn:
        if not v.name:
            raise ValueError("participant.name is required")
        return v


class GroupSessionResponse(StandardizedModel):
    id: str
    title: str
    description: Optional[str] = None
    date: DateType
    start_time: str
    end_time: str
    max_participants: int
    current_participants: int
    seats_left: int
    is_active: bool
    created_at: DateTimeType

    @classmethod
    def from_model(cls, session) -> "GroupSessionResponse":
        return cls(
            id=session.id,
            title=session.title,
            description=session.description,
            date=session.session_date,
            start_time=hhmm(session.start_time),
            end_time=hhmm(session.end_time),
            max_participants=session.max_participants,
            current_participants=session.current_participants or 0,
            seats_left=session.seats_left,
            is_active=bool(session.is_active),
            created_at=session.created_at,
        )
