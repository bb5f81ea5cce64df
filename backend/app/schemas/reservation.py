# backend/app/schemas/reservation.py
"""
Reservation request/response schemas.

A one-to-one request names a date, a start time and a duration; a group
request names only the session. Overlap, capacity and lead-time checks
happen in the admission controller, not here.
"""

import datetime
from typing import Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from ..core.enums import ReservationKind, ReservationStatus
from .base import StandardizedModel, StrictRequestModel, hhmm

DateType = datetime.date
TimeType = datetime.time
DateTimeType = datetime.datetime


class ParticipantIn(StrictRequestModel):
    """Contact details snapshotted onto the reservation."""

    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)

    @field_validator("name", "email", "phone")
    @classmethod
    def strip_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v and ("@" not in v or v.startswith("@") or v.endswith("@")):
            raise ValueError("email must be a valid address")
        return v


class ReservationCreate(StrictRequestModel):
    """Request to admit a new reservation."""

    date: Optional[DateType] = None
    time: Optional[TimeType] = None
    duration_minutes: Optional[int] = Field(None, gt=0, le=12 * 60)
    kind: ReservationKind = ReservationKind.ONE_TO_ONE
    session_id: Optional[str] = None
    participant: Optional[ParticipantIn] = None
    initial_status: ReservationStatus = ReservationStatus.HOLD

    @field_validator("initial_status")
    @classmethod
    def validate_initial_status(cls, v: ReservationStatus) -> ReservationStatus:
        if v not in (ReservationStatus.HOLD, ReservationStatus.PENDING_CONFIRMATION):
            raise ValueError("initial_status must be HOLD or PENDING_CONFIRMATION")
        return v

    @model_validator(mode="after")
    def validate_target(self) -> "ReservationCreate":
        if self.kind == ReservationKind.ONE_TO_ONE:
            if self.date is None or self.time is None:
                raise ValueError("date and time are required for one-to-one reservations")
        elif not self.session_id:
            raise ValueError("session_id is required for group session reservations")
        return self


class ReservationCancel(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)


class ReservationResponse(StandardizedModel):
    """Reservation summary returned after admission and lifecycle changes."""

    id: str
    kind: ReservationKind
    status: ReservationStatus
    date: DateType
    time: str
    end_time: str
    duration_minutes: int
    session_id: Optional[str] = None
    participant_name: Optional[str] = None
    participant_email: Optional[str] = None
    participant_phone: Optional[str] = None
    created_at: DateTimeType
    expires_at: Optional[DateTimeType] = None
    confirmed_at: Optional[DateTimeType] = None
    cancelled_at: Optional[DateTimeType] = None
    cancellation_reason: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)

    @classmethod
    def from_reservation(cls, reservation) -> "ReservationResponse":
        return cls(
            id=reservation.id,
            kind=reservation.kind,
            status=reservation.status,
            date=reservation.reservation_date,
            time=hhmm(reservation.start_time),
            end_time=hhmm(reservation.end_time),
            duration_minutes=reservation.duration_minutes,
            session_id=reservation.session_id,
            participant_name=reservation.participant_name,
            participant_email=reservation.participant_email,
            participant_phone=reservation.participant_phone,
            created_at=reservation.created_at,
            expires_at=reservation.expires_at,
            confirmed_at=reservation.confirmed_at,
            cancelled_at=reservation.cancelled_at,
            cancellation_reason=reservation.cancellation_reason,
        )
