"""Reservation domain events."""
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional


def _hhmm(value: Any) -> str:
    return value.strftime("%H:%M")


@dataclass
class ReservationCreated:
    """Fired after the admission controller commits a new reservation."""

    reservation_id: str
    kind: str
    status: str
    reservation_date: date
    start_time: str
    end_time: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    session_id: Optional[str] = None

    @classmethod
    def from_reservation(cls, reservation: Any) -> "ReservationCreated":
        return cls(
            reservation_id=reservation.id,
            kind=reservation.kind,
            status=reservation.status,
            reservation_date=reservation.reservation_date,
            start_time=_hhmm(reservation.start_time),
            end_time=_hhmm(reservation.end_time),
            created_at=reservation.created_at,
            expires_at=reservation.expires_at,
            session_id=reservation.session_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReservationConfirmed:
    """Fired after a HOLD or PENDING_CONFIRMATION reservation is confirmed."""

    reservation_id: str
    kind: str
    reservation_date: date
    start_time: str
    end_time: str
    confirmed_at: datetime
    participant_email: Optional[str] = None
    session_id: Optional[str] = None

    @classmethod
    def from_reservation(cls, reservation: Any) -> "ReservationConfirmed":
        return cls(
            reservation_id=reservation.id,
            kind=reservation.kind,
            reservation_date=reservation.reservation_date,
            start_time=_hhmm(reservation.start_time),
            end_time=_hhmm(reservation.end_time),
            confirmed_at=reservation.confirmed_at,
            participant_email=reservation.participant_email,
            session_id=reservation.session_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReservationCancelled:
    """Fired after a reservation is cancelled by a user or admin."""

    reservation_id: str
    kind: str
    previous_status: str
    reservation_date: date
    start_time: str
    end_time: str
    cancelled_at: datetime
    reason: Optional[str] = None
    participant_email: Optional[str] = None
    session_id: Optional[str] = None

    @classmethod
    def from_reservation(cls, reservation: Any, previous_status: str) -> "ReservationCancelled":
        return cls(
            reservation_id=reservation.id,
            kind=reservation.kind,
            previous_status=previous_status,
            reservation_date=reservation.reservation_date,
            start_time=_hhmm(reservation.start_time),
            end_time=_hhmm(reservation.end_time),
            cancelled_at=reservation.cancelled_at,
            reason=reservation.cancellation_reason,
            participant_email=reservation.participant_email,
            session_id=reservation.session_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReservationExpired:
    """Fired when an unpaid hold or an unconfirmed reservation runs out of time."""

    reservation_id: str
    kind: str
    previous_status: str
    reservation_date: date
    start_time: str
    end_time: str
    expired_at: datetime
    session_id: Optional[str] = None

    @classmethod
    def from_reservation(
        cls, reservation: Any, expired_at: datetime, previous_status: Optional[str] = None
    ) -> "ReservationExpired":
        return cls(
            reservation_id=reservation.id,
            kind=reservation.kind,
            previous_status=previous_status or reservation.status,
            reservation_date=reservation.reservation_date,
            start_time=_hhmm(reservation.start_time),
            end_time=_hhmm(reservation.end_time),
            expired_at=expired_at,
            session_id=reservation.session_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
