# backend/app/models/reservation.py
"""
Reservation model for the DriveBook reservation engine.

A reservation is a time-bound claim against a window: either a one-to-one
lesson (the interval itself is the claim) or a seat in a group session (the
interval is copied from the session).

Lifecycle:
    HOLD -> CONFIRMED | CANCELLED | (expired -> deleted by the reaper)
    PENDING_CONFIRMATION -> CONFIRMED | CANCELLED
    CONFIRMED -> CANCELLED
    CANCELLED is terminal

A HOLD whose ``expires_at`` has passed is inactive for every reader even
before the reaper deletes it.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import ReservationKind, ReservationStatus
from ..database import Base
from ..domain.intervals import TimeInterval
from .types import UTCDateTime, utc_now

logger = logging.getLogger(__name__)

_ACTIVE_ONE_TO_ONE = text(
    "kind = 'ONE_TO_ONE' AND status IN ('HOLD', 'PENDING_CONFIRMATION', 'CONFIRMED')"
)


class Reservation(Base):
    """Time-bound claim against a bookable window."""

    __tablename__ = "reservations"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    resource_key = Column(String(64), nullable=False, default="default")

    reservation_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    kind = Column(String(20), nullable=False, default=ReservationKind.ONE_TO_ONE.value)
    status = Column(String(30), nullable=False, default=ReservationStatus.HOLD.value, index=True)
    session_id = Column(
        String(26), ForeignKey("group_sessions.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    # Participant snapshot
    participant_name = Column(String(255), nullable=True)
    participant_email = Column(String(255), nullable=True)
    participant_phone = Column(String(50), nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utc_now)
    expires_at = Column(UTCDateTime, nullable=True, index=True)
    confirmed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    session = relationship("GroupSession", back_populates="reservations")

    __table_args__ = (
        CheckConstraint(
            "status IN ('HOLD', 'PENDING_CONFIRMATION', 'CONFIRMED', 'CANCELLED')",
            name="ck_reservations_status",
        ),
        CheckConstraint("kind IN ('ONE_TO_ONE', 'GROUP_SESSION')", name="ck_reservations_kind"),
        CheckConstraint("start_time < end_time", name="ck_reservations_time_order"),
        CheckConstraint("duration_minutes > 0", name="ck_reservations_duration_positive"),
        CheckConstraint(
            "status <> 'HOLD' OR expires_at IS NOT NULL", name="ck_reservations_hold_expires"
        ),
        CheckConstraint(
            "kind <> 'GROUP_SESSION' OR session_id IS NOT NULL",
            name="ck_reservations_group_has_session",
        ),
        Index("ix_reservations_resource_date", "resource_key", "reservation_date"),
        Index("ix_reservations_status_expires", "status", "expires_at"),
        # Backstop for identical one-to-one windows; overlap is enforced by the day lock.
        Index(
            "uq_reservations_active_one_to_one_window",
            "resource_key",
            "reservation_date",
            "start_time",
            "end_time",
            unique=True,
            postgresql_where=_ACTIVE_ONE_TO_ONE,
            sqlite_where=_ACTIVE_ONE_TO_ONE,
        ),
    )

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    @property
    def is_group(self) -> bool:
        return self.kind == ReservationKind.GROUP_SESSION

    def is_expired_hold(self, now: datetime) -> bool:
        return (
            self.status == ReservationStatus.HOLD
            and self.expires_at is not None
            and self.expires_at < now
        )

    def is_active_at(self, now: datetime) -> bool:
        """Active = HOLD (unexpired), PENDING_CONFIRMATION or CONFIRMED."""
        if self.status not in ReservationStatus.active():
            return False
        return not self.is_expired_hold(now)

    def confirm(self, now: Optional[datetime] = None) -> None:
        self.status = ReservationStatus.CONFIRMED.value
        self.confirmed_at = now or utc_now()
        self.expires_at = None
        logger.info(f"Reservation {self.id} confirmed")

    def cancel(self, reason: Optional[str] = None, now: Optional[datetime] = None) -> None:
        self.status = ReservationStatus.CANCELLED.value
        self.cancelled_at = now or utc_now()
        self.cancellation_reason = reason
        self.expires_at = None
        logger.info(f"Reservation {self.id} cancelled ({reason or 'no reason'})")

    def __repr__(self) -> str:
        return (
            f"<Reservation {self.id}: {self.kind} date={self.reservation_date} "
            f"time={self.start_time}-{self.end_time}, status={self.status}>"
        )


class ScheduleDayLock(Base):
    """
    One row per (resource, day) that admissions lock with SELECT ... FOR UPDATE.

    Holding this row serialises the overlap re-check and the insert for every
    one-to-one admission on the same day.
    """

    __tablename__ = "schedule_day_locks"

    resource_key = Column(String(64), primary_key=True)
    lock_date = Column(Date, primary_key=True)
    last_locked_at = Column(UTCDateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<ScheduleDayLock {self.resource_key} {self.lock_date}>"
