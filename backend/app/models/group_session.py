# backend/app/models/group_session.py
"""
Group session model.

A group session (e.g. a supervisor course) is one time window shared by many
independent reservations up to ``max_participants``. ``current_participants``
is a denormalised counter kept equal to the number of active reservations
referencing the session; it is only ever changed in the same transaction as
the reservation row that justifies the change.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, Date, Integer, String, Text, Time
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from ..domain.intervals import TimeInterval
from .types import UTCDateTime, utc_now


class GroupSession(Base):
    """Capacity-tracked shared session."""

    __tablename__ = "group_sessions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    session_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    max_participants = Column(Integer, nullable=False)
    current_participants = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utc_now)

    reservations = relationship("Reservation", back_populates="session")

    __table_args__ = (
        CheckConstraint("max_participants > 0", name="ck_group_sessions_max_positive"),
        CheckConstraint(
            "current_participants >= 0 AND current_participants <= max_participants",
            name="ck_group_sessions_participants_bounds",
        ),
        CheckConstraint("start_time < end_time", name="ck_group_sessions_time_order"),
    )

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    @property
    def seats_left(self) -> int:
        return max(self.max_participants - (self.current_participants or 0), 0)

    def release_participant(self, now: Optional[datetime] = None) -> None:
        """Decrement the counter, never below zero."""
        self.current_participants = max((self.current_participants or 0) - 1, 0)
        self.updated_at = now or utc_now()

    def __repr__(self) -> str:
        return (
            f"<GroupSession {self.id}: {self.session_date} {self.start_time}-{self.end_time} "
            f"{self.current_participants}/{self.max_participants}>"
        )
