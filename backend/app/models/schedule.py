# backend/app/models/schedule.py
"""
Schedule models for the DriveBook reservation engine.

Classes:
    ScheduleTemplate: Recurring weekly opening window ("Wednesdays 08:00-17:00")
    BlockedInterval: Removes availability on a date (optionally all day)
    ExtraSlot: Adds a one-off bookable window on a date

Templates and extra slots produce candidate windows; blocked intervals and
reservations consume them. Templates may overlap each other.
"""

import logging
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Column, Date, Index, Integer, String, Time
import ulid

from ..database import Base
from ..domain.intervals import TimeInterval
from .types import UTCDateTime, utc_now

logger = logging.getLogger(__name__)


class ScheduleTemplate(Base):
    """Weekly recurring availability window. day_of_week: 0 = Sunday ... 6 = Saturday."""

    __tablename__ = "schedule_templates"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    day_of_week = Column(Integer, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=utc_now)

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_templates_day"),
        CheckConstraint("start_time < end_time", name="ck_schedule_templates_time_order"),
        Index("ix_schedule_templates_day_active", "day_of_week", "is_active"),
    )

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    def __repr__(self) -> str:
        return (
            f"<ScheduleTemplate {self.id}: dow={self.day_of_week} "
            f"{self.start_time}-{self.end_time} active={self.is_active}>"
        )


class BlockedInterval(Base):
    """Admin closure of a date or part of a date (holiday, maintenance)."""

    __tablename__ = "blocked_intervals"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    is_all_day = Column(Boolean, nullable=False, default=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)

    __table_args__ = (
        CheckConstraint(
            "is_all_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name="ck_blocked_intervals_timed",
        ),
    )

    @property
    def interval(self) -> Optional[TimeInterval]:
        """Blocked interval, or None when the whole day is blocked."""
        if self.is_all_day or self.start_time is None or self.end_time is None:
            return None
        return TimeInterval(self.start_time, self.end_time)

    def __repr__(self) -> str:
        span = "all day" if self.is_all_day else f"{self.start_time}-{self.end_time}"
        return f"<BlockedInterval {self.date} {span} - {self.reason or 'No reason'}>"


class ExtraSlot(Base):
    """One-off bookable window outside the weekly template."""

    __tablename__ = "extra_slots"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    reason = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utc_now)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_extra_slots_time_order"),
    )

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    def __repr__(self) -> str:
        return f"<ExtraSlot {self.date} {self.start_time}-{self.end_time}>"
