# backend/app/schemas/schedule.py
"""
Schedule administration schemas: weekly templates, blocked intervals and
extra slots.
"""

import datetime
from typing import Any, List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from ..services.schedule_service import DAY_NAMES
from .base import StandardizedModel, StrictRequestModel, hhmm

DateType = datetime.date
TimeType = datetime.time
DateTimeType = datetime.datetime


def _check_time_order(v: Optional[TimeType], info: Any) -> Optional[TimeType]:
    if (
        v
        and isinstance(getattr(info, "data", None), dict)
        and info.data.get("start_time")
        and v <= info.data["start_time"]
    ):
        raise ValueError("End time must be after start time")
    return v


class ScheduleTemplateCreate(StrictRequestModel):
    """Weekly window. day_of_week: 0 = Sunday ... 6 = Saturday."""

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: TimeType
    end_time: TimeType
    is_active: bool = True

    @field_validator("end_time")
    @classmethod
    def validate_time_order(cls, v: TimeType, info: Any) -> TimeType:
        """Ensure end time is after start time."""
        return _check_time_order(v, info)


class ScheduleTemplateUpdate(StrictRequestModel):
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[TimeType] = None
    end_time: Optional[TimeType] = None
    is_active: Optional[bool] = None

    @field_validator("end_time")
    @classmethod
    def validate_time_order(cls, v: Optional[TimeType], info: Any) -> Optional[TimeType]:
        """Ensure end time is after start time if both provided."""
        return _check_time_order(v, info)


class ScheduleTemplateResponse(StandardizedModel):
    id: str
    day_of_week: int
    day_name: str
    start_time: str
    end_time: str
    is_active: bool

    @classmethod
    def from_model(cls, template) -> "ScheduleTemplateResponse":
        return cls(
            id=template.id,
            day_of_week=template.day_of_week,
            day_name=DAY_NAMES[template.day_of_week],
            start_time=hhmm(template.start_time),
            end_time=hhmm(template.end_time),
            is_active=bool(template.is_active),
        )


class CopyTemplatesRequest(StrictRequestModel):
    """Copy one weekday's templates; targets default to Tuesday..Friday."""

    source_day: int = Field(1, ge=0, le=6)
    target_days: Optional[List[int]] = None

    @field_validator("target_days")
    @classmethod
    def validate_target_days(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is not None and any(day < 0 or day > 6 for day in v):
            raise ValueError("target_days must be between 0 (Sunday) and 6 (Saturday)")
        return v


class CopyDayResult(StandardizedModel):
    day: int
    day_name: str
    status: str
    copied: Optional[int] = None
    existing: Optional[int] = None


class CopyTemplatesResponse(StandardizedModel):
    source_day: int
    source_day_name: str
    templates_copied: int
    results: List[CopyDayResult] = Field(default_factory=list)
    message: Optional[str] = None


class BlockedIntervalCreate(StrictRequestModel):
    """Block a whole date (``is_all_day``) or a time range on it."""

    date: DateType
    start_time: Optional[TimeType] = None
    end_time: Optional[TimeType] = None
    is_all_day: bool = False
    reason: Optional[str] = Field(None, max_length=255)

    @field_validator("end_time")
    @classmethod
    def validate_time_order(cls, v: Optional[TimeType], info: Any) -> Optional[TimeType]:
        return _check_time_order(v, info)

    @model_validator(mode="after")
    def validate_span(self) -> "BlockedIntervalCreate":
        if not self.is_all_day and (self.start_time is None or self.end_time is None):
            raise ValueError("start_time and end_time are required unless is_all_day is set")
        return self


class BlockedIntervalResponse(StandardizedModel):
    id: str
    date: DateType
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_all_day: bool
    reason: Optional[str] = None
    created_at: DateTimeType

    @classmethod
    def from_model(cls, block) -> "BlockedIntervalResponse":
        return cls(
            id=block.id,
            date=block.date,
            start_time=hhmm(block.start_time),
            end_time=hhmm(block.end_time),
            is_all_day=bool(block.is_all_day),
            reason=block.reason,
            created_at=block.created_at,
        )


class ExtraSlotCreate(StrictRequestModel):
    date: DateType
    start_time: TimeType
    end_time: TimeType
    reason: Optional[str] = Field(None, max_length=255)

    @field_validator("end_time")
    @classmethod
    def validate_time_order(cls, v: TimeType, info: Any) -> TimeType:
        return _check_time_order(v, info)


class ExtraSlotResponse(StandardizedModel):
    id: str
    date: DateType
    start_time: str
    end_time: str
    reason: Optional[str] = None
    created_at: DateTimeType

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)

    @classmethod
    def from_model(cls, extra) -> "ExtraSlotResponse":
        return cls(
            id=extra.id,
            date=extra.date,
            start_time=hhmm(extra.start_time),
            end_time=hhmm(extra.end_time),
            reason=extra.reason,
            created_at=extra.created_at,
        )
