# backend/app/services/schedule_service.py
"""
Schedule administration for the DriveBook reservation engine.

Validated CRUD for weekly templates, blocked intervals and extra slots, plus
copying one weekday's templates onto other weekdays. Plain persistence: the
resolver reads the stores directly, so there is no cache to invalidate.
"""

from datetime import date, time
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.exceptions import NotFoundException, ValidationException
from ..domain.intervals import TimeInterval, overlaps
from ..models.schedule import BlockedInterval, ExtraSlot, ScheduleTemplate
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

# Tuesday..Friday with 0 = Sunday
DEFAULT_COPY_TARGET_DAYS = (2, 3, 4, 5)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

TimeLike = Union[str, time]


def _validate_day_of_week(day_of_week: int) -> int:
    if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
        raise ValidationException(
            "day_of_week must be between 0 (Sunday) and 6 (Saturday)",
            code="INVALID_DAY_OF_WEEK",
            details={"day_of_week": day_of_week},
        )
    return day_of_week


class ScheduleService(BaseService):
    """Admin operations on templates, blocks and extra slots."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, settings=settings, clock=clock)
        self.schedule_repository = RepositoryFactory.create_schedule_repository(db)
        self.blocked_repository = RepositoryFactory.create_base_repository(db, BlockedInterval)
        self.extra_repository = RepositoryFactory.create_base_repository(db, ExtraSlot)

    # Templates

    def list_templates(self, include_inactive: bool = True) -> List[ScheduleTemplate]:
        return self.schedule_repository.list_templates(include_inactive=include_inactive)

    @BaseService.measure_operation("create_template")
    def create_template(
        self,
        day_of_week: int,
        start_time: TimeLike,
        end_time: TimeLike,
        is_active: bool = True,
    ) -> ScheduleTemplate:
        _validate_day_of_week(day_of_week)
        interval = TimeInterval.of(start_time, end_time)
        with self.transaction():
            template = self.schedule_repository.create(
                day_of_week=day_of_week,
                start_time=interval.start,
                end_time=interval.end,
                is_active=is_active,
                created_at=self.now(),
            )
        self.logger.info(f"Created template {template.id} {DAY_NAMES[day_of_week]} {interval}")
        return template

    @BaseService.measure_operation("update_template")
    def update_template(self, template_id: str, **changes: Any) -> ScheduleTemplate:
        """Update day, times or active flag; the resulting interval is re-validated."""
        with self.transaction():
            template = self.schedule_repository.get_by_id(template_id)
            if template is None:
                raise NotFoundException(
                    "Schedule template not found",
                    code="TEMPLATE_NOT_FOUND",
                    details={"template_id": template_id},
                )
            if changes.get("day_of_week") is not None:
                template.day_of_week = _validate_day_of_week(changes["day_of_week"])
            interval = TimeInterval.of(
                changes.get("start_time") or template.start_time,
                changes.get("end_time") or template.end_time,
            )
            template.start_time = interval.start
            template.end_time = interval.end
            if changes.get("is_active") is not None:
                template.is_active = bool(changes["is_active"])
            template.updated_at = self.now()
            self.db.flush()
        return template

    @BaseService.measure_operation("delete_template")
    def delete_template(self, template_id: str) -> None:
        with self.transaction():
            if not self.schedule_repository.delete(template_id):
                raise NotFoundException(
                    "Schedule template not found",
                    code="TEMPLATE_NOT_FOUND",
                    details={"template_id": template_id},
                )

    @BaseService.measure_operation("copy_templates")
    def copy_templates(
        self, source_day: int = 1, target_days: Optional[Iterable[int]] = None
    ) -> Dict[str, Any]:
        """
        Copy the active templates of ``source_day`` onto ``target_days``.

        A target day that already has any template (active or not) is
        skipped; the source day itself is never a target.
        """
        _validate_day_of_week(source_day)
        targets = list(DEFAULT_COPY_TARGET_DAYS if target_days is None else target_days)
        for day in targets:
            _validate_day_of_week(day)

        results: List[Dict[str, Any]] = []
        copied = 0
        with self.transaction():
            source = self.schedule_repository.templates_for(source_day)
            if not source:
                return {
                    "source_day": source_day,
                    "source_day_name": DAY_NAMES[source_day],
                    "templates_copied": 0,
                    "results": [],
                    "message": "No active templates found for the source day",
                }
            now = self.now()
            for day in sorted(set(targets)):
                if day == source_day:
                    continue
                existing = self.schedule_repository.all_templates_for_day(day)
                if existing:
                    results.append(
                        {
                            "day": day,
                            "day_name": DAY_NAMES[day],
                            "status": "skipped",
                            "existing": len(existing),
                        }
                    )
                    continue
                for template in source:
                    self.schedule_repository.create(
                        day_of_week=day,
                        start_time=template.start_time,
                        end_time=template.end_time,
                        is_active=template.is_active,
                        created_at=now,
                    )
                copied += len(source)
                results.append(
                    {
                        "day": day,
                        "day_name": DAY_NAMES[day],
                        "status": "copied",
                        "copied": len(source),
                    }
                )

        self.logger.info(f"Copied {copied} template(s) from {DAY_NAMES[source_day]}")
        return {
            "source_day": source_day,
            "source_day_name": DAY_NAMES[source_day],
            "templates_copied": copied,
            "results": results,
        }

    # Blocked intervals

    def list_blocked(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[BlockedInterval]:
        if start_date and end_date:
            grouped = self.schedule_repository.blocked_between(start_date, end_date)
            return [block for day in sorted(grouped) for block in grouped[day]]
        if start_date:
            return self.schedule_repository.blocked_for(start_date)
        return self.schedule_repository.all_blocked()

    @BaseService.measure_operation("create_blocked_interval")
    def create_blocked(
        self,
        target_date: date,
        start_time: Optional[TimeLike] = None,
        end_time: Optional[TimeLike] = None,
        is_all_day: bool = False,
        reason: Optional[str] = None,
    ) -> BlockedInterval:
        """
        Block a whole date or a time range on it.

        A timed block may not overlap another block on the same date, and
        nothing may be added next to an all-day block.
        """
        interval: Optional[TimeInterval] = None
        if not is_all_day:
            if start_time is None or end_time is None:
                raise ValidationException(
                    "start_time and end_time are required unless the block is all-day",
                    code="MISSING_BLOCK_TIMES",
                )
            interval = TimeInterval.of(start_time, end_time)

        with self.transaction():
            for existing in self.schedule_repository.blocked_for(target_date):
                if existing.is_all_day or is_all_day:
                    raise ValidationException(
                        "Conflicts with an existing all-day block on this date"
                        if existing.is_all_day
                        else "An all-day block cannot be added to a date that has blocks",
                        code="BLOCK_OVERLAP",
                        details={"date": target_date.isoformat(), "existing_id": existing.id},
                    )
                if interval is not None and existing.interval is not None:
                    if overlaps(interval, existing.interval):
                        raise ValidationException(
                            f"Time overlaps with existing blocked interval {existing.interval}",
                            code="BLOCK_OVERLAP",
                            details={"date": target_date.isoformat(), "existing_id": existing.id},
                        )
            block = self.blocked_repository.create(
                date=target_date,
                start_time=interval.start if interval else None,
                end_time=interval.end if interval else None,
                is_all_day=is_all_day,
                reason=reason,
                created_at=self.now(),
            )
        self.logger.info(
            f"Blocked {target_date} {'all day' if is_all_day else interval} ({reason or 'no reason'})"
        )
        return block

    @BaseService.measure_operation("delete_blocked_interval")
    def delete_blocked(self, blocked_id: str) -> None:
        with self.transaction():
            if not self.blocked_repository.delete(blocked_id):
                raise NotFoundException(
                    "Blocked interval not found",
                    code="BLOCKED_INTERVAL_NOT_FOUND",
                    details={"blocked_id": blocked_id},
                )

    # Extra slots

    def list_extra(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[ExtraSlot]:
        if start_date and end_date:
            grouped = self.schedule_repository.extras_between(start_date, end_date)
            return [extra for day in sorted(grouped) for extra in grouped[day]]
        if start_date:
            return self.schedule_repository.extra_for(start_date)
        return self.schedule_repository.all_extra()

    @BaseService.measure_operation("create_extra_slot")
    def create_extra(
        self,
        target_date: date,
        start_time: TimeLike,
        end_time: TimeLike,
        reason: Optional[str] = None,
    ) -> ExtraSlot:
        interval = TimeInterval.of(start_time, end_time)
        with self.transaction():
            extra = self.extra_repository.create(
                date=target_date,
                start_time=interval.start,
                end_time=interval.end,
                reason=reason,
                created_at=self.now(),
            )
        self.logger.info(f"Added extra slot {target_date} {interval}")
        return extra

    @BaseService.measure_operation("delete_extra_slot")
    def delete_extra(self, extra_id: str) -> None:
        with self.transaction():
            if not self.extra_repository.delete(extra_id):
                raise NotFoundException(
                    "Extra slot not found",
                    code="EXTRA_SLOT_NOT_FOUND",
                    details={"extra_id": extra_id},
                )
