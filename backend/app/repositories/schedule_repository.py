# backend/app/repositories/schedule_repository.py
"""
Schedule Repository for the DriveBook reservation engine.

Read side of the weekly templates and the per-date exceptions (blocked
intervals and extra slots). Range readers load a whole date range with one
query per table so the resolver never issues a query per date.
"""

from collections import defaultdict
from datetime import date
import logging
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from ..models.schedule import BlockedInterval, ExtraSlot, ScheduleTemplate
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ScheduleRepository(BaseRepository[ScheduleTemplate]):
    """Templates plus exception lookups keyed by date."""

    def __init__(self, db: Session):
        """Initialize with ScheduleTemplate model as primary."""
        super().__init__(db, ScheduleTemplate)
        self.logger = logging.getLogger(__name__)

    # Templates

    def templates_for(self, day_of_week: int) -> List[ScheduleTemplate]:
        """Active templates for one weekday (0 = Sunday)."""
        return self._execute_query(
            self._build_query()
            .filter(
                ScheduleTemplate.day_of_week == day_of_week,
                ScheduleTemplate.is_active.is_(True),
            )
            .order_by(ScheduleTemplate.start_time)
        )

    def templates_for_days(self, days_of_week: Iterable[int]) -> Dict[int, List[ScheduleTemplate]]:
        """Active templates grouped by weekday, one query."""
        wanted = sorted(set(days_of_week))
        grouped: Dict[int, List[ScheduleTemplate]] = defaultdict(list)
        if not wanted:
            return grouped
        rows = self._execute_query(
            self._build_query()
            .filter(
                ScheduleTemplate.day_of_week.in_(wanted),
                ScheduleTemplate.is_active.is_(True),
            )
            .order_by(ScheduleTemplate.day_of_week, ScheduleTemplate.start_time)
        )
        for template in rows:
            grouped[template.day_of_week].append(template)
        return grouped

    def list_templates(self, include_inactive: bool = True) -> List[ScheduleTemplate]:
        query = self._build_query()
        if not include_inactive:
            query = query.filter(ScheduleTemplate.is_active.is_(True))
        return self._execute_query(
            query.order_by(ScheduleTemplate.day_of_week, ScheduleTemplate.start_time)
        )

    def all_templates_for_day(self, day_of_week: int) -> List[ScheduleTemplate]:
        """Every template of a weekday, active or not."""
        return self._execute_query(
            self._build_query().filter(ScheduleTemplate.day_of_week == day_of_week)
        )

    # Blocked intervals

    def blocked_for(self, target_date: date) -> List[BlockedInterval]:
        return self._execute_query(
            self.db.query(BlockedInterval)
            .filter(BlockedInterval.date == target_date)
            .order_by(BlockedInterval.start_time.asc().nulls_first())
        )

    def all_blocked(self) -> List[BlockedInterval]:
        """Every blocked interval, by date; all-day blocks lead their date."""
        return self._execute_query(
            self.db.query(BlockedInterval).order_by(
                BlockedInterval.date, BlockedInterval.start_time.asc().nulls_first()
            )
        )

    def blocked_between(self, start_date: date, end_date: date) -> Dict[date, List[BlockedInterval]]:
        rows = self._execute_query(
            self.db.query(BlockedInterval)
            .filter(BlockedInterval.date >= start_date, BlockedInterval.date <= end_date)
            .order_by(BlockedInterval.date, BlockedInterval.start_time.asc().nulls_first())
        )
        grouped: Dict[date, List[BlockedInterval]] = defaultdict(list)
        for row in rows:
            grouped[row.date].append(row)
        return grouped

    def blocked_on_dates(self, dates: Iterable[date]) -> Dict[date, List[BlockedInterval]]:
        wanted = sorted(set(dates))
        grouped: Dict[date, List[BlockedInterval]] = defaultdict(list)
        if not wanted:
            return grouped
        for row in self._execute_query(
            self.db.query(BlockedInterval).filter(BlockedInterval.date.in_(wanted))
        ):
            grouped[row.date].append(row)
        return grouped

    # Extra slots

    def extra_for(self, target_date: date) -> List[ExtraSlot]:
        return self._execute_query(
            self.db.query(ExtraSlot)
            .filter(ExtraSlot.date == target_date)
            .order_by(ExtraSlot.start_time)
        )

    def all_extra(self) -> List[ExtraSlot]:
        return self._execute_query(
            self.db.query(ExtraSlot).order_by(ExtraSlot.date, ExtraSlot.start_time)
        )

    def extras_between(self, start_date: date, end_date: date) -> Dict[date, List[ExtraSlot]]:
        rows = self._execute_query(
            self.db.query(ExtraSlot)
            .filter(ExtraSlot.date >= start_date, ExtraSlot.date <= end_date)
            .order_by(ExtraSlot.date, ExtraSlot.start_time)
        )
        grouped: Dict[date, List[ExtraSlot]] = defaultdict(list)
        for row in rows:
            grouped[row.date].append(row)
        return grouped

    def extras_on_dates(self, dates: Iterable[date]) -> Dict[date, List[ExtraSlot]]:
        wanted = sorted(set(dates))
        grouped: Dict[date, List[ExtraSlot]] = defaultdict(list)
        if not wanted:
            return grouped
        for row in self._execute_query(self.db.query(ExtraSlot).filter(ExtraSlot.date.in_(wanted))):
            grouped[row.date].append(row)
        return grouped
