# backend/app/repositories/reservation_repository.py
"""
Reservation Repository for the DriveBook reservation engine.

Every "active" reader takes ``now`` and excludes HOLD rows whose
``expires_at`` has passed, so an unreaped expired hold never occupies a
window or a seat.

Write-side helpers used by admission:
- lock_day: insert-if-missing then SELECT ... FOR UPDATE on the per-day row
- get_for_update: row-lock a single reservation for a transition
- lock_expired_holds / lock_expired_pending: re-read expiry candidates under lock
"""

from collections import defaultdict
from datetime import date, datetime
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, delete, func, insert, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ReservationKind, ReservationStatus
from ..core.exceptions import RepositoryException
from ..domain.intervals import TimeInterval
from ..models.reservation import Reservation, ScheduleDayLock
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_ACTIVE_VALUES = [status.value for status in ReservationStatus.active()]


class ReservationRepository(BaseRepository[Reservation]):
    """Data access for reservations and their admission locks."""

    def __init__(self, db: Session):
        super().__init__(db, Reservation)
        self.logger = logging.getLogger(__name__)

    # Filters

    @staticmethod
    def _active_filter(now: datetime):
        """Active statuses, minus holds that have already expired."""
        return and_(
            Reservation.status.in_(_ACTIVE_VALUES),
            or_(
                Reservation.status != ReservationStatus.HOLD.value,
                Reservation.expires_at >= now,
            ),
        )

    @staticmethod
    def _expired_hold_filter(now: datetime):
        return and_(
            Reservation.status == ReservationStatus.HOLD.value,
            Reservation.expires_at < now,
        )

    @staticmethod
    def _expired_pending_filter(now: datetime):
        return and_(
            Reservation.status == ReservationStatus.PENDING_CONFIRMATION.value,
            Reservation.expires_at.isnot(None),
            Reservation.expires_at < now,
        )

    @staticmethod
    def _overlap_filter(interval: TimeInterval):
        # Half-open: touching endpoints do not overlap
        return and_(Reservation.start_time < interval.end, Reservation.end_time > interval.start)

    # Read side

    def active_reservations_for(self, target_date: date, now: datetime) -> List[Reservation]:
        """Every active reservation of either kind on ``target_date``."""
        return self._execute_query(
            self._build_query()
            .filter(Reservation.reservation_date == target_date, self._active_filter(now))
            .order_by(Reservation.start_time, Reservation.id)
        )

    def active_one_to_one_for(
        self, resource_key: str, target_date: date, now: datetime
    ) -> List[Reservation]:
        return self._execute_query(
            self._build_query()
            .filter(
                Reservation.resource_key == resource_key,
                Reservation.reservation_date == target_date,
                Reservation.kind == ReservationKind.ONE_TO_ONE.value,
                self._active_filter(now),
            )
            .order_by(Reservation.start_time)
        )

    def active_one_to_one_between(
        self, resource_key: str, start_date: date, end_date: date, now: datetime
    ) -> Dict[date, List[Reservation]]:
        """All active one-to-one reservations in the range, grouped by date."""
        rows = self._execute_query(
            self._build_query()
            .filter(
                Reservation.resource_key == resource_key,
                Reservation.reservation_date >= start_date,
                Reservation.reservation_date <= end_date,
                Reservation.kind == ReservationKind.ONE_TO_ONE.value,
                self._active_filter(now),
            )
            .order_by(Reservation.reservation_date, Reservation.start_time)
        )
        grouped: Dict[date, List[Reservation]] = defaultdict(list)
        for row in rows:
            grouped[row.reservation_date].append(row)
        return grouped

    def active_one_to_one_on_dates(
        self, resource_key: str, dates: Iterable[date], now: datetime
    ) -> Dict[date, List[Reservation]]:
        wanted = sorted(set(dates))
        grouped: Dict[date, List[Reservation]] = defaultdict(list)
        if not wanted:
            return grouped
        rows = self._execute_query(
            self._build_query().filter(
                Reservation.resource_key == resource_key,
                Reservation.reservation_date.in_(wanted),
                Reservation.kind == ReservationKind.ONE_TO_ONE.value,
                self._active_filter(now),
            )
        )
        for row in rows:
            grouped[row.reservation_date].append(row)
        return grouped

    def first_overlapping_active(
        self, resource_key: str, target_date: date, interval: TimeInterval, now: datetime
    ) -> Optional[Reservation]:
        """First active one-to-one reservation overlapping ``interval``, if any."""
        try:
            return (
                self._build_query()
                .filter(
                    Reservation.resource_key == resource_key,
                    Reservation.reservation_date == target_date,
                    Reservation.kind == ReservationKind.ONE_TO_ONE.value,
                    self._active_filter(now),
                    self._overlap_filter(interval),
                )
                .order_by(Reservation.start_time)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking overlap on {target_date}: {str(e)}")
            raise RepositoryException(f"Failed to check overlap: {str(e)}")

    def claimed_counts_by_session(self) -> Dict[str, int]:
        """
        Uncancelled reservation count per group session.

        Includes expired holds not yet reaped: the session counter keeps those
        seats until the reaper deletes the row and decrements it.
        """
        rows = self._execute_query(
            self.db.query(Reservation.session_id, func.count(Reservation.id))
            .filter(
                Reservation.kind == ReservationKind.GROUP_SESSION.value,
                Reservation.status.in_(_ACTIVE_VALUES),
            )
            .group_by(Reservation.session_id)
        )
        return {session_id: count for session_id, count in rows}

    def expired_counts_by_session(
        self, session_ids: Iterable[str], now: datetime
    ) -> Dict[str, int]:
        """Expired-but-unreaped group holds per session, still included in the counters."""
        wanted = sorted(set(session_ids))
        if not wanted:
            return {}
        rows = self._execute_query(
            self.db.query(Reservation.session_id, func.count(Reservation.id))
            .filter(Reservation.session_id.in_(wanted), self._expired_hold_filter(now))
            .group_by(Reservation.session_id)
        )
        return {session_id: count for session_id, count in rows}

    def get_for_update(self, reservation_id: str) -> Optional[Reservation]:
        locked = self._lock_rows([reservation_id])
        return locked[0] if locked else None

    # Admission lock

    def lock_day(self, resource_key: str, target_date: date, now: datetime) -> ScheduleDayLock:
        """
        Take the exclusive per-day admission lock.

        The row is created on first use; concurrent creators collapse onto the
        same primary key. On SQLite the write itself serialises writers.
        """
        values = {"resource_key": resource_key, "lock_date": target_date, "last_locked_at": now}
        dialect = self.dialect_name
        if dialect == "postgresql":
            stmt = pg_insert(ScheduleDayLock).values(**values).on_conflict_do_nothing(
                index_elements=["resource_key", "lock_date"]
            )
        elif dialect == "sqlite":
            stmt = sqlite_insert(ScheduleDayLock).values(**values).on_conflict_do_nothing(
                index_elements=["resource_key", "lock_date"]
            )
        else:
            stmt = insert(ScheduleDayLock).values(**values).prefix_with("IGNORE")

        self.db.execute(stmt)
        lock = (
            self.db.query(ScheduleDayLock)
            .filter(
                ScheduleDayLock.resource_key == resource_key,
                ScheduleDayLock.lock_date == target_date,
            )
            .with_for_update()
            .one()
        )
        lock.last_locked_at = now
        self.db.flush()
        return lock

    # Expiry
    #
    # Candidates are read without locks. Callers lock the owning sessions
    # first, then re-read the candidates with lock_expired_holds or
    # lock_expired_pending, so every writer takes session rows before
    # reservation rows.

    def expired_overlapping_holds(
        self, resource_key: str, target_date: date, interval: TimeInterval, now: datetime
    ) -> List[Reservation]:
        """Expired one-to-one holds under ``interval``; rows the reaper has locked are skipped."""
        query = self._build_query().filter(
            Reservation.resource_key == resource_key,
            Reservation.reservation_date == target_date,
            Reservation.kind == ReservationKind.ONE_TO_ONE.value,
            self._expired_hold_filter(now),
            self._overlap_filter(interval),
        )
        if self.is_postgres:
            query = query.populate_existing().with_for_update(skip_locked=True)
        return self._execute_query(query)

    def expired_holds(self, now: datetime, limit: Optional[int] = None) -> List[Reservation]:
        """Expired HOLD rows of either kind, oldest first."""
        query = (
            self._build_query()
            .filter(self._expired_hold_filter(now))
            .order_by(Reservation.expires_at, Reservation.id)
        )
        if limit:
            query = query.limit(limit)
        return self._execute_query(query)

    def lock_expired_holds(
        self, reservation_ids: Iterable[str], now: datetime
    ) -> List[Reservation]:
        """Lock the given rows that are still expired holds."""
        return self._lock_rows(reservation_ids, self._expired_hold_filter(now), skip_locked=True)

    def expired_holds_for_session(self, session_id: str, now: datetime) -> List[Reservation]:
        query = self._build_query().filter(
            Reservation.session_id == session_id,
            self._expired_hold_filter(now),
        )
        if self.is_postgres:
            query = query.populate_existing().with_for_update(skip_locked=True)
        return self._execute_query(query)

    def expired_pending(self, now: datetime, limit: Optional[int] = None) -> List[Reservation]:
        """PENDING_CONFIRMATION rows whose confirmation deadline has passed."""
        query = (
            self._build_query()
            .filter(self._expired_pending_filter(now))
            .order_by(Reservation.expires_at, Reservation.id)
        )
        if limit:
            query = query.limit(limit)
        return self._execute_query(query)

    def lock_expired_pending(
        self, reservation_ids: Iterable[str], now: datetime
    ) -> List[Reservation]:
        return self._lock_rows(reservation_ids, self._expired_pending_filter(now), skip_locked=True)

    def purge_cancelled_before(self, cutoff: datetime) -> int:
        """Delete never-confirmed CANCELLED rows cancelled before ``cutoff``."""
        try:
            result = self.db.execute(
                delete(Reservation)
                .where(
                    Reservation.status == ReservationStatus.CANCELLED.value,
                    Reservation.confirmed_at.is_(None),
                    Reservation.cancelled_at < cutoff,
                )
                .execution_options(synchronize_session=False)
            )
            self.db.flush()
            return int(result.rowcount or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error purging cancelled reservations: {str(e)}")
            raise RepositoryException(f"Failed to purge cancelled reservations: {str(e)}")

    def status_counts(self, now: datetime) -> Dict[str, int]:
        """Row counts per status plus the expired-hold and expired-pending backlog."""
        counts: Dict[str, int] = {status.value: 0 for status in ReservationStatus}
        for status_value, count in self._execute_query(
            self.db.query(Reservation.status, func.count(Reservation.id)).group_by(
                Reservation.status
            )
        ):
            counts[status_value] = count
        counts["EXPIRED_HOLD"] = (
            self._execute_scalar(
                self.db.query(func.count(Reservation.id)).filter(self._expired_hold_filter(now))
            )
            or 0
        )
        counts["EXPIRED_PENDING"] = (
            self._execute_scalar(
                self.db.query(func.count(Reservation.id)).filter(
                    self._expired_pending_filter(now)
                )
            )
            or 0
        )
        return counts

    def delete_rows(self, reservations: Iterable[Reservation]) -> int:
        removed = 0
        try:
            for reservation in reservations:
                self.db.delete(reservation)
                removed += 1
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting reservations: {str(e)}")
            raise RepositoryException(f"Failed to delete reservations: {str(e)}")
        return removed
