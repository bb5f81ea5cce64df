# backend/app/services/hold_reaper.py
"""
Hold Reaper for the DriveBook reservation engine.

Periodic release of reservations that ran out of time:

1. Expired HOLD rows are deleted; group seats are handed back to the session
   counter in the same transaction (floored at zero).
2. PENDING_CONFIRMATION rows past their deadline are cancelled (reason
   ``expired``), releasing group seats.
3. CANCELLED rows that were never confirmed are purged once they are older
   than the retention period. Confirmed-then-cancelled rows stay as history.

Readers already ignore expired holds, so reaping only reclaims rows; running
it twice in a row releases nothing the second time.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.enums import ReservationKind, ReservationStatus
from ..events import EventPublisher, ReservationExpired
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

EXPIRED_REASON = "expired"


@dataclass
class ReapReport:
    """What one reaper run released."""

    released_one_to_one: int = 0
    released_group_slots: int = 0
    expired_pending: int = 0
    purged_cancelled: int = 0

    @property
    def total(self) -> int:
        return (
            self.released_one_to_one
            + self.released_group_slots
            + self.expired_pending
            + self.purged_cancelled
        )

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class CapacityCorrection:
    session_id: str
    recorded: int
    actual: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class HoldReaper(BaseService):
    """Releases expired holds and stale cancellations."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, settings=settings, clock=clock)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.group_session_repository = RepositoryFactory.create_group_session_repository(db)
        self.event_publisher = EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    @BaseService.measure_operation("reap_expired")
    def reap(self, now: Optional[datetime] = None) -> ReapReport:
        current = now or self.now()
        report = ReapReport()

        with self.transaction():
            self._release_expired_holds(current, report)
            self._expire_pending(current, report)
            cutoff = current - timedelta(minutes=self.settings.cancelled_retention_minutes)
            report.purged_cancelled = self.reservation_repository.purge_cancelled_before(cutoff)

        prometheus_metrics.record_reaper_release("one_to_one_hold", report.released_one_to_one)
        prometheus_metrics.record_reaper_release("group_hold", report.released_group_slots)
        prometheus_metrics.record_reaper_release("pending_expired", report.expired_pending)
        prometheus_metrics.record_reaper_release("cancelled_purged", report.purged_cancelled)

        if report.total:
            self.logger.info(f"Reaper released {report.to_dict()} at {current.isoformat()}")
        else:
            self.logger.debug("Reaper found nothing to release")
        return report

    @BaseService.measure_operation("reaper_stats")
    def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Backlog counts for operators; read-only."""
        current = now or self.now()
        counts = self.reservation_repository.status_counts(current)
        cutoff = current - timedelta(minutes=self.settings.cancelled_retention_minutes)
        return {
            "now": current.isoformat(),
            "holds": counts[ReservationStatus.HOLD.value],
            "expired_holds": counts["EXPIRED_HOLD"],
            "pending_confirmation": counts[ReservationStatus.PENDING_CONFIRMATION.value],
            "expired_pending": counts["EXPIRED_PENDING"],
            "confirmed": counts[ReservationStatus.CONFIRMED.value],
            "cancelled": counts[ReservationStatus.CANCELLED.value],
            "cancelled_retention_cutoff": cutoff.isoformat(),
            "hold_ttl_minutes": self.settings.hold_ttl_minutes,
        }

    @BaseService.measure_operation("reconcile_capacity")
    def reconcile_capacity(self, now: Optional[datetime] = None) -> List[CapacityCorrection]:
        """
        Recompute every session counter from its uncancelled reservations.

        Session rows are locked in id order; the recount happens under those
        locks so concurrent admissions cannot interleave.
        """
        current = now or self.now()
        corrections: List[CapacityCorrection] = []

        with self.transaction():
            sessions = self.group_session_repository.lock_many(
                session.id for session in self.group_session_repository.all_sessions()
            )
            actual_counts = self.reservation_repository.claimed_counts_by_session()
            for session in sessions:
                actual = min(actual_counts.get(session.id, 0), session.max_participants)
                recorded = session.current_participants or 0
                if recorded != actual:
                    corrections.append(
                        CapacityCorrection(session_id=session.id, recorded=recorded, actual=actual)
                    )
                    session.current_participants = actual
                    session.updated_at = current
            self.db.flush()

        for correction in corrections:
            self.logger.warning(
                f"Corrected participant counter on session {correction.session_id}: "
                f"{correction.recorded} -> {correction.actual}"
            )
        return corrections

    # Internals
    #
    # Lock order matches admission and cancellation: session rows first, then
    # the reservation rows, which are re-read so anything admission already
    # removed or a user already confirmed drops out.

    def _release_expired_holds(self, now: datetime, report: ReapReport) -> None:
        candidates = self.reservation_repository.expired_holds(now)
        if not candidates:
            return

        sessions = {
            session.id: session
            for session in self.group_session_repository.lock_many(
                reservation.session_id for reservation in candidates if reservation.session_id
            )
        }
        expired = self.reservation_repository.lock_expired_holds(
            (reservation.id for reservation in candidates), now
        )

        for reservation in expired:
            if reservation.kind == ReservationKind.GROUP_SESSION:
                session = sessions.get(reservation.session_id)
                if session is not None:
                    session.release_participant(now)
                report.released_group_slots += 1
            else:
                report.released_one_to_one += 1
            self.event_publisher.publish(ReservationExpired.from_reservation(reservation, now))
        self.reservation_repository.delete_rows(expired)

    def _expire_pending(self, now: datetime, report: ReapReport) -> None:
        candidates = self.reservation_repository.expired_pending(now)
        if not candidates:
            return

        sessions = {
            session.id: session
            for session in self.group_session_repository.lock_many(
                reservation.session_id for reservation in candidates if reservation.session_id
            )
        }
        overdue = self.reservation_repository.lock_expired_pending(
            (reservation.id for reservation in candidates), now
        )
        for reservation in overdue:
            previous_status = reservation.status
            reservation.cancel(EXPIRED_REASON, now)
            if reservation.session_id and reservation.session_id in sessions:
                sessions[reservation.session_id].release_participant(now)
            self.event_publisher.publish(
                ReservationExpired.from_reservation(reservation, now, previous_status)
            )
            report.expired_pending += 1
        self.db.flush()
