# backend/app/services/admission_controller.py
"""
Reservation Admission Controller for the DriveBook reservation engine.

The only code path that creates active reservations. Every admission runs in
a single transaction:

One-to-one:
    1. Lock the (resource_key, date) day row
    2. Reject blocked dates/intervals and intervals outside opening hours
    3. Reject windows inside the lead time (when enforced)
    4. Delete expired holds overlapping the window
    5. Re-check overlap against active one-to-one reservations
    6. Insert the reservation and its ReservationCreated event

Group session:
    1. Lock the session row
    2. Reject missing, inactive or blocked sessions
    3. Release expired holds on the session
    4. Claim a seat with one conditional counter update
    5. Insert the reservation and its ReservationCreated event

A store failure rolls everything back; nothing is retried unchecked.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging
from typing import Optional, Union

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.enums import AvailabilityReason, ReservationKind, ReservationStatus
from ..core.exceptions import (
    CapacityExceededException,
    NotFoundException,
    ReservationConflictException,
    StoreUnavailableException,
    ValidationException,
)
from ..domain.intervals import TimeInterval, any_overlap, covers
from ..events import EventPublisher, ReservationCreated, ReservationExpired
from ..models.group_session import GroupSession
from ..models.reservation import Reservation
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .availability_resolver import day_of_week_for, window_start_utc
from .base import BaseService, Clock

logger = logging.getLogger(__name__)

_ADMISSIBLE_STATUSES = (ReservationStatus.HOLD, ReservationStatus.PENDING_CONFIRMATION)

_OUTCOME_BY_REASON = {
    AvailabilityReason.BLOCKED: "blocked",
    AvailabilityReason.RESERVED: "conflict",
    AvailabilityReason.WITHIN_LEAD_TIME: "lead_time",
}


@dataclass(frozen=True)
class ParticipantInfo:
    """Contact snapshot stored on the reservation."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ReservationAdmissionController(BaseService):
    """Admits new reservations atomically or rejects them with the blocking window."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, settings=settings, clock=clock)
        self.schedule_repository = RepositoryFactory.create_schedule_repository(db)
        self.reservation_repository = RepositoryFactory.create_reservation_repository(db)
        self.group_session_repository = RepositoryFactory.create_group_session_repository(db)
        self.event_publisher = EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )
        self._tz = pytz.timezone(self.settings.schedule_timezone)

    @BaseService.measure_operation("admit_reservation")
    def admit(
        self,
        reservation_date: Optional[date],
        interval: Optional[TimeInterval],
        kind: Union[ReservationKind, str] = ReservationKind.ONE_TO_ONE,
        session_id: Optional[str] = None,
        *,
        participant: Optional[ParticipantInfo] = None,
        initial_status: Union[ReservationStatus, str] = ReservationStatus.HOLD,
        enforce_lead_time: bool = True,
    ) -> Reservation:
        """
        Admit a reservation or raise.

        For group sessions the date and interval are taken from the session;
        ``reservation_date`` and ``interval`` may be omitted.

        Raises:
            ValidationException: bad kind/status or missing arguments
            ReservationConflictException: window blocked, reserved or too close
            CapacityExceededException: group session full
            NotFoundException: unknown session
            StoreUnavailableException: the transactional store failed
        """
        reservation_kind = ReservationKind(kind)
        status = ReservationStatus(initial_status)
        if status not in _ADMISSIBLE_STATUSES:
            raise ValidationException(
                "New reservations start as HOLD or PENDING_CONFIRMATION",
                code="INVALID_INITIAL_STATUS",
                details={"initial_status": status.value},
            )
        participant = participant or ParticipantInfo()
        now = self.now()

        try:
            with self.transaction():
                if reservation_kind == ReservationKind.ONE_TO_ONE:
                    if reservation_date is None or interval is None:
                        raise ValidationException(
                            "One-to-one reservations need a date and an interval",
                            code="MISSING_WINDOW",
                        )
                    reservation = self._admit_one_to_one(
                        reservation_date, interval, status, participant, enforce_lead_time, now
                    )
                else:
                    if not session_id:
                        raise ValidationException(
                            "Group session reservations need a session_id",
                            code="MISSING_SESSION",
                        )
                    reservation = self._admit_group(
                        session_id, status, participant, enforce_lead_time, now
                    )
        except CapacityExceededException:
            prometheus_metrics.record_admission(reservation_kind.value, "capacity")
            raise
        except ReservationConflictException as exc:
            prometheus_metrics.record_admission(
                reservation_kind.value, _OUTCOME_BY_REASON.get(exc.reason, "conflict")
            )
            self.logger.info(f"Admission rejected: {exc.message} {exc.details}")
            raise
        except IntegrityError as exc:
            # Backstop: the unique window index caught a concurrent identical admission
            prometheus_metrics.record_admission(reservation_kind.value, "conflict")
            self.logger.info(f"Admission lost a race on {reservation_date} {interval}")
            if reservation_date is None or interval is None:
                raise StoreUnavailableException(operation="admit_reservation") from exc
            raise ReservationConflictException(
                reservation_date, interval.start, interval.end
            ) from exc
        except NotFoundException:
            prometheus_metrics.record_admission(reservation_kind.value, "not_found")
            raise
        except StoreUnavailableException:
            prometheus_metrics.record_admission(reservation_kind.value, "error")
            raise

        prometheus_metrics.record_admission(reservation_kind.value, "admitted")
        self.logger.info(
            f"Admitted {reservation.kind} reservation {reservation.id} "
            f"{reservation.reservation_date} {reservation.interval} as {reservation.status}"
        )
        return reservation

    # One-to-one

    def _admit_one_to_one(
        self,
        reservation_date: date,
        interval: TimeInterval,
        status: ReservationStatus,
        participant: ParticipantInfo,
        enforce_lead_time: bool,
        now: datetime,
    ) -> Reservation:
        resource_key = self.settings.resource_key
        self.reservation_repository.lock_day(resource_key, reservation_date, now)

        blocked = self.schedule_repository.blocked_for(reservation_date)
        if any(block.is_all_day for block in blocked):
            raise ReservationConflictException(
                reservation_date,
                interval.start,
                interval.end,
                reason=AvailabilityReason.BLOCKED,
                message="This date is closed for booking",
            )
        for block in blocked:
            if block.interval is not None and any_overlap(interval, [block.interval]):
                raise ReservationConflictException(
                    block.date,
                    block.start_time,
                    block.end_time,
                    reason=AvailabilityReason.BLOCKED,
                    message="This time window is blocked",
                    extra=self._requested(interval),
                )

        containers = [
            template.interval
            for template in self.schedule_repository.templates_for(
                day_of_week_for(reservation_date)
            )
        ] + [extra.interval for extra in self.schedule_repository.extra_for(reservation_date)]
        if not any(covers(container, interval) for container in containers):
            raise ReservationConflictException(
                reservation_date,
                interval.start,
                interval.end,
                reason=AvailabilityReason.BLOCKED,
                message="This time window is outside the opening hours",
            )

        if enforce_lead_time:
            self._check_lead_time(reservation_date, interval, now)

        expired = self.reservation_repository.expired_overlapping_holds(
            resource_key, reservation_date, interval, now
        )
        if expired:
            for stale in expired:
                self.event_publisher.publish(ReservationExpired.from_reservation(stale, now))
            self.reservation_repository.delete_rows(expired)
            self.logger.info(
                f"Released {len(expired)} expired hold(s) under {reservation_date} {interval}"
            )

        clash = self.reservation_repository.first_overlapping_active(
            resource_key, reservation_date, interval, now
        )
        if clash is not None:
            raise ReservationConflictException(
                clash.reservation_date,
                clash.start_time,
                clash.end_time,
                reason=AvailabilityReason.RESERVED,
                extra=self._requested(interval),
            )

        return self._insert(
            reservation_date=reservation_date,
            interval=interval,
            kind=ReservationKind.ONE_TO_ONE,
            status=status,
            participant=participant,
            now=now,
        )

    # Group sessions

    def _admit_group(
        self,
        session_id: str,
        status: ReservationStatus,
        participant: ParticipantInfo,
        enforce_lead_time: bool,
        now: datetime,
    ) -> Reservation:
        session = self.group_session_repository.get_for_update(session_id)
        if session is None:
            raise NotFoundException(
                "Group session not found",
                code="SESSION_NOT_FOUND",
                details={"session_id": session_id},
            )
        if not session.is_active:
            raise ReservationConflictException(
                session.session_date,
                session.start_time,
                session.end_time,
                reason=AvailabilityReason.BLOCKED,
                message="This session is not open for booking",
                extra={"session_id": session.id},
            )

        blocked = self.schedule_repository.blocked_for(session.session_date)
        if any(block.is_all_day for block in blocked) or any_overlap(
            session.interval, [block.interval for block in blocked if block.interval is not None]
        ):
            raise ReservationConflictException(
                session.session_date,
                session.start_time,
                session.end_time,
                reason=AvailabilityReason.BLOCKED,
                message="This session overlaps a blocked period",
                extra={"session_id": session.id},
            )

        if enforce_lead_time:
            self._check_lead_time(session.session_date, session.interval, now)

        self._release_expired_seats(session, now)

        if not self.group_session_repository.claim_seat(session, now):
            raise CapacityExceededException(
                session.id,
                session.session_date,
                session.start_time,
                session.end_time,
                session.max_participants,
            )

        return self._insert(
            reservation_date=session.session_date,
            interval=session.interval,
            kind=ReservationKind.GROUP_SESSION,
            status=status,
            participant=participant,
            now=now,
            session_id=session.id,
        )

    def _release_expired_seats(self, session: GroupSession, now: datetime) -> None:
        """Expired holds on a session never occupy capacity, reaped or not."""
        expired = self.reservation_repository.expired_holds_for_session(session.id, now)
        if not expired:
            return
        for stale in expired:
            self.event_publisher.publish(ReservationExpired.from_reservation(stale, now))
            session.release_participant(now)
        self.reservation_repository.delete_rows(expired)
        self.logger.info(f"Released {len(expired)} expired seat(s) on session {session.id}")

    # Shared

    def _check_lead_time(
        self, reservation_date: date, interval: TimeInterval, now: datetime
    ) -> None:
        cutoff = now + timedelta(minutes=self.settings.lead_time_minutes)
        if window_start_utc(self._tz, reservation_date, interval.start) <= cutoff:
            raise ReservationConflictException(
                reservation_date,
                interval.start,
                interval.end,
                reason=AvailabilityReason.WITHIN_LEAD_TIME,
                message="This time is too close to book online; please call to book",
            )

    def _insert(
        self,
        *,
        reservation_date: date,
        interval: TimeInterval,
        kind: ReservationKind,
        status: ReservationStatus,
        participant: ParticipantInfo,
        now: datetime,
        session_id: Optional[str] = None,
    ) -> Reservation:
        if status == ReservationStatus.HOLD:
            ttl = timedelta(minutes=self.settings.hold_ttl_minutes)
        else:
            ttl = timedelta(minutes=self.settings.pending_confirmation_ttl_minutes)

        reservation = self.reservation_repository.create(
            resource_key=self.settings.resource_key,
            reservation_date=reservation_date,
            start_time=interval.start,
            end_time=interval.end,
            duration_minutes=interval.duration_minutes,
            kind=kind.value,
            status=status.value,
            session_id=session_id,
            participant_name=participant.name,
            participant_email=participant.email,
            participant_phone=participant.phone,
            created_at=now,
            expires_at=now + ttl,
        )
        self.event_publisher.publish(ReservationCreated.from_reservation(reservation))
        return reservation

    @staticmethod
    def _requested(interval: TimeInterval) -> dict:
        return {
            "requested_start_time": interval.start.strftime("%H:%M"),
            "requested_end_time": interval.end.strftime("%H:%M"),
        }
