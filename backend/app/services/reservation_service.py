# backend/app/services/reservation_service.py
"""
Reservation lifecycle service.

Entry points for the payment collaborator and administrators to move an
existing reservation through its state machine:

    HOLD                 -> CONFIRMED | CANCELLED
    PENDING_CONFIRMATION -> CONFIRMED | CANCELLED
    CONFIRMED            -> CANCELLED
    CANCELLED            (terminal)

New reservations are only ever created by ReservationAdmissionController.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.enums import RESERVATION_TRANSITIONS, AvailabilityReason, ReservationStatus
from ..core.exceptions import BusinessRuleException, NotFoundException, ReservationConflictException
from ..events import EventPublisher, ReservationCancelled, ReservationConfirmed
from ..models.group_session import GroupSession
from ..models.reservation import Reservation
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock

logger = logging.getLogger(__name__)


class ReservationService(BaseService):
    """Confirm and cancel reservations, keeping group counters in step."""

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

    @BaseService.measure_operation("get_reservation")
    def get(self, reservation_id: str) -> Reservation:
        reservation = self.reservation_repository.get_by_id(reservation_id)
        if reservation is None:
            raise self._not_found(reservation_id)
        return reservation

    @BaseService.measure_operation("confirm_reservation")
    def confirm(self, reservation_id: str) -> Reservation:
        """
        Confirm a HOLD or PENDING_CONFIRMATION reservation.

        A hold that has already expired cannot be confirmed, even if the
        reaper has not removed it yet: the window may have been re-admitted.
        """
        now = self.now()
        with self.transaction():
            reservation, _ = self._lock(reservation_id)
            if reservation.status == ReservationStatus.CONFIRMED:
                return reservation
            if reservation.is_expired_hold(now):
                raise ReservationConflictException(
                    reservation.reservation_date,
                    reservation.start_time,
                    reservation.end_time,
                    reason=AvailabilityReason.RESERVED,
                    message="This hold has expired; please book again",
                    code="HOLD_EXPIRED",
                    extra={"reservation_id": reservation.id},
                )
            self._ensure_transition(reservation, ReservationStatus.CONFIRMED)
            reservation.confirm(now)
            self.db.flush()
            self.event_publisher.publish(ReservationConfirmed.from_reservation(reservation))

        self.logger.info(f"Confirmed reservation {reservation.id}")
        return reservation

    @BaseService.measure_operation("cancel_reservation")
    def cancel(self, reservation_id: str, reason: Optional[str] = None) -> Reservation:
        """
        Cancel a reservation; cancelling twice returns the row unchanged.

        The session counter includes every uncancelled row (expired holds
        until they are reaped), so a group seat is always handed back here.
        """
        now = self.now()
        with self.transaction():
            reservation, session = self._lock(reservation_id)
            if reservation.status == ReservationStatus.CANCELLED:
                self.logger.debug(f"Reservation {reservation_id} already cancelled")
                return reservation

            self._ensure_transition(reservation, ReservationStatus.CANCELLED)
            previous_status = reservation.status
            if session is not None:
                session.release_participant(now)

            reservation.cancel(reason, now)
            self.db.flush()
            self.event_publisher.publish(
                ReservationCancelled.from_reservation(reservation, previous_status)
            )

        self.logger.info(f"Cancelled reservation {reservation.id} (was {previous_status})")
        return reservation

    # Internals

    def _lock(self, reservation_id: str) -> Tuple[Reservation, Optional[GroupSession]]:
        """
        Lock a reservation and, for group bookings, its session.

        The session row is locked before the reservation row, the same order
        admission and the reaper use.
        """
        current = self.reservation_repository.get_by_id(reservation_id)
        if current is None:
            raise self._not_found(reservation_id)
        session = None
        if current.session_id:
            session = self.group_session_repository.get_for_update(current.session_id)
        reservation = self.reservation_repository.get_for_update(reservation_id)
        if reservation is None:
            raise self._not_found(reservation_id)
        return reservation, session

    @staticmethod
    def _ensure_transition(reservation: Reservation, target: ReservationStatus) -> None:
        current = ReservationStatus(reservation.status)
        if target not in RESERVATION_TRANSITIONS[current]:
            raise BusinessRuleException(
                f"Cannot move reservation from {current.value} to {target.value}",
                code="INVALID_TRANSITION",
                details={
                    "reservation_id": reservation.id,
                    "from_status": current.value,
                    "to_status": target.value,
                },
            )

    @staticmethod
    def _not_found(reservation_id: str) -> NotFoundException:
        return NotFoundException(
            "Reservation not found",
            code="RESERVATION_NOT_FOUND",
            details={"reservation_id": reservation_id},
        )
