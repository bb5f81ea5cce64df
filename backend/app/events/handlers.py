"""Event handlers - process reservation events delivered from the outbox."""
import logging
from typing import Any, Callable, Dict

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any], Session], None]


def handle_reservation_created(payload: Dict[str, Any], db: Session) -> None:
    logger.info(
        "Reservation %s created (%s %s %s-%s, status=%s)",
        payload["reservation_id"],
        payload.get("kind"),
        payload.get("reservation_date"),
        payload.get("start_time"),
        payload.get("end_time"),
        payload.get("status"),
    )


def handle_reservation_confirmed(payload: Dict[str, Any], db: Session) -> None:
    """Hand-off point for the notification collaborator's confirmation message."""
    logger.info(
        "Reservation %s confirmed for %s %s",
        payload["reservation_id"],
        payload.get("reservation_date"),
        payload.get("start_time"),
    )


def handle_reservation_cancelled(payload: Dict[str, Any], db: Session) -> None:
    """Hand-off point for the notification collaborator's cancellation message."""
    logger.info(
        "Reservation %s cancelled (was %s, reason=%s)",
        payload["reservation_id"],
        payload.get("previous_status"),
        payload.get("reason") or "none",
    )


def handle_reservation_expired(payload: Dict[str, Any], db: Session) -> None:
    logger.info(
        "Reservation %s expired from %s; %s %s-%s released",
        payload["reservation_id"],
        payload.get("previous_status"),
        payload.get("reservation_date"),
        payload.get("start_time"),
        payload.get("end_time"),
    )


# Registry of event type -> handler function
EVENT_HANDLERS: Dict[str, EventHandler] = {
    "event:ReservationCreated": handle_reservation_created,
    "event:ReservationConfirmed": handle_reservation_confirmed,
    "event:ReservationCancelled": handle_reservation_cancelled,
    "event:ReservationExpired": handle_reservation_expired,
}


def process_event(event_type: str, payload: Dict[str, Any], db: Session) -> bool:
    """
    Process a single outbox event.

    Returns True if a handler ran, False if the type has no registered handler.
    Handler exceptions propagate so the dispatcher can schedule a retry.
    """
    handler = EVENT_HANDLERS.get(event_type)
    if not handler:
        logger.warning("No handler for event type: %s", event_type)
        return False

    handler(payload, db)
    return True
