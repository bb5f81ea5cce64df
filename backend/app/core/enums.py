"""Closed enumerations shared by models, services and schemas."""

from enum import Enum


class ReservationStatus(str, Enum):
    """Reservation lifecycle statuses."""

    HOLD = "HOLD"  # Unpaid, short TTL
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"  # Awaiting payment/manual confirmation
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"  # Terminal

    @classmethod
    def active(cls) -> tuple["ReservationStatus", ...]:
        return (cls.HOLD, cls.PENDING_CONFIRMATION, cls.CONFIRMED)


class ReservationKind(str, Enum):
    """What a reservation claims."""

    ONE_TO_ONE = "ONE_TO_ONE"
    GROUP_SESSION = "GROUP_SESSION"


class AvailabilityReason(str, Enum):
    """Why a window is (un)available."""

    BLOCKED = "BLOCKED"
    RESERVED = "RESERVED"
    WITHIN_LEAD_TIME = "WITHIN_LEAD_TIME"
    OK = "OK"


class ResolverMode(str, Enum):
    """How existing reservations remove availability from a date."""

    STRICT_OVERLAP = "STRICT_OVERLAP"  # Only genuinely overlapping rows block
    ANY_ROW_ON_DATE = "ANY_ROW_ON_DATE"  # Any active row on the date blocks every window


# Allowed lifecycle transitions; HOLD is never a target.
RESERVATION_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.HOLD: frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}),
    ReservationStatus.PENDING_CONFIRMATION: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}
    ),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CANCELLED}),
    ReservationStatus.CANCELLED: frozenset(),
}
