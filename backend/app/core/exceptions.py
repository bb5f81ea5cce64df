# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the DriveBook reservation engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from datetime import date, time
from typing import Any, Dict, Optional, Union

from fastapi import HTTPException, status

from .enums import AvailabilityReason

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


def _as_text(value: Union[date, time, str, None]) -> Optional[str]:
    return value.isoformat() if isinstance(value, (date, time)) else value


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying message, code and details."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidRangeException(ValidationException):
    """Raised for a malformed date range (unparseable, end before start, too long)."""

    def __init__(
        self,
        start_date: Union[date, str, None],
        end_date: Union[date, str, None],
        message: Optional[str] = None,
    ):
        super().__init__(
            message=message or "end_date must not be before start_date",
            code="INVALID_RANGE",
            details={"start_date": _as_text(start_date), "end_date": _as_text(end_date)},
        )


class InvalidIntervalException(ValidationException):
    """Raised for a time interval whose start is not strictly before its end."""

    def __init__(self, start: Any, end: Any, message: Optional[str] = None):
        super().__init__(
            message=message or "Interval start must be before its end",
            code="INVALID_INTERVAL",
            details={"start_time": str(start), "end_time": str(end)},
        )


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when a shared secret is missing or wrong."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class StoreUnavailableException(ServiceException):
    """Raised when the transactional store fails; never masked by a fallback."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: Optional[str] = None, *, operation: Optional[str] = None):
        super().__init__(
            message=message or "Reservation store is temporarily unavailable",
            code="STORE_UNAVAILABLE",
            details={"operation": operation} if operation else {},
        )


# Specific business exceptions


class ReservationConflictException(ConflictException):
    """Raised when the requested window is no longer available at commit time."""

    def __init__(
        self,
        reservation_date: date,
        start_time: time,
        end_time: time,
        reason: AvailabilityReason = AvailabilityReason.RESERVED,
        message: Optional[str] = None,
        *,
        code: str = "RESERVATION_CONFLICT",
        extra: Optional[Dict[str, Any]] = None,
    ):
        details: Dict[str, Any] = {
            "reason": reason.value,
            "date": reservation_date.isoformat(),
            "start_time": start_time.strftime("%H:%M"),
            "end_time": end_time.strftime("%H:%M"),
            "retryable": True,
        }
        if extra:
            details.update(extra)
        super().__init__(
            message=message or "This time window is no longer available",
            code=code,
            details=details,
        )
        self.reason = reason


class CapacityExceededException(ReservationConflictException):
    """Raised when a group session has no seats left."""

    def __init__(
        self,
        session_id: str,
        reservation_date: date,
        start_time: time,
        end_time: time,
        max_participants: int,
    ):
        super().__init__(
            reservation_date,
            start_time,
            end_time,
            reason=AvailabilityReason.RESERVED,
            message="This session is fully booked",
            code="CAPACITY_EXCEEDED",
            extra={"session_id": session_id, "max_participants": max_participants},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
