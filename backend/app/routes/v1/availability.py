# backend/app/routes/v1/availability.py
"""
Public availability routes - API v1

Endpoints:
    GET /availability           - Resolved windows per date
    GET /availability/sessions  - Group sessions with seats left
"""

import asyncio
from datetime import date, datetime
import logging
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_resolver
from ...core.enums import ResolverMode
from ...core.exceptions import DomainException, InvalidRangeException, ValidationException
from ...database import with_db_retry
from ...schemas.availability import (
    AvailabilityResponse,
    AvailabilityWindowResponse,
    SessionAvailabilityListResponse,
    SessionAvailabilityResponse,
)
from ...services.availability_resolver import AvailabilityResolver
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability"])


def _parse_date(raw: str) -> date:
    return datetime.strptime(raw, "%Y-%m-%d").date()


def _require_range(start_date: Optional[str], end_date: Optional[str]) -> Tuple[date, date]:
    if not start_date or not end_date:
        raise ValidationException(
            "start_date and end_date are required",
            code="MISSING_RANGE",
            details={"start_date": start_date, "end_date": end_date},
        )
    try:
        return _parse_date(start_date), _parse_date(end_date)
    except ValueError:
        raise InvalidRangeException(
            start_date, end_date, "start_date and end_date must be dates in YYYY-MM-DD format"
        )


@router.get("", response_model=AvailabilityResponse)
async def get_availability(
    start_date: Optional[str] = Query(None, description="First date, inclusive (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="Last date, inclusive (YYYY-MM-DD)"),
    duration_minutes: Optional[int] = Query(None, gt=0, le=12 * 60),
    mode: Optional[ResolverMode] = Query(None),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> AvailabilityResponse:
    """
    Resolve bookable windows for every date in the range.

    Every date in the range appears in ``slots``; a date with no template
    or extra slot maps to an empty list.
    """
    try:
        first, last = _require_range(start_date, end_date)
        resolved = await asyncio.to_thread(
            with_db_retry,
            "resolve_availability",
            lambda: resolver.resolve(first, last, duration_minutes, mode),
        )
    except DomainException as e:
        handle_domain_exception(e)

    return AvailabilityResponse(
        start_date=first,
        end_date=last,
        duration_minutes=duration_minutes or resolver.settings.default_duration_minutes,
        mode=mode or resolver.settings.resolver_mode,
        slots={
            target_date.isoformat(): [
                AvailabilityWindowResponse.from_window(window) for window in windows
            ]
            for target_date, windows in resolved.items()
        },
    )


@router.get("/sessions", response_model=SessionAvailabilityListResponse)
async def get_session_availability(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> SessionAvailabilityListResponse:
    """Active group sessions in the range with remaining seats."""
    try:
        first, last = _require_range(start_date, end_date)
        sessions = await asyncio.to_thread(
            with_db_retry,
            "resolve_sessions",
            lambda: resolver.resolve_sessions(first, last),
        )
    except DomainException as e:
        handle_domain_exception(e)

    return SessionAvailabilityListResponse(
        start_date=first,
        end_date=last,
        sessions=[SessionAvailabilityResponse.from_result(result) for result in sessions],
    )
