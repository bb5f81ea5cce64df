# backend/app/routes/v1/admin_diagnostics.py
"""
Availability diagnostics - API v1

Operator view of why a date shows (or hides) its windows.
"""

import asyncio
from datetime import date
import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_resolver, require_admin_token
from ...core.exceptions import DomainException, ValidationException
from ...schemas.availability import DateDiagnosticsResponse, DiagnosticsResponse
from ...services.availability_resolver import AvailabilityResolver
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-diagnostics"], dependencies=[Depends(require_admin_token)])


def _parse_dates(raw: str) -> List[date]:
    parsed: List[date] = []
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            parsed.append(date.fromisoformat(chunk))
        except ValueError as exc:
            raise ValidationException(
                f"Invalid date {chunk!r}; expected YYYY-MM-DD",
                code="INVALID_DATE",
                details={"value": chunk},
            ) from exc
    if not parsed:
        raise ValidationException("At least one date is required", code="MISSING_DATES")
    return parsed


@router.get("/availability", response_model=DiagnosticsResponse)
async def diagnose_availability(
    dates: str = Query(..., description="Comma-separated ISO dates"),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
) -> DiagnosticsResponse:
    try:
        entries = await asyncio.to_thread(resolver.diagnose, _parse_dates(dates))
    except DomainException as e:
        handle_domain_exception(e)
    return DiagnosticsResponse(
        dates=[DateDiagnosticsResponse.from_diagnostics(entry) for entry in entries]
    )
