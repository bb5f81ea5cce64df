# backend/app/routes/v1/internal.py
"""
Internal triggers - API v1

Guarded by ``Authorization: Bearer <reaper_secret>``. Every endpoint is
idempotent: running the reaper twice releases nothing the second time.

Endpoints:
    POST /reaper/run        - Release expired holds and stale cancellations
    GET  /reaper/stats      - Backlog counts
    POST /reaper/reconcile  - Recompute group session counters
    POST /outbox/dispatch   - Deliver pending reservation events
"""

import asyncio
import logging
from typing import Dict

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_event_dispatch_service, get_hold_reaper, require_reaper_secret
from ...core.exceptions import DomainException
from ...schemas.reaper import (
    CapacityCorrectionResponse,
    ReaperStatsResponse,
    ReapReportResponse,
    ReconcileResponse,
)
from ...services.event_dispatch_service import EventDispatchService
from ...services.hold_reaper import HoldReaper
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["internal"], dependencies=[Depends(require_reaper_secret)], include_in_schema=False
)


@router.post("/reaper/run", response_model=ReapReportResponse)
async def run_reaper(reaper: HoldReaper = Depends(get_hold_reaper)) -> ReapReportResponse:
    try:
        report = await asyncio.to_thread(reaper.reap)
    except DomainException as e:
        handle_domain_exception(e)
    return ReapReportResponse.from_report(report)


@router.get("/reaper/stats", response_model=ReaperStatsResponse)
async def reaper_stats(reaper: HoldReaper = Depends(get_hold_reaper)) -> ReaperStatsResponse:
    try:
        stats = await asyncio.to_thread(reaper.stats)
    except DomainException as e:
        handle_domain_exception(e)
    return ReaperStatsResponse(**stats)


@router.post("/reaper/reconcile", response_model=ReconcileResponse)
async def reconcile_capacity(reaper: HoldReaper = Depends(get_hold_reaper)) -> ReconcileResponse:
    try:
        corrections = await asyncio.to_thread(reaper.reconcile_capacity)
    except DomainException as e:
        handle_domain_exception(e)
    return ReconcileResponse(
        corrected=len(corrections),
        corrections=[CapacityCorrectionResponse(**c.to_dict()) for c in corrections],
    )


@router.post("/outbox/dispatch", response_model=Dict[str, int])
async def dispatch_outbox(
    limit: int = Query(200, ge=1, le=1000),
    dispatcher: EventDispatchService = Depends(get_event_dispatch_service),
) -> Dict[str, int]:
    try:
        return await asyncio.to_thread(dispatcher.dispatch_pending, limit)
    except DomainException as e:
        handle_domain_exception(e)
