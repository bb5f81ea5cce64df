# backend/app/routes/v1/admin_schedule.py
"""
Schedule administration routes - API v1

All endpoints require the ``X-Admin-Token`` header.

Endpoints:
    GET    /templates              - List weekly templates
    POST   /templates              - Create a template
    PATCH  /templates/{id}         - Update a template
    DELETE /templates/{id}         - Delete a template
    POST   /templates/copy         - Copy one weekday's templates to others
    GET    /blocked                - List blocked intervals
    POST   /blocked                - Block a date or a time range
    DELETE /blocked/{id}           - Remove a block
    GET    /extra                  - List extra slots
    POST   /extra                  - Add a one-off window
    DELETE /extra/{id}             - Remove an extra slot
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...api.dependencies import get_schedule_service, require_admin_token
from ...core.exceptions import DomainException
from ...schemas.schedule import (
    BlockedIntervalCreate,
    BlockedIntervalResponse,
    CopyTemplatesRequest,
    CopyTemplatesResponse,
    ExtraSlotCreate,
    ExtraSlotResponse,
    ScheduleTemplateCreate,
    ScheduleTemplateResponse,
    ScheduleTemplateUpdate,
)
from ...services.schedule_service import ScheduleService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-schedule"], dependencies=[Depends(require_admin_token)])


# ============================================================================
# Weekly templates
# ============================================================================


@router.get("/templates", response_model=List[ScheduleTemplateResponse])
async def list_templates(
    include_inactive: bool = Query(True),
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> List[ScheduleTemplateResponse]:
    templates = await asyncio.to_thread(schedule_service.list_templates, include_inactive)
    return [ScheduleTemplateResponse.from_model(template) for template in templates]


@router.post(
    "/templates", response_model=ScheduleTemplateResponse, status_code=status.HTTP_201_CREATED
)
async def create_template(
    payload: ScheduleTemplateCreate = Body(...),
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleTemplateResponse:
    try:
        template = await asyncio.to_thread(
            schedule_service.create_template,
            payload.day_of_week,
            payload.start_time,
            payload.end_time,
            payload.is_active,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ScheduleTemplateResponse.from_model(template)


# Static path before /templates/{template_id}
@router.post("/templates/copy", response_model=CopyTemplatesResponse)
async def copy_templates(
    payload: CopyTemplatesRequest = Body(...),
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> CopyTemplatesResponse:
    """
    Copy the source weekday's active templates onto the target weekdays.

    Target days that already have templates are skipped, never overwritten.
    """
    try:
        result = await asyncio.to_thread(
            schedule_service.copy_templates, payload.source_day, payload.target_days
        )
    except DomainException as e:
        handle_domain_exception(e)
    return CopyTemplatesResponse(**result)


@router.patch("/templates/{template_id}", response_model=ScheduleTemplateResponse)
async def update_template(
    template_id: str,
    payload: ScheduleTemplateUpdate = Body(...),
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleTemplateResponse:
    try:
        template = await asyncio.to_thread(
            lambda: schedule_service.update_template(
                template_id, **payload.model_dump(exclude_unset=True)
            )
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ScheduleTemplateResponse.from_model(template)


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> Response:
    try:
        await asyncio.to_thread(schedule_service.delete_template, template_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Blocked intervals
# ============================================================================


@router.get("/blocked", response_model=List[BlockedIntervalResponse])
async def list_blocked(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> List[BlockedIntervalResponse]:
    blocks = await asyncio.to_thread(schedule_service.list_blocked, start_date, end_date)
    return [BlockedIntervalResponse.from_model(block) for block in blocks]


@router.post(
    "/blocked", response_model=BlockedIntervalResponse, status_code=status.HTTP_201_CREATED
)
async def create_blocked(
    payload: BlockedIntervalCreate = Body(...),
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> BlockedIntervalResponse:
    """Block a whole date or a time range on it; overlapping blocks are rejected."""
    try:
        block = await asyncio.to_thread(
            schedule_service.create_blocked,
            payload.date,
            payload.start_time,
            payload.end_time,
            payload.is_all_day,
            payload.reason,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BlockedIntervalResponse.from_model(block)


@router.delete("/blocked/{blocked_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blocked(
    blocked_id: str,
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> Response:
    try:
        await asyncio.to_thread(schedule_service.delete_blocked, blocked_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Extra slots
# ============================================================================


@router.get("/extra", response_model=List[ExtraSlotResponse])
async def list_extra(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> List[ExtraSlotResponse]:
    extras = await asyncio.to_thread(schedule_service.list_extra, start_date, end_date)
    return [ExtraSlotResponse.from_model(extra) for extra in extras]


@router.post("/extra", response_model=ExtraSlotResponse, status_code=status.HTTP_201_CREATED)
async def create_extra(
    payload: ExtraSlotCreate = Body(...),
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> ExtraSlotResponse:
    try:
        extra = await asyncio.to_thread(
            schedule_service.create_extra,
            payload.date,
            payload.start_time,
            payload.end_time,
            payload.reason,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ExtraSlotResponse.from_model(extra)


@router.delete("/extra/{extra_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_extra(
    extra_id: str,
    schedule_service: ScheduleService = Depends(get_schedule_service),
) -> Response:
    try:
        await asyncio.to_thread(schedule_service.delete_extra, extra_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
