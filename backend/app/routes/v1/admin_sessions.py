# backend/app/routes/v1/admin_sessions.py
"""
Group session administration routes - API v1

All endpoints require the ``X-Admin-Token`` header.

Endpoints:
    GET, POST /                       - List or create sessions
    GET, PATCH, DELETE /{session_id}  - Read, edit or remove a session
    POST /{session_id}/reservations   - Book a participant (no lead time)
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status

from ...api.dependencies import (
    get_admission_controller,
    get_group_session_service,
    get_reservation_service,
    require_admin_token,
)
from ...core.enums import ReservationKind, ReservationStatus
from ...core.exceptions import DomainException
from ...schemas.group_session import (
    GroupSessionCreate,
    GroupSessionResponse,
    GroupSessionUpdate,
    SessionBookingCreate,
)
from ...schemas.reservation import ReservationResponse
from ...services.admission_controller import ParticipantInfo, ReservationAdmissionController
from ...services.group_session_service import GroupSessionService
from ...services.reservation_service import ReservationService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-sessions"], dependencies=[Depends(require_admin_token)])


@router.get("", response_model=List[GroupSessionResponse])
async def list_sessions(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    include_inactive: bool = Query(True),
    session_service: GroupSessionService = Depends(get_group_session_service),
) -> List[GroupSessionResponse]:
    sessions = await asyncio.to_thread(
        session_service.list_sessions, start_date, end_date, include_inactive
    )
    return [GroupSessionResponse.from_model(session) for session in sessions]


@router.post("", response_model=GroupSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    payload: GroupSessionCreate = Body(...),
    session_service: GroupSessionService = Depends(get_group_session_service),
) -> GroupSessionResponse:
    try:
        session = await asyncio.to_thread(
            session_service.create_session,
            payload.title,
            payload.date,
            payload.start_time,
            payload.end_time,
            payload.max_participants,
            payload.description,
            payload.is_active,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return GroupSessionResponse.from_model(session)


@router.get("/{session_id}", response_model=GroupSessionResponse)
async def get_session(
    session_id: str,
    session_service: GroupSessionService = Depends(get_group_session_service),
) -> GroupSessionResponse:
    try:
        session = await asyncio.to_thread(session_service.get_session, session_id)
    except DomainException as e:
        handle_domain_exception(e)
    return GroupSessionResponse.from_model(session)


@router.patch("/{session_id}", response_model=GroupSessionResponse)
async def update_session(
    session_id: str,
    payload: GroupSessionUpdate = Body(...),
    session_service: GroupSessionService = Depends(get_group_session_service),
) -> GroupSessionResponse:
    """Edit a session; capacity below the seats already taken is rejected with 409."""
    changes = payload.model_dump(exclude_unset=True)
    if "date" in changes:
        changes["session_date"] = changes.pop("date")
    try:
        session = await asyncio.to_thread(
            lambda: session_service.update_session(session_id, **changes)
        )
    except DomainException as e:
        handle_domain_exception(e)
    return GroupSessionResponse.from_model(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_id: str,
    session_service: GroupSessionService = Depends(get_group_session_service),
) -> Response:
    try:
        await asyncio.to_thread(session_service.delete_session, session_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{session_id}/reservations",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_session_booking(
    session_id: str,
    payload: SessionBookingCreate = Body(...),
    controller: ReservationAdmissionController = Depends(get_admission_controller),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    """
    Book a participant onto a session from the back office.

    Capacity and blocks still apply; the lead time does not.
    """
    try:
        reservation = await asyncio.to_thread(
            controller.admit,
            None,
            None,
            ReservationKind.GROUP_SESSION,
            session_id,
            participant=ParticipantInfo(**payload.participant.model_dump()),
            initial_status=ReservationStatus.PENDING_CONFIRMATION,
            enforce_lead_time=False,
        )
        if payload.mark_paid:
            reservation = await asyncio.to_thread(reservation_service.confirm, reservation.id)
    except DomainException as e:
        handle_domain_exception(e)

    logger.info(f"Admin booked {reservation.id} onto session {session_id}")
    return ReservationResponse.from_reservation(reservation)
