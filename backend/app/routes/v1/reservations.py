# backend/app/routes/v1/reservations.py
"""
Reservation routes - API v1

All business logic delegated to ReservationAdmissionController (creation)
and ReservationService (lifecycle).

Endpoints:
    POST /                          - Admit a reservation (HOLD by default)
    GET /{reservation_id}           - Reservation summary
    POST /{reservation_id}/confirm  - Confirm (payment collaborator/admin)
    POST /{reservation_id}/cancel   - Cancel
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, status

from ...api.dependencies import get_admission_controller, get_reservation_service
from ...core.enums import ReservationKind
from ...core.exceptions import DomainException
from ...domain.intervals import TimeInterval
from ...schemas.reservation import ReservationCancel, ReservationCreate, ReservationResponse
from ...services.admission_controller import ParticipantInfo, ReservationAdmissionController
from ...services.reservation_service import ReservationService
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reservations"])


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate = Body(...),
    controller: ReservationAdmissionController = Depends(get_admission_controller),
) -> ReservationResponse:
    """
    Admit a reservation atomically.

    Returns 409 with the conflicting window and reason when the window was
    taken, blocked or is inside the lead time.
    """
    participant = (
        ParticipantInfo(**payload.participant.model_dump()) if payload.participant else None
    )
    try:
        interval: Optional[TimeInterval] = None
        if payload.kind == ReservationKind.ONE_TO_ONE and payload.time is not None:
            interval = TimeInterval.from_duration(
                payload.time,
                payload.duration_minutes or controller.settings.default_duration_minutes,
            )
        reservation = await asyncio.to_thread(
            controller.admit,
            payload.date,
            interval,
            payload.kind,
            payload.session_id,
            participant=participant,
            initial_status=payload.initial_status,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return ReservationResponse.from_reservation(reservation)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: str,
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(reservation_service.get, reservation_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ReservationResponse.from_reservation(reservation)


@router.post("/{reservation_id}/confirm", response_model=ReservationResponse)
async def confirm_reservation(
    reservation_id: str,
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    """Confirm a HOLD or PENDING_CONFIRMATION reservation; repeat calls are no-ops."""
    try:
        reservation = await asyncio.to_thread(reservation_service.confirm, reservation_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ReservationResponse.from_reservation(reservation)


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: str,
    payload: Optional[ReservationCancel] = Body(None),
    reservation_service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    """Cancel a reservation and hand back a group seat if it held one."""
    try:
        reservation = await asyncio.to_thread(
            reservation_service.cancel,
            reservation_id,
            payload.reason if payload else None,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ReservationResponse.from_reservation(reservation)
