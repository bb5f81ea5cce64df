# backend/app/schemas/__init__.py
"""
Pydantic schemas for the DriveBook reservation engine.

Request models forbid unknown fields; response models render times as
local ``HH:MM`` strings.
"""

from .availability import (
    AvailabilityResponse,
    AvailabilityWindowResponse,
    DateDiagnosticsResponse,
    DiagnosticsResponse,
    PrunedWindow,
    SessionAvailabilityListResponse,
    SessionAvailabilityResponse,
)
from .group_session import (
    GroupSessionCreate,
    GroupSessionResponse,
    GroupSessionUpdate,
    SessionBookingCreate,
)
from .main_responses import HealthResponse, RootResponse
from .reaper import (
    CapacityCorrectionResponse,
    ReaperStatsResponse,
    ReapReportResponse,
    ReconcileResponse,
)
from .reservation import ParticipantIn, ReservationCancel, ReservationCreate, ReservationResponse
from .schedule import (
    BlockedIntervalCreate,
    BlockedIntervalResponse,
    CopyDayResult,
    CopyTemplatesRequest,
    CopyTemplatesResponse,
    ExtraSlotCreate,
    ExtraSlotResponse,
    ScheduleTemplateCreate,
    ScheduleTemplateResponse,
    ScheduleTemplateUpdate,
)

__all__ = [
    "AvailabilityResponse",
    "AvailabilityWindowResponse",
    "BlockedIntervalCreate",
    "BlockedIntervalResponse",
    "CapacityCorrectionResponse",
    "CopyDayResult",
    "CopyTemplatesRequest",
    "CopyTemplatesResponse",
    "DateDiagnosticsResponse",
    "DiagnosticsResponse",
    "ExtraSlotCreate",
    "ExtraSlotResponse",
    "GroupSessionCreate",
    "GroupSessionResponse",
    "GroupSessionUpdate",
    "SessionBookingCreate",
    "HealthResponse",
    "ParticipantIn",
    "PrunedWindow",
    "ReapReportResponse",
    "ReaperStatsResponse",
    "ReconcileResponse",
    "ReservationCancel",
    "ReservationCreate",
    "ReservationResponse",
    "RootResponse",
    "ScheduleTemplateCreate",
    "ScheduleTemplateResponse",
    "ScheduleTemplateUpdate",
    "SessionAvailabilityListResponse",
    "SessionAvailabilityResponse",
]
