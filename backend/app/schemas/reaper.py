# backend/app/schemas/reaper.py
"""Responses for the internal reaper trigger."""

from typing import List

from pydantic import Field

from .base import StrictModel


class ReapReportResponse(StrictModel):
    released_one_to_one: int = Field(description="Expired one-to-one holds deleted")
    released_group_slots: int = Field(description="Expired group holds deleted, seats returned")
    expired_pending: int = Field(description="PENDING_CONFIRMATION rows cancelled as expired")
    purged_cancelled: int = Field(description="Never-confirmed CANCELLED rows purged")
    total: int

    @classmethod
    def from_report(cls, report) -> "ReapReportResponse":
        return cls(total=report.total, **report.to_dict())


class ReaperStatsResponse(StrictModel):
    now: str
    holds: int
    expired_holds: int
    pending_confirmation: int
    expired_pending: int
    confirmed: int
    cancelled: int
    cancelled_retention_cutoff: str
    hold_ttl_minutes: int


class CapacityCorrectionResponse(StrictModel):
    session_id: str
    recorded: int
    actual: int


class ReconcileResponse(StrictModel):
    corrected: int
    corrections: List[CapacityCorrectionResponse] = Field(default_factory=list)
