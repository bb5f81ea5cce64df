"""Application-wide constants for the DriveBook reservation engine."""

from __future__ import annotations

BRAND_NAME = "DriveBook"

# API metadata
API_TITLE = f"{BRAND_NAME} Reservation API"
API_DESCRIPTION = (
    "Availability and reservation engine for a driving school: weekly opening "
    "hours, exceptions, holds with expiry and capacity-tracked group sessions."
)
API_VERSION = "1.0.0"
API_V1_PREFIX = "/api/v1"

# Text constraints
MAX_REASON_LENGTH = 255
