"""
Base schemas with standardized field types for consistent API responses.
"""
import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class StandardizedModel(BaseModel):  # type: ignore[misc]
    """Base model with standardized JSON encoding"""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)


class StrictModel(BaseModel):  # type: ignore[misc]
    """Opt-in strict base: forbid extras, validate defaults and assignments."""

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
        validate_assignment=True,
    )


class StrictRequestModel(BaseModel):  # type: ignore[misc]
    """Request bodies: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


def hhmm(value: Optional[datetime.time]) -> Optional[str]:
    """Wire format for wall-clock times."""
    if value is None:
        return None
    return value.strftime("%H:%M")
