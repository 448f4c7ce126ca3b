"""
Aircraft input schemas.

Status is never accepted from clients; it is derived from the health score.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, conint, constr
from pydantic.alias_generators import to_camel

from .enums import MaintenanceType

TailNumber = constr(strip_whitespace=True, to_upper=True, min_length=1, max_length=32)


class AircraftCreate(BaseModel):
    """Schema for registering an aircraft."""

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    tail_number: TailNumber = Field(..., description="Registration mark, stored uppercase")
    model: constr(strip_whitespace=True, min_length=1, max_length=128)
    manufacturer: constr(strip_whitespace=True, min_length=1, max_length=128)
    current_health: conint(strict=True, ge=0, le=100) = Field(
        100, description="Health score 0-100"
    )
    next_inspection_due: datetime


class HealthUpdate(BaseModel):
    """Schema for an inspection/repair result that changes health.

    Only integers are accepted. Range checking is left to the status deriver
    so that out-of-range values surface as the domain's ValidationError.
    """

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    health_score: StrictInt
    expected_version: Optional[int] = None


class MaintenanceEntryCreate(BaseModel):
    """Schema for appending to an aircraft's maintenance history."""

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    type: MaintenanceType
    description: Optional[constr(max_length=4000)] = None
    performed_by: constr(min_length=1, max_length=128)
    date: Optional[datetime] = None
    # Health after the work, if it was re-assessed
    health_score: Optional[StrictInt] = None
    expected_version: Optional[int] = None
