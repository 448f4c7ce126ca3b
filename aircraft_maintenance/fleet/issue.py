"""
Issue input schemas.

New issues always start as ``reported``; the reporting user comes from the
identity collaborator, not the request body.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, constr
from pydantic.alias_generators import to_camel

from .aircraft import TailNumber
from .enums import IssueSeverity, IssueStatus

MIN_DESCRIPTION_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1200


class IssueCreate(BaseModel):
    """Schema for reporting an issue."""

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    tail_number: TailNumber
    description: constr(
        strip_whitespace=True,
        min_length=MIN_DESCRIPTION_LENGTH,
        max_length=MAX_DESCRIPTION_LENGTH,
    )
    severity: IssueSeverity


class IssueStatusUpdate(BaseModel):
    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )

    status: IssueStatus
    expected_version: Optional[int] = None
