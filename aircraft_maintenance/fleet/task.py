"""
Task input schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, constr, model_validator
from pydantic.alias_generators import to_camel

from .enums import AttachmentKind
from .primitives import ensure_utc

_CONFIG = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

Reference = constr(min_length=1, max_length=128)


class ChecklistItemCreate(BaseModel):
    model_config = _CONFIG

    item: constr(strip_whitespace=True, min_length=1, max_length=1000)
    completed: bool = False


class AttachmentCreate(BaseModel):
    """Upload metadata handed over by the upload collaborator."""

    model_config = _CONFIG

    type: AttachmentKind
    filename: Optional[constr(max_length=512)] = None
    path: Optional[constr(max_length=2000)] = None
    uploaded_at: Optional[datetime] = None


class TaskCreate(BaseModel):
    """Schema for creating a task. Status always starts as ``pending``."""

    model_config = _CONFIG

    aircraft: Reference = Field(..., description="Aircraft id")
    issue: Reference = Field(..., description="Id of the issue this task remediates")
    assigned_to: Reference = Field(..., description="Assignee user id")
    title: constr(strip_whitespace=True, min_length=1, max_length=100)
    description: constr(strip_whitespace=True, min_length=1)
    priority: conint(strict=True, ge=1, le=5)
    start_date: Optional[datetime] = None
    due_date: datetime
    checklist: List[ChecklistItemCreate] = Field(default_factory=list)
    attachments: List[AttachmentCreate] = Field(default_factory=list)

    @model_validator(mode="after")
    def start_not_after_due(self) -> "TaskCreate":
        if self.start_date is not None and ensure_utc(self.start_date) > ensure_utc(
            self.due_date
        ):
            raise ValueError("Start date must be before or equal to due date")
        return self


class ChecklistReplace(BaseModel):
    model_config = _CONFIG

    items: List[ChecklistItemCreate]
    expected_version: Optional[int] = None


class ChecklistItemUpdate(BaseModel):
    model_config = _CONFIG

    completed: bool
    expected_version: Optional[int] = None


class TaskVerify(BaseModel):
    model_config = _CONFIG

    notes: Optional[constr(max_length=4000)] = None
