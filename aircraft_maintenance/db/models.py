"""
SQLAlchemy models for the Aircraft Maintenance Tracker.

Embedded sequences (maintenance history, checklist, attachments) are stored
as child rows with an explicit ``position`` so their order survives
round-trips. Aircraft, Issue and Task rows carry a ``version`` column used for
optimistic concurrency.
"""

import math
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from ..config import get_settings
from ..fleet.derivation import completion_percentage
from ..fleet.enums import (
    AircraftStatus,
    AttachmentKind,
    IssueSeverity,
    IssueStatus,
    MaintenanceType,
    TaskStatus,
    UserRole,
    enum_values,
)
from ..fleet.primitives import ensure_utc, isoformat_or_none, utc_now
from .base import Base


# These mirror aircraft_maintenance/fleet/enums.py
aircraft_status_enum = Enum(*enum_values(AircraftStatus), name="aircraft_status")
maintenance_type_enum = Enum(*enum_values(MaintenanceType), name="maintenance_type")
user_role_enum = Enum(*enum_values(UserRole), name="user_role")
issue_severity_enum = Enum(*enum_values(IssueSeverity), name="issue_severity")
issue_status_enum = Enum(*enum_values(IssueStatus), name="issue_status")
task_status_enum = Enum(*enum_values(TaskStatus), name="task_status")
attachment_kind_enum = Enum(*enum_values(AttachmentKind), name="attachment_kind")


class AircraftModel(Base):
    """SQLAlchemy model for aircraft."""

    __tablename__ = "aircraft"

    id = Column(String(128), primary_key=True)
    tail_number = Column(String(32), nullable=False, unique=True, index=True)
    model = Column(String(128), nullable=False)
    manufacturer = Column(String(128), nullable=False)

    # Health and derived status
    current_health = Column(Integer, nullable=False, default=100)
    status = Column(
        aircraft_status_enum, nullable=False, default="active", index=True
    )

    next_inspection_due = Column(DateTime(timezone=True), nullable=False, index=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    maintenance_history = relationship(
        "MaintenanceEntryModel",
        order_by="MaintenanceEntryModel.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        back_populates="aircraft",
    )

    __table_args__ = (
        Index("ix_aircraft_status_health", "status", "current_health"),
    )
    __mapper_args__ = {"version_id_col": version}

    def days_until_inspection(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole days (rounded up) until the next inspection is due."""
        if not self.next_inspection_due:
            return None
        delta = ensure_utc(self.next_inspection_due) - (now or utc_now())
        return math.ceil(delta.total_seconds() / 86400)

    def to_dict(
        self, now: Optional[datetime] = None, warning_days: Optional[int] = None
    ) -> Dict[str, Any]:
        """Convert model to dictionary using the stored-document field names."""
        if warning_days is None:
            warning_days = get_settings().inspection_warning_days
        days = self.days_until_inspection(now)
        return {
            "id": self.id,
            "tailNumber": self.tail_number,
            "model": self.model,
            "manufacturer": self.manufacturer,
            "currentHealth": self.current_health,
            "status": self.status,
            "maintenanceHistory": [e.to_dict() for e in self.maintenance_history],
            "nextInspectionDue": isoformat_or_none(self.next_inspection_due),
            "daysUntilInspection": days,
            "inspectionDueSoon": days is not None and days <= warning_days,
            "version": self.version,
            "createdAt": isoformat_or_none(self.created_at),
            "updatedAt": isoformat_or_none(self.updated_at),
        }


class MaintenanceEntryModel(Base):
    """One entry in an aircraft's maintenance history."""

    __tablename__ = "aircraft_maintenance_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    aircraft_id = Column(
        String(128), ForeignKey("aircraft.id"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)

    type = Column(maintenance_type_enum, nullable=False)
    description = Column(Text, nullable=True)
    performed_by_id = Column(String(128), ForeignKey("users.id"), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    aircraft = relationship("AircraftModel", back_populates="maintenance_history")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "performedBy": self.performed_by_id,
            "date": isoformat_or_none(self.date),
        }


class UserModel(Base):
    """SQLAlchemy model for users (pilots, engineers, managers, admins)."""

    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    employee_number = Column(Integer, nullable=False, unique=True)
    employee_id = Column(String(32), nullable=False, unique=True, index=True)
    name = Column(String(256), nullable=False)
    email = Column(String(320), nullable=False, unique=True, index=True)
    role = Column(user_role_enum, nullable=False, default="engineer")
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("ix_users_employee_id_email", "employee_id", "email"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary. The credential hash is never included."""
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "isActive": self.is_active,
            "createdAt": isoformat_or_none(self.created_at),
            "updatedAt": isoformat_or_none(self.updated_at),
        }


class IssueModel(Base):
    """SQLAlchemy model for reported aircraft issues."""

    __tablename__ = "issues"

    id = Column(String(128), primary_key=True)
    # Denormalized, uppercase
    tail_number = Column(String(32), nullable=False, index=True)
    description = Column(Text, nullable=False)
    severity = Column(issue_severity_enum, nullable=False, index=True)
    status = Column(issue_status_enum, nullable=False, default="reported", index=True)
    reported_by_id = Column(
        String(128), ForeignKey("users.id"), nullable=False, index=True
    )
    reported_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, index=True
    )

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("ix_issues_tail_number_status", "tail_number", "status"),
        Index("ix_issues_severity_status", "severity", "status"),
    )
    __mapper_args__ = {"version_id_col": version}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tailNumber": self.tail_number,
            "description": self.description,
            "severity": self.severity,
            "status": self.status,
            "reportedBy": self.reported_by_id,
            "reportedAt": isoformat_or_none(self.reported_at),
            "version": self.version,
            "createdAt": isoformat_or_none(self.created_at),
            "updatedAt": isoformat_or_none(self.updated_at),
        }


class TaskModel(Base):
    """SQLAlchemy model for remediation tasks."""

    __tablename__ = "tasks"

    id = Column(String(128), primary_key=True)
    # Sequential, human-facing number
    task_id = Column(Integer, nullable=False, unique=True)

    # References
    aircraft_id = Column(
        String(128), ForeignKey("aircraft.id"), nullable=False, index=True
    )
    issue_id = Column(String(128), ForeignKey("issues.id"), nullable=False)
    assigned_to_id = Column(
        String(128), ForeignKey("users.id"), nullable=False, index=True
    )

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False)
    status = Column(task_status_enum, nullable=False, default="pending", index=True)

    # Schedule
    start_date = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Verification block
    verified_by_id = Column(String(128), ForeignKey("users.id"), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_hash = Column(String(64), nullable=True)
    verification_notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    checklist = relationship(
        "ChecklistItemModel",
        order_by="ChecklistItemModel.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        back_populates="task",
    )
    attachments = relationship(
        "AttachmentModel",
        order_by="AttachmentModel.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        back_populates="task",
    )

    __table_args__ = (
        Index("ix_tasks_assigned_to_status", "assigned_to_id", "status"),
        Index("ix_tasks_issue_status", "issue_id", "status"),
        Index("ix_tasks_due_date_status", "due_date", "status"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def completion_percentage(self) -> int:
        return completion_percentage(self.checklist)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary using the stored-document field names."""
        return {
            "id": self.id,
            "taskId": self.task_id,
            "aircraft": self.aircraft_id,
            "issue": self.issue_id,
            "assignedTo": self.assigned_to_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "startDate": isoformat_or_none(self.start_date),
            "dueDate": isoformat_or_none(self.due_date),
            "completedAt": isoformat_or_none(self.completed_at),
            "verificationDetails": {
                "verifiedBy": self.verified_by_id,
                "verifiedAt": isoformat_or_none(self.verified_at),
                "hash": self.verification_hash,
                "notes": self.verification_notes,
            },
            "checklist": [item.to_dict() for item in self.checklist],
            "attachments": [a.to_dict() for a in self.attachments],
            "completionPercentage": self.completion_percentage,
            "version": self.version,
            "createdAt": isoformat_or_none(self.created_at),
            "updatedAt": isoformat_or_none(self.updated_at),
        }


class ChecklistItemModel(Base):
    """A single step on a task's checklist."""

    __tablename__ = "task_checklist_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(String(128), ForeignKey("tasks.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    item = Column(Text, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by_id = Column(String(128), ForeignKey("users.id"), nullable=True)

    task = relationship("TaskModel", back_populates="checklist")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item": self.item,
            "completed": bool(self.completed),
            "completedAt": isoformat_or_none(self.completed_at),
            "completedBy": self.completed_by_id,
        }


class AttachmentModel(Base):
    """Upload metadata for a task image. The file itself lives elsewhere."""

    __tablename__ = "task_attachments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_id = Column(String(128), ForeignKey("tasks.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    type = Column(attachment_kind_enum, nullable=False)
    filename = Column(String(512), nullable=True)
    path = Column(String(2000), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    task = relationship("TaskModel", back_populates="attachments")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "filename": self.filename,
            "path": self.path,
            "uploadedAt": isoformat_or_none(self.uploaded_at),
        }


class CounterModel(Base):
    """Named monotonic counter (employee numbers, task IDs)."""

    __tablename__ = "counters"

    name = Column(String(64), primary_key=True)
    value = Column(Integer, nullable=False)
