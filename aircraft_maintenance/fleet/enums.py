"""
Canonical fleet enums.

The string values are persisted verbatim and form part of the stored-data
compatibility surface. Do not rename them.
"""

from enum import Enum


class ObjectKind(str, Enum):
    """Entity kinds owned by the entity store."""

    AIRCRAFT = "Aircraft"
    USER = "User"
    ISSUE = "Issue"
    TASK = "Task"


class AircraftStatus(str, Enum):
    """Operational status, derived from the health score."""

    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    GROUNDED = "grounded"


class MaintenanceType(str, Enum):
    """Kind of maintenance-history entry."""

    SCHEDULED = "scheduled"
    UNSCHEDULED = "unscheduled"
    EMERGENCY = "emergency"


class UserRole(str, Enum):
    PILOT = "pilot"
    ENGINEER = "engineer"
    MANAGER = "manager"
    ADMIN = "admin"


class IssueSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class IssueStatus(str, Enum):
    """Issue lifecycle. RESOLVED is reachable only through task verification."""

    REPORTED = "reported"
    IN_REVIEW = "in_review"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class TaskStatus(str, Enum):
    """Task lifecycle."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    VERIFIED = "verified"
    REJECTED = "rejected"


class AttachmentKind(str, Enum):
    """When an attachment was captured relative to the work."""

    BEFORE = "before"
    AFTER = "after"
    PROGRESS = "progress"


def enum_values(enum_cls: type) -> tuple:
    """Return the persisted values of an enum, in declaration order."""
    return tuple(member.value for member in enum_cls)
