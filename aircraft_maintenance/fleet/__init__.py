"""
Fleet domain model.

- Aircraft: registered airframe; status is derived from its health score
- User: pilot, engineer, manager or admin with a sequential employee ID
- Issue: reported defect on an aircraft
- Task: remediation work for an issue, with a checklist and attachments,
  closed by a tamper-evident verification hash

Derivations:
    health -> aircraft status
    checklist -> task completion
    task verification -> issue resolution

The persistence-backed parts (``integrity``, ``services``, ``routes``) are
imported from their modules directly.
"""

from .aircraft import AircraftCreate, HealthUpdate, MaintenanceEntryCreate
from .derivation import (
    ChecklistTransition,
    apply_checklist_transition,
    apply_health,
    check_issue_transition,
    check_task_transition,
    completion_percentage,
    derive_aircraft_status,
    derive_checklist_transition,
    validate_health,
)
from .enums import (
    AircraftStatus,
    AttachmentKind,
    IssueSeverity,
    IssueStatus,
    MaintenanceType,
    ObjectKind,
    TaskStatus,
    UserRole,
)
from .errors import (
    BrokenReferenceError,
    ConcurrentUpdateError,
    DuplicateKeyError,
    MaintenanceError,
    NotFoundError,
    RetryableInconsistency,
    ValidationError,
)
from .issue import IssueCreate, IssueStatusUpdate
from .primitives import ensure_utc, generate_ulid, isoformat_millis, utc_now
from .task import (
    AttachmentCreate,
    ChecklistItemCreate,
    ChecklistItemUpdate,
    ChecklistReplace,
    TaskCreate,
    TaskVerify,
)
from .user import PasswordChange, UserCreate
from .verification import (
    VerificationOutcome,
    VerificationRecord,
    build_verification_record,
    certify_task,
    compute_verification_hash,
    resolve_issue,
    verification_matches,
    verify_task,
)

__all__ = [
    # Enums
    "AircraftStatus",
    "AttachmentKind",
    "IssueSeverity",
    "IssueStatus",
    "MaintenanceType",
    "ObjectKind",
    "TaskStatus",
    "UserRole",
    # Primitives
    "ensure_utc",
    "generate_ulid",
    "isoformat_millis",
    "utc_now",
    # Errors
    "BrokenReferenceError",
    "ConcurrentUpdateError",
    "DuplicateKeyError",
    "MaintenanceError",
    "NotFoundError",
    "RetryableInconsistency",
    "ValidationError",
    # Schemas
    "AircraftCreate",
    "AttachmentCreate",
    "ChecklistItemCreate",
    "ChecklistItemUpdate",
    "ChecklistReplace",
    "HealthUpdate",
    "IssueCreate",
    "IssueStatusUpdate",
    "MaintenanceEntryCreate",
    "PasswordChange",
    "TaskCreate",
    "TaskVerify",
    "UserCreate",
    # Derivations
    "ChecklistTransition",
    "apply_checklist_transition",
    "apply_health",
    "check_issue_transition",
    "check_task_transition",
    "completion_percentage",
    "derive_aircraft_status",
    "derive_checklist_transition",
    "validate_health",
    # Verification
    "VerificationOutcome",
    "VerificationRecord",
    "build_verification_record",
    "certify_task",
    "compute_verification_hash",
    "resolve_issue",
    "verification_matches",
    "verify_task",
]
