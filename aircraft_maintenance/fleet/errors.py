"""
Error taxonomy for the maintenance record core.

Every error carries a stable ``code`` for programmatic handling and a
``to_dict()`` for JSON serialization. None of them are retried automatically;
``RetryableInconsistency`` tells the caller which single step to retry.
"""

from typing import Any, Dict, Optional


class MaintenanceError(Exception):
    """
    Base class for all domain errors.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
    """

    kind = "maintenance_error"

    def __init__(self, code: str, message: str, **details: Any):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(f"{code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": self.kind,
            "code": self.code,
            "message": self.message,
            **self.details,
        }


class ValidationError(MaintenanceError):
    """A field value is malformed or out of range, or a transition is illegal."""

    kind = "validation_error"

    def __init__(self, field: str, message: str, code: str = "INVALID_VALUE"):
        self.field = field
        super().__init__(code, message, field=field)


class DuplicateKeyError(MaintenanceError):
    """A uniqueness constraint would be violated."""

    kind = "duplicate_key"

    def __init__(self, field: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(
            "DUPLICATE_KEY",
            f"A record with this {field} already exists",
            field=field,
            value=value,
        )


class BrokenReferenceError(MaintenanceError):
    """A reference field points at an entity that does not exist or is inactive."""

    kind = "broken_reference"

    def __init__(self, field: str, target_kind: str, target_id: Optional[str]):
        self.field = field
        self.target_kind = target_kind
        self.target_id = target_id
        super().__init__(
            "BROKEN_REFERENCE",
            f"{field} references {target_kind} '{target_id}' which does not resolve",
            field=field,
            target_kind=target_kind,
            target_id=target_id,
        )


class NotFoundError(MaintenanceError):
    """The requested entity does not exist."""

    kind = "not_found"

    def __init__(self, entity_kind: str, entity_id: Any):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        super().__init__(
            "NOT_FOUND",
            f"{entity_kind} '{entity_id}' not found",
            entity_kind=entity_kind,
            entity_id=entity_id,
        )


class RetryableInconsistency(MaintenanceError):
    """The task was verified but resolving its issue failed.

    Retry the propagation step only. Re-running the whole verification is
    harmless but never needed.
    """

    kind = "retryable_inconsistency"

    def __init__(self, task_id: str, issue_id: Optional[str], reason: str):
        self.task_id = task_id
        self.issue_id = issue_id
        super().__init__(
            "PROPAGATION_FAILED",
            f"Task '{task_id}' is verified but issue '{issue_id}' was not resolved: {reason}",
            task_id=task_id,
            issue_id=issue_id,
        )


class ConcurrentUpdateError(MaintenanceError):
    """The entity was modified by another writer since it was read."""

    kind = "concurrent_update"

    def __init__(
        self,
        entity_kind: str,
        entity_id: str,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ):
        self.entity_kind = entity_kind
        self.entity_id = entity_id
        super().__init__(
            "VERSION_CONFLICT",
            f"{entity_kind} '{entity_id}' was modified concurrently",
            entity_kind=entity_kind,
            entity_id=entity_id,
            expected_version=expected_version,
            actual_version=actual_version,
        )
