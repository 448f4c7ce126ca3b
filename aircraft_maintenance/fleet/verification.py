"""
Verification record generation.

When a task is certified complete, a canonical record is built from the task
id, the linked issue's description, the assignee's employee id and the
verification instant. The record is serialized deterministically (sorted
keys, compact separators, UTF-8) and digested with SHA-256.

The verification instant is persisted as ``verified_at`` and is the only
time that enters the digest, so a stored hash can always be recomputed from
stored data. Once a task carries a hash it is never regenerated.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .enums import IssueStatus, ObjectKind, TaskStatus
from .errors import BrokenReferenceError, NotFoundError
from .primitives import isoformat_millis, utc_now

HASH_ALGORITHM = "sha256"


@dataclass(frozen=True)
class VerificationRecord:
    """The hashed payload. Field names are part of the stored format."""

    task_id: str
    issue: str
    assigned_to: str
    completed_at: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "taskId": self.task_id,
            "issue": self.issue,
            "assignedTo": self.assigned_to,
            "completedAt": self.completed_at,
        }


def canonical_bytes(payload: Dict[str, Any]) -> bytes:
    """Deterministic JSON encoding used for hashing."""
    return json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def compute_verification_hash(record: VerificationRecord) -> str:
    """Return the 64-character lowercase hex SHA-256 of ``record``."""
    digest = hashlib.new(HASH_ALGORITHM, canonical_bytes(record.to_payload()))
    return digest.hexdigest()


def build_verification_record(
    task: Any, issue: Any, assignee: Any, verified_at: datetime
) -> VerificationRecord:
    """Build the record for ``task``, checking the linked entities resolve."""
    if issue is None:
        raise NotFoundError(ObjectKind.ISSUE.value, task.issue_id)
    if assignee is None:
        raise NotFoundError(ObjectKind.USER.value, task.assigned_to_id)
    if issue.id != task.issue_id:
        raise BrokenReferenceError("issue", ObjectKind.ISSUE.value, task.issue_id)
    if assignee.id != task.assigned_to_id:
        raise BrokenReferenceError(
            "assignedTo", ObjectKind.USER.value, task.assigned_to_id
        )
    return VerificationRecord(
        task_id=str(task.id),
        issue=issue.description,
        assigned_to=assignee.employee_id,
        completed_at=isoformat_millis(verified_at),
    )


@dataclass
class VerificationOutcome:
    """Task and issue after verification, plus the record that was hashed."""

    task: Any
    issue: Any
    record: VerificationRecord
    newly_verified: bool


def certify_task(
    task: Any,
    issue: Any,
    assignee: Any,
    verifying_user: Any,
    now: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> VerificationOutcome:
    """Stamp the verification block on ``task``. The issue is not modified.

    Every precondition is checked before anything is written, so a failure
    leaves the task untouched. A task that already has a hash keeps it and
    the stored record is rebuilt instead.

    Raises:
        NotFoundError: the issue, assignee or verifying user is missing
        BrokenReferenceError: the supplied issue/assignee is not the one the
            task references
    """
    if verifying_user is None:
        raise NotFoundError(ObjectKind.USER.value, None)

    if task.verification_hash:
        record = build_verification_record(task, issue, assignee, task.verified_at)
        return VerificationOutcome(task, issue, record, newly_verified=False)

    verified_at = now or utc_now()
    record = build_verification_record(task, issue, assignee, verified_at)

    task.verification_hash = compute_verification_hash(record)
    task.verified_at = verified_at
    task.verified_by_id = verifying_user.id
    task.verification_notes = notes
    task.status = TaskStatus.VERIFIED.value

    return VerificationOutcome(task, issue, record, newly_verified=True)


def resolve_issue(issue: Any) -> Any:
    """Propagate a verified task to its issue."""
    issue.status = IssueStatus.RESOLVED.value
    return issue


def verify_task(
    task: Any,
    issue: Any,
    assignee: Any,
    verifying_user: Any,
    now: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> VerificationOutcome:
    """Certify ``task`` and resolve its issue, in memory.

    Verifying an already verified task returns the stored record unchanged
    and re-applies the issue resolution.
    """
    outcome = certify_task(task, issue, assignee, verifying_user, now, notes)
    resolve_issue(issue)
    return outcome


def verification_matches(task: Any, issue: Any, assignee: Any) -> bool:
    """Recompute the stored hash from stored inputs and compare."""
    if not task.verification_hash or task.verified_at is None:
        return False
    record = build_verification_record(task, issue, assignee, task.verified_at)
    return compute_verification_hash(record) == task.verification_hash
