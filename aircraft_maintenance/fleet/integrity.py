"""
Referential integrity for the entity store.

Checks run on the write path before anything is flushed:

- uniqueness: aircraft tail number, user email, user employee id, task id
- references: task -> aircraft, issue, active assignee; issue -> reporter;
  history/checklist/verification user references

The database carries the same unique constraints; ``duplicate_key_from``
turns a constraint violation that slipped past the pre-checks (a concurrent
insert) into the same DuplicateKeyError.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import AircraftModel, IssueModel, TaskModel, UserModel
from .enums import ObjectKind
from .errors import BrokenReferenceError, DuplicateKeyError

# (table, column) -> wire field name, for mapping constraint violations
UNIQUE_FIELDS: Dict[Tuple[str, str], str] = {
    ("aircraft", "tail_number"): "tailNumber",
    ("users", "email"): "email",
    ("users", "employee_id"): "employeeId",
    ("users", "employee_number"): "employeeId",
    ("tasks", "task_id"): "taskId",
}


def duplicate_key_from(exc: IntegrityError) -> Optional[DuplicateKeyError]:
    """Translate a unique-constraint IntegrityError, or return None."""
    message = str(exc.orig).lower()
    for (table, column), field in UNIQUE_FIELDS.items():
        # sqlite: "UNIQUE constraint failed: users.email"
        # postgres: 'duplicate key value ... "ix_users_email"' / "(email)="
        if (
            f"{table}.{column}" in message
            or f"{table}_{column}" in message
            or f"({column})=" in message
        ):
            return DuplicateKeyError(field)
    return None


class ReferenceIntegrity:
    """Uniqueness and reference checks against the current session."""

    def __init__(self, db: Session):
        self.db = db

    # Uniqueness

    def _exists(self, model: Any, column: Any, value: Any, exclude_id: Optional[str]) -> bool:
        query = self.db.query(func.count(model.id)).filter(column == value)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        return query.scalar() > 0

    def ensure_unique_tail_number(
        self, tail_number: str, exclude_id: Optional[str] = None
    ) -> None:
        normalized = tail_number.strip().upper()
        if self._exists(AircraftModel, AircraftModel.tail_number, normalized, exclude_id):
            raise DuplicateKeyError("tailNumber", normalized)

    def ensure_unique_email(self, email: str, exclude_id: Optional[str] = None) -> None:
        normalized = email.strip().lower()
        if self._exists(UserModel, UserModel.email, normalized, exclude_id):
            raise DuplicateKeyError("email", normalized)

    def ensure_unique_employee_id(
        self, employee_id: str, exclude_id: Optional[str] = None
    ) -> None:
        if self._exists(UserModel, UserModel.employee_id, employee_id, exclude_id):
            raise DuplicateKeyError("employeeId", employee_id)

    def ensure_unique_task_id(self, task_id: int, exclude_id: Optional[str] = None) -> None:
        if self._exists(TaskModel, TaskModel.task_id, task_id, exclude_id):
            raise DuplicateKeyError("taskId", task_id)

    # References

    def require_aircraft(self, aircraft_id: Optional[str], field: str = "aircraft") -> AircraftModel:
        aircraft = self.db.get(AircraftModel, aircraft_id) if aircraft_id else None
        if aircraft is None:
            raise BrokenReferenceError(field, ObjectKind.AIRCRAFT.value, aircraft_id)
        return aircraft

    def require_issue(self, issue_id: Optional[str], field: str = "issue") -> IssueModel:
        issue = self.db.get(IssueModel, issue_id) if issue_id else None
        if issue is None:
            raise BrokenReferenceError(field, ObjectKind.ISSUE.value, issue_id)
        return issue

    def require_user(
        self, user_id: Optional[str], field: str, active: bool = False
    ) -> UserModel:
        """Resolve a user reference. ``active`` also rejects deactivated users."""
        user = self.db.get(UserModel, user_id) if user_id else None
        if user is None or (active and not user.is_active):
            raise BrokenReferenceError(field, ObjectKind.USER.value, user_id)
        return user

    def _require_optional_users(self, user_ids: Iterable[Optional[str]], field: str) -> None:
        for user_id in user_ids:
            if user_id is not None:
                self.require_user(user_id, field)

    # Whole-entity validation

    def validate_references(self, entity: Any) -> None:
        """Check every uniqueness constraint and reference of ``entity``.

        Returns None when the entity may be persisted.

        Raises:
            DuplicateKeyError: a unique field collides with another row
            BrokenReferenceError: a reference does not resolve
        """
        if isinstance(entity, AircraftModel):
            self.ensure_unique_tail_number(entity.tail_number, exclude_id=entity.id)
            self._require_optional_users(
                (e.performed_by_id for e in entity.maintenance_history), "performedBy"
            )
        elif isinstance(entity, UserModel):
            self.ensure_unique_email(entity.email, exclude_id=entity.id)
            self.ensure_unique_employee_id(entity.employee_id, exclude_id=entity.id)
        elif isinstance(entity, IssueModel):
            self.require_user(entity.reported_by_id, "reportedBy")
        elif isinstance(entity, TaskModel):
            if entity.task_id is not None:
                self.ensure_unique_task_id(entity.task_id, exclude_id=entity.id)
            self.require_aircraft(entity.aircraft_id)
            self.require_issue(entity.issue_id)
            self.require_user(entity.assigned_to_id, "assignedTo", active=True)
            self._require_optional_users(
                (item.completed_by_id for item in entity.checklist), "completedBy"
            )
            if entity.verified_by_id is not None:
                self.require_user(entity.verified_by_id, "verifiedBy")
        else:
            raise TypeError(f"Unsupported entity type: {type(entity).__name__}")
