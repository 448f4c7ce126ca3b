"""
Derived-field rules.

Pure, synchronous functions that recompute persisted-but-derived values:

- aircraft status from health score
- task completion (status + completedAt) from the checklist
- checklist completion percentage

The entity store calls these explicitly on its write path, before commit.
The manual status transitions allowed for tasks and issues are declared here
as well so that every lifecycle rule lives in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, Optional

from .enums import AircraftStatus, IssueStatus, TaskStatus
from .errors import ValidationError
from .primitives import utc_now

MIN_HEALTH = 0
MAX_HEALTH = 100
ACTIVE_THRESHOLD = 50
MAINTENANCE_THRESHOLD = 20


def validate_health(health: Any) -> int:
    """Return ``health`` if it is an integer in [0, 100], else raise ValidationError."""
    # bool is an int subclass; True is not a health score
    if isinstance(health, bool) or not isinstance(health, int):
        raise ValidationError("currentHealth", "Health must be an integer")
    if health < MIN_HEALTH:
        raise ValidationError("currentHealth", "Health cannot be negative")
    if health > MAX_HEALTH:
        raise ValidationError("currentHealth", "Health cannot exceed 100")
    return health


def derive_aircraft_status(health: int) -> AircraftStatus:
    """Map a health score to the aircraft's operational status.

    >= 50 is active, 20..49 is maintenance, below 20 is grounded.
    """
    health = validate_health(health)
    if health >= ACTIVE_THRESHOLD:
        return AircraftStatus.ACTIVE
    if health >= MAINTENANCE_THRESHOLD:
        return AircraftStatus.MAINTENANCE
    return AircraftStatus.GROUNDED


def apply_health(aircraft: Any, health: int) -> Any:
    """Set ``aircraft.current_health`` and overwrite its status from it."""
    status = derive_aircraft_status(health)
    aircraft.current_health = health
    aircraft.status = status.value
    return aircraft


def completion_percentage(checklist: Iterable[Any]) -> int:
    """round(100 * completed / total); 0 for an empty checklist."""
    items = list(checklist or [])
    if not items:
        return 0
    completed = sum(1 for item in items if item.completed)
    # Integer round-half-up of 100 * completed / total
    return (completed * 200 + len(items)) // (2 * len(items))


@dataclass(frozen=True)
class ChecklistTransition:
    """Outcome of evaluating a checklist against the current task status."""

    status: TaskStatus
    completed_at: Optional[datetime]
    changed: bool


def derive_checklist_transition(
    status: str,
    checklist: Iterable[Any],
    completed_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> ChecklistTransition:
    """Decide whether a checklist edit completes the task.

    Fires only from ``in_progress`` when every item is completed (vacuously
    true for an empty checklist). Never moves a task backwards.
    """
    current = TaskStatus(status)
    all_completed = all(item.completed for item in checklist)
    if all_completed and current is TaskStatus.IN_PROGRESS:
        return ChecklistTransition(TaskStatus.COMPLETED, now or utc_now(), True)
    return ChecklistTransition(current, completed_at, False)


def apply_checklist_transition(task: Any, now: Optional[datetime] = None) -> Any:
    """Recompute ``task.status``/``task.completed_at`` from its checklist.

    Returns the same task object so callers can chain.
    """
    transition = derive_checklist_transition(
        task.status, task.checklist, task.completed_at, now
    )
    if transition.changed:
        task.status = transition.status.value
        task.completed_at = transition.completed_at
    return task


# Manual task transitions. in_progress -> completed is automatic and
# * -> verified belongs to verification, so neither appears here.
TASK_MANUAL_TRANSITIONS: Dict[TaskStatus, FrozenSet[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS}),
    TaskStatus.IN_PROGRESS: frozenset(),
    TaskStatus.COMPLETED: frozenset({TaskStatus.REJECTED}),
    TaskStatus.VERIFIED: frozenset(),
    TaskStatus.REJECTED: frozenset({TaskStatus.IN_PROGRESS}),
}

# Issues move freely between the open states. RESOLVED is set only by
# verification propagation and is terminal.
ISSUE_OPEN_STATUSES: FrozenSet[IssueStatus] = frozenset(
    {
        IssueStatus.REPORTED,
        IssueStatus.IN_REVIEW,
        IssueStatus.ASSIGNED,
        IssueStatus.IN_PROGRESS,
    }
)


def check_task_transition(current: str, target: TaskStatus) -> TaskStatus:
    """Raise ValidationError unless ``current -> target`` is a manual move."""
    current_status = TaskStatus(current)
    if target not in TASK_MANUAL_TRANSITIONS[current_status]:
        raise ValidationError(
            "status",
            f"Cannot move task from {current_status.value} to {target.value}",
            code="INVALID_TRANSITION",
        )
    return target


def check_issue_transition(current: str, target: IssueStatus) -> IssueStatus:
    """Raise ValidationError unless a client may move an issue to ``target``."""
    if target is IssueStatus.RESOLVED:
        raise ValidationError(
            "status",
            "Issues are resolved only by verifying their task",
            code="INVALID_TRANSITION",
        )
    if IssueStatus(current) not in ISSUE_OPEN_STATUSES:
        raise ValidationError(
            "status",
            f"Issue is {current} and can no longer change status",
            code="INVALID_TRANSITION",
        )
    return target
