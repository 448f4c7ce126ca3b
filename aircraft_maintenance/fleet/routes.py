"""
Fleet API Routes.

Thin REST adapter over the fleet services. All endpoints are prefixed with
/api. The authenticated user id arrives in the ``X-User-Id`` header, set by
the identity layer in front of this service.

Domain errors propagate to the exception handler registered in ``api.py``.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session

from ..db.base import get_db
from .aircraft import AircraftCreate, HealthUpdate, MaintenanceEntryCreate
from .issue import IssueCreate, IssueStatusUpdate
from .services import AircraftService, IssueService, TaskService, UserService
from .task import (
    AttachmentCreate,
    ChecklistItemUpdate,
    ChecklistReplace,
    TaskCreate,
    TaskVerify,
)
from .user import PasswordChange, UserCreate

router = APIRouter(prefix="/api", tags=["fleet"])


def current_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """The acting user, if the identity layer supplied one."""
    return x_user_id or None


def require_user_id(user_id: Optional[str] = Depends(current_user_id)) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    return user_id


def _not_found(kind: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind} not found")


# =============================================================================
# Aircraft Endpoints
# =============================================================================


@router.post("/aircraft", status_code=201)
async def register_aircraft(
    aircraft: AircraftCreate,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Register a new aircraft."""
    db_aircraft = AircraftService(db).register(aircraft, actor_id=actor_id)
    return {
        "status": "success",
        "aircraft": db_aircraft.to_dict(),
    }


@router.get("/aircraft")
async def list_aircraft(
    status: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List aircraft with optional status filtering."""
    fleet = AircraftService(db).list(status=status, limit=limit, offset=offset)
    return [a.to_dict() for a in fleet]


@router.get("/aircraft/due-for-inspection")
async def aircraft_due_for_inspection(
    within_days: Optional[int] = Query(None, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """Aircraft whose next inspection is due soon (or overdue)."""
    return [a.to_dict() for a in AircraftService(db).due_for_inspection(within_days)]


@router.get("/aircraft/tail/{tail_number}")
async def get_aircraft_by_tail_number(
    tail_number: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get an aircraft by tail number."""
    aircraft = AircraftService(db).get_by_tail_number(tail_number)

    if not aircraft:
        raise _not_found("Aircraft")

    return aircraft.to_dict()


@router.get("/aircraft/{aircraft_id}")
async def get_aircraft(
    aircraft_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get an aircraft by ID, including its maintenance history."""
    aircraft = AircraftService(db).get(aircraft_id)

    if not aircraft:
        raise _not_found("Aircraft")

    return aircraft.to_dict()


@router.put("/aircraft/{aircraft_id}/health")
async def update_aircraft_health(
    aircraft_id: str,
    update: HealthUpdate,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Record a new health score. The status follows from it."""
    aircraft = AircraftService(db).update_health(
        aircraft_id,
        update.health_score,
        expected_version=update.expected_version,
        actor_id=actor_id,
    )
    return {
        "status": "success",
        "aircraft": aircraft.to_dict(),
    }


@router.post("/aircraft/{aircraft_id}/maintenance", status_code=201)
async def record_maintenance(
    aircraft_id: str,
    entry: MaintenanceEntryCreate,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Append an entry to an aircraft's maintenance history."""
    aircraft = AircraftService(db).record_maintenance(
        aircraft_id, entry, actor_id=actor_id
    )
    return {
        "status": "success",
        "aircraft": aircraft.to_dict(),
    }


@router.post("/aircraft/{aircraft_id}/ground")
async def ground_aircraft(
    aircraft_id: str,
    reason: Optional[str] = None,
    expected_version: Optional[int] = Query(None, alias="expectedVersion"),
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Ground an aircraft."""
    aircraft = AircraftService(db).ground(
        aircraft_id, reason=reason, expected_version=expected_version, actor_id=actor_id
    )
    return {
        "status": "success",
        "aircraft": aircraft.to_dict(),
    }


# =============================================================================
# User Endpoints
# =============================================================================


@router.post("/users", status_code=201)
async def register_user(
    user: UserCreate,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Register a user and allocate their employee ID."""
    db_user = UserService(db).register(user, actor_id=actor_id)
    return {
        "status": "success",
        "user": db_user.to_dict(),
    }


@router.get("/users/{user_id}")
async def get_user(
    user_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a user by ID."""
    user = UserService(db).get(user_id)

    if not user:
        raise _not_found("User")

    return user.to_dict()


@router.get("/users/employee/{employee_id}")
async def get_user_by_employee_id(
    employee_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a user by employee ID."""
    user = UserService(db).get_by_employee_id(employee_id)

    if not user:
        raise _not_found("User")

    return user.to_dict()


@router.put("/users/{user_id}/password")
async def change_password(
    user_id: str,
    change: PasswordChange,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Change a user's password."""
    changed = UserService(db).change_password(
        user_id, change.password, actor_id=actor_id
    )
    return {"status": "success", "changed": changed}


@router.post("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: str,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Deactivate a user."""
    user = UserService(db).deactivate(user_id, actor_id=actor_id)
    return {
        "status": "success",
        "user": user.to_dict(),
    }


# =============================================================================
# Issue Endpoints
# =============================================================================


@router.post("/issues", status_code=201)
async def report_issue(
    issue: IssueCreate,
    actor_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Report an issue. The reporter is the authenticated user."""
    db_issue = IssueService(db).report(issue, reported_by=actor_id)
    return {
        "status": "success",
        "issue": db_issue.to_dict(),
    }


@router.get("/issues")
async def list_issues(
    tail_number: Optional[str] = Query(None, alias="tailNumber"),
    status: Optional[str] = None,
    severity: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List issues with optional filtering."""
    issues = IssueService(db).list(
        tail_number=tail_number,
        status=status,
        severity=severity,
        limit=limit,
        offset=offset,
    )
    return [i.to_dict() for i in issues]


@router.get("/issues/{issue_id}")
async def get_issue(
    issue_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get an issue by ID."""
    issue = IssueService(db).get(issue_id)

    if not issue:
        raise _not_found("Issue")

    return issue.to_dict()


@router.patch("/issues/{issue_id}/status")
async def update_issue_status(
    issue_id: str,
    update: IssueStatusUpdate,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Move an issue between open states."""
    issue = IssueService(db).update_status(
        issue_id,
        update.status,
        expected_version=update.expected_version,
        actor_id=actor_id,
    )
    return {
        "status": "success",
        "issue": issue.to_dict(),
    }


# =============================================================================
# Task Endpoints
# =============================================================================


@router.post("/tasks", status_code=201)
async def create_task(
    task: TaskCreate,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Create a remediation task for an issue."""
    db_task = TaskService(db).create(task, actor_id=actor_id)
    return {
        "status": "success",
        "task": db_task.to_dict(),
    }


@router.get("/tasks")
async def list_tasks(
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    status: Optional[str] = None,
    aircraft_id: Optional[str] = Query(None, alias="aircraft"),
    issue_id: Optional[str] = Query(None, alias="issue"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List tasks with optional filtering."""
    tasks = TaskService(db).list(
        assigned_to=assigned_to,
        status=status,
        aircraft_id=aircraft_id,
        issue_id=issue_id,
        limit=limit,
        offset=offset,
    )
    return [t.to_dict() for t in tasks]


@router.get("/tasks/number/{task_number}")
async def get_task_by_number(
    task_number: int,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a task by its numeric task ID."""
    task = TaskService(db).get_by_task_id(task_number)

    if not task:
        raise _not_found("Task")

    return task.to_dict()


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get a task by ID."""
    task = TaskService(db).get(task_id)

    if not task:
        raise _not_found("Task")

    return task.to_dict()


@router.post("/tasks/{task_id}/start")
async def start_task(
    task_id: str,
    expected_version: Optional[int] = Query(None, alias="expectedVersion"),
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Start work on a pending or rejected task."""
    task = TaskService(db).start(
        task_id, expected_version=expected_version, actor_id=actor_id
    )
    return {"status": "success", "task": task.to_dict()}


@router.post("/tasks/{task_id}/reject")
async def reject_task(
    task_id: str,
    reason: Optional[str] = None,
    expected_version: Optional[int] = Query(None, alias="expectedVersion"),
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Send completed work back to the assignee."""
    task = TaskService(db).reject(
        task_id, expected_version=expected_version, actor_id=actor_id, note=reason
    )
    return {"status": "success", "task": task.to_dict()}


@router.put("/tasks/{task_id}/checklist")
async def replace_checklist(
    task_id: str,
    checklist: ChecklistReplace,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Replace a task's checklist."""
    task = TaskService(db).set_checklist(
        task_id,
        checklist.items,
        expected_version=checklist.expected_version,
        actor_id=actor_id,
    )
    return {"status": "success", "task": task.to_dict()}


@router.patch("/tasks/{task_id}/checklist/{index}")
async def update_checklist_item(
    task_id: str,
    index: int,
    update: ChecklistItemUpdate,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Mark a checklist item completed or not completed."""
    task = TaskService(db).update_checklist_item(
        task_id,
        index,
        update.completed,
        expected_version=update.expected_version,
        actor_id=actor_id,
    )
    return {"status": "success", "task": task.to_dict()}


@router.post("/tasks/{task_id}/attachments", status_code=201)
async def add_attachment(
    task_id: str,
    attachment: AttachmentCreate,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Attach upload metadata to a task."""
    task = TaskService(db).add_attachment(task_id, attachment, actor_id=actor_id)
    return {"status": "success", "task": task.to_dict()}


@router.post("/tasks/{task_id}/verify")
async def verify_task(
    task_id: str,
    verification: TaskVerify,
    actor_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Verify a task and resolve its issue. The verifier is the caller."""
    outcome = TaskService(db).verify(task_id, actor_id, notes=verification.notes)
    return {
        "status": "success",
        "newlyVerified": outcome.newly_verified,
        "task": outcome.task.to_dict(),
        "issue": outcome.issue.to_dict(),
    }


@router.post("/tasks/{task_id}/propagation")
async def retry_propagation(
    task_id: str,
    actor_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Retry resolving the issue of an already verified task."""
    issue = TaskService(db).retry_propagation(task_id, actor_id=actor_id)
    return {"status": "success", "issue": issue.to_dict()}


@router.get("/tasks/{task_id}/verification")
async def check_verification(
    task_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Recompute a task's verification hash and compare it to the stored one."""
    service = TaskService(db)
    valid = service.check_verification(task_id)
    task = service.require(task_id)
    return {
        "taskId": task.task_id,
        "hash": task.verification_hash,
        "valid": valid,
    }
