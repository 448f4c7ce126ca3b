"""
Fleet Service Layer.

The entity store's write path. Each service method validates its input, runs
the relevant derivation explicitly, checks referential integrity, writes an
audit entry and commits, all in one transaction. Task verification is the
single operation that spans two entities; see ``TaskService.verify``.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Callable, Iterator, List, Optional

import structlog
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.security import check_password_hash, generate_password_hash

from ..config import get_settings
from ..db.audit_service import AuditService
from ..db.models import (
    AircraftModel,
    AttachmentModel,
    ChecklistItemModel,
    IssueModel,
    MaintenanceEntryModel,
    TaskModel,
    UserModel,
)
from ..db.sequences import EMPLOYEE_NUMBER, TASK_ID, next_sequence_value
from .aircraft import AircraftCreate, MaintenanceEntryCreate
from .derivation import (
    apply_checklist_transition,
    apply_health,
    check_issue_transition,
    check_task_transition,
    derive_aircraft_status,
)
from .enums import IssueStatus, ObjectKind, TaskStatus
from .errors import (
    ConcurrentUpdateError,
    MaintenanceError,
    NotFoundError,
    RetryableInconsistency,
    ValidationError,
)
from .integrity import ReferenceIntegrity, duplicate_key_from
from .issue import IssueCreate
from .primitives import ensure_utc, generate_ulid, utc_now
from .task import AttachmentCreate, ChecklistItemCreate, TaskCreate
from .user import UserCreate
from .verification import (
    VerificationOutcome,
    certify_task,
    resolve_issue,
    verification_matches,
)

logger = structlog.get_logger()


def check_version(entity: Any, kind: str, expected_version: Optional[int]) -> None:
    """Optimistic concurrency guard for callers that read before writing."""
    if expected_version is not None and entity.version != expected_version:
        raise ConcurrentUpdateError(kind, entity.id, expected_version, entity.version)


class _StoreService:
    """Shared session, audit and integrity plumbing."""

    kind: str = ""
    model: Any = None

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditService] = None,
        integrity: Optional[ReferenceIntegrity] = None,
    ):
        self.db = db
        self.audit = audit or AuditService(db)
        self.integrity = integrity or ReferenceIntegrity(db)

    @contextmanager
    def _transaction(self, entity_id: str) -> Iterator[None]:
        """Commit on success; roll back and translate storage errors on failure."""
        try:
            yield
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            duplicate = duplicate_key_from(exc)
            if duplicate is not None:
                raise duplicate from exc
            raise
        except StaleDataError as exc:
            self.db.rollback()
            raise ConcurrentUpdateError(self.kind, entity_id) from exc
        except MaintenanceError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def get(self, entity_id: str) -> Optional[Any]:
        """Get an entity by ID."""
        return self.db.get(self.model, entity_id)

    def require(self, entity_id: str) -> Any:
        """Get an entity by ID or raise NotFoundError."""
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.kind, entity_id)
        return entity


class AircraftService(_StoreService):
    """Service for registering aircraft and recording their condition."""

    kind = ObjectKind.AIRCRAFT.value
    model = AircraftModel

    def register(
        self, aircraft: AircraftCreate, actor_id: Optional[str] = None
    ) -> AircraftModel:
        """Register a new aircraft. Status is derived from the initial health."""
        db_aircraft = AircraftModel(
            id=generate_ulid(),
            tail_number=aircraft.tail_number,
            model=aircraft.model,
            manufacturer=aircraft.manufacturer,
            next_inspection_due=ensure_utc(aircraft.next_inspection_due),
        )
        apply_health(db_aircraft, aircraft.current_health)

        with self._transaction(db_aircraft.id):
            self.integrity.validate_references(db_aircraft)
            self.db.add(db_aircraft)
            self.db.flush()
            self.audit.log_create(
                entity_kind=self.kind,
                entity_id=db_aircraft.id,
                after=db_aircraft.to_dict(),
                actor_id=actor_id,
            )

        logger.info(
            "aircraft_registered",
            aircraft_id=db_aircraft.id,
            tail_number=db_aircraft.tail_number,
            status=db_aircraft.status,
        )
        return db_aircraft

    def get_by_tail_number(self, tail_number: str) -> Optional[AircraftModel]:
        """Get an aircraft by tail number (case-insensitive)."""
        return (
            self.db.query(AircraftModel)
            .filter(AircraftModel.tail_number == tail_number.strip().upper())
            .first()
        )

    def list(
        self,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AircraftModel]:
        """List aircraft, newest first, optionally filtered by status."""
        query = self.db.query(AircraftModel)

        if status:
            query = query.filter(AircraftModel.status == status)

        return (
            query.order_by(desc(AircraftModel.created_at))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def update_health(
        self,
        aircraft_id: str,
        health: int,
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AircraftModel:
        """Set the health score; the status is re-derived before commit."""
        aircraft = self.require(aircraft_id)
        check_version(aircraft, self.kind, expected_version)
        # Validates before anything is touched
        derive_aircraft_status(health)

        before = {"currentHealth": aircraft.current_health, "status": aircraft.status}
        old_status = aircraft.status

        with self._transaction(aircraft.id):
            apply_health(aircraft, health)
            self.db.flush()
            self.audit.log_update(
                entity_kind=self.kind,
                entity_id=aircraft.id,
                before=before,
                after={"currentHealth": aircraft.current_health, "status": aircraft.status},
                actor_id=actor_id,
                note=note,
            )
            if aircraft.status != old_status:
                self.audit.log_status_change(
                    self.kind, aircraft.id, old_status, aircraft.status, actor_id=actor_id
                )

        logger.info(
            "aircraft_health_updated",
            aircraft_id=aircraft.id,
            health=aircraft.current_health,
            status=aircraft.status,
        )
        return aircraft

    def record_maintenance(
        self,
        aircraft_id: str,
        entry: MaintenanceEntryCreate,
        actor_id: Optional[str] = None,
    ) -> AircraftModel:
        """Append a maintenance-history entry, optionally re-assessing health."""
        aircraft = self.require(aircraft_id)
        check_version(aircraft, self.kind, entry.expected_version)
        if entry.health_score is not None:
            derive_aircraft_status(entry.health_score)
        self.integrity.require_user(entry.performed_by, "performedBy")

        before = aircraft.to_dict()
        old_status = aircraft.status

        with self._transaction(aircraft.id):
            aircraft.maintenance_history.append(
                MaintenanceEntryModel(
                    type=entry.type.value,
                    description=entry.description,
                    performed_by_id=entry.performed_by,
                    date=ensure_utc(entry.date) or utc_now(),
                )
            )
            if entry.health_score is not None:
                apply_health(aircraft, entry.health_score)
            # Touch the parent row so its version advances with the history
            aircraft.updated_at = utc_now()
            self.db.flush()
            self.audit.log_update(
                entity_kind=self.kind,
                entity_id=aircraft.id,
                before=before,
                after=aircraft.to_dict(),
                actor_id=actor_id,
                note=f"{entry.type.value} maintenance recorded",
            )
            if aircraft.status != old_status:
                self.audit.log_status_change(
                    self.kind, aircraft.id, old_status, aircraft.status, actor_id=actor_id
                )

        logger.info(
            "aircraft_maintenance_recorded",
            aircraft_id=aircraft.id,
            maintenance_type=entry.type.value,
            status=aircraft.status,
        )
        return aircraft

    def ground(
        self,
        aircraft_id: str,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
    ) -> AircraftModel:
        """Take an aircraft out of service. Aircraft are never deleted."""
        return self.update_health(
            aircraft_id,
            0,
            expected_version=expected_version,
            actor_id=actor_id,
            note=reason or "Grounded",
        )

    def due_for_inspection(
        self, within_days: Optional[int] = None, now: Optional[datetime] = None
    ) -> List[AircraftModel]:
        """Aircraft whose next inspection falls within ``within_days``."""
        if within_days is None:
            within_days = get_settings().inspection_warning_days
        cutoff = (now or utc_now()) + timedelta(days=within_days)
        return (
            self.db.query(AircraftModel)
            .filter(AircraftModel.next_inspection_due <= cutoff)
            .order_by(AircraftModel.next_inspection_due)
            .all()
        )


class UserService(_StoreService):
    """Service for registering users and managing their credentials.

    Credential hashing is delegated to ``password_hasher`` /
    ``password_checker`` (werkzeug's salted PBKDF2 by default).
    """

    kind = ObjectKind.USER.value
    model = UserModel

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditService] = None,
        integrity: Optional[ReferenceIntegrity] = None,
        password_hasher: Callable[[str], str] = generate_password_hash,
        password_checker: Callable[[str, str], bool] = check_password_hash,
        employee_number_start: Optional[int] = None,
    ):
        super().__init__(db, audit, integrity)
        self.password_hasher = password_hasher
        self.password_checker = password_checker
        self.employee_number_start = employee_number_start

    def register(self, user: UserCreate, actor_id: Optional[str] = None) -> UserModel:
        """Register a user, allocating the next employee number."""
        self.integrity.ensure_unique_email(user.email)
        start = self.employee_number_start or get_settings().employee_number_start
        user_id = generate_ulid()

        with self._transaction(user_id):
            number = next_sequence_value(self.db, EMPLOYEE_NUMBER, start)
            db_user = UserModel(
                id=user_id,
                employee_number=number,
                employee_id=str(number),
                name=user.name,
                email=user.email,
                role=user.role.value,
                password_hash=self.password_hasher(user.password),
                is_active=True,
            )
            self.integrity.validate_references(db_user)
            self.db.add(db_user)
            self.db.flush()
            self.audit.log_create(
                entity_kind=self.kind,
                entity_id=db_user.id,
                after=db_user.to_dict(),
                actor_id=actor_id,
            )

        logger.info("user_registered", user_id=db_user.id, employee_id=db_user.employee_id)
        return db_user

    def get_by_email(self, email: str) -> Optional[UserModel]:
        return (
            self.db.query(UserModel)
            .filter(UserModel.email == email.strip().lower())
            .first()
        )

    def get_by_employee_id(self, employee_id: str) -> Optional[UserModel]:
        return (
            self.db.query(UserModel)
            .filter(UserModel.employee_id == employee_id.strip())
            .first()
        )

    def check_password(self, user: UserModel, password: str) -> bool:
        return self.password_checker(user.password_hash, password)

    def change_password(
        self, user_id: str, password: str, actor_id: Optional[str] = None
    ) -> bool:
        """Re-hash the credential. Returns False when the password is unchanged."""
        user = self.require(user_id)
        if self.check_password(user, password):
            return False

        with self._transaction(user.id):
            user.password_hash = self.password_hasher(password)
            self.db.flush()
            self.audit.log_update(
                entity_kind=self.kind,
                entity_id=user.id,
                before={},
                after={},
                actor_id=actor_id,
                note="Credential changed",
            )

        logger.info("user_credential_changed", user_id=user.id)
        return True

    def deactivate(self, user_id: str, actor_id: Optional[str] = None) -> UserModel:
        """Soft-delete a user. Inactive users can no longer be assigned tasks."""
        user = self.require(user_id)
        if not user.is_active:
            return user

        with self._transaction(user.id):
            user.is_active = False
            self.db.flush()
            self.audit.log_update(
                entity_kind=self.kind,
                entity_id=user.id,
                before={"isActive": True},
                after={"isActive": False},
                actor_id=actor_id,
            )

        logger.info("user_deactivated", user_id=user.id)
        return user


class IssueService(_StoreService):
    """Service for reported aircraft issues."""

    kind = ObjectKind.ISSUE.value
    model = IssueModel

    def report(self, issue: IssueCreate, reported_by: str) -> IssueModel:
        """Report a new issue on behalf of the authenticated user."""
        now = utc_now()
        db_issue = IssueModel(
            id=generate_ulid(),
            tail_number=issue.tail_number,
            description=issue.description,
            severity=issue.severity.value,
            status=IssueStatus.REPORTED.value,
            reported_by_id=reported_by,
            reported_at=now,
        )

        with self._transaction(db_issue.id):
            self.integrity.validate_references(db_issue)
            self.db.add(db_issue)
            self.db.flush()
            self.audit.log_create(
                entity_kind=self.kind,
                entity_id=db_issue.id,
                after=db_issue.to_dict(),
                actor_id=reported_by,
            )

        logger.info(
            "issue_reported",
            issue_id=db_issue.id,
            tail_number=db_issue.tail_number,
            severity=db_issue.severity,
        )
        return db_issue

    def list(
        self,
        tail_number: Optional[str] = None,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[IssueModel]:
        """List issues, newest first, with optional filtering."""
        query = self.db.query(IssueModel)

        if tail_number:
            query = query.filter(IssueModel.tail_number == tail_number.strip().upper())
        if status:
            query = query.filter(IssueModel.status == status)
        if severity:
            query = query.filter(IssueModel.severity == severity)

        return (
            query.order_by(desc(IssueModel.reported_at))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def update_status(
        self,
        issue_id: str,
        status: IssueStatus,
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
    ) -> IssueModel:
        """Move an open issue between open states. Never to ``resolved``."""
        issue = self.require(issue_id)
        check_version(issue, self.kind, expected_version)
        check_issue_transition(issue.status, status)

        old_status = issue.status
        if old_status == status.value:
            return issue

        with self._transaction(issue.id):
            issue.status = status.value
            self.db.flush()
            self.audit.log_status_change(
                self.kind, issue.id, old_status, issue.status, actor_id=actor_id
            )

        logger.info("issue_status_changed", issue_id=issue.id, status=issue.status)
        return issue


class TaskService(_StoreService):
    """Service for remediation tasks: checklist, attachments and verification."""

    kind = ObjectKind.TASK.value
    model = TaskModel

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditService] = None,
        integrity: Optional[ReferenceIntegrity] = None,
        task_id_start: Optional[int] = None,
    ):
        super().__init__(db, audit, integrity)
        self.task_id_start = task_id_start

    def create(
        self,
        task: TaskCreate,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TaskModel:
        """Create a pending task, allocating the next numeric task ID."""
        now = now or utc_now()
        due_date = ensure_utc(task.due_date)
        if due_date <= now:
            raise ValidationError("dueDate", "Due date must be in the future")

        db_task = TaskModel(
            id=generate_ulid(),
            aircraft_id=task.aircraft,
            issue_id=task.issue,
            assigned_to_id=task.assigned_to,
            title=task.title,
            description=task.description,
            priority=task.priority,
            status=TaskStatus.PENDING.value,
            start_date=ensure_utc(task.start_date),
            due_date=due_date,
        )
        for item in task.checklist:
            db_task.checklist.append(self._checklist_item(item, actor_id, now))
        for attachment in task.attachments:
            db_task.attachments.append(self._attachment(attachment, now))

        start = self.task_id_start or get_settings().task_id_start

        with self._transaction(db_task.id):
            self.integrity.validate_references(db_task)
            db_task.task_id = next_sequence_value(self.db, TASK_ID, start)
            self.integrity.ensure_unique_task_id(db_task.task_id)
            self.db.add(db_task)
            self.db.flush()
            self.audit.log_create(
                entity_kind=self.kind,
                entity_id=db_task.id,
                after=db_task.to_dict(),
                actor_id=actor_id,
            )
            self.audit.log_link(
                self.kind, db_task.id, ObjectKind.ISSUE.value, db_task.issue_id,
                actor_id=actor_id,
            )

        logger.info(
            "task_created",
            task_id=db_task.id,
            task_number=db_task.task_id,
            aircraft_id=db_task.aircraft_id,
            issue_id=db_task.issue_id,
        )
        return db_task

    def get_by_task_id(self, task_id: int) -> Optional[TaskModel]:
        """Get a task by its sequential numeric ID."""
        return self.db.query(TaskModel).filter(TaskModel.task_id == task_id).first()

    def list(
        self,
        assigned_to: Optional[str] = None,
        status: Optional[str] = None,
        aircraft_id: Optional[str] = None,
        issue_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[TaskModel]:
        """List tasks, newest first, with optional filtering."""
        query = self.db.query(TaskModel)

        if assigned_to:
            query = query.filter(TaskModel.assigned_to_id == assigned_to)
        if status:
            query = query.filter(TaskModel.status == status)
        if aircraft_id:
            query = query.filter(TaskModel.aircraft_id == aircraft_id)
        if issue_id:
            query = query.filter(TaskModel.issue_id == issue_id)

        return (
            query.order_by(desc(TaskModel.task_id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    # Status transitions

    def start(
        self,
        task_id: str,
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
    ) -> TaskModel:
        """pending or rejected -> in_progress."""
        return self._transition(task_id, TaskStatus.IN_PROGRESS, expected_version, actor_id)

    def reject(
        self,
        task_id: str,
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> TaskModel:
        """completed -> rejected, sending the work back to the assignee."""
        return self._transition(
            task_id, TaskStatus.REJECTED, expected_version, actor_id, note
        )

    def _transition(
        self,
        task_id: str,
        target: TaskStatus,
        expected_version: Optional[int],
        actor_id: Optional[str],
        note: Optional[str] = None,
    ) -> TaskModel:
        task = self.require(task_id)
        check_version(task, self.kind, expected_version)
        check_task_transition(task.status, target)
        old_status = task.status

        with self._transaction(task.id):
            task.status = target.value
            if target is TaskStatus.IN_PROGRESS:
                task.completed_at = None
            self.db.flush()
            self.audit.log_status_change(
                self.kind, task.id, old_status, task.status, actor_id=actor_id, note=note
            )

        logger.info("task_status_changed", task_id=task.id, status=task.status)
        return task

    # Checklist

    def _checklist_item(
        self, item: ChecklistItemCreate, actor_id: Optional[str], now: datetime
    ) -> ChecklistItemModel:
        return ChecklistItemModel(
            item=item.item,
            completed=item.completed,
            completed_at=now if item.completed else None,
            completed_by_id=actor_id if item.completed else None,
        )

    def _after_checklist_edit(
        self, task: TaskModel, old_status: str, actor_id: Optional[str], now: datetime
    ) -> None:
        apply_checklist_transition(task, now)
        # Touch the parent row so its version advances with the checklist
        task.updated_at = now
        self.db.flush()
        self.audit.log_update(
            entity_kind=self.kind,
            entity_id=task.id,
            before={"status": old_status},
            after={
                "status": task.status,
                "checklist": [item.to_dict() for item in task.checklist],
                "completionPercentage": task.completion_percentage,
            },
            actor_id=actor_id,
            note="Checklist updated",
        )
        if task.status != old_status:
            self.audit.log_status_change(
                self.kind, task.id, old_status, task.status, actor_id=actor_id,
                note="All checklist items completed",
            )
            logger.info("task_auto_completed", task_id=task.id, completed_at=str(now))

    def set_checklist(
        self,
        task_id: str,
        items: List[ChecklistItemCreate],
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TaskModel:
        """Replace the whole checklist."""
        now = now or utc_now()
        task = self.require(task_id)
        check_version(task, self.kind, expected_version)
        if actor_id is not None:
            self.integrity.require_user(actor_id, "completedBy")
        old_status = task.status

        with self._transaction(task.id):
            task.checklist.clear()
            for item in items:
                task.checklist.append(self._checklist_item(item, actor_id, now))
            self._after_checklist_edit(task, old_status, actor_id, now)

        return task

    def update_checklist_item(
        self,
        task_id: str,
        index: int,
        completed: bool,
        expected_version: Optional[int] = None,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TaskModel:
        """Mark one checklist item (by position) completed or not completed."""
        now = now or utc_now()
        task = self.require(task_id)
        check_version(task, self.kind, expected_version)
        if not 0 <= index < len(task.checklist):
            raise ValidationError(
                "checklist", f"Checklist has no item at position {index}"
            )
        if actor_id is not None:
            self.integrity.require_user(actor_id, "completedBy")
        old_status = task.status

        with self._transaction(task.id):
            item = task.checklist[index]
            item.completed = completed
            item.completed_at = now if completed else None
            item.completed_by_id = actor_id if completed else None
            self._after_checklist_edit(task, old_status, actor_id, now)

        return task

    # Attachments

    def _attachment(self, attachment: AttachmentCreate, now: datetime) -> AttachmentModel:
        return AttachmentModel(
            type=attachment.type.value,
            filename=attachment.filename,
            path=attachment.path,
            uploaded_at=ensure_utc(attachment.uploaded_at) or now,
        )

    def add_attachment(
        self,
        task_id: str,
        attachment: AttachmentCreate,
        actor_id: Optional[str] = None,
    ) -> TaskModel:
        """Store upload metadata supplied by the upload collaborator."""
        now = utc_now()
        task = self.require(task_id)

        with self._transaction(task.id):
            task.attachments.append(self._attachment(attachment, now))
            task.updated_at = now
            self.db.flush()
            self.audit.log_update(
                entity_kind=self.kind,
                entity_id=task.id,
                before={},
                after={"attachment": task.attachments[-1].to_dict()},
                actor_id=actor_id,
                note=f"{attachment.type.value} attachment added",
            )

        return task

    # Verification

    def verify(
        self,
        task_id: str,
        verified_by: str,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> VerificationOutcome:
        """Certify a task and resolve its issue.

        The task write and the issue update share one transaction; the issue
        update runs in a SAVEPOINT. If only the issue update fails, the
        verification is still committed and RetryableInconsistency is raised
        so the caller can retry the propagation alone.

        Raises:
            NotFoundError: the task, its issue or its assignee is missing
            BrokenReferenceError: the verifying user does not resolve
            RetryableInconsistency: verified, but the issue was not resolved
        """
        task = self.require(task_id)
        verifier = self.integrity.require_user(verified_by, "verifiedBy", active=True)
        issue = self.db.get(IssueModel, task.issue_id) if task.issue_id else None
        assignee = self.db.get(UserModel, task.assigned_to_id)
        old_status = task.status

        log = logger.bind(task_id=task.id, issue_id=task.issue_id)

        # Raises before anything is modified
        outcome = certify_task(task, issue, assignee, verifier, now=now, notes=notes)

        propagation_error: Optional[Exception] = None
        with self._transaction(task.id):
            if outcome.newly_verified:
                self.db.flush()
                self.audit.log_verification(
                    task.id,
                    {
                        "verifiedBy": task.verified_by_id,
                        "verifiedAt": outcome.record.completed_at,
                        "hash": task.verification_hash,
                    },
                    actor_id=verifier.id,
                )
                self.audit.log_status_change(
                    self.kind, task.id, old_status, task.status, actor_id=verifier.id
                )
            propagation_error = self._propagate(task, issue, verifier.id, log)

        if outcome.newly_verified:
            log.info("task_verified", verification_hash=task.verification_hash)
        if propagation_error is not None:
            raise RetryableInconsistency(
                task.id, issue.id, str(propagation_error)
            ) from propagation_error
        return outcome

    def _propagate(
        self, task: TaskModel, issue: IssueModel, actor_id: Optional[str], log: Any
    ) -> Optional[Exception]:
        """Resolve ``issue`` inside a savepoint; return the error if it failed."""
        old_status = issue.status
        if old_status == IssueStatus.RESOLVED.value:
            return None
        try:
            with self.db.begin_nested():
                resolve_issue(issue)
        except SQLAlchemyError as exc:
            log.error("issue_resolution_propagation_failed", error=str(exc))
            self.audit.log_propagation_failure(
                task.id, task.issue_id, str(exc), actor_id=actor_id
            )
            return exc

        self.audit.log_status_change(
            ObjectKind.ISSUE.value,
            issue.id,
            old_status,
            issue.status,
            actor_id=actor_id,
            note=f"Resolved by verification of task {task.task_id}",
        )
        log.info("issue_resolution_propagated")
        return None

    def retry_propagation(
        self, task_id: str, actor_id: Optional[str] = None
    ) -> IssueModel:
        """Re-apply only the issue resolution for an already verified task."""
        task = self.require(task_id)
        if task.status != TaskStatus.VERIFIED.value or not task.verification_hash:
            raise ValidationError(
                "status", "Task has not been verified", code="NOT_VERIFIED"
            )
        issue = self.db.get(IssueModel, task.issue_id) if task.issue_id else None
        if issue is None:
            raise NotFoundError(ObjectKind.ISSUE.value, task.issue_id)

        log = logger.bind(task_id=task.id, issue_id=issue.id)
        with self._transaction(task.id):
            error = self._propagate(task, issue, actor_id, log)

        if error is not None:
            raise RetryableInconsistency(task.id, issue.id, str(error)) from error
        return issue

    def check_verification(self, task_id: str) -> bool:
        """Recompute the stored verification hash and compare."""
        task = self.require(task_id)
        issue = self.db.get(IssueModel, task.issue_id) if task.issue_id else None
        assignee = self.db.get(UserModel, task.assigned_to_id)
        return verification_matches(task, issue, assignee)
