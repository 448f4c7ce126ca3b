"""
Audit Log Service.

Records audit entries inside the caller's transaction: entries are added and
flushed but never committed here, so an audit row exists exactly when the
change it describes was committed.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..fleet.primitives import generate_ulid, utc_now
from .audit_models import AuditLogModel

SYSTEM_ACTOR = "maintenance-core"


class AuditService:
    """Service for managing audit log entries.

    Usage:
        audit = AuditService(db_session)
        audit.log_create("Aircraft", aircraft.id, aircraft.to_dict(), actor_id=user.id)
        db_session.commit()
    """

    def __init__(self, db: Session):
        self.db = db

    def _record(
        self,
        action: str,
        entity_kind: str,
        entity_id: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
        actor_id: Optional[str],
        note: Optional[str],
    ) -> AuditLogModel:
        entry = AuditLogModel(
            id=generate_ulid(),
            ts=utc_now(),
            actor_kind="human" if actor_id else "system",
            actor_id=actor_id or SYSTEM_ACTOR,
            action=action,
            entity_kind=entity_kind,
            entity_id=entity_id,
            before=before,
            after=after,
            note=note,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def log_create(
        self,
        entity_kind: str,
        entity_id: str,
        after: Dict[str, Any],
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the creation of an entity.

        Args:
            entity_kind: Type of entity (e.g., "Aircraft", "Issue", "Task")
            entity_id: ID of the entity
            after: State of the entity after creation
            actor_id: ID of the acting user; None means the system itself
            note: Optional human-readable note
        """
        return self._record("created", entity_kind, entity_id, None, after, actor_id, note)

    def log_update(
        self,
        entity_kind: str,
        entity_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log an update to an entity."""
        return self._record(
            "updated", entity_kind, entity_id, before, after, actor_id, note
        )

    def log_status_change(
        self,
        entity_kind: str,
        entity_id: str,
        old_status: str,
        new_status: str,
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log a status change on an entity."""
        return self._record(
            "status_changed",
            entity_kind,
            entity_id,
            {"status": old_status},
            {"status": new_status},
            actor_id,
            note or f"Status changed: {old_status} -> {new_status}",
        )

    def log_link(
        self,
        entity_kind: str,
        entity_id: str,
        linked_kind: str,
        linked_id: str,
        actor_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log linking two entities together."""
        return self._record(
            "linked",
            entity_kind,
            entity_id,
            None,
            {"linked_kind": linked_kind, "linked_id": linked_id},
            actor_id,
            note or f"Linked to {linked_kind}:{linked_id}",
        )

    def log_verification(
        self,
        task_id: str,
        verification: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the verification block written to a task."""
        return self._record(
            "verified", "Task", task_id, None, verification, actor_id, None
        )

    def log_propagation_failure(
        self,
        task_id: str,
        issue_id: Optional[str],
        reason: str,
        actor_id: Optional[str] = None,
    ) -> AuditLogModel:
        """Log that a verified task's issue could not be resolved."""
        return self._record(
            "propagation_failed",
            "Task",
            task_id,
            None,
            {"issue_id": issue_id},
            actor_id,
            reason,
        )

    # Query methods

    def query_by_entity(
        self,
        entity_kind: str,
        entity_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get audit history for a specific entity, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(
                AuditLogModel.entity_kind == entity_kind,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def query_by_actor(
        self,
        actor_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get all audit entries by a specific actor, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(AuditLogModel.actor_id == actor_id)
            .order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def query_by_action(
        self,
        action: str,
        entity_kind: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get all audit entries for a specific action type, newest first."""
        query = self.db.query(AuditLogModel).filter(AuditLogModel.action == action)

        if entity_kind:
            query = query.filter(AuditLogModel.entity_kind == entity_kind)

        return (
            query.order_by(desc(AuditLogModel.ts), desc(AuditLogModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
