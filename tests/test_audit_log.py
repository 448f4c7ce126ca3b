"""
Tests for the AuditLog model and service.

Verifies:
- AuditLogModel structure and to_dict()
- AuditService logging methods (create, update, status_change, link,
  verification, propagation failure)
- AuditService query methods (by entity, actor, action)
- Entries are flushed but left for the caller to commit
"""

from datetime import datetime, timezone

from aircraft_maintenance.db.audit_models import AuditLogModel
from aircraft_maintenance.db.audit_service import SYSTEM_ACTOR, AuditService


class TestAuditLogModel:
    """Tests for AuditLogModel structure."""

    def test_model_has_required_columns(self):
        """Verify all required columns exist."""
        columns = {c.name for c in AuditLogModel.__table__.columns}
        required = {
            "id", "ts", "actor_kind", "actor_id", "action",
            "entity_kind", "entity_id", "before", "after", "note",
        }
        assert required.issubset(columns)

    def test_to_dict_output(self):
        """Verify to_dict() returns expected structure."""
        entry = AuditLogModel(
            id="test-id-123",
            ts=datetime(2026, 1, 26, 12, 0, 0, tzinfo=timezone.utc),
            actor_kind="human",
            actor_id="user-1",
            action="created",
            entity_kind="Aircraft",
            entity_id="aircraft-123",
            before=None,
            after={"tailNumber": "N123AB"},
            note="Registered",
        )

        result = entry.to_dict()

        assert result["id"] == "test-id-123"
        assert result["ts"].startswith("2026-01-26T12:00:00")
        assert result["actor_kind"] == "human"
        assert result["action"] == "created"
        assert result["entity_kind"] == "Aircraft"
        assert result["before"] is None
        assert result["after"] == {"tailNumber": "N123AB"}
        assert result["note"] == "Registered"

    def test_indexes_defined(self):
        index_names = {index.name for index in AuditLogModel.__table__.indexes}
        assert {"ix_audit_log_entity", "ix_audit_log_actor", "ix_audit_log_entity_ts"} <= index_names


class TestAuditServiceLogging:
    """Tests for the AuditService log_* methods."""

    def test_log_create_with_actor(self, db_session):
        entry = AuditService(db_session).log_create(
            entity_kind="Aircraft",
            entity_id="aircraft-123",
            after={"tailNumber": "N123AB"},
            actor_id="user-1",
        )

        assert entry.id is not None
        assert entry.action == "created"
        assert entry.actor_kind == "human"
        assert entry.actor_id == "user-1"
        assert entry.before is None

    def test_log_without_actor_is_system(self, db_session):
        entry = AuditService(db_session).log_create("Task", "task-1", {"taskId": 1})

        assert entry.actor_kind == "system"
        assert entry.actor_id == SYSTEM_ACTOR

    def test_log_update_captures_before_after(self, db_session):
        entry = AuditService(db_session).log_update(
            entity_kind="Aircraft",
            entity_id="aircraft-123",
            before={"currentHealth": 80},
            after={"currentHealth": 30},
        )

        assert entry.action == "updated"
        assert entry.before == {"currentHealth": 80}
        assert entry.after == {"currentHealth": 30}

    def test_log_status_change(self, db_session):
        entry = AuditService(db_session).log_status_change(
            entity_kind="Task",
            entity_id="task-123",
            old_status="in_progress",
            new_status="completed",
        )

        assert entry.action == "status_changed"
        assert entry.before == {"status": "in_progress"}
        assert entry.after == {"status": "completed"}
        assert "in_progress -> completed" in entry.note

    def test_log_link(self, db_session):
        entry = AuditService(db_session).log_link(
            entity_kind="Task",
            entity_id="task-123",
            linked_kind="Issue",
            linked_id="issue-456",
        )

        assert entry.action == "linked"
        assert entry.after == {"linked_kind": "Issue", "linked_id": "issue-456"}
        assert "Issue:issue-456" in entry.note

    def test_log_verification(self, db_session):
        entry = AuditService(db_session).log_verification(
            "task-123", {"hash": "ab" * 32}, actor_id="manager-1"
        )

        assert entry.action == "verified"
        assert entry.entity_kind == "Task"
        assert entry.after == {"hash": "ab" * 32}

    def test_log_propagation_failure(self, db_session):
        entry = AuditService(db_session).log_propagation_failure(
            "task-123", "issue-456", "version conflict"
        )

        assert entry.action == "propagation_failed"
        assert entry.after == {"issue_id": "issue-456"}
        assert entry.note == "version conflict"

    def test_entries_are_not_committed(self, db_session):
        AuditService(db_session).log_create("Issue", "issue-1", {"status": "reported"})
        db_session.rollback()

        assert db_session.query(AuditLogModel).count() == 0


class TestAuditServiceQueries:
    """Tests for AuditService query methods."""

    def test_query_by_entity(self, db_session):
        audit = AuditService(db_session)
        audit.log_create("Issue", "issue-1", {"status": "reported"})
        audit.log_status_change("Issue", "issue-1", "reported", "in_review")
        audit.log_create("Issue", "issue-2", {"status": "reported"})

        results = audit.query_by_entity("Issue", "issue-1")

        assert len(results) == 2
        assert all(r.entity_id == "issue-1" for r in results)
        # Newest first
        assert results[0].action == "status_changed"

    def test_query_by_actor(self, db_session):
        audit = AuditService(db_session)
        audit.log_create("Aircraft", "a-1", {}, actor_id="user-1")
        audit.log_create("Aircraft", "a-2", {}, actor_id="user-2")

        results = audit.query_by_actor("user-1")

        assert [r.entity_id for r in results] == ["a-1"]

    def test_query_by_action(self, db_session):
        audit = AuditService(db_session)
        audit.log_create("Task", "task-1", {})
        audit.log_verification("task-1", {"hash": "x"})
        audit.log_create("Issue", "issue-1", {})

        assert len(audit.query_by_action("created")) == 2
        assert len(audit.query_by_action("created", entity_kind="Task")) == 1
        assert [r.entity_id for r in audit.query_by_action("verified")] == ["task-1"]
