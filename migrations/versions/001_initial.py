"""Create fleet, task and audit tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
import sqlalchemy as sa
from alembic import op

# revision identifiers
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("employee_number", sa.Integer, nullable=False, unique=True),
        sa.Column("employee_id", sa.String(32), nullable=False, unique=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column(
            "role",
            sa.Enum("pilot", "engineer", "manager", "admin", name="user_role"),
            nullable=False,
        ),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_employee_id", "users", ["employee_id"])
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_employee_id_email", "users", ["employee_id", "email"])

    op.create_table(
        "aircraft",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("tail_number", sa.String(32), nullable=False, unique=True),
        sa.Column("model", sa.String(128), nullable=False),
        sa.Column("manufacturer", sa.String(128), nullable=False),
        sa.Column("current_health", sa.Integer, nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "maintenance", "grounded", name="aircraft_status"),
            nullable=False,
        ),
        sa.Column("next_inspection_due", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_aircraft_tail_number", "aircraft", ["tail_number"])
    op.create_index("ix_aircraft_status", "aircraft", ["status"])
    op.create_index("ix_aircraft_next_inspection_due", "aircraft", ["next_inspection_due"])
    op.create_index("ix_aircraft_status_health", "aircraft", ["status", "current_health"])

    op.create_table(
        "aircraft_maintenance_history",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("aircraft_id", sa.String(128), sa.ForeignKey("aircraft.id"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column(
            "type",
            sa.Enum("scheduled", "unscheduled", "emergency", name="maintenance_type"),
            nullable=False,
        ),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("performed_by_id", sa.String(128), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_aircraft_maintenance_history_aircraft_id",
        "aircraft_maintenance_history",
        ["aircraft_id"],
    )

    op.create_table(
        "issues",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("tail_number", sa.String(32), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column(
            "severity",
            sa.Enum("low", "medium", "high", name="issue_severity"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(
                "reported",
                "in_review",
                "assigned",
                "in_progress",
                "resolved",
                name="issue_status",
            ),
            nullable=False,
        ),
        sa.Column("reported_by_id", sa.String(128), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reported_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_issues_tail_number", "issues", ["tail_number"])
    op.create_index("ix_issues_severity", "issues", ["severity"])
    op.create_index("ix_issues_status", "issues", ["status"])
    op.create_index("ix_issues_reported_by_id", "issues", ["reported_by_id"])
    op.create_index("ix_issues_reported_at", "issues", ["reported_at"])
    op.create_index("ix_issues_tail_number_status", "issues", ["tail_number", "status"])
    op.create_index("ix_issues_severity_status", "issues", ["severity", "status"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("task_id", sa.Integer, nullable=False, unique=True),
        sa.Column("aircraft_id", sa.String(128), sa.ForeignKey("aircraft.id"), nullable=False),
        sa.Column("issue_id", sa.String(128), sa.ForeignKey("issues.id"), nullable=False),
        sa.Column("assigned_to_id", sa.String(128), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("priority", sa.Integer, nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "in_progress",
                "completed",
                "verified",
                "rejected",
                name="task_status",
            ),
            nullable=False,
        ),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by_id", sa.String(128), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verification_hash", sa.String(64), nullable=True),
        sa.Column("verification_notes", sa.Text, nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_tasks_aircraft_id", "tasks", ["aircraft_id"])
    op.create_index("ix_tasks_assigned_to_id", "tasks", ["assigned_to_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])
    op.create_index("ix_tasks_assigned_to_status", "tasks", ["assigned_to_id", "status"])
    op.create_index("ix_tasks_issue_status", "tasks", ["issue_id", "status"])
    op.create_index("ix_tasks_due_date_status", "tasks", ["due_date", "status"])

    op.create_table(
        "task_checklist_items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("parent_id", sa.String(128), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("item", sa.Text, nullable=False),
        sa.Column("completed", sa.Boolean, nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by_id", sa.String(128), sa.ForeignKey("users.id"), nullable=True),
    )
    op.create_index(
        "ix_task_checklist_items_parent_id", "task_checklist_items", ["parent_id"]
    )

    op.create_table(
        "task_attachments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("parent_id", sa.String(128), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column(
            "type",
            sa.Enum("before", "after", "progress", name="attachment_kind"),
            nullable=False,
        ),
        sa.Column("filename", sa.String(512), nullable=True),
        sa.Column("path", sa.String(2000), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_task_attachments_parent_id", "task_attachments", ["parent_id"])

    op.create_table(
        "counters",
        sa.Column("name", sa.String(64), primary_key=True),
        sa.Column("value", sa.Integer, nullable=False),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "actor_kind",
            sa.Enum("human", "system", name="audit_actor_kind"),
            nullable=False,
        ),
        sa.Column("actor_id", sa.String(128), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "created",
                "updated",
                "status_changed",
                "linked",
                "verified",
                "propagation_failed",
                name="audit_action",
            ),
            nullable=False,
        ),
        sa.Column("entity_kind", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(128), nullable=False),
        sa.Column("before", sa.JSON, nullable=True),
        sa.Column("after", sa.JSON, nullable=True),
        sa.Column("note", sa.Text, nullable=True),
    )
    op.create_index("ix_audit_log_ts", "audit_log", ["ts"])
    op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_entity_kind", "audit_log", ["entity_kind"])
    op.create_index("ix_audit_log_entity_id", "audit_log", ["entity_id"])
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_kind", "entity_id"])
    op.create_index("ix_audit_log_actor", "audit_log", ["actor_kind", "actor_id"])
    op.create_index(
        "ix_audit_log_entity_ts", "audit_log", ["entity_kind", "entity_id", "ts"]
    )


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("audit_log")
    op.drop_table("counters")
    op.drop_table("task_attachments")
    op.drop_table("task_checklist_items")
    op.drop_table("tasks")
    op.drop_table("issues")
    op.drop_table("aircraft_maintenance_history")
    op.drop_table("aircraft")
    op.drop_table("users")

    # Drop custom enums (PostgreSQL)
    for enum_name in (
        "audit_action",
        "audit_actor_kind",
        "attachment_kind",
        "task_status",
        "issue_status",
        "issue_severity",
        "maintenance_type",
        "aircraft_status",
        "user_role",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
