"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# Enums are stored as their string values (native_enum=False on the models)
ENUM = sa.String(40)


def _user_fk(column: str) -> sa.Column:
    return sa.Column(column, sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role", ENUM, nullable=False),
        sa.Column("password_hash", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])
    op.create_index("ix_sessions_created_at", "sessions", ["created_at"])

    op.create_table(
        "work_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("type", ENUM, nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", ENUM, nullable=False),
        sa.Column("priority", ENUM, nullable=False),
        sa.Column("due_at", sa.DateTime(), nullable=True),
        _user_fk("owner_id"),
        _user_fk("created_by_id"),
        _user_fk("updated_by_id"),
        sa.Column("status_changed_at", sa.DateTime(), nullable=True),
        sa.Column("owner_changed_at", sa.DateTime(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("needs_proofing", sa.Boolean(), nullable=False),
        sa.Column("blocked_reason", sa.Text(), nullable=True),
        sa.Column("tbp_graphics_location", sa.String(1000), nullable=True),
        sa.Column("tbp_publish_date", sa.DateTime(), nullable=True),
        sa.Column("tbp_article_link", sa.String(1000), nullable=True),
        sa.Column("tbp_tx_tie", sa.Text(), nullable=True),
        sa.Column("requester_name", sa.String(255), nullable=True),
        sa.Column("requester_email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_work_items_type", "work_items", ["type"])
    op.create_index("ix_work_items_status", "work_items", ["status"])
    op.create_index("ix_work_items_due_at", "work_items", ["due_at"])
    op.create_index("ix_work_items_owner_id", "work_items", ["owner_id"])
    op.create_index("ix_work_items_created_at", "work_items", ["created_at"])

    op.create_table(
        "subtasks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "work_item_id",
            sa.Uuid(),
            sa.ForeignKey("work_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("due_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_subtasks_work_item_id", "subtasks", ["work_item_id"])
    op.create_index("ix_subtasks_created_at", "subtasks", ["created_at"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "work_item_id",
            sa.Uuid(),
            sa.ForeignKey("work_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk("author_id"),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_comments_work_item_id", "comments", ["work_item_id"])
    op.create_index("ix_comments_created_at", "comments", ["created_at"])

    op.create_table(
        "qc_checks",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "work_item_id",
            sa.Uuid(),
            sa.ForeignKey("work_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("checkpoint", sa.String(255), nullable=False),
        sa.Column("status", ENUM, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("checked_at", sa.DateTime(), nullable=True),
        _user_fk("checked_by_id"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_qc_checks_work_item_id", "qc_checks", ["work_item_id"])
    op.create_index("ix_qc_checks_created_at", "qc_checks", ["created_at"])

    op.create_table(
        "trigger_templates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("work_item_type", ENUM, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_days_offset", sa.Integer(), nullable=True),
        sa.Column("subtasks", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_trigger_templates_work_item_type", "trigger_templates", ["work_item_type"]
    )
    op.create_index("ix_trigger_templates_created_at", "trigger_templates", ["created_at"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "work_item_id",
            sa.Uuid(),
            sa.ForeignKey("work_items.id", ondelete="CASCADE"),
            nullable=True,
        ),
        _user_fk("actor_id"),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("from_value", sa.String(255), nullable=True),
        sa.Column("to_value", sa.String(255), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_logs_work_item_id", "audit_logs", ["work_item_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "magazine_issues",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("year", "month", name="uq_magazine_issue_year_month"),
    )
    op.create_index("ix_magazine_issues_created_at", "magazine_issues", ["created_at"])

    op.create_table(
        "magazine_items",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "issue_id",
            sa.Uuid(),
            sa.ForeignKey("magazine_issues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("section", sa.String(100), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("url", sa.String(1000), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _user_fk("owner_id"),
        sa.Column("due_at", sa.DateTime(), nullable=True),
        sa.Column("proofed", sa.Boolean(), nullable=False),
        sa.Column("in_folder", sa.Boolean(), nullable=False),
        sa.Column("needs_proofing", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_magazine_items_issue_id", "magazine_items", ["issue_id"])
    op.create_index("ix_magazine_items_created_at", "magazine_items", ["created_at"])

    op.create_table(
        "texas_authors",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("external_key", sa.String(600), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(100), nullable=True),
        sa.Column("website", sa.String(1000), nullable=True),
        sa.Column("city", sa.String(255), nullable=True),
        sa.Column("state", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("raw", sa.JSON(), nullable=True),
        sa.Column("source_ref", sa.String(255), nullable=True),
        sa.Column("contacted", sa.Boolean(), nullable=False),
        sa.Column("contacted_at", sa.DateTime(), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_texas_authors_external_key", "texas_authors", ["external_key"], unique=True)
    op.create_index("ix_texas_authors_name", "texas_authors", ["name"])
    op.create_index("ix_texas_authors_created_at", "texas_authors", ["created_at"])

    op.create_table(
        "sync_runs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("kind", ENUM, nullable=False),
        sa.Column("status", ENUM, nullable=False),
        sa.Column("spreadsheet_id", sa.String(255), nullable=True),
        sa.Column("range_a1", sa.String(255), nullable=True),
        sa.Column("content_hash", sa.String(64), nullable=True),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("created_count", sa.Integer(), nullable=False),
        sa.Column("updated_count", sa.Integer(), nullable=False),
        sa.Column("skipped_count", sa.Integer(), nullable=False),
        sa.Column("changed", sa.Boolean(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("finished_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_sync_runs_kind", "sync_runs", ["kind"])
    op.create_index("ix_sync_runs_created_at", "sync_runs", ["created_at"])

    op.create_table(
        "cron_run_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("job_name", sa.String(100), nullable=False),
        sa.Column("status", ENUM, nullable=False),
        sa.Column("result", sa.JSON(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_cron_run_logs_job_name", "cron_run_logs", ["job_name"])
    op.create_index("ix_cron_run_logs_created_at", "cron_run_logs", ["created_at"])

    op.create_table(
        "editorial_deadlines",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("kind", ENUM, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("due_at", sa.DateTime(), nullable=False),
        sa.Column("cadence_key", sa.String(100), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_editorial_deadlines_due_at", "editorial_deadlines", ["due_at"])
    op.create_index("ix_editorial_deadlines_created_at", "editorial_deadlines", ["created_at"])

    op.create_table(
        "ser_reminders",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "work_item_id",
            sa.Uuid(),
            sa.ForeignKey("work_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", ENUM, nullable=False),
        sa.Column("sent_to", sa.String(1000), nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_ser_reminders_work_item_id", "ser_reminders", ["work_item_id"])
    op.create_index("ix_ser_reminders_sent_at", "ser_reminders", ["sent_at"])

    op.create_table(
        "sla_definitions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("work_item_type", ENUM, nullable=False, unique=True),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("target_days", sa.Integer(), nullable=True),
        sa.Column("due_date_driven", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    for table in (
        "sla_definitions",
        "ser_reminders",
        "editorial_deadlines",
        "cron_run_logs",
        "sync_runs",
        "texas_authors",
        "magazine_items",
        "magazine_issues",
        "audit_logs",
        "trigger_templates",
        "qc_checks",
        "comments",
        "subtasks",
        "work_items",
        "sessions",
        "users",
    ):
        op.drop_table(table)
