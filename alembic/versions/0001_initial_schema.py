"""Initial schema: jobs, applications, email threads, resumes, preferences, history

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "jobs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("external_id", sa.String(255), nullable=True),
        sa.Column("source", sa.String(40), nullable=False),
        sa.Column("company", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("salary_min", sa.Integer(), nullable=True),
        sa.Column("salary_max", sa.Integer(), nullable=True),
        sa.Column("salary_currency", sa.String(10), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("requirements", sa.JSON(), nullable=True),
        sa.Column("tech_stack", sa.JSON(), nullable=True),
        sa.Column("url", sa.String(800), nullable=False),
        sa.Column("posted_at", sa.Float(), nullable=True),
        _timestamp("discovered_at"),
        sa.Column("status", sa.String(40), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.UniqueConstraint("external_id", "source", name="uq_jobs_external_source"),
    )
    for column in ("external_id", "source", "company", "discovered_at", "status"):
        op.create_index(f"ix_jobs_{column}", "jobs", [column])

    op.create_table(
        "applications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("job_id", sa.String(36), sa.ForeignKey("jobs.id"), nullable=False),
        sa.Column("status", sa.String(40), nullable=False),
        _timestamp("applied_at", nullable=True),
        sa.Column("resume_id", sa.String(36), nullable=True),
        sa.Column("cover_letter", sa.Text(), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("last_activity_at"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    for column in ("job_id", "status", "applied_at"):
        op.create_index(f"ix_applications_{column}", "applications", [column])

    op.create_table(
        "email_threads",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("application_id", sa.String(36), sa.ForeignKey("applications.id"), nullable=False),
        sa.Column("external_thread_id", sa.String(255), nullable=True),
        sa.Column("subject", sa.Text(), nullable=False),
        sa.Column("from_email", sa.String(255), nullable=False),
        _timestamp("last_message_at"),
        sa.Column("status", sa.String(40), nullable=False),
        sa.Column("message_count", sa.Integer(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
    )
    op.create_index("ix_email_threads_application_id", "email_threads", ["application_id"])
    op.create_index("ix_email_threads_external_thread_id", "email_threads", ["external_thread_id"])

    op.create_table(
        "resumes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(600), nullable=False),
        sa.Column("file_type", sa.String(10), nullable=False),
        sa.Column("parsed_data", sa.JSON(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "preferences",
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        _timestamp("updated_at"),
    )

    op.create_table(
        "application_history",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("application_id", sa.String(36), sa.ForeignKey("applications.id"), nullable=False),
        sa.Column("old_status", sa.String(40), nullable=True),
        sa.Column("new_status", sa.String(40), nullable=False),
        _timestamp("changed_at"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_application_history_application_id", "application_history", ["application_id"])


def downgrade() -> None:
    op.drop_table("application_history")
    op.drop_table("preferences")
    op.drop_table("resumes")
    op.drop_table("email_threads")
    op.drop_table("applications")
    op.drop_table("jobs")
