"""Agent status and scheduled job log tables.

Revision ID: 002_agent_monitoring
Revises: 001_initial
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_agent_monitoring"
down_revision: str | None = "001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create agent heartbeat and job execution history tables."""
    # Create agent_status table
    op.create_table(
        "agent_status",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("agent_name", sa.String(length=100), nullable=False),
        sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_success_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("last_error_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tasks_pending", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tasks_processed_today", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("agent_name"),
    )

    # Create scheduled_job_log table
    op.create_table(
        "scheduled_job_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_name", sa.String(length=255), nullable=False),
        sa.Column("agent_name", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="started"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('started', 'completed', 'failed')", name="ck_scheduled_job_log_status"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scheduled_job_log_agent", "scheduled_job_log", ["agent_name", "created_at"])
    op.create_index("ix_scheduled_job_log_job", "scheduled_job_log", ["job_name", "created_at"])


def downgrade() -> None:
    """Drop agent monitoring tables."""
    op.drop_table("scheduled_job_log")
    op.drop_table("agent_status")
