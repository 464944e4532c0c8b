"""SQLAlchemy models for orchestration persistence.

This module defines the shared tables every agent reads and writes:
- AgentTaskModel: Discrete units of work addressed to one agent
- ApprovalItemModel: Human review checkpoints
- WorkflowInstanceModel: Progress cursors over in-memory workflow definitions
- AgentStatusModel: One heartbeat row per agent
- ScheduledJobLogModel: One row per scheduled job execution
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from litestar_agents.core.types import ApprovalPriority, ApprovalStatus, JobRunStatus, TaskStatus, WorkflowStatus

__all__ = [
    "AgentStatusModel",
    "AgentTaskModel",
    "ApprovalItemModel",
    "ScheduledJobLogModel",
    "WorkflowInstanceModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class AgentTaskModel(UUIDAuditBase):
    """A unit of work for exactly one agent.

    Rows are never deleted; the table doubles as the audit trail of all work.

    Attributes:
        type: Task kind, e.g. ``write_draft``.
        priority: 1 (highest) to 5 (lowest).
        status: Current task status.
        assigned_agent: Agent that pulls the task. Immutable.
        payload: Opaque input map.
        result: Opaque output map.
        created_by: Agent name, ``schedule`` or ``human``.
        due_at: Optional deadline.
        completed_at: Set once, on entering a terminal status.
        attempts: Failed execution count.
        max_attempts: Attempt budget for the retry policy.
        last_error: Latest failure message.
        retry_at: Earliest time a re-queued task may be pulled.
    """

    __tablename__ = "agent_tasks"
    __table_args__ = (
        CheckConstraint("priority BETWEEN 1 AND 5", name="ck_agent_tasks_priority"),
        Index("ix_agent_tasks_status", "status"),
        Index("ix_agent_tasks_assigned", "assigned_agent", "status"),
        Index("ix_agent_tasks_priority", "priority", "created_at"),
    )

    type: Mapped[str] = mapped_column(String(100))
    priority: Mapped[int] = mapped_column(Integer, default=3)
    status: Mapped[str] = mapped_column(String(50), default=TaskStatus.PENDING.value)
    assigned_agent: Mapped[str] = mapped_column(String(100))
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    result: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_by: Mapped[str] = mapped_column(String(100))
    due_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)


class ApprovalItemModel(UUIDAuditBase):
    """Human review checkpoint that can block workflow progress.

    Attributes:
        type: Kind of item under review, e.g. ``blog_post``.
        status: Review status.
        priority: ``high``, ``medium`` or ``low``.
        title: Display title.
        summary: Optional short description.
        content: The material under review.
        created_by: Agent that submitted the item.
        reviewed_by: Reviewer, set on leaving ``pending``.
        reviewed_at: Review timestamp, set on leaving ``pending``.
        feedback: Reviewer notes.
        related_task_id: Task that produced the item.
        reminder_sent_at: When a reminder was last recorded.
    """

    __tablename__ = "approval_queue"
    __table_args__ = (
        Index("ix_approval_queue_status", "status"),
        Index("ix_approval_queue_priority", "priority", "created_at"),
        Index("ix_approval_queue_type", "type"),
    )

    type: Mapped[str] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(50), default=ApprovalStatus.PENDING.value)
    priority: Mapped[str] = mapped_column(String(20), default=ApprovalPriority.MEDIUM.value)
    title: Mapped[str] = mapped_column(String(500))
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    created_by: Mapped[str] = mapped_column(String(100))
    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    related_task_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("agent_tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)


class WorkflowInstanceModel(UUIDAuditBase):
    """Persisted cursor over an in-memory workflow definition.

    Attributes:
        workflow_type: Key into the definition registry.
        status: Current execution status.
        current_step: Index of the next step to dispatch.
        total_steps: Step count of the definition at start time.
        payload: Initial and accumulated context.
        step_results: Append-only list of recorded step results.
        error_message: Reason given when an operator failed the instance.
        created_by: Who started the workflow.
        completed_at: When the cursor was exhausted.
    """

    __tablename__ = "workflow_instances"
    __table_args__ = (
        Index("ix_workflow_instances_status", "status"),
        Index("ix_workflow_instances_type", "workflow_type", "status"),
    )

    workflow_type: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(50), default=WorkflowStatus.RUNNING.value)
    current_step: Mapped[int] = mapped_column(Integer, default=0)
    total_steps: Mapped[int] = mapped_column(Integer)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    step_results: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)


class AgentStatusModel(UUIDAuditBase):
    """Latest heartbeat of one agent, rewritten at the end of each run cycle.

    Attributes:
        agent_name: The agent. One row per name.
        last_run_at: End of the latest run cycle.
        last_success_at: End of the latest cycle in which no task failed.
        last_error: Latest task failure message.
        last_error_at: When that failure was recorded.
        tasks_pending: Pending tasks addressed to the agent after the cycle.
        tasks_processed_today: Tasks completed or handed to review since
            midnight UTC.
    """

    __tablename__ = "agent_status"

    agent_name: Mapped[str] = mapped_column(String(100), unique=True)
    last_run_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    last_success_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_error_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    tasks_pending: Mapped[int] = mapped_column(Integer, default=0)
    tasks_processed_today: Mapped[int] = mapped_column(Integer, default=0)


class ScheduledJobLogModel(UUIDAuditBase):
    """Execution record of one scheduled job firing.

    A row is written as ``started`` before the handler runs and updated to
    ``completed`` or ``failed`` once it returns.

    Attributes:
        job_name: Scheduler job name.
        agent_name: Agent or component that owns the job.
        status: ``started``, ``completed`` or ``failed``.
        started_at: When the handler was invoked.
        completed_at: When the handler returned or raised.
        duration_ms: Wall time of the handler.
        error_message: Failure message.
    """

    __tablename__ = "scheduled_job_log"
    __table_args__ = (
        CheckConstraint("status IN ('started', 'completed', 'failed')", name="ck_scheduled_job_log_status"),
        Index("ix_scheduled_job_log_agent", "agent_name", "created_at"),
        Index("ix_scheduled_job_log_job", "job_name", "created_at"),
    )

    job_name: Mapped[str] = mapped_column(String(255))
    agent_name: Mapped[str] = mapped_column(String(100))
    status: Mapped[str] = mapped_column(String(20), default=JobRunStatus.STARTED.value)
    started_at: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
