"""Concrete data models for litestar-agents.

Services return these snapshots rather than ORM rows, so callers never hold a
model bound to a session that has already been closed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID

from litestar_agents.core.types import ApprovalPriority, ApprovalStatus, JobRunStatus, TaskStatus, WorkflowStatus

if TYPE_CHECKING:
    from litestar_agents.db.models import (
        AgentStatusModel,
        AgentTaskModel,
        ApprovalItemModel,
        ScheduledJobLogModel,
        WorkflowInstanceModel,
    )


__all__ = [
    "AgentStatusData",
    "AgentTaskData",
    "ApprovalItemData",
    "JobExecutionData",
    "StalledWorkflow",
    "WorkflowInstanceData",
]


@dataclass
class AgentTaskData:
    """A unit of work for exactly one agent.

    Attributes:
        id: Task identifier.
        type: Task kind.
        priority: 1 (highest) to 5 (lowest).
        status: Current status.
        assigned_agent: Agent that owns the task. Never changes.
        payload: Opaque input map.
        result: Opaque output map, set on completion.
        created_by: Agent name, ``schedule`` or ``human``.
        created_at: Creation timestamp.
        due_at: Optional deadline.
        completed_at: Set once, on entering a terminal status.
        attempts: Failed execution count.
        max_attempts: Attempt budget used by the retry policy.
        last_error: Message of the latest failure.
        retry_at: Earliest time a re-queued task may be pulled again.
    """

    id: UUID
    type: str
    priority: int
    status: TaskStatus
    assigned_agent: str
    payload: dict[str, Any]
    created_by: str
    created_at: datetime
    result: dict[str, Any] | None = None
    due_at: datetime | None = None
    completed_at: datetime | None = None
    attempts: int = 0
    max_attempts: int = 3
    last_error: str | None = None
    retry_at: datetime | None = None

    @property
    def workflow_id(self) -> UUID | None:
        """The owning workflow instance, if this task is a workflow step."""
        raw = self.payload.get("workflow_id")
        if raw is None:
            return None
        return raw if isinstance(raw, UUID) else UUID(str(raw))

    @property
    def workflow_step(self) -> int | None:
        """Index of the workflow step this task was dispatched for."""
        step = self.payload.get("workflow_step")
        return int(step) if step is not None else None

    @classmethod
    def from_model(cls, model: AgentTaskModel) -> AgentTaskData:
        return cls(
            id=model.id,
            type=model.type,
            priority=model.priority,
            status=TaskStatus(model.status),
            assigned_agent=model.assigned_agent,
            payload=dict(model.payload or {}),
            result=dict(model.result) if model.result is not None else None,
            created_by=model.created_by,
            created_at=model.created_at,
            due_at=model.due_at,
            completed_at=model.completed_at,
            attempts=model.attempts,
            max_attempts=model.max_attempts,
            last_error=model.last_error,
            retry_at=model.retry_at,
        )


@dataclass
class ApprovalItemData:
    """A human-in-the-loop checkpoint."""

    id: UUID
    type: str
    status: ApprovalStatus
    priority: ApprovalPriority
    title: str
    content: dict[str, Any]
    created_by: str
    created_at: datetime
    summary: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    feedback: str | None = None
    related_task_id: UUID | None = None
    reminder_sent_at: datetime | None = None

    @classmethod
    def from_model(cls, model: ApprovalItemModel) -> ApprovalItemData:
        return cls(
            id=model.id,
            type=model.type,
            status=ApprovalStatus(model.status),
            priority=ApprovalPriority(model.priority),
            title=model.title,
            summary=model.summary,
            content=dict(model.content or {}),
            created_by=model.created_by,
            created_at=model.created_at,
            reviewed_by=model.reviewed_by,
            reviewed_at=model.reviewed_at,
            feedback=model.feedback,
            related_task_id=model.related_task_id,
            reminder_sent_at=model.reminder_sent_at,
        )


@dataclass
class WorkflowInstanceData:
    """Concrete data model for workflow instance state.

    Attributes:
        id: Unique identifier for this workflow instance.
        workflow_type: Key into the definition registry.
        status: Current execution status.
        current_step: Index of the next step to dispatch.
        total_steps: Step count of the definition at start time.
        payload: Initial and accumulated context.
        step_results: Append-only list of recorded step results.
        created_at: Timestamp when the instance was created.
        updated_at: Timestamp of the last change.
        completed_at: Timestamp when the cursor was exhausted.
        error_message: Operator note when the instance was failed by hand.
        created_by: Who started the workflow.
    """

    id: UUID
    workflow_type: str
    status: WorkflowStatus
    current_step: int
    total_steps: int
    payload: dict[str, Any]
    created_at: datetime
    updated_at: datetime
    step_results: list[dict[str, Any]] = field(default_factory=list)
    completed_at: datetime | None = None
    error_message: str | None = None
    created_by: str | None = None

    @classmethod
    def from_model(cls, model: WorkflowInstanceModel) -> WorkflowInstanceData:
        return cls(
            id=model.id,
            workflow_type=model.workflow_type,
            status=WorkflowStatus(model.status),
            current_step=model.current_step,
            total_steps=model.total_steps,
            payload=dict(model.payload or {}),
            step_results=list(model.step_results or []),
            created_at=model.created_at,
            updated_at=model.updated_at,
            completed_at=model.completed_at,
            error_message=model.error_message,
            created_by=model.created_by,
        )


@dataclass
class StalledWorkflow:
    """Report entry for a running instance that has not moved recently.

    Attributes:
        instance_id: The stalled instance.
        workflow_type: Its workflow type.
        current_step: Cursor position when detected.
        total_steps: Step count of the instance.
        updated_at: Last change to the instance.
        stalled_for: Age of the last change at detection time.
    """

    instance_id: UUID
    workflow_type: str
    current_step: int
    total_steps: int
    updated_at: datetime
    stalled_for: timedelta


@dataclass
class AgentStatusData:
    """Heartbeat of one agent, as of its latest run cycle."""

    agent_name: str
    updated_at: datetime
    last_run_at: datetime | None = None
    last_success_at: datetime | None = None
    last_error: str | None = None
    last_error_at: datetime | None = None
    tasks_pending: int = 0
    tasks_processed_today: int = 0

    @classmethod
    def from_model(cls, model: AgentStatusModel) -> AgentStatusData:
        return cls(
            agent_name=model.agent_name,
            updated_at=model.updated_at,
            last_run_at=model.last_run_at,
            last_success_at=model.last_success_at,
            last_error=model.last_error,
            last_error_at=model.last_error_at,
            tasks_pending=model.tasks_pending,
            tasks_processed_today=model.tasks_processed_today,
        )


@dataclass
class JobExecutionData:
    """One recorded firing of a scheduled job.

    Attributes:
        id: Log entry identifier.
        job_name: Scheduler job name.
        agent_name: Owner of the job.
        status: ``started`` while the handler runs, then its outcome.
        started_at: When the handler was invoked.
        completed_at: When it returned or raised.
        duration_ms: Handler wall time in milliseconds.
        error_message: Failure message, if it raised.
    """

    id: UUID
    job_name: str
    agent_name: str
    status: JobRunStatus
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: int | None = None
    error_message: str | None = None

    @classmethod
    def from_model(cls, model: ScheduledJobLogModel) -> JobExecutionData:
        return cls(
            id=model.id,
            job_name=model.job_name,
            agent_name=model.agent_name,
            status=JobRunStatus(model.status),
            started_at=model.started_at,
            completed_at=model.completed_at,
            duration_ms=model.duration_ms,
            error_message=model.error_message,
        )
