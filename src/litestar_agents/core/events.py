"""Domain events for agent and workflow coordination.

Every event is a dataclass carrying a class-level ``event_name``. The bus is
keyed by that string, so agents can introduce new signals by declaring a new
subclass (or by publishing under a new string key) without changing the bus.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import UUID

__all__ = [
    "AgentEvent",
    "ApprovalCompleted",
    "ApprovalNeeded",
    "ApprovalReminderDue",
    "LeadScoreThresholdReached",
    "TaskCompleted",
    "TaskCreated",
    "TaskFailed",
    "WorkflowCompleted",
    "WorkflowFailed",
    "WorkflowPaused",
    "WorkflowResumed",
    "WorkflowStarted",
    "WorkflowStepDispatched",
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AgentEvent:
    """Base class for all bus events.

    Subclasses declare their fields followed by a ``timestamp`` defaulting to
    the current UTC time.

    Attributes:
        event_name: String key the event is published under.
    """

    event_name: ClassVar[str] = "agent:event"


@dataclass
class TaskCreated(AgentEvent):
    """Emitted after a task row is committed.

    Attributes:
        task_id: The new task.
        task_type: Task kind.
        assigned_agent: Agent that will pull the task.
    """

    event_name: ClassVar[str] = "agent:task_created"

    task_id: UUID
    task_type: str
    assigned_agent: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class TaskCompleted(AgentEvent):
    """Emitted by an agent run loop when a task finishes successfully.

    Attributes:
        task_id: The completed task.
        task_type: Task kind.
        assigned_agent: Agent that executed the task.
        result: Result map stored on the task.
        workflow_id: Owning workflow instance, if the task is a workflow step.
        workflow_step: Index of that step within the workflow.
        via_approval: True when the task finished because a reviewer approved
            it; the approval itself already moved the workflow on.
    """

    event_name: ClassVar[str] = "agent:task_completed"

    task_id: UUID
    task_type: str
    assigned_agent: str
    result: dict[str, Any] | None = None
    workflow_id: UUID | None = None
    workflow_step: int | None = None
    via_approval: bool = False
    timestamp: datetime = field(default_factory=_now)


@dataclass
class TaskFailed(AgentEvent):
    """Emitted by an agent run loop when a task attempt fails.

    Attributes:
        task_id: The failing task.
        task_type: Task kind.
        assigned_agent: Agent that executed the task.
        error: Error message recorded as ``last_error``.
        attempts: Attempt count after this failure.
        will_retry: Whether the task was re-queued with backoff.
    """

    event_name: ClassVar[str] = "agent:task_failed"

    task_id: UUID
    task_type: str
    assigned_agent: str
    error: str
    attempts: int
    will_retry: bool = False
    timestamp: datetime = field(default_factory=_now)


@dataclass
class ApprovalNeeded(AgentEvent):
    """Emitted when an item is submitted to the approval gate."""

    event_name: ClassVar[str] = "agent:approval_needed"

    approval_id: UUID
    approval_type: str
    created_by: str
    related_task_id: UUID | None = None
    timestamp: datetime = field(default_factory=_now)


@dataclass
class ApprovalCompleted(AgentEvent):
    """Emitted when a reviewer resolves an approval item.

    Attributes:
        approval_id: The resolved item.
        status: ``approved``, ``rejected`` or ``revision_requested``.
        reviewed_by: Reviewer identity.
        related_task_id: Task that produced the item, if any.
    """

    event_name: ClassVar[str] = "agent:approval_completed"

    approval_id: UUID
    status: str
    reviewed_by: str
    related_task_id: UUID | None = None
    timestamp: datetime = field(default_factory=_now)


@dataclass
class ApprovalReminderDue(AgentEvent):
    """Emitted by the approval sweep for each item that needs a reminder."""

    event_name: ClassVar[str] = "agent:approval_reminder_due"

    approval_id: UUID
    title: str
    pending_since: datetime
    timestamp: datetime = field(default_factory=_now)


@dataclass
class LeadScoreThresholdReached(AgentEvent):
    """Emitted by lead scoring collaborators when a contact crosses a threshold.

    Attributes:
        contact_id: Contact identifier in the collaborator's store.
        threshold: ``hot`` or ``warm``.
        score: Score after the change.
        email: Contact email, used only for log context.
    """

    event_name: ClassVar[str] = "lead:score_threshold_reached"

    contact_id: str
    threshold: str
    score: int | None = None
    email: str | None = None
    timestamp: datetime = field(default_factory=_now)


@dataclass
class WorkflowStarted(AgentEvent):
    event_name: ClassVar[str] = "workflow:started"

    instance_id: UUID
    workflow_type: str
    initial_payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_now)


@dataclass
class WorkflowStepDispatched(AgentEvent):
    """Emitted after a step's task is committed and the cursor moved."""

    event_name: ClassVar[str] = "workflow:step_dispatched"

    instance_id: UUID
    step_index: int
    task_id: UUID
    agent: str
    task_type: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class WorkflowCompleted(AgentEvent):
    event_name: ClassVar[str] = "workflow:completed"

    instance_id: UUID
    workflow_type: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class WorkflowFailed(AgentEvent):
    """Emitted when an operator fails an instance by hand."""

    event_name: ClassVar[str] = "workflow:failed"

    instance_id: UUID
    failed_at_step: int
    error_message: str
    timestamp: datetime = field(default_factory=_now)


@dataclass
class WorkflowPaused(AgentEvent):
    event_name: ClassVar[str] = "workflow:paused"

    instance_id: UUID
    paused_at_step: int
    timestamp: datetime = field(default_factory=_now)


@dataclass
class WorkflowResumed(AgentEvent):
    event_name: ClassVar[str] = "workflow:resumed"

    instance_id: UUID
    resuming_at_step: int
    timestamp: datetime = field(default_factory=_now)
