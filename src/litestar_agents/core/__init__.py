"""Core domain module for litestar-agents.

This module exports the building blocks shared by every component: status
types, workflow definitions, typed events and payloads, and the snapshot
models services return.
"""

from __future__ import annotations

from litestar_agents.core.definition import WorkflowDefinition, WorkflowStep
from litestar_agents.core.events import (
    AgentEvent,
    ApprovalCompleted,
    ApprovalNeeded,
    ApprovalReminderDue,
    LeadScoreThresholdReached,
    TaskCompleted,
    TaskCreated,
    TaskFailed,
    WorkflowCompleted,
    WorkflowFailed,
    WorkflowPaused,
    WorkflowResumed,
    WorkflowStarted,
    WorkflowStepDispatched,
)
from litestar_agents.core.models import (
    AgentStatusData,
    AgentTaskData,
    ApprovalItemData,
    JobExecutionData,
    StalledWorkflow,
    WorkflowInstanceData,
)
from litestar_agents.core.payloads import PayloadRegistry, TaskPayload
from litestar_agents.core.types import (
    AGENT_NAMES,
    TERMINAL_TASK_STATUSES,
    ApprovalPriority,
    ApprovalStatus,
    JobRunStatus,
    Payload,
    TaskStatus,
    WorkflowStatus,
)

__all__ = [
    "AGENT_NAMES",
    "TERMINAL_TASK_STATUSES",
    "AgentEvent",
    "AgentStatusData",
    "AgentTaskData",
    "ApprovalCompleted",
    "ApprovalItemData",
    "ApprovalNeeded",
    "ApprovalPriority",
    "ApprovalReminderDue",
    "ApprovalStatus",
    "JobExecutionData",
    "JobRunStatus",
    "LeadScoreThresholdReached",
    "Payload",
    "PayloadRegistry",
    "StalledWorkflow",
    "TaskCompleted",
    "TaskCreated",
    "TaskFailed",
    "TaskPayload",
    "TaskStatus",
    "WorkflowCompleted",
    "WorkflowDefinition",
    "WorkflowFailed",
    "WorkflowInstanceData",
    "WorkflowPaused",
    "WorkflowResumed",
    "WorkflowStarted",
    "WorkflowStatus",
    "WorkflowStep",
    "WorkflowStepDispatched",
]
