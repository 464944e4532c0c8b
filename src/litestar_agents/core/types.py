"""Core type definitions for litestar-agents.

This module defines the status enums, agent names and type aliases used
throughout the orchestration core.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import Any, TypeAlias

# StrEnum backport for Python < 3.11
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:

    class StrEnum(str, Enum):
        """String enumeration compatibility for Python < 3.11."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = [
    "AGENT_NAMES",
    "ApprovalPriority",
    "ApprovalStatus",
    "JobRunStatus",
    "Payload",
    "TaskStatus",
    "TERMINAL_TASK_STATUSES",
    "WorkflowStatus",
]


AGENT_NAMES: frozenset[str] = frozenset(
    {
        "orchestrator",
        "content",
        "creative",
        "paid_media",
        "seo",
        "analytics",
        "research",
    }
)
"""Agent roles known to a default registry."""


class TaskStatus(StrEnum):
    """Status of an agent task.

    Attributes:
        PENDING: Waiting to be pulled by the assigned agent.
        IN_PROGRESS: Picked up by the assigned agent's run cycle.
        AWAITING_APPROVAL: Executed, blocked on a human decision.
        COMPLETE: Finished successfully.
        FAILED: Finished with an error and no retry budget left.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_TASK_STATUSES: frozenset[TaskStatus] = frozenset({TaskStatus.COMPLETE, TaskStatus.FAILED})


class ApprovalStatus(StrEnum):
    """Status of a human approval item.

    Attributes:
        PENDING: Waiting for a reviewer.
        APPROVED: Signed off.
        REJECTED: Declined.
        REVISION_REQUESTED: Sent back to the producing agent with feedback.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_REQUESTED = "revision_requested"


class ApprovalPriority(StrEnum):
    """Review priority for an approval item."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class WorkflowStatus(StrEnum):
    """Overall status of a workflow instance.

    Attributes:
        RUNNING: Steps are being dispatched.
        PAUSED: Halted by an operator; advancement is a no-op.
        COMPLETED: Every step has been dispatched and the cursor is exhausted.
        FAILED: Marked failed by an operator. Never set automatically.
    """

    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class JobRunStatus(StrEnum):
    """Outcome recorded for one scheduled job execution."""

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


Payload: TypeAlias = dict[str, Any]
"""Type alias for opaque task payload and result maps."""
