"""Database persistence layer for litestar-agents.

This module provides SQLAlchemy models and repositories for the task queue,
approval queue and workflow instance tables shared by every agent, plus the
agent status and scheduled job log tables used for monitoring.
"""

from __future__ import annotations

from litestar_agents.db.models import (
    AgentStatusModel,
    AgentTaskModel,
    ApprovalItemModel,
    ScheduledJobLogModel,
    WorkflowInstanceModel,
)
from litestar_agents.db.repositories import (
    AgentStatusRepository,
    AgentTaskRepository,
    ApprovalItemRepository,
    ScheduledJobLogRepository,
    WorkflowInstanceRepository,
)

__all__ = [
    "AgentStatusModel",
    "AgentStatusRepository",
    "AgentTaskModel",
    "AgentTaskRepository",
    "ApprovalItemModel",
    "ApprovalItemRepository",
    "ScheduledJobLogModel",
    "ScheduledJobLogRepository",
    "WorkflowInstanceModel",
    "WorkflowInstanceRepository",
]
