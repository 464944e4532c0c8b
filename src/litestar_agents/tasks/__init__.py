"""Task queue, approval gate, retry policy and monitoring."""

from __future__ import annotations

from litestar_agents.tasks.approvals import ApprovalGate
from litestar_agents.tasks.monitoring import AgentStatusBoard, JobExecutionLog
from litestar_agents.tasks.queue import TaskQueue
from litestar_agents.tasks.retry import RetryPolicy

__all__ = ["AgentStatusBoard", "ApprovalGate", "JobExecutionLog", "RetryPolicy", "TaskQueue"]
