"""Litestar Agents - Multi-agent task and workflow orchestration for Litestar.

This package coordinates named agents that share a task queue. Agents pull the
tasks addressed to them on a cron schedule; multi-step workflows span agents
and may pause for human approval.

Key Features:
    - Durable, priority-ordered task queue with bounded retry and backoff
    - Human approval gates that continue workflows through bus events
    - Workflow engine that dispatches one step per completion signal
    - In-process event bus with typed events
    - Cron-style job scheduler driving every agent run cycle
    - Litestar plugin wiring everything into the application lifespan

Example:
    >>> from litestar_agents import OrchestrationContext
    >>>
    >>> context = OrchestrationContext.build(session_maker)
    >>> instance_id = await context.orchestrator.start_workflow("new_blog_post", {"topic": "Rate cuts"})
"""

from __future__ import annotations

from litestar_agents.__metadata__ import __project__, __version__
from litestar_agents.bus import EventBus
from litestar_agents.config import OrchestrationConfig
from litestar_agents.context import OrchestrationContext
from litestar_agents.exceptions import (
    ApprovalAlreadyResolvedError,
    ApprovalNotFoundError,
    InvalidPayloadError,
    InvalidScheduleError,
    InvalidTransitionError,
    JobNotFoundError,
    OrchestrationError,
    TaskNotFoundError,
    UnknownAgentError,
    UnknownTaskTypeError,
    WorkflowAlreadyCompletedError,
    WorkflowInstanceNotFoundError,
    WorkflowNotFoundError,
    WorkflowValidationError,
)
from litestar_agents.plugin import OrchestrationPlugin, OrchestrationPluginConfig

__all__ = (
    "ApprovalAlreadyResolvedError",
    "ApprovalNotFoundError",
    "EventBus",
    "InvalidPayloadError",
    "InvalidScheduleError",
    "InvalidTransitionError",
    "JobNotFoundError",
    "OrchestrationConfig",
    "OrchestrationContext",
    "OrchestrationError",
    "OrchestrationPlugin",
    "OrchestrationPluginConfig",
    "TaskNotFoundError",
    "UnknownAgentError",
    "UnknownTaskTypeError",
    "WorkflowAlreadyCompletedError",
    "WorkflowInstanceNotFoundError",
    "WorkflowNotFoundError",
    "WorkflowValidationError",
    "__project__",
    "__version__",
)
