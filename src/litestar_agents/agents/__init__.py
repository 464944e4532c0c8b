"""Agents: the base task-pulling worker and the orchestrator."""

from __future__ import annotations

from litestar_agents.agents.base import BaseAgent, TaskHandler
from litestar_agents.agents.orchestrator import (
    AdvanceWorkflowPayload,
    DistributeTaskPayload,
    OrchestratorAgent,
    StartWorkflowPayload,
)
from litestar_agents.agents.workflows import BUILTIN_WORKFLOWS, daily_report, new_ad_campaign, new_blog_post

__all__ = [
    "BUILTIN_WORKFLOWS",
    "AdvanceWorkflowPayload",
    "BaseAgent",
    "DistributeTaskPayload",
    "OrchestratorAgent",
    "StartWorkflowPayload",
    "TaskHandler",
    "daily_report",
    "new_ad_campaign",
    "new_blog_post",
]
