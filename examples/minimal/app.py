"""Minimal example of litestar-agents integration.

This example wires the OrchestrationPlugin into a Litestar app with a handful
of toy agents, so the built-in ``new_blog_post`` and ``new_ad_campaign``
workflows can be driven end to end over HTTP.

Agents normally run on their cron schedules. The ``/agents/{name}/run``
endpoint triggers a run cycle on demand so the flow can be followed by hand.

Run with:
    cd examples/minimal
    litestar run

Or:
    uvicorn app:create_app --factory --reload
"""

from __future__ import annotations

import os
from typing import Any
from uuid import UUID

from litestar import Controller, Litestar, get, post
from litestar.exceptions import NotFoundException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from litestar_agents import (
    OrchestrationConfig,
    OrchestrationContext,
    OrchestrationPlugin,
    OrchestrationPluginConfig,
)
from litestar_agents.agents import BaseAgent, OrchestratorAgent
from litestar_agents.core import AgentTaskData
from litestar_agents.db import AgentTaskModel
from litestar_agents.tasks import ApprovalGate, TaskQueue

# =============================================================================
# Agents
# =============================================================================


def build_seo(context: OrchestrationContext) -> BaseAgent:
    """SEO agent: turns a topic into a content brief."""
    agent = BaseAgent(
        "seo",
        task_queue=context.task_queue,
        approval_gate=context.approval_gate,
        event_bus=context.event_bus,
        description="Keyword research and content briefs",
    )

    def create_content_brief(task: AgentTaskData, payload: dict[str, Any]) -> dict[str, Any]:
        topic = payload.get("workflow_data", {}).get("topic", "untitled")
        return {"topic": topic, "keywords": [topic.lower(), f"{topic.lower()} guide"]}

    agent.register_handler("create_content_brief", create_content_brief)
    return agent


def build_content(context: OrchestrationContext) -> BaseAgent:
    """Content agent: outlines, drafts and submits posts for compliance review."""
    agent = BaseAgent(
        "content",
        task_queue=context.task_queue,
        approval_gate=context.approval_gate,
        event_bus=context.event_bus,
        description="Long-form copy",
    )

    def create_outline(task: AgentTaskData, payload: dict[str, Any]) -> dict[str, Any]:
        return {"sections": ["Introduction", "Key points", "Next steps"]}

    def write_draft(task: AgentTaskData, payload: dict[str, Any]) -> dict[str, Any]:
        return {"words": 1200}

    async def compliance_check(task: AgentTaskData, payload: dict[str, Any]) -> dict[str, Any]:
        topic = payload.get("workflow_data", {}).get("topic", "untitled")
        await agent.submit_for_approval(
            "blog_post",
            f"Blog post: {topic}",
            {"topic": topic},
            summary="Ready for compliance sign-off",
            related_task_id=task.id,
        )
        return {"submitted": True}

    agent.register_handler("create_outline", create_outline)
    agent.register_handler("write_draft", write_draft)
    agent.register_handler("compliance_check", compliance_check)
    return agent


# =============================================================================
# API Controllers
# =============================================================================


class WorkflowController(Controller):
    """REST API for workflow management."""

    path = "/workflows"
    tags = ["Workflows"]

    @get("/")
    async def list_workflows(self, orchestration: OrchestrationContext) -> list[dict[str, Any]]:
        """List all registered workflows."""
        return [
            {
                "workflow_type": d.workflow_type,
                "name": d.name,
                "steps": [f"{step.agent}:{step.task_type}" for step in d.steps],
            }
            for d in orchestration.registry.list_definitions()
        ]

    @post("/{workflow_type:str}/start")
    async def start_workflow(
        self,
        workflow_type: str,
        data: dict[str, Any],
        orchestrator: OrchestratorAgent,
    ) -> dict[str, Any]:
        """Start a new workflow instance."""
        instance_id = await orchestrator.start_workflow(workflow_type, data, created_by="human")
        return {"instance_id": str(instance_id), "workflow_type": workflow_type}

    @get("/instances/{instance_id:uuid}")
    async def get_instance(self, instance_id: UUID, orchestrator: OrchestratorAgent) -> dict[str, Any]:
        """Get workflow instance status."""
        instance = await orchestrator.get_workflow_status(instance_id)
        if instance is None:
            raise NotFoundException(f"Workflow instance {instance_id} not found")
        return {
            "instance_id": str(instance.id),
            "workflow_type": instance.workflow_type,
            "status": instance.status.value,
            "current_step": instance.current_step,
            "total_steps": instance.total_steps,
            "step_results": instance.step_results,
            "error_message": instance.error_message,
        }

    @post("/instances/{instance_id:uuid}/pause")
    async def pause(self, instance_id: UUID, orchestrator: OrchestratorAgent) -> None:
        await orchestrator.pause_workflow(instance_id)

    @post("/instances/{instance_id:uuid}/resume")
    async def resume(self, instance_id: UUID, orchestrator: OrchestratorAgent) -> None:
        await orchestrator.resume_workflow(instance_id)

    @post("/instances/{instance_id:uuid}/fail")
    async def fail(self, instance_id: UUID, data: dict[str, str], orchestrator: OrchestratorAgent) -> None:
        """Give up on an instance, recording the reason."""
        await orchestrator.fail_workflow(instance_id, data.get("reason", "Failed by operator"))


class ApprovalController(Controller):
    """Human review queue."""

    path = "/approvals"
    tags = ["Approvals"]

    @get("/")
    async def list_pending(self, approval_gate: ApprovalGate) -> list[dict[str, Any]]:
        return [
            {"id": str(item.id), "title": item.title, "priority": item.priority.value}
            for item in await approval_gate.list_pending()
        ]

    @post("/{approval_id:uuid}/{decision:str}")
    async def resolve(self, approval_id: UUID, decision: str, approval_gate: ApprovalGate) -> dict[str, Any]:
        """Record a decision: ``approved``, ``rejected`` or ``revision_requested``."""
        item = await approval_gate.resolve(approval_id, decision, reviewed_by="reviewer")
        return {"id": str(item.id), "status": item.status.value}


class AgentController(Controller):
    """Agent run cycles and queues."""

    path = "/agents"
    tags = ["Agents"]

    @post("/{name:str}/run")
    async def run_agent(self, name: str, orchestration: OrchestrationContext) -> dict[str, Any]:
        """Run one cycle of an agent instead of waiting for its schedule."""
        agent = orchestration.agents.get(name)
        if agent is None:
            raise NotFoundException(f"Agent {name} not found")
        return {"agent": name, "processed": await agent.run()}

    @get("/{name:str}/tasks")
    async def pending_tasks(self, name: str, task_queue: TaskQueue) -> list[dict[str, Any]]:
        return [
            {"id": str(task.id), "type": task.type, "priority": task.priority}
            for task in await task_queue.fetch_pending(name)
        ]

    @get("/status")
    async def status(self, orchestration: OrchestrationContext) -> list[dict[str, Any]]:
        """Heartbeat of every agent that has completed a run cycle."""
        return [
            {
                "agent": status.agent_name,
                "last_run_at": status.last_run_at,
                "last_error": status.last_error,
                "tasks_pending": status.tasks_pending,
                "tasks_processed_today": status.tasks_processed_today,
            }
            for status in await orchestration.status_board.list_all()
        ]

    @get("/jobs")
    async def job_history(self, orchestration: OrchestrationContext) -> list[dict[str, Any]]:
        return [
            {"job": entry.job_name, "status": entry.status.value, "duration_ms": entry.duration_ms}
            for entry in await orchestration.job_log.list_recent()
        ]


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# =============================================================================
# Application
# =============================================================================


def create_app(
    database_url: str | None = None,
    *,
    configure_logging: bool = True,
    start_scheduler: bool = True,
) -> Litestar:
    """Build the example app against ``database_url``.

    Pass ``start_scheduler=False`` to drive agents only through the run endpoint.
    """
    engine = create_async_engine(database_url or os.environ.get("AGENTS_DATABASE_URL", "sqlite+aiosqlite:///agents.db"))
    session_maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def create_tables() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(AgentTaskModel.metadata.create_all)

    async def dispose_engine() -> None:
        await engine.dispose()

    plugin_config = OrchestrationPluginConfig(
        session_maker=session_maker,
        orchestration=OrchestrationConfig(configure_logging=configure_logging),
        agent_factories=[build_seo, build_content],
        start_scheduler=start_scheduler,
    )

    return Litestar(
        route_handlers=[WorkflowController, ApprovalController, AgentController, health_check],
        plugins=[OrchestrationPlugin(config=plugin_config)],
        on_startup=[create_tables],
        on_shutdown=[dispose_engine],
        debug=True,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
