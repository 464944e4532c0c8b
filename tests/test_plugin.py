"""Tests for the OrchestrationPlugin integration with Litestar.

These tests verify that the plugin builds the orchestration context, exposes
its components through dependency injection and ties the scheduler to the
application lifespan.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

import pytest
from litestar import Litestar, get, post
from litestar.exceptions import ImproperlyConfiguredException
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from litestar.testing import AsyncTestClient

from litestar_agents import OrchestrationContext, OrchestrationPlugin, OrchestrationPluginConfig
from litestar_agents.agents.base import BaseAgent
from litestar_agents.agents.orchestrator import OrchestratorAgent
from litestar_agents.tasks.approvals import ApprovalGate
from litestar_agents.tasks.queue import TaskQueue

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


# =============================================================================
# Test Route Handlers
# =============================================================================


@post("/workflows/{workflow_type:str}")
async def start_workflow(workflow_type: str, data: dict[str, Any], orchestrator: OrchestratorAgent) -> dict[str, Any]:
    instance_id = await orchestrator.start_workflow(workflow_type, data, created_by="human")
    return {"instance_id": str(instance_id)}


@get("/tasks/{agent:str}/pending")
async def pending_tasks(agent: str, task_queue: TaskQueue) -> dict[str, Any]:
    return {"pending": await task_queue.count_pending(agent)}


@post("/approvals/{approval_id:uuid}/approve")
async def approve(approval_id: UUID, approval_gate: ApprovalGate) -> dict[str, Any]:
    item = await approval_gate.resolve(approval_id, "approved", reviewed_by="editor")
    return {"status": item.status.value}


@get("/scheduler")
async def scheduler_status(orchestration: OrchestrationContext) -> dict[str, Any]:
    return {"running": orchestration.scheduler.is_running, "jobs": len(orchestration.scheduler.get_status())}


ROUTES = [start_workflow, pending_tasks, approve, scheduler_status]


# =============================================================================
# Tests
# =============================================================================


@pytest.mark.unit
class TestOrchestrationPluginInit:
    """Tests for plugin initialization."""

    def test_requires_session_maker(self) -> None:
        with pytest.raises(ImproperlyConfiguredException):
            Litestar(route_handlers=[], plugins=[OrchestrationPlugin()])

    def test_context_before_init_raises(self) -> None:
        plugin = OrchestrationPlugin()

        with pytest.raises(RuntimeError, match="not been initialized"):
            _ = plugin.context


@pytest.mark.integration
@pytest.mark.asyncio
class TestOrchestrationPlugin:
    """Tests for dependency injection and lifespan."""

    async def test_dependencies_registered(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        plugin = OrchestrationPlugin(OrchestrationPluginConfig(session_maker=session_maker, start_scheduler=False))
        app = Litestar(route_handlers=ROUTES, plugins=[plugin])

        for key in (
            "orchestration",
            "task_queue",
            "approval_gate",
            "workflow_engine",
            "orchestrator",
            "job_scheduler",
            "event_bus",
        ):
            assert key in app.dependencies

    async def test_lifespan_runs_scheduler(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        plugin = OrchestrationPlugin(OrchestrationPluginConfig(session_maker=session_maker))
        app = Litestar(route_handlers=ROUTES, plugins=[plugin])

        async with AsyncTestClient(app=app) as client:
            response = await client.get("/scheduler")

            assert response.status_code == HTTP_200_OK
            assert response.json() == {"running": True, "jobs": 3}

        assert plugin.context.scheduler.is_running is False

    async def test_start_workflow_and_approve(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        plugin = OrchestrationPlugin(OrchestrationPluginConfig(session_maker=session_maker, start_scheduler=False))
        app = Litestar(route_handlers=ROUTES, plugins=[plugin])

        async with AsyncTestClient(app=app) as client:
            response = await client.post("/workflows/new_ad_campaign", json={"product": "Credit card"})
            assert response.status_code == HTTP_201_CREATED
            instance_id = UUID(response.json()["instance_id"])

            response = await client.get("/tasks/creative/pending")
            assert response.json() == {"pending": 1}

            context = plugin.context
            await context.orchestrator.advance_workflow(instance_id)
            [_, compliance] = await context.task_queue.fetch_pending("creative")
            approval_id = await context.approval_gate.create_approval(
                "ad_copy", "Card launch copy", None, {}, "creative", related_task_id=compliance.id
            )

            response = await client.post(f"/approvals/{approval_id}/approve")
            assert response.status_code == HTTP_201_CREATED
            assert response.json() == {"status": "approved"}

            response = await client.get("/tasks/paid_media/pending")
            assert response.json() == {"pending": 1}

    async def test_agent_factories(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        def build_seo(context: OrchestrationContext) -> BaseAgent:
            return BaseAgent(
                "seo",
                task_queue=context.task_queue,
                approval_gate=context.approval_gate,
                event_bus=context.event_bus,
            )

        plugin = OrchestrationPlugin(
            OrchestrationPluginConfig(
                session_maker=session_maker,
                agent_factories=[build_seo],
                agent_schedule="0 * * * *",
                register_builtin_workflows=False,
                start_scheduler=False,
            )
        )
        Litestar(route_handlers=[], plugins=[plugin])

        assert "seo" in plugin.context.agents
        assert plugin.context.scheduler.get_job("seo:process_tasks").schedule == "0 * * * *"
        assert plugin.context.registry.list_definitions() == []
