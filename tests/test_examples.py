"""Integration tests for the example application.

Drives the minimal example app through Litestar's test client to verify the
built-in blog post workflow runs end to end over HTTP.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from litestar.testing import AsyncTestClient

from examples.minimal.app import create_app

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


# =============================================================================
# Minimal App Tests
# =============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestMinimalApp:
    """Integration tests for the minimal example app."""

    @pytest.fixture
    async def client(self, tmp_path: Path) -> AsyncIterator[AsyncTestClient]:
        app = create_app(
            f"sqlite+aiosqlite:///{tmp_path}/example.db",
            configure_logging=False,
            start_scheduler=False,
        )
        async with AsyncTestClient(app=app) as client:
            yield client

    async def test_health_check(self, client: AsyncTestClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_list_workflows(self, client: AsyncTestClient) -> None:
        response = await client.get("/workflows")

        assert response.status_code == 200
        workflows = {workflow["workflow_type"]: workflow for workflow in response.json()}
        assert {"new_blog_post", "new_ad_campaign", "daily_report"} <= set(workflows)
        assert workflows["new_blog_post"]["steps"][0] == "seo:create_content_brief"

    async def test_unknown_instance(self, client: AsyncTestClient) -> None:
        response = await client.get("/workflows/instances/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404

    async def test_unknown_agent(self, client: AsyncTestClient) -> None:
        response = await client.post("/agents/legal/run")

        assert response.status_code == 404

    async def test_blog_post_flow(self, client: AsyncTestClient) -> None:
        response = await client.post("/workflows/new_blog_post/start", json={"topic": "Solar"})
        assert response.status_code == 201
        instance_id = response.json()["instance_id"]

        seo = await client.post("/agents/seo/run")
        assert seo.json() == {"agent": "seo", "processed": 1}

        for _ in range(3):
            content = await client.post("/agents/content/run")
            assert content.json()["processed"] == 1

        instance = (await client.get(f"/workflows/instances/{instance_id}")).json()
        assert instance["status"] == "running"
        assert instance["current_step"] == 4
        assert instance["step_results"][0]["result"]["topic"] == "Solar"

        approvals = (await client.get("/approvals")).json()
        assert [item["title"] for item in approvals] == ["Blog post: Solar"]

        decision = await client.post(f"/approvals/{approvals[0]['id']}/approved")
        assert decision.json()["status"] == "approved"

        instance = (await client.get(f"/workflows/instances/{instance_id}")).json()
        assert instance["status"] == "completed"
        assert (await client.get("/approvals")).json() == []

    async def test_pause_and_resume(self, client: AsyncTestClient) -> None:
        instance_id = (await client.post("/workflows/new_blog_post/start", json={"topic": "Wind"})).json()[
            "instance_id"
        ]

        await client.post(f"/workflows/instances/{instance_id}/pause")
        paused = (await client.get(f"/workflows/instances/{instance_id}")).json()
        assert paused["status"] == "paused"

        await client.post(f"/workflows/instances/{instance_id}/resume")
        resumed = (await client.get(f"/workflows/instances/{instance_id}")).json()
        assert resumed["status"] == "running"

    async def test_fail_instance(self, client: AsyncTestClient) -> None:
        instance_id = (await client.post("/workflows/new_ad_campaign/start", json={})).json()["instance_id"]

        await client.post(f"/workflows/instances/{instance_id}/fail", json={"reason": "Campaign cancelled"})

        instance = (await client.get(f"/workflows/instances/{instance_id}")).json()
        assert instance["status"] == "failed"
        assert instance["error_message"] == "Campaign cancelled"

    async def test_agent_status(self, client: AsyncTestClient) -> None:
        await client.post("/workflows/new_blog_post/start", json={"topic": "Tides"})
        await client.post("/agents/seo/run")

        statuses = {status["agent"]: status for status in (await client.get("/agents/status")).json()}

        assert statuses["seo"]["tasks_processed_today"] == 1
        assert statuses["seo"]["tasks_pending"] == 0
        assert statuses["seo"]["last_error"] is None
