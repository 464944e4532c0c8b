"""Tests for the approval gate."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import pytest

from litestar_agents.core.events import ApprovalCompleted, ApprovalNeeded
from litestar_agents.core.types import ApprovalPriority, ApprovalStatus
from litestar_agents.db.models import ApprovalItemModel
from litestar_agents.exceptions import ApprovalAlreadyResolvedError, ApprovalNotFoundError

if TYPE_CHECKING:
    from litestar_agents.bus import EventBus
    from litestar_agents.tasks.approvals import ApprovalGate
    from litestar_agents.tasks.queue import TaskQueue


async def open_approval(gate: ApprovalGate, title: str = "Blog draft", **kwargs: Any):
    return await gate.create_approval(
        kwargs.pop("approval_type", "blog_post"),
        title,
        kwargs.pop("summary", None),
        kwargs.pop("content", {"body": "..."}),
        kwargs.pop("created_by", "content"),
        **kwargs,
    )


@pytest.mark.integration
@pytest.mark.asyncio
class TestCreateApproval:
    """Tests for opening approval items."""

    async def test_create(self, approval_gate: ApprovalGate, task_queue: TaskQueue) -> None:
        task_id = await task_queue.create_task("content", "compliance_check", created_by="orchestrator")

        approval_id = await open_approval(approval_gate, related_task_id=task_id, priority="high")

        item = await approval_gate.get(approval_id)
        assert item is not None
        assert item.status == ApprovalStatus.PENDING
        assert item.priority == ApprovalPriority.HIGH
        assert item.related_task_id == task_id
        assert item.reviewed_at is None

    async def test_create_publishes_event(self, approval_gate: ApprovalGate, event_bus: EventBus) -> None:
        received: list[ApprovalNeeded] = []
        event_bus.subscribe(ApprovalNeeded, received.append)

        approval_id = await open_approval(approval_gate)

        assert [event.approval_id for event in received] == [approval_id]

    async def test_invalid_priority(self, approval_gate: ApprovalGate) -> None:
        with pytest.raises(ValueError):
            await open_approval(approval_gate, priority="urgent")


@pytest.mark.integration
@pytest.mark.asyncio
class TestResolve:
    """Tests for recording reviewer decisions."""

    async def test_approve(self, approval_gate: ApprovalGate, event_bus: EventBus) -> None:
        received: list[ApprovalCompleted] = []
        event_bus.subscribe(ApprovalCompleted, received.append)
        approval_id = await open_approval(approval_gate)

        item = await approval_gate.resolve(approval_id, "approved", "editor", feedback="Ship it")

        assert item.status == ApprovalStatus.APPROVED
        assert item.reviewed_by == "editor"
        assert item.reviewed_at is not None
        assert item.feedback == "Ship it"
        assert len(received) == 1
        assert received[0].status == "approved"
        assert received[0].related_task_id is None

    async def test_decision_committed_before_event(self, approval_gate: ApprovalGate, event_bus: EventBus) -> None:
        seen: list[ApprovalStatus] = []

        async def check(event: ApprovalCompleted) -> None:
            item = await approval_gate.get(event.approval_id)
            seen.append(item.status)

        event_bus.subscribe(ApprovalCompleted, check)
        approval_id = await open_approval(approval_gate)

        await approval_gate.resolve(approval_id, ApprovalStatus.REJECTED, "editor")

        assert seen == [ApprovalStatus.REJECTED]

    async def test_already_resolved(self, approval_gate: ApprovalGate, event_bus: EventBus) -> None:
        approval_id = await open_approval(approval_gate)
        await approval_gate.resolve(approval_id, "revision_requested", "editor", feedback="Tighten the intro")

        received: list[ApprovalCompleted] = []
        event_bus.subscribe(ApprovalCompleted, received.append)

        with pytest.raises(ApprovalAlreadyResolvedError) as exc_info:
            await approval_gate.resolve(approval_id, "approved", "editor")

        assert exc_info.value.status == "revision_requested"
        assert received == []

    async def test_concurrent_reviewers(self, approval_gate: ApprovalGate, event_bus: EventBus) -> None:
        approval_id = await open_approval(approval_gate)
        received: list[ApprovalCompleted] = []
        event_bus.subscribe(ApprovalCompleted, received.append)

        outcomes = await asyncio.gather(
            approval_gate.resolve(approval_id, "approved", "editor"),
            approval_gate.resolve(approval_id, "rejected", "legal"),
            return_exceptions=True,
        )

        errors = [outcome for outcome in outcomes if isinstance(outcome, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], ApprovalAlreadyResolvedError)
        assert len(received) == 1
        item = await approval_gate.get(approval_id)
        assert item.status == received[0].status
        assert item.reviewed_by == received[0].reviewed_by

    async def test_cannot_resolve_to_pending(self, approval_gate: ApprovalGate) -> None:
        approval_id = await open_approval(approval_gate)

        with pytest.raises(ValueError, match="pending"):
            await approval_gate.resolve(approval_id, "pending", "editor")

    async def test_missing(self, approval_gate: ApprovalGate) -> None:
        with pytest.raises(ApprovalNotFoundError):
            await approval_gate.resolve(uuid4(), "approved", "editor")


@pytest.mark.integration
@pytest.mark.asyncio
class TestListingAndReminders:
    """Tests for pending listings and the reminder sweep."""

    async def test_list_pending_order(self, approval_gate: ApprovalGate, backdate: Any) -> None:
        low = await open_approval(approval_gate, "low", priority="low")
        medium_new = await open_approval(approval_gate, "medium new")
        medium_old = await open_approval(approval_gate, "medium old")
        high = await open_approval(approval_gate, "high", priority="high")
        resolved = await open_approval(approval_gate, "resolved", priority="high")
        await approval_gate.resolve(resolved, "approved", "editor")
        await backdate(ApprovalItemModel, medium_old, created_at=datetime.now(timezone.utc) - timedelta(hours=3))

        items = await approval_gate.list_pending()

        assert [item.id for item in items] == [high, medium_old, medium_new, low]

    async def test_list_pending_by_type(self, approval_gate: ApprovalGate) -> None:
        await open_approval(approval_gate, approval_type="blog_post")
        ad = await open_approval(approval_gate, approval_type="ad_copy")

        items = await approval_gate.list_pending("ad_copy")

        assert [item.id for item in items] == [ad]

    async def test_sweep_needs_reminder(self, approval_gate: ApprovalGate, backdate: Any) -> None:
        now = datetime.now(timezone.utc)
        old = await open_approval(approval_gate, "old")
        fresh = await open_approval(approval_gate, "fresh")
        old_resolved = await open_approval(approval_gate, "old resolved")
        await approval_gate.resolve(old_resolved, "approved", "editor")
        for approval_id in (old, old_resolved):
            await backdate(ApprovalItemModel, approval_id, created_at=now - timedelta(hours=49))
        await backdate(ApprovalItemModel, fresh, created_at=now - timedelta(hours=47))

        due = await approval_gate.sweep_needs_reminder()

        assert [item.id for item in due] == [old]

    async def test_reminder_sent_once(self, approval_gate: ApprovalGate, backdate: Any) -> None:
        approval_id = await open_approval(approval_gate)
        await backdate(ApprovalItemModel, approval_id, created_at=datetime.now(timezone.utc) - timedelta(days=3))

        await approval_gate.mark_reminder_sent(approval_id)

        assert await approval_gate.sweep_needs_reminder() == []
        item = await approval_gate.get(approval_id)
        assert item.reminder_sent_at is not None

    async def test_custom_threshold(self, approval_gate: ApprovalGate, backdate: Any) -> None:
        approval_id = await open_approval(approval_gate)
        await backdate(ApprovalItemModel, approval_id, created_at=datetime.now(timezone.utc) - timedelta(hours=2))

        assert await approval_gate.sweep_needs_reminder() == []
        assert len(await approval_gate.sweep_needs_reminder(timedelta(hours=1))) == 1
