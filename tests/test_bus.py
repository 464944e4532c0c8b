"""Tests for the in-process event bus."""

from __future__ import annotations

import asyncio
from typing import Any
from uuid import uuid4

import pytest

from litestar_agents.bus import EventBus
from litestar_agents.core.events import ApprovalCompleted, TaskCreated


@pytest.mark.unit
@pytest.mark.asyncio
class TestEventBus:
    """Tests for EventBus delivery semantics."""

    async def test_publish_calls_sync_handler(self, event_bus: EventBus) -> None:
        received: list[Any] = []
        event_bus.subscribe("custom:ping", received.append)

        event_bus.publish("custom:ping", {"n": 1})

        assert received == [{"n": 1}]

    async def test_publish_schedules_async_handler(self, event_bus: EventBus) -> None:
        received: list[Any] = []

        async def handler(data: Any) -> None:
            await asyncio.sleep(0)
            received.append(data)

        event_bus.subscribe("custom:ping", handler)
        event_bus.publish("custom:ping", "hello")
        await event_bus.drain()

        assert received == ["hello"]

    async def test_publish_isolates_failing_handler(self, event_bus: EventBus) -> None:
        received: list[Any] = []

        def broken(data: Any) -> None:
            raise RuntimeError("boom")

        async def broken_async(data: Any) -> None:
            raise RuntimeError("async boom")

        event_bus.subscribe("custom:ping", broken)
        event_bus.subscribe("custom:ping", broken_async)
        event_bus.subscribe("custom:ping", received.append)

        event_bus.publish("custom:ping", 42)
        await event_bus.drain()

        assert received == [42]

    async def test_publish_and_wait_runs_every_handler(self, event_bus: EventBus) -> None:
        """A throwing handler neither cancels the others nor fails the call."""
        received: list[str] = []

        async def slow(data: Any) -> None:
            await asyncio.sleep(0.01)
            received.append("slow")

        async def broken(data: Any) -> None:
            raise ValueError("handler failure")

        def fast(data: Any) -> None:
            received.append("fast")

        event_bus.subscribe("custom:ping", slow)
        event_bus.subscribe("custom:ping", broken)
        event_bus.subscribe("custom:ping", fast)

        await event_bus.publish_and_wait("custom:ping")

        assert sorted(received) == ["fast", "slow"]

    async def test_publish_without_subscribers(self, event_bus: EventBus) -> None:
        event_bus.publish("nobody:listens", None)
        await event_bus.publish_and_wait("nobody:listens", None)

    async def test_emit_uses_event_name(self, event_bus: EventBus) -> None:
        received: list[TaskCreated] = []
        event_bus.subscribe("agent:task_created", received.append)

        event = TaskCreated(task_id=uuid4(), task_type="write_draft", assigned_agent="content")
        event_bus.emit(event)

        assert received == [event]

    async def test_subscribe_by_event_class(self, event_bus: EventBus) -> None:
        received: list[ApprovalCompleted] = []
        event_bus.subscribe(ApprovalCompleted, received.append)

        event = ApprovalCompleted(approval_id=uuid4(), status="approved", reviewed_by="editor")
        await event_bus.emit_and_wait(event)

        assert received == [event]
        assert event_bus.listener_count("agent:approval_completed") == 1

    async def test_subscribe_once(self, event_bus: EventBus) -> None:
        received: list[int] = []
        event_bus.subscribe_once("custom:ping", received.append)

        event_bus.publish("custom:ping", 1)
        event_bus.publish("custom:ping", 2)

        assert received == [1]
        assert event_bus.listener_count("custom:ping") == 0

    async def test_subscribe_same_handler_twice(self, event_bus: EventBus) -> None:
        received: list[int] = []
        event_bus.subscribe("custom:ping", received.append)
        event_bus.subscribe("custom:ping", received.append)

        event_bus.publish("custom:ping", 1)

        assert received == [1]

    async def test_unsubscribe(self, event_bus: EventBus) -> None:
        received: list[int] = []
        event_bus.subscribe("custom:ping", received.append)
        event_bus.unsubscribe("custom:ping", received.append)
        event_bus.unsubscribe("custom:ping", print)

        event_bus.publish("custom:ping", 1)

        assert received == []
        assert event_bus.listener_count("custom:ping") == 0

    async def test_clear(self, event_bus: EventBus) -> None:
        event_bus.subscribe("custom:a", print)
        event_bus.subscribe("custom:b", print)

        event_bus.clear("custom:a")
        assert event_bus.listener_count("custom:a") == 0
        assert event_bus.listener_count("custom:b") == 1

        event_bus.clear()
        assert event_bus.listener_count("custom:b") == 0
