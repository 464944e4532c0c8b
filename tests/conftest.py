"""Shared test fixtures for litestar-agents test suite."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import event, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from litestar_agents.agents.orchestrator import OrchestratorAgent
from litestar_agents.bus import EventBus
from litestar_agents.core.definition import WorkflowDefinition, WorkflowStep
from litestar_agents.db.models import AgentTaskModel, ApprovalItemModel, WorkflowInstanceModel
from litestar_agents.engine.registry import WorkflowRegistry
from litestar_agents.engine.workflow import WorkflowEngine
from litestar_agents.tasks.approvals import ApprovalGate
from litestar_agents.tasks.queue import TaskQueue
from litestar_agents.tasks.retry import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable
    from pathlib import Path
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncEngine


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Create an async SQLite engine backed by a per-test database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'agents.db'}", echo=False)

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(AgentTaskModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def task_queue(session_maker: async_sessionmaker[AsyncSession], event_bus: EventBus) -> TaskQueue:
    return TaskQueue(session_maker, event_bus)


@pytest.fixture
def approval_gate(session_maker: async_sessionmaker[AsyncSession], event_bus: EventBus) -> ApprovalGate:
    return ApprovalGate(session_maker, event_bus)


@pytest.fixture
def registry() -> WorkflowRegistry:
    return WorkflowRegistry()


@pytest.fixture
def engine(
    registry: WorkflowRegistry,
    session_maker: async_sessionmaker[AsyncSession],
    task_queue: TaskQueue,
    event_bus: EventBus,
) -> WorkflowEngine:
    return WorkflowEngine(registry, session_maker, task_queue, event_bus)


@pytest.fixture
def orchestrator(
    engine: WorkflowEngine,
    task_queue: TaskQueue,
    approval_gate: ApprovalGate,
    event_bus: EventBus,
) -> OrchestratorAgent:
    agent = OrchestratorAgent(
        engine=engine,
        task_queue=task_queue,
        approval_gate=approval_gate,
        event_bus=event_bus,
        retry_policy=RetryPolicy(jitter=0),
    )
    agent.register_builtin_workflows()
    return agent


@pytest.fixture
def two_step_definition() -> WorkflowDefinition:
    """A workflow whose second step waits on a human decision."""
    return WorkflowDefinition(
        workflow_type="two_step",
        name="Two Step",
        steps=[
            WorkflowStep(agent="research", task_type="gather_sources", payload={"depth": 2}),
            WorkflowStep(agent="content", task_type="write_summary", requires_approval=True, priority=2),
        ],
    )


# =============================================================================
# Row Helpers
# =============================================================================


@pytest.fixture
def insert_task(session_maker: async_sessionmaker[AsyncSession]) -> Callable[..., Awaitable[UUID]]:
    """Insert task rows directly, optionally with a fixed creation time."""

    async def insert(
        *,
        agent: str = "content",
        task_type: str = "write_draft",
        priority: int = 3,
        created_at: datetime | None = None,
        **values: Any,
    ) -> UUID:
        async with session_maker.begin() as session:
            task = AgentTaskModel(
                type=task_type,
                priority=priority,
                status=values.pop("status", "pending"),
                assigned_agent=agent,
                payload=values.pop("payload", {}),
                created_by=values.pop("created_by", "human"),
                attempts=values.pop("attempts", 0),
                max_attempts=values.pop("max_attempts", 3),
                **values,
            )
            if created_at is not None:
                task.created_at = created_at
            session.add(task)
            await session.flush()
            return task.id

    return insert


@pytest.fixture
def backdate(session_maker: async_sessionmaker[AsyncSession]) -> Callable[..., Awaitable[None]]:
    """Overwrite timestamp columns without going through the ORM unit of work."""

    async def apply(
        model: type[AgentTaskModel | ApprovalItemModel | WorkflowInstanceModel],
        row_id: UUID,
        **values: datetime,
    ) -> None:
        async with session_maker.begin() as session:
            await session.execute(update(model).where(model.id == row_id).values(**values))

    return apply