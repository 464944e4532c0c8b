"""Durable task queue over the ``agent_tasks`` table.

Agents never call each other. Work crosses agent boundaries only as task rows
created here and pulled by the assigned agent's own run cycle.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog

from litestar_agents.core.events import TaskCreated
from litestar_agents.core.models import AgentTaskData
from litestar_agents.core.types import TaskStatus
from litestar_agents.db.models import AgentTaskModel
from litestar_agents.db.repositories import AgentTaskRepository
from litestar_agents.exceptions import InvalidTransitionError, TaskNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from litestar_agents.bus import EventBus

__all__ = ["TaskQueue"]

logger = structlog.get_logger(__name__)

_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.FAILED}),
    TaskStatus.IN_PROGRESS: frozenset(
        {TaskStatus.COMPLETE, TaskStatus.FAILED, TaskStatus.AWAITING_APPROVAL, TaskStatus.PENDING}
    ),
    TaskStatus.AWAITING_APPROVAL: frozenset({TaskStatus.COMPLETE, TaskStatus.FAILED}),
    TaskStatus.COMPLETE: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TaskQueue:
    """Typed access and status transitions for agent tasks.

    Every operation opens its own short-lived session and commits once.

    Attributes:
        session_maker: Factory for async sessions against the shared store.
        event_bus: Bus that receives ``TaskCreated`` notifications.
        default_max_attempts: Attempt budget for tasks created without one.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        event_bus: EventBus,
        *,
        default_max_attempts: int = 3,
    ) -> None:
        self.session_maker = session_maker
        self.event_bus = event_bus
        self.default_max_attempts = default_max_attempts

    async def create_task(
        self,
        agent: str,
        task_type: str,
        payload: dict[str, Any] | None = None,
        priority: int = 3,
        *,
        created_by: str,
        due_at: datetime | None = None,
        max_attempts: int | None = None,
    ) -> UUID:
        """Create a pending task for ``agent``.

        Args:
            agent: The agent that will pull the task.
            task_type: Task kind.
            payload: Input map for the handler.
            priority: 1 (highest) to 5 (lowest).
            created_by: Agent name, ``schedule`` or ``human``.
            due_at: Optional deadline.
            max_attempts: Attempt budget; defaults to the queue's.

        Returns:
            The new task ID.

        Raises:
            ValueError: If ``priority`` is outside 1..5.
        """
        async with self.session_maker.begin() as session:
            task = await self.enqueue(
                session,
                agent,
                task_type,
                payload,
                priority,
                created_by=created_by,
                due_at=due_at,
                max_attempts=max_attempts,
            )
            task_id = task.id

        self.notify_created(task_id, task_type, agent)
        return task_id

    async def enqueue(
        self,
        session: AsyncSession,
        agent: str,
        task_type: str,
        payload: dict[str, Any] | None = None,
        priority: int = 3,
        *,
        created_by: str,
        due_at: datetime | None = None,
        max_attempts: int | None = None,
    ) -> AgentTaskModel:
        """Insert a task inside a transaction owned by the caller.

        No event is published; call :meth:`notify_created` once the caller's
        transaction has committed.

        Returns:
            The flushed task row.
        """
        if not 1 <= priority <= 5:
            msg = f"Task priority must be between 1 and 5, got {priority}"
            raise ValueError(msg)

        repo = AgentTaskRepository(session=session)
        task = AgentTaskModel(
            type=task_type,
            priority=priority,
            status=TaskStatus.PENDING.value,
            assigned_agent=agent,
            payload=dict(payload or {}),
            created_by=created_by,
            due_at=due_at,
            attempts=0,
            max_attempts=max_attempts if max_attempts is not None else self.default_max_attempts,
        )
        task = await repo.add(task)
        logger.info("task_created", task_id=str(task.id), task_type=task_type, agent=agent, priority=priority)
        return task

    def notify_created(self, task_id: UUID, task_type: str, agent: str) -> None:
        """Publish ``TaskCreated`` for a committed task."""
        self.event_bus.emit(TaskCreated(task_id=task_id, task_type=task_type, assigned_agent=agent))

    async def fetch_pending(self, agent: str, *, limit: int | None = None) -> list[AgentTaskData]:
        """Tasks ``agent`` may pull now, by priority and then oldest first."""
        async with self.session_maker() as session:
            repo = AgentTaskRepository(session=session)
            tasks = await repo.find_pending(agent, _now(), limit)
            return [AgentTaskData.from_model(task) for task in tasks]

    async def get(self, task_id: UUID) -> AgentTaskData | None:
        async with self.session_maker() as session:
            task = await AgentTaskRepository(session=session).get_one_or_none(id=task_id)
            return AgentTaskData.from_model(task) if task is not None else None

    async def count_pending(self, agent: str | None = None) -> int:
        async with self.session_maker() as session:
            return await AgentTaskRepository(session=session).count_pending(agent)

    async def list_failed(self, agent: str | None = None) -> list[AgentTaskData]:
        """Terminally failed tasks, most recently finished first."""
        async with self.session_maker() as session:
            tasks = await AgentTaskRepository(session=session).find_failed(agent)
            return [AgentTaskData.from_model(task) for task in tasks]

    async def mark_in_progress(self, task_id: UUID) -> AgentTaskData:
        """Record that the assigned agent picked the task up."""

        def apply(task: AgentTaskModel, now: datetime) -> None:
            task.retry_at = None

        return await self._transition(task_id, TaskStatus.IN_PROGRESS, apply)

    async def mark_awaiting_approval(self, task_id: UUID, result: dict[str, Any] | None = None) -> AgentTaskData:
        """Park an executed task until a human decides on its output."""

        def apply(task: AgentTaskModel, now: datetime) -> None:
            if result is not None:
                task.result = dict(result)

        return await self._transition(task_id, TaskStatus.AWAITING_APPROVAL, apply)

    async def mark_complete(self, task_id: UUID, result: dict[str, Any] | None = None) -> AgentTaskData:
        """Finish a task successfully and store its result."""

        def apply(task: AgentTaskModel, now: datetime) -> None:
            if result is not None:
                task.result = dict(result)
            task.completed_at = now

        return await self._transition(task_id, TaskStatus.COMPLETE, apply)

    async def mark_failed(
        self,
        task_id: UUID,
        error: str,
        *,
        retry_in: timedelta | None = None,
    ) -> AgentTaskData:
        """Record a failed execution.

        ``attempts`` is incremented and ``last_error`` recorded in every case.
        The task is re-queued only when the caller passes ``retry_in``; it then
        returns to ``pending`` and cannot be pulled before the delay elapses.
        Otherwise it becomes ``failed``, which is terminal.

        Args:
            task_id: The failing task.
            error: Failure message.
            retry_in: Backoff before the task may be pulled again.

        Returns:
            The updated task.

        Raises:
            TaskNotFoundError: If the task does not exist.
            InvalidTransitionError: If the task is already terminal, or a retry
                is requested for a task that is not in progress.
        """
        target = TaskStatus.PENDING if retry_in is not None else TaskStatus.FAILED

        def apply(task: AgentTaskModel, now: datetime) -> None:
            task.attempts += 1
            task.last_error = error
            if retry_in is not None:
                task.retry_at = now + retry_in
            else:
                task.completed_at = now

        return await self._transition(task_id, target, apply)

    async def _transition(
        self,
        task_id: UUID,
        target: TaskStatus,
        apply: Callable[[AgentTaskModel, datetime], None],
    ) -> AgentTaskData:
        async with self.session_maker.begin() as session:
            repo = AgentTaskRepository(session=session)
            task = await repo.get_for_update(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)

            current = TaskStatus(task.status)
            if target not in _TRANSITIONS[current]:
                raise InvalidTransitionError(task_id, current.value, target.value)

            now = _now()
            task.status = target.value
            apply(task, now)
            await session.flush()
            data = AgentTaskData.from_model(task)

        logger.debug("task_transitioned", task_id=str(task_id), from_status=current.value, to_status=target.value)
        return data
