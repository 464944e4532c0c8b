"""Persistent workflow engine.

This module advances workflow instances through their in-memory definitions.
Each call to :meth:`WorkflowEngine.advance` dispatches at most one step: it
creates the step's task for the owning agent and moves the instance cursor past
it. The following step is dispatched only when an external completion signal
calls ``advance`` again.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog

from litestar_agents.core.definition import WorkflowDefinition
from litestar_agents.core.events import (
    WorkflowCompleted,
    WorkflowFailed,
    WorkflowPaused,
    WorkflowResumed,
    WorkflowStarted,
    WorkflowStepDispatched,
)
from litestar_agents.core.models import StalledWorkflow, WorkflowInstanceData
from litestar_agents.core.types import WorkflowStatus
from litestar_agents.db.models import WorkflowInstanceModel
from litestar_agents.db.repositories import WorkflowInstanceRepository
from litestar_agents.exceptions import (
    WorkflowAlreadyCompletedError,
    WorkflowInstanceNotFoundError,
    WorkflowValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from litestar_agents.bus import EventBus
    from litestar_agents.core.definition import WorkflowStep
    from litestar_agents.engine.registry import WorkflowRegistry
    from litestar_agents.tasks.queue import TaskQueue

__all__ = ["WorkflowEngine"]

logger = structlog.get_logger(__name__)

_FINISHED = frozenset({WorkflowStatus.COMPLETED, WorkflowStatus.FAILED})


def _now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowEngine:
    """Execution engine for multi-agent workflows with database persistence.

    Step dispatch is guarded twice. Calls for the same instance are serialized
    by a per-instance lock within the process, and the cursor only moves through
    a compare-and-set update issued in the same transaction as the step's task
    insert. A caller that loses the compare-and-set rolls back its task, so a
    step is never dispatched twice.

    Attributes:
        registry: The workflow registry for looking up definitions.
        session_maker: Factory for async sessions against the shared store.
        task_queue: Queue used to create step tasks.
        event_bus: Bus for workflow lifecycle events.
        dispatched_by: ``created_by`` recorded on step tasks.
    """

    def __init__(
        self,
        registry: WorkflowRegistry,
        session_maker: async_sessionmaker[AsyncSession],
        task_queue: TaskQueue,
        event_bus: EventBus,
        *,
        dispatched_by: str = "orchestrator",
    ) -> None:
        """Initialize the workflow engine.

        Args:
            registry: The workflow registry.
            session_maker: SQLAlchemy async session factory.
            task_queue: Queue used to create step tasks.
            event_bus: Bus for workflow lifecycle events.
            dispatched_by: ``created_by`` recorded on step tasks.
        """
        self.registry = registry
        self.session_maker = session_maker
        self.task_queue = task_queue
        self.event_bus = event_bus
        self.dispatched_by = dispatched_by
        self._locks: dict[UUID, asyncio.Lock] = {}

    def register_definition(
        self,
        workflow_type: str,
        steps: Iterable[WorkflowStep],
        *,
        name: str | None = None,
        description: str | None = None,
    ) -> WorkflowDefinition:
        """Register a workflow definition, replacing any under the same type.

        Args:
            workflow_type: Registry key.
            steps: Ordered steps.
            name: Human-readable name; defaults to the workflow type.
            description: Optional description.

        Returns:
            The registered definition.

        Raises:
            WorkflowValidationError: If a step targets an unknown agent.
        """
        definition = WorkflowDefinition(
            workflow_type=workflow_type,
            name=name or workflow_type,
            steps=list(steps),
            description=description,
        )
        self.registry.register(definition)
        return definition

    async def start(
        self,
        workflow_type: str,
        initial_payload: dict[str, Any] | None = None,
        *,
        created_by: str | None = None,
    ) -> UUID:
        """Start a new workflow instance and dispatch its first step.

        A definition with no steps completes before this call returns.

        Args:
            workflow_type: The registered workflow type.
            initial_payload: Context handed to every step.
            created_by: Who started the workflow.

        Returns:
            The new instance ID.

        Raises:
            WorkflowNotFoundError: If the workflow type is not registered.

        Example:
            >>> instance_id = await engine.start("new_blog_post", {"topic": "Rate cuts"})
        """
        definition = self.registry.get_definition(workflow_type)
        payload = dict(initial_payload or {})

        async with self.session_maker.begin() as session:
            repo = WorkflowInstanceRepository(session=session)
            instance = await repo.add(
                WorkflowInstanceModel(
                    workflow_type=workflow_type,
                    status=WorkflowStatus.RUNNING.value,
                    current_step=0,
                    total_steps=definition.total_steps,
                    payload=payload,
                    step_results=[],
                    created_by=created_by,
                )
            )
            instance_id = instance.id

        logger.info(
            "workflow_started",
            instance_id=str(instance_id),
            workflow_type=workflow_type,
            total_steps=definition.total_steps,
        )
        self.event_bus.emit(WorkflowStarted(instance_id=instance_id, workflow_type=workflow_type, initial_payload=payload))

        await self.advance(instance_id)
        return instance_id

    async def advance(self, instance_id: UUID, *, after_step: int | None = None) -> UUID | None:
        """Dispatch the instance's next step, or complete it when none is left.

        Calling ``advance`` on an instance that is not running does nothing.

        Args:
            instance_id: The workflow instance.
            after_step: When given, only advance if this step is the latest one
                dispatched. Completion signals pass the step they belong to, so a
                late or repeated signal cannot dispatch a step out of turn.

        Returns:
            The ID of the dispatched task, or None if nothing was dispatched.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
            WorkflowNotFoundError: If the instance's workflow type is no longer
                registered.
        """
        async with self._lock_for(instance_id):
            return await self._advance(instance_id, after_step)

    async def _advance(self, instance_id: UUID, after_step: int | None) -> UUID | None:
        async with self.session_maker() as session:
            repo = WorkflowInstanceRepository(session=session)
            instance = await repo.get_one_or_none(id=instance_id)
            if instance is None:
                raise WorkflowInstanceNotFoundError(instance_id)

            if instance.status != WorkflowStatus.RUNNING.value:
                logger.debug("workflow_advance_skipped", instance_id=str(instance_id), status=instance.status)
                return None

            seen = instance.current_step
            if after_step is not None and seen != after_step + 1:
                logger.debug(
                    "workflow_advance_stale",
                    instance_id=str(instance_id),
                    after_step=after_step,
                    current_step=seen,
                )
                return None

            workflow_type = instance.workflow_type
            definition = self.registry.get_definition(workflow_type)
            now = _now()

            if seen >= instance.total_steps:
                if not await repo.set_status(
                    instance_id,
                    WorkflowStatus.COMPLETED,
                    WorkflowStatus.RUNNING,
                    now,
                    completed_at=now,
                ):
                    await session.rollback()
                    return None
                await session.commit()
                self._locks.pop(instance_id, None)
                logger.info("workflow_completed", instance_id=str(instance_id), workflow_type=workflow_type)
                self.event_bus.emit(WorkflowCompleted(instance_id=instance_id, workflow_type=workflow_type))
                return None

            step = definition.get_step(seen)
            if step is None:
                raise WorkflowValidationError(
                    [f"Workflow '{workflow_type}' has no step {seen} but the instance expects {instance.total_steps}"]
                )

            task = await self.task_queue.enqueue(
                session,
                step.agent,
                step.task_type,
                step.build_payload(str(instance_id), dict(instance.payload or {}), seen),
                step.priority,
                created_by=self.dispatched_by,
            )
            task_id = task.id

            if not await repo.claim_step(instance_id, seen, now):
                await session.rollback()
                logger.info("workflow_step_already_claimed", instance_id=str(instance_id), step=seen)
                return None
            await session.commit()

        logger.info(
            "workflow_step_dispatched",
            instance_id=str(instance_id),
            step=seen,
            agent=step.agent,
            task_type=step.task_type,
            task_id=str(task_id),
        )
        self.task_queue.notify_created(task_id, step.task_type, step.agent)
        self.event_bus.emit(
            WorkflowStepDispatched(
                instance_id=instance_id,
                step_index=seen,
                task_id=task_id,
                agent=step.agent,
                task_type=step.task_type,
            )
        )
        return task_id

    async def pause(self, instance_id: UUID) -> None:
        """Pause a running instance. Pausing a paused instance does nothing.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
            WorkflowAlreadyCompletedError: If the instance is completed or failed.
        """
        async with self._lock_for(instance_id):
            step = await self._set_status(instance_id, WorkflowStatus.PAUSED, WorkflowStatus.RUNNING)

        if step is not None:
            logger.info("workflow_paused", instance_id=str(instance_id), step=step)
            self.event_bus.emit(WorkflowPaused(instance_id=instance_id, paused_at_step=step))

    async def resume(self, instance_id: UUID) -> None:
        """Resume a paused instance and advance it once.

        Resuming a running instance does nothing.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
            WorkflowAlreadyCompletedError: If the instance is completed or failed.
        """
        async with self._lock_for(instance_id):
            step = await self._set_status(instance_id, WorkflowStatus.RUNNING, WorkflowStatus.PAUSED)

        if step is None:
            return

        logger.info("workflow_resumed", instance_id=str(instance_id), step=step)
        self.event_bus.emit(WorkflowResumed(instance_id=instance_id, resuming_at_step=step))
        await self.advance(instance_id)

    async def fail(self, instance_id: UUID, error_message: str) -> None:
        """Stop a running or paused instance for good, recording why.

        No further step is dispatched. Tasks already handed to agents are left
        as they are.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
            WorkflowAlreadyCompletedError: If the instance is completed or failed.
        """
        async with self._lock_for(instance_id), self.session_maker.begin() as session:
            instance = await WorkflowInstanceRepository(session=session).get_one_or_none(id=instance_id)
            if instance is None:
                raise WorkflowInstanceNotFoundError(instance_id)

            current = WorkflowStatus(instance.status)
            if current in _FINISHED:
                raise WorkflowAlreadyCompletedError(instance_id, current.value)

            instance.status = WorkflowStatus.FAILED.value
            instance.error_message = error_message
            instance.updated_at = _now()
            step = instance.current_step

        self._locks.pop(instance_id, None)
        logger.warning("workflow_failed", instance_id=str(instance_id), step=step, error_message=error_message)
        self.event_bus.emit(WorkflowFailed(instance_id=instance_id, failed_at_step=step, error_message=error_message))

    async def _set_status(self, instance_id: UUID, target: WorkflowStatus, expected: WorkflowStatus) -> int | None:
        async with self.session_maker.begin() as session:
            instance = await WorkflowInstanceRepository(session=session).get_one_or_none(id=instance_id)
            if instance is None:
                raise WorkflowInstanceNotFoundError(instance_id)

            current = WorkflowStatus(instance.status)
            if current in _FINISHED:
                raise WorkflowAlreadyCompletedError(instance_id, current.value)
            if current != expected:
                return None

            instance.status = target.value
            instance.updated_at = _now()
            return instance.current_step

    async def get_status(self, instance_id: UUID) -> WorkflowInstanceData | None:
        async with self.session_maker() as session:
            instance = await WorkflowInstanceRepository(session=session).get_one_or_none(id=instance_id)
            return WorkflowInstanceData.from_model(instance) if instance is not None else None

    async def record_step_result(
        self,
        instance_id: UUID,
        step_index: int,
        task_id: UUID,
        result: dict[str, Any] | None,
    ) -> None:
        """Append a finished step's result to the instance's history.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
        """
        async with self._lock_for(instance_id), self.session_maker.begin() as session:
            instance = await WorkflowInstanceRepository(session=session).get_one_or_none(id=instance_id)
            if instance is None:
                raise WorkflowInstanceNotFoundError(instance_id)

            now = _now()
            instance.step_results = [
                *(instance.step_results or []),
                {
                    "step": step_index,
                    "task_id": str(task_id),
                    "result": result,
                    "recorded_at": now.isoformat(),
                },
            ]
            instance.updated_at = now

    async def find_stalled(self, older_than: timedelta = timedelta(hours=1)) -> list[StalledWorkflow]:
        """Report running instances that have not changed for ``older_than``.

        Paused instances are never reported, whatever their age.
        """
        now = _now()
        async with self.session_maker() as session:
            instances = await WorkflowInstanceRepository(session=session).find_stalled(now - older_than)
            return [
                StalledWorkflow(
                    instance_id=instance.id,
                    workflow_type=instance.workflow_type,
                    current_step=instance.current_step,
                    total_steps=instance.total_steps,
                    updated_at=instance.updated_at,
                    stalled_for=now - instance.updated_at,
                )
                for instance in instances
            ]

    async def list_instances(self, status: WorkflowStatus | None = None) -> list[WorkflowInstanceData]:
        async with self.session_maker() as session:
            instances = await WorkflowInstanceRepository(session=session).find_by_status(status)
            return [WorkflowInstanceData.from_model(instance) for instance in instances]

    def _lock_for(self, instance_id: UUID) -> asyncio.Lock:
        return self._locks.setdefault(instance_id, asyncio.Lock())
