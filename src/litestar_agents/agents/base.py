"""Base class for task-pulling agents.

An agent owns exactly one role name. On every run cycle it pulls the pending
tasks addressed to that name, executes each through the handler registered for
its type, and records the outcome on the task row. Agents never call each
other; follow-up work is expressed as new tasks or bus events.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeAlias

import structlog

from litestar_agents.core.events import ApprovalCompleted, TaskCompleted, TaskFailed
from litestar_agents.core.payloads import PayloadRegistry, TaskPayload
from litestar_agents.core.types import ApprovalPriority, ApprovalStatus, TaskStatus
from litestar_agents.exceptions import InvalidPayloadError, InvalidTransitionError, UnknownTaskTypeError
from litestar_agents.tasks.monitoring import AgentStatusBoard
from litestar_agents.tasks.retry import RetryPolicy

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from litestar_agents.bus import EventBus
    from litestar_agents.core.models import AgentTaskData
    from litestar_agents.scheduler import JobScheduler
    from litestar_agents.tasks.approvals import ApprovalGate
    from litestar_agents.tasks.queue import TaskQueue

__all__ = ["BaseAgent", "TaskHandler"]

logger = structlog.get_logger(__name__)

TaskHandler: TypeAlias = Callable[["AgentTaskData", Any], "Awaitable[dict[str, Any] | None] | dict[str, Any] | None"]
"""Receives the task and its decoded payload; returns the result map."""

# Failures that would fail the same way on every attempt.
_NOT_RETRYABLE = (UnknownTaskTypeError, InvalidPayloadError)


class BaseAgent:
    """Pull-based worker for one agent role.

    Attributes:
        name: Agent role name; tasks are addressed to it.
        display_name: Human-readable name.
        description: What the agent does.
        task_queue: Shared task queue.
        approval_gate: Shared approval gate.
        event_bus: Process event bus.
        retry_policy: Backoff for failed tasks.
        payloads: Decoders for the task types this agent owns.
        status_board: Where the heartbeat of each run cycle is recorded.

    Example:
        >>> agent = BaseAgent("seo", task_queue=queue, approval_gate=gate, event_bus=bus)
        >>> agent.register_handler("create_content_brief", write_brief)
        >>> await agent.run()
    """

    def __init__(
        self,
        name: str,
        *,
        task_queue: TaskQueue,
        approval_gate: ApprovalGate,
        event_bus: EventBus,
        retry_policy: RetryPolicy | None = None,
        status_board: AgentStatusBoard | None = None,
        display_name: str | None = None,
        description: str | None = None,
    ) -> None:
        self.name = name
        self.display_name = display_name or name.replace("_", " ").title()
        self.description = description
        self.task_queue = task_queue
        self.approval_gate = approval_gate
        self.event_bus = event_bus
        self.retry_policy = retry_policy or RetryPolicy()
        self.status_board = status_board or AgentStatusBoard(task_queue.session_maker)
        self.payloads = PayloadRegistry()
        self.log = logger.bind(agent=name)
        self._handlers: dict[str, TaskHandler] = {}
        self._submitted: set[UUID] = set()
        self._cycle_errors: list[str] = []

        event_bus.subscribe(ApprovalCompleted, self._finish_reviewed_task)

    def register_handler(
        self,
        task_type: str,
        handler: TaskHandler,
        payload_type: type[TaskPayload] | None = None,
    ) -> None:
        """Route tasks of ``task_type`` to ``handler``.

        Args:
            task_type: Task kind.
            handler: Callable receiving the task and its decoded payload.
            payload_type: Optional typed payload; without one the handler gets a
                plain dict.
        """
        self._handlers[task_type] = handler
        if payload_type is not None:
            self.payloads.register(task_type, payload_type)

    @property
    def task_types(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def run(self) -> int:
        """Process every pending task once, in pull order.

        A failing task never stops the cycle. The cycle ends with a heartbeat
        on the status board carrying the latest task failure, if any.

        Returns:
            Number of tasks that completed or moved to awaiting approval.
        """
        tasks = await self.task_queue.fetch_pending(self.name)
        self.log.debug("agent_cycle_started", pending=len(tasks))
        self._cycle_errors = []

        succeeded = 0
        for task in tasks:
            if await self.process_task(task):
                succeeded += 1

        await self.status_board.record_heartbeat(
            self.name,
            processed=succeeded,
            tasks_pending=await self.task_queue.count_pending(self.name),
            error=self._cycle_errors[-1] if self._cycle_errors else None,
        )
        return succeeded

    async def process_task(self, task: AgentTaskData) -> bool:
        """Execute one task and record its outcome.

        Args:
            task: A pending task addressed to this agent.

        Returns:
            True if the task completed or now awaits approval.
        """
        log = self.log.bind(task_id=str(task.id), task_type=task.type)
        try:
            await self.task_queue.mark_in_progress(task.id)
        except InvalidTransitionError:
            log.warning("task_no_longer_pending")
            return False

        log.info("task_processing")
        try:
            result = await self.execute_task(task)
        except Exception as exc:
            self._submitted.discard(task.id)
            await self._record_failure(task, exc)
            return False

        if task.id in self._submitted:
            self._submitted.discard(task.id)
            await self.task_queue.mark_awaiting_approval(task.id, result)
            log.info("task_awaiting_approval")
            return True

        await self.task_queue.mark_complete(task.id, result)
        log.info("task_completed")
        await self.event_bus.emit_and_wait(
            TaskCompleted(
                task_id=task.id,
                task_type=task.type,
                assigned_agent=self.name,
                result=result,
                workflow_id=task.workflow_id,
                workflow_step=task.workflow_step,
            )
        )
        return True

    async def execute_task(self, task: AgentTaskData) -> dict[str, Any] | None:
        """Dispatch a task to the handler registered for its type.

        Raises:
            UnknownTaskTypeError: If no handler is registered for the type.
            InvalidPayloadError: If the payload lacks required keys.
        """
        handler = self._handlers.get(task.type)
        if handler is None:
            raise UnknownTaskTypeError(self.name, task.type)

        payload = self.payloads.decode(task.type, task.payload)
        result = handler(task, payload)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def create_task(
        self,
        task_type: str,
        payload: dict[str, Any] | None = None,
        priority: int = 3,
        *,
        due_at: datetime | None = None,
    ) -> UUID:
        """Queue follow-up work for this same agent."""
        return await self.task_queue.create_task(
            self.name,
            task_type,
            payload,
            priority,
            created_by=self.name,
            due_at=due_at,
        )

    async def submit_for_approval(
        self,
        approval_type: str,
        title: str,
        content: dict[str, Any],
        *,
        summary: str | None = None,
        priority: ApprovalPriority | str = ApprovalPriority.MEDIUM,
        related_task_id: UUID | None = None,
    ) -> UUID:
        """Submit material for human review.

        When called from a handler with the task being processed as
        ``related_task_id``, that task ends the cycle in ``awaiting_approval``
        instead of ``complete`` and is finished once a reviewer decides.

        Returns:
            The approval ID.
        """
        approval_id = await self.approval_gate.create_approval(
            approval_type,
            title,
            summary,
            content,
            created_by=self.name,
            related_task_id=related_task_id,
            priority=priority,
        )
        if related_task_id is not None:
            self._submitted.add(related_task_id)
        self.log.info("approval_submitted", approval_id=str(approval_id), title=title)
        return approval_id

    def register_run_job(self, scheduler: JobScheduler, schedule: str) -> None:
        """Schedule this agent's run cycle as ``<name>:process_tasks``."""
        scheduler.register_job(self.name, f"{self.name}:process_tasks", schedule, self.run)

    async def _record_failure(self, task: AgentTaskData, exc: Exception) -> None:
        error = str(exc) or type(exc).__name__
        self._cycle_errors.append(error)
        attempts = task.attempts + 1
        retry_in = None if isinstance(exc, _NOT_RETRYABLE) else self.retry_policy.next_delay(attempts, task.max_attempts)

        self.log.error(
            "task_failed",
            task_id=str(task.id),
            task_type=task.type,
            attempts=attempts,
            will_retry=retry_in is not None,
            exc_info=exc,
        )
        await self.task_queue.mark_failed(task.id, error, retry_in=retry_in)
        await self.event_bus.emit_and_wait(
            TaskFailed(
                task_id=task.id,
                task_type=task.type,
                assigned_agent=self.name,
                error=error,
                attempts=attempts,
                will_retry=retry_in is not None,
            )
        )

    async def _finish_reviewed_task(self, event: ApprovalCompleted) -> None:
        if event.related_task_id is None:
            return

        task = await self.task_queue.get(event.related_task_id)
        if task is None or task.assigned_agent != self.name or task.status != TaskStatus.AWAITING_APPROVAL:
            return

        if event.status == ApprovalStatus.APPROVED:
            await self.task_queue.mark_complete(task.id)
            await self.event_bus.emit_and_wait(
                TaskCompleted(
                    task_id=task.id,
                    task_type=task.type,
                    assigned_agent=self.name,
                    result=task.result,
                    workflow_id=task.workflow_id,
                    workflow_step=task.workflow_step,
                    via_approval=True,
                )
            )
        elif event.status == ApprovalStatus.REJECTED:
            await self.task_queue.mark_failed(task.id, f"Rejected by {event.reviewed_by}")
