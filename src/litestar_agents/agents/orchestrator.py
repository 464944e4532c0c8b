"""The orchestrator agent.

The orchestrator is the only role that owns the workflow engine. It starts,
advances, pauses and resumes workflows, routes ad hoc tasks to other agents,
and runs the approval-reminder and stalled-workflow sweeps. Workflow
continuation is event driven: the orchestrator reacts to task completions and
approval decisions published on the bus.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID

from litestar_agents.agents.base import BaseAgent
from litestar_agents.agents.workflows import BUILTIN_WORKFLOWS
from litestar_agents.core.events import (
    ApprovalCompleted,
    ApprovalReminderDue,
    LeadScoreThresholdReached,
    TaskCompleted,
)
from litestar_agents.core.payloads import TaskPayload
from litestar_agents.core.types import ApprovalStatus
from litestar_agents.exceptions import UnknownAgentError

if TYPE_CHECKING:
    from litestar_agents.bus import EventBus
    from litestar_agents.config import OrchestrationConfig
    from litestar_agents.core.models import AgentTaskData, StalledWorkflow, WorkflowInstanceData
    from litestar_agents.engine.workflow import WorkflowEngine
    from litestar_agents.scheduler import JobScheduler
    from litestar_agents.tasks.approvals import ApprovalGate
    from litestar_agents.tasks.monitoring import AgentStatusBoard
    from litestar_agents.tasks.queue import TaskQueue
    from litestar_agents.tasks.retry import RetryPolicy

__all__ = [
    "AdvanceWorkflowPayload",
    "DistributeTaskPayload",
    "OrchestratorAgent",
    "StartWorkflowPayload",
]


@dataclass
class StartWorkflowPayload(TaskPayload):
    """Payload of a ``start_workflow`` task."""

    workflow_type: str
    initial_data: dict[str, Any] = field(default_factory=dict)

    aliases = {"workflowType": "workflow_type", "initialData": "initial_data"}


@dataclass
class AdvanceWorkflowPayload(TaskPayload):
    """Payload of an ``advance_workflow`` task."""

    workflow_id: str

    aliases = {"workflowId": "workflow_id"}


@dataclass
class DistributeTaskPayload(TaskPayload):
    """Payload of a ``distribute_task`` task: work to route to another agent."""

    target_agent: str
    task_type: str
    task_payload: dict[str, Any] = field(default_factory=dict)
    priority: int = 3

    aliases = {
        "targetAgent": "target_agent",
        "taskType": "task_type",
        "taskPayload": "task_payload",
    }


class OrchestratorAgent(BaseAgent):
    """Coordinates tasks between agents and manages workflows.

    Attributes:
        engine: The workflow engine this agent owns.
        stalled_after: Default threshold of the stalled workflow sweep.

    Example:
        >>> orchestrator = OrchestratorAgent(
        ...     engine=engine, task_queue=queue, approval_gate=gate, event_bus=bus
        ... )
        >>> instance_id = await orchestrator.start_workflow("new_blog_post", {"topic": "Rate cuts"})
    """

    def __init__(
        self,
        *,
        engine: WorkflowEngine,
        task_queue: TaskQueue,
        approval_gate: ApprovalGate,
        event_bus: EventBus,
        retry_policy: RetryPolicy | None = None,
        status_board: AgentStatusBoard | None = None,
        stalled_after: timedelta = timedelta(hours=1),
    ) -> None:
        super().__init__(
            "orchestrator",
            task_queue=task_queue,
            approval_gate=approval_gate,
            event_bus=event_bus,
            retry_policy=retry_policy,
            status_board=status_board,
            display_name="Orchestrator",
            description="Coordinates tasks between agents and manages workflows",
        )
        self.engine = engine
        self.stalled_after = stalled_after

        self.register_handler("start_workflow", self._handle_start_workflow, StartWorkflowPayload)
        self.register_handler("advance_workflow", self._handle_advance_workflow, AdvanceWorkflowPayload)
        self.register_handler("distribute_task", self._handle_distribute_task, DistributeTaskPayload)
        self.register_handler("check_approvals", self._handle_check_approvals)

        event_bus.subscribe(ApprovalCompleted, self._on_approval_completed)
        event_bus.subscribe(TaskCompleted, self._on_task_completed)
        event_bus.subscribe(LeadScoreThresholdReached, self._on_lead_score_threshold)

    def register_builtin_workflows(self) -> None:
        for factory in BUILTIN_WORKFLOWS:
            self.engine.registry.register(factory())

    def register_jobs(self, scheduler: JobScheduler, config: OrchestrationConfig) -> None:
        """Register the run cycle and both maintenance sweeps."""
        self.register_run_job(scheduler, config.process_tasks_schedule)
        scheduler.register_job(
            self.name,
            "orchestrator:check_approvals",
            config.check_approvals_schedule,
            self.check_pending_approvals,
        )
        scheduler.register_job(
            self.name,
            "orchestrator:check_stalled",
            config.check_stalled_schedule,
            self.check_stalled_workflows,
        )

    async def start_workflow(
        self,
        workflow_type: str,
        initial_data: dict[str, Any] | None = None,
        *,
        created_by: str | None = None,
    ) -> UUID:
        return await self.engine.start(workflow_type, initial_data, created_by=created_by or self.name)

    async def advance_workflow(self, workflow_id: UUID) -> UUID | None:
        return await self.engine.advance(workflow_id)

    async def pause_workflow(self, workflow_id: UUID) -> None:
        await self.engine.pause(workflow_id)

    async def resume_workflow(self, workflow_id: UUID) -> None:
        await self.engine.resume(workflow_id)

    async def fail_workflow(self, workflow_id: UUID, error_message: str) -> None:
        await self.engine.fail(workflow_id, error_message)

    async def get_workflow_status(self, workflow_id: UUID) -> WorkflowInstanceData | None:
        return await self.engine.get_status(workflow_id)

    async def create_task_for_agent(
        self,
        agent: str,
        task_type: str,
        payload: dict[str, Any] | None = None,
        priority: int = 3,
    ) -> UUID:
        """Route a task to another agent.

        Raises:
            UnknownAgentError: If ``agent`` is not a known agent name.
        """
        if agent not in self.engine.registry.known_agents:
            raise UnknownAgentError(agent)

        task_id = await self.task_queue.create_task(agent, task_type, payload, priority, created_by=self.name)
        self.log.info("task_routed", target_agent=agent, task_type=task_type, task_id=str(task_id))
        return task_id

    async def check_pending_approvals(self) -> list[UUID]:
        """Flag approvals waiting too long and record that a reminder went out.

        Returns:
            IDs of the approvals a reminder was published for.
        """
        items = await self.approval_gate.sweep_needs_reminder()
        reminded: list[UUID] = []
        for item in items:
            self.log.info("approval_needs_reminder", approval_id=str(item.id), title=item.title)
            await self.event_bus.emit_and_wait(
                ApprovalReminderDue(approval_id=item.id, title=item.title, pending_since=item.created_at)
            )
            await self.approval_gate.mark_reminder_sent(item.id)
            reminded.append(item.id)
        return reminded

    async def check_stalled_workflows(self, threshold: timedelta | None = None) -> list[StalledWorkflow]:
        """Report running workflows that have not moved for ``threshold``.

        Nothing is remediated; the report is logged and returned.
        """
        stalled = await self.engine.find_stalled(threshold if threshold is not None else self.stalled_after)
        for entry in stalled:
            self.log.warning(
                "workflow_stalled",
                instance_id=str(entry.instance_id),
                workflow_type=entry.workflow_type,
                current_step=entry.current_step,
                stalled_for=str(entry.stalled_for),
            )
        return stalled

    async def _handle_start_workflow(self, task: AgentTaskData, payload: StartWorkflowPayload) -> dict[str, Any]:
        instance_id = await self.start_workflow(payload.workflow_type, payload.initial_data, created_by=task.created_by)
        return {"workflow_id": str(instance_id)}

    async def _handle_advance_workflow(self, task: AgentTaskData, payload: AdvanceWorkflowPayload) -> dict[str, Any]:
        dispatched = await self.advance_workflow(UUID(payload.workflow_id))
        return {"workflow_id": payload.workflow_id, "dispatched_task_id": str(dispatched) if dispatched else None}

    async def _handle_distribute_task(self, task: AgentTaskData, payload: DistributeTaskPayload) -> dict[str, Any]:
        task_id = await self.create_task_for_agent(
            payload.target_agent,
            payload.task_type,
            payload.task_payload,
            payload.priority or 3,
        )
        return {"task_id": str(task_id)}

    async def _handle_check_approvals(self, task: AgentTaskData, payload: dict[str, Any]) -> dict[str, Any]:
        reminded = await self.check_pending_approvals()
        return {"reminders": len(reminded)}

    async def _on_approval_completed(self, event: ApprovalCompleted) -> None:
        if event.status != ApprovalStatus.APPROVED or event.related_task_id is None:
            return

        task = await self.task_queue.get(event.related_task_id)
        if task is None:
            self.log.warning("approval_related_task_missing", approval_id=str(event.approval_id))
            return

        workflow_id = task.workflow_id
        if workflow_id is None:
            return

        self.log.info("workflow_approval_received", instance_id=str(workflow_id), approval_id=str(event.approval_id))
        await self.engine.advance(workflow_id, after_step=task.workflow_step)

    async def _on_task_completed(self, event: TaskCompleted) -> None:
        if event.workflow_id is None or event.workflow_step is None:
            return

        await self.engine.record_step_result(event.workflow_id, event.workflow_step, event.task_id, event.result)
        if event.via_approval:
            return

        instance = await self.engine.get_status(event.workflow_id)
        if instance is None:
            return
        step = self.engine.registry.get_definition(instance.workflow_type).get_step(event.workflow_step)
        if step is None or step.requires_approval:
            return

        await self.engine.advance(event.workflow_id, after_step=event.workflow_step)

    def _on_lead_score_threshold(self, event: LeadScoreThresholdReached) -> None:
        if event.threshold == "hot":
            self.log.info("hot_lead_detected", contact_id=event.contact_id, score=event.score, email=event.email)
