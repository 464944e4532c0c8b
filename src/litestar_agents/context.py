"""Process context wiring the orchestration components together.

One :class:`OrchestrationContext` is built per process. It owns the event bus
and hands the same instance to every component, so nothing relies on
module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from litestar_agents.agents.base import BaseAgent
from litestar_agents.agents.orchestrator import OrchestratorAgent
from litestar_agents.bus import EventBus
from litestar_agents.config import OrchestrationConfig
from litestar_agents.engine.registry import WorkflowRegistry
from litestar_agents.engine.workflow import WorkflowEngine
from litestar_agents.log import configure_logging
from litestar_agents.scheduler import JobScheduler
from litestar_agents.tasks.approvals import ApprovalGate
from litestar_agents.tasks.monitoring import AgentStatusBoard, JobExecutionLog
from litestar_agents.tasks.queue import TaskQueue

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["OrchestrationContext"]

logger = structlog.get_logger(__name__)


@dataclass
class OrchestrationContext:
    """All orchestration components of one process.

    Attributes:
        config: Runtime configuration.
        event_bus: The process event bus.
        registry: Workflow definition registry.
        task_queue: Shared task queue.
        approval_gate: Shared approval gate.
        engine: Workflow engine.
        orchestrator: The orchestrator agent.
        scheduler: Job scheduler driving every agent.
        status_board: Heartbeats of every agent.
        job_log: History of scheduled job firings.
        agents: Every agent by name, the orchestrator included.
    """

    config: OrchestrationConfig
    event_bus: EventBus
    registry: WorkflowRegistry
    task_queue: TaskQueue
    approval_gate: ApprovalGate
    engine: WorkflowEngine
    orchestrator: OrchestratorAgent
    scheduler: JobScheduler
    status_board: AgentStatusBoard
    job_log: JobExecutionLog
    agents: dict[str, BaseAgent] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        session_maker: async_sessionmaker[AsyncSession],
        config: OrchestrationConfig | None = None,
        *,
        register_builtin_workflows: bool = True,
    ) -> OrchestrationContext:
        """Construct and wire every component.

        Args:
            session_maker: Factory for sessions against the shared store.
            config: Runtime configuration; defaults apply when omitted.
            register_builtin_workflows: Whether to register the built-in
                workflow definitions.

        Returns:
            The wired context. The scheduler is not started.
        """
        config = config or OrchestrationConfig()
        if config.configure_logging:
            configure_logging(config.log_level, config.log_format)

        event_bus = EventBus()
        registry = WorkflowRegistry(config.known_agents)
        task_queue = TaskQueue(session_maker, event_bus, default_max_attempts=config.retry_policy.max_attempts)
        approval_gate = ApprovalGate(session_maker, event_bus, reminder_after=config.reminder_after)
        engine = WorkflowEngine(registry, session_maker, task_queue, event_bus)
        status_board = AgentStatusBoard(session_maker)
        job_log = JobExecutionLog(session_maker)
        orchestrator = OrchestratorAgent(
            engine=engine,
            task_queue=task_queue,
            approval_gate=approval_gate,
            event_bus=event_bus,
            retry_policy=config.retry_policy,
            status_board=status_board,
            stalled_after=config.stalled_after,
        )
        scheduler = JobScheduler(job_log)

        if register_builtin_workflows:
            orchestrator.register_builtin_workflows()
        orchestrator.register_jobs(scheduler, config)

        return cls(
            config=config,
            event_bus=event_bus,
            registry=registry,
            task_queue=task_queue,
            approval_gate=approval_gate,
            engine=engine,
            orchestrator=orchestrator,
            scheduler=scheduler,
            status_board=status_board,
            job_log=job_log,
            agents={orchestrator.name: orchestrator},
        )

    def add_agent(self, agent: BaseAgent, schedule: str | None = None) -> None:
        """Add an agent and schedule its run cycle.

        Args:
            agent: The agent; it must share this context's queue, gate and bus.
            schedule: Cron expression for its run cycle; defaults to the
                orchestrator's.
        """
        self.agents[agent.name] = agent
        agent.register_run_job(self.scheduler, schedule or self.config.process_tasks_schedule)

    async def start(self) -> None:
        self.scheduler.start()
        logger.info("orchestration_started", agents=sorted(self.agents))

    async def stop(self) -> None:
        """Stop the scheduler, then wait for outstanding event handlers."""
        await self.scheduler.stop()
        await self.event_bus.drain()
        logger.info("orchestration_stopped")
