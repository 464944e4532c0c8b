"""Litestar plugin for agent orchestration.

This module provides the OrchestrationPlugin, which builds the process context
when the app is created, exposes its components through dependency injection,
and ties the scheduler to the application lifespan.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.exceptions import ImproperlyConfiguredException
from litestar.plugins import InitPluginProtocol

from litestar_agents.config import OrchestrationConfig
from litestar_agents.context import OrchestrationContext

if TYPE_CHECKING:
    from litestar.config.app import AppConfig
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from litestar_agents.agents.base import BaseAgent

__all__ = ["OrchestrationPlugin", "OrchestrationPluginConfig"]


@dataclass
class OrchestrationPluginConfig:
    """Configuration for the OrchestrationPlugin.

    Attributes:
        session_maker: Async session factory for the shared store. Required.
        orchestration: Thresholds, schedules and logging options.
        agent_factories: Callables building additional agents from the
            context. Each agent's run cycle is scheduled on ``agent_schedule``.
        agent_schedule: Cron expression for additional agents' run cycles.
            Defaults to the orchestrator's.
        register_builtin_workflows: Whether to register the built-in workflows.
        start_scheduler: Whether to start the scheduler on app startup.
        dependency_key_context: Key of the context. Defaults to "orchestration".
        dependency_key_task_queue: Key of the task queue.
        dependency_key_approval_gate: Key of the approval gate.
        dependency_key_engine: Key of the workflow engine.
        dependency_key_orchestrator: Key of the orchestrator agent.
        dependency_key_scheduler: Key of the job scheduler.
        dependency_key_event_bus: Key of the event bus.
    """

    session_maker: async_sessionmaker[AsyncSession] | None = None
    orchestration: OrchestrationConfig = field(default_factory=OrchestrationConfig)
    agent_factories: list[Callable[[OrchestrationContext], BaseAgent]] = field(default_factory=list)
    agent_schedule: str | None = None
    register_builtin_workflows: bool = True
    start_scheduler: bool = True
    dependency_key_context: str = "orchestration"
    dependency_key_task_queue: str = "task_queue"
    dependency_key_approval_gate: str = "approval_gate"
    dependency_key_engine: str = "workflow_engine"
    dependency_key_orchestrator: str = "orchestrator"
    dependency_key_scheduler: str = "job_scheduler"
    dependency_key_event_bus: str = "event_bus"


class OrchestrationPlugin(InitPluginProtocol):
    """Litestar plugin owning the orchestration process context.

    Example:
        Basic usage::

            from litestar import Litestar, post
            from litestar_agents import OrchestrationPlugin, OrchestrationPluginConfig
            from litestar_agents.tasks import ApprovalGate


            @post("/approvals/{approval_id:uuid}/approve")
            async def approve(approval_id: UUID, approval_gate: ApprovalGate) -> dict:
                item = await approval_gate.resolve(approval_id, "approved", reviewed_by="editor")
                return {"status": item.status}


            app = Litestar(
                route_handlers=[approve],
                plugins=[OrchestrationPlugin(OrchestrationPluginConfig(session_maker=session_maker))],
            )
    """

    __slots__ = ("_config", "_context")

    def __init__(self, config: OrchestrationPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or OrchestrationPluginConfig()
        self._context: OrchestrationContext | None = None

    @property
    def context(self) -> OrchestrationContext:
        """Get the orchestration context.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._context is None:
            msg = "OrchestrationPlugin has not been initialized. Access context after app init."
            raise RuntimeError(msg)
        return self._context

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Build the context and register providers and lifespan hooks.

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.

        Raises:
            ImproperlyConfiguredException: If no session maker is configured.
        """
        if self._config.session_maker is None:
            msg = "OrchestrationPluginConfig.session_maker is required"
            raise ImproperlyConfiguredException(msg)

        context = OrchestrationContext.build(
            self._config.session_maker,
            self._config.orchestration,
            register_builtin_workflows=self._config.register_builtin_workflows,
        )
        for factory in self._config.agent_factories:
            context.add_agent(factory(context), self._config.agent_schedule)
        self._context = context

        providers: dict[str, Any] = {
            self._config.dependency_key_context: context,
            self._config.dependency_key_task_queue: context.task_queue,
            self._config.dependency_key_approval_gate: context.approval_gate,
            self._config.dependency_key_engine: context.engine,
            self._config.dependency_key_orchestrator: context.orchestrator,
            self._config.dependency_key_scheduler: context.scheduler,
            self._config.dependency_key_event_bus: context.event_bus,
        }
        for key, value in providers.items():
            app_config.dependencies[key] = Provide(_provider(value), use_cache=True, sync_to_thread=False)
        app_config.signature_namespace.update({type(value).__name__: type(value) for value in providers.values()})

        if self._config.start_scheduler:
            app_config.on_startup.append(self._on_startup)
        app_config.on_shutdown.append(self._on_shutdown)
        return app_config

    async def _on_startup(self) -> None:
        await self.context.start()

    async def _on_shutdown(self) -> None:
        if self.context.scheduler.is_running:
            await self.context.stop()
        else:
            await self.context.event_bus.drain()


def _provider(value: Any) -> Callable[[], Any]:
    def provide() -> Any:
        return value

    return provide
