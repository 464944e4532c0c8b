"""Runtime configuration for the orchestration core."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from litestar_agents.core.types import AGENT_NAMES
from litestar_agents.tasks.retry import RetryPolicy

__all__ = ["OrchestrationConfig"]


@dataclass
class OrchestrationConfig:
    """Thresholds, schedules and logging options for one process.

    Attributes:
        known_agents: Agent names workflow steps and routed tasks may target.
        stalled_after: Age of the last update after which a running workflow
            is reported as stalled.
        reminder_after: Age after which a pending approval is due a reminder.
        retry_policy: Backoff applied to failed agent tasks.
        process_tasks_schedule: Cron expression for the orchestrator run loop.
        check_approvals_schedule: Cron expression for the approval reminder sweep.
        check_stalled_schedule: Cron expression for the stalled workflow sweep.
        configure_logging: Whether the plugin configures structlog on init.
        log_level: Minimum log level when ``configure_logging`` is set.
        log_format: ``json`` or ``console``.
    """

    known_agents: frozenset[str] = AGENT_NAMES
    stalled_after: timedelta = timedelta(hours=1)
    reminder_after: timedelta = timedelta(hours=48)
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    process_tasks_schedule: str = "*/5 * * * *"
    check_approvals_schedule: str = "0 9 * * *"
    check_stalled_schedule: str = "*/15 * * * *"
    configure_logging: bool = False
    log_level: str = "INFO"
    log_format: str = "console"
