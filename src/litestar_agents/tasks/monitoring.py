"""Agent heartbeats and scheduled job execution history.

Both services write to the shared store so that operators can see, from any
process, when each agent last ran and how each scheduled job fared.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from litestar_agents.core.models import AgentStatusData, JobExecutionData
from litestar_agents.core.types import JobRunStatus
from litestar_agents.db.models import ScheduledJobLogModel
from litestar_agents.db.repositories import AgentStatusRepository, ScheduledJobLogRepository

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["AgentStatusBoard", "JobExecutionLog"]

logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AgentStatusBoard:
    """Per-agent heartbeat rows, one per agent name."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def record_heartbeat(
        self,
        agent_name: str,
        *,
        processed: int,
        tasks_pending: int,
        error: str | None = None,
    ) -> AgentStatusData:
        """Record the end of one run cycle.

        ``tasks_processed_today`` restarts from zero on the first cycle of a
        new UTC day. ``last_success_at`` only moves when ``error`` is None.
        """
        async with self.session_maker.begin() as session:
            status = await AgentStatusRepository(session=session).record_heartbeat(
                agent_name,
                _now(),
                processed=processed,
                tasks_pending=tasks_pending,
                error=error,
            )
            data = AgentStatusData.from_model(status)

        logger.debug(
            "agent_heartbeat",
            agent=agent_name,
            processed=processed,
            tasks_pending=tasks_pending,
            failed=error is not None,
        )
        return data

    async def get(self, agent_name: str) -> AgentStatusData | None:
        async with self.session_maker() as session:
            status = await AgentStatusRepository(session=session).get_one_or_none(agent_name=agent_name)
            return AgentStatusData.from_model(status) if status is not None else None

    async def list_all(self) -> list[AgentStatusData]:
        async with self.session_maker() as session:
            rows = await AgentStatusRepository(session=session).list_all()
            return [AgentStatusData.from_model(row) for row in rows]


class JobExecutionLog:
    """Append-only history of scheduled job firings.

    Each firing gets one row, written as ``started`` before the handler runs
    and closed as ``completed`` or ``failed`` once it returns.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self.session_maker = session_maker

    async def record_started(self, job_name: str, agent_name: str, started_at: datetime | None = None) -> UUID:
        async with self.session_maker.begin() as session:
            entry = await ScheduledJobLogRepository(session=session).add(
                ScheduledJobLogModel(
                    job_name=job_name,
                    agent_name=agent_name,
                    status=JobRunStatus.STARTED.value,
                    started_at=started_at or _now(),
                )
            )
            return entry.id

    async def record_finished(
        self,
        entry_id: UUID,
        error: str | None = None,
        completed_at: datetime | None = None,
    ) -> JobExecutionData | None:
        """Close an entry opened by :meth:`record_started`.

        Returns:
            The closed entry, or None when ``entry_id`` is unknown.
        """
        async with self.session_maker.begin() as session:
            entry = await ScheduledJobLogRepository(session=session).finish(
                entry_id, completed_at or _now(), error_message=error
            )
            return JobExecutionData.from_model(entry) if entry is not None else None

    async def list_recent(
        self,
        job_name: str | None = None,
        agent_name: str | None = None,
        limit: int = 50,
    ) -> list[JobExecutionData]:
        async with self.session_maker() as session:
            rows = await ScheduledJobLogRepository(session=session).find_recent(job_name, agent_name, limit)
            return [JobExecutionData.from_model(row) for row in rows]
