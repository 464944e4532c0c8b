"""Repository implementations for orchestration persistence.

This module provides async repositories for the task, approval, workflow
instance, agent status and job log tables using advanced-alchemy's repository
pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, case, func, or_, select, update

from litestar_agents.core.types import ApprovalPriority, ApprovalStatus, JobRunStatus, TaskStatus, WorkflowStatus
from litestar_agents.db.models import (
    AgentStatusModel,
    AgentTaskModel,
    ApprovalItemModel,
    ScheduledJobLogModel,
    WorkflowInstanceModel,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

__all__ = [
    "AgentStatusRepository",
    "AgentTaskRepository",
    "ApprovalItemRepository",
    "ScheduledJobLogRepository",
    "WorkflowInstanceRepository",
]


class AgentTaskRepository(SQLAlchemyAsyncRepository[AgentTaskModel]):
    """Repository for agent task CRUD operations.

    Provides the pull query each agent runs on its cycle, plus the counts and
    listings used for monitoring.
    """

    model_type = AgentTaskModel

    async def find_pending(
        self,
        agent: str,
        now: datetime,
        limit: int | None = None,
    ) -> Sequence[AgentTaskModel]:
        """Find tasks an agent may pull right now.

        Args:
            agent: The assigned agent.
            now: Reference time; re-queued tasks whose ``retry_at`` lies after it
                are skipped.
            limit: Optional maximum number of tasks.

        Returns:
            Pending tasks ordered by priority, then oldest first.
        """
        stmt = (
            select(AgentTaskModel)
            .where(
                and_(
                    AgentTaskModel.assigned_agent == agent,
                    AgentTaskModel.status == TaskStatus.PENDING.value,
                    or_(AgentTaskModel.retry_at.is_(None), AgentTaskModel.retry_at <= now),
                )
            )
            .order_by(AgentTaskModel.priority.asc(), AgentTaskModel.created_at.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_pending(self, agent: str | None = None) -> int:
        """Count pending tasks, optionally for a single agent.

        Args:
            agent: Optional agent filter.

        Returns:
            Number of pending tasks.
        """
        conditions = [AgentTaskModel.status == TaskStatus.PENDING.value]

        if agent:
            conditions.append(AgentTaskModel.assigned_agent == agent)

        stmt = select(func.count()).select_from(AgentTaskModel).where(and_(*conditions))
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def find_failed(
        self,
        agent: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[AgentTaskModel]:
        """Find terminally failed tasks.

        Args:
            agent: Optional agent filter.
            limit: Maximum number of results.
            offset: Number of results to skip.

        Returns:
            Failed tasks, most recently finished first.
        """
        conditions = [AgentTaskModel.status == TaskStatus.FAILED.value]

        if agent:
            conditions.append(AgentTaskModel.assigned_agent == agent)

        return await self.list(
            *conditions,
            LimitOffset(limit=limit, offset=offset),
            OrderBy(field_name="completed_at", sort_order="desc"),
        )

    async def get_for_update(self, task_id: UUID) -> AgentTaskModel | None:
        """Load a task row, locking it where the backend supports row locks."""
        stmt = select(AgentTaskModel).where(AgentTaskModel.id == task_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


# Sort key for approval priorities: high first.
_APPROVAL_PRIORITY_ORDER = case(
    (ApprovalItemModel.priority == ApprovalPriority.HIGH.value, 0),
    (ApprovalItemModel.priority == ApprovalPriority.MEDIUM.value, 1),
    else_=2,
)


class ApprovalItemRepository(SQLAlchemyAsyncRepository[ApprovalItemModel]):
    """Repository for approval item CRUD operations."""

    model_type = ApprovalItemModel

    async def find_pending(self, approval_type: str | None = None) -> Sequence[ApprovalItemModel]:
        """Find items waiting for a reviewer.

        Args:
            approval_type: Optional item type filter.

        Returns:
            Pending items, high priority first, then oldest first.
        """
        conditions = [ApprovalItemModel.status == ApprovalStatus.PENDING.value]

        if approval_type:
            conditions.append(ApprovalItemModel.type == approval_type)

        stmt = (
            select(ApprovalItemModel)
            .where(and_(*conditions))
            .order_by(_APPROVAL_PRIORITY_ORDER, ApprovalItemModel.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_needs_reminder(self, cutoff: datetime) -> Sequence[ApprovalItemModel]:
        """Find pending items created before ``cutoff`` that were never reminded.

        Args:
            cutoff: Items created at or after this time are not yet due.

        Returns:
            Items due a reminder, oldest first.
        """
        stmt = (
            select(ApprovalItemModel)
            .where(
                and_(
                    ApprovalItemModel.status == ApprovalStatus.PENDING.value,
                    ApprovalItemModel.created_at < cutoff,
                    ApprovalItemModel.reminder_sent_at.is_(None),
                )
            )
            .order_by(ApprovalItemModel.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def resolve_pending(
        self,
        approval_id: UUID,
        status: ApprovalStatus,
        reviewed_by: str,
        feedback: str | None,
        now: datetime,
    ) -> bool:
        """Record a decision on an item that is still ``pending``.

        The update is conditional on the pending status, so of two reviewers
        deciding at once only one records a decision.

        Returns:
            True if this call resolved the item.
        """
        stmt = (
            update(ApprovalItemModel)
            .where(
                and_(
                    ApprovalItemModel.id == approval_id,
                    ApprovalItemModel.status == ApprovalStatus.PENDING.value,
                )
            )
            .values(
                status=status.value,
                reviewed_by=reviewed_by,
                reviewed_at=now,
                feedback=feedback,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


class WorkflowInstanceRepository(SQLAlchemyAsyncRepository[WorkflowInstanceModel]):
    """Repository for workflow instance CRUD operations.

    Besides the listings, this repository owns the compare-and-set update that
    moves an instance's step cursor.
    """

    model_type = WorkflowInstanceModel

    async def find_by_status(self, status: WorkflowStatus | None = None) -> Sequence[WorkflowInstanceModel]:
        """List instances, newest first, with an optional status filter.

        Args:
            status: Optional status filter.

        Returns:
            List of workflow instances.
        """
        stmt = select(WorkflowInstanceModel).order_by(WorkflowInstanceModel.created_at.desc())
        if status:
            stmt = stmt.where(WorkflowInstanceModel.status == status.value)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_stalled(self, cutoff: datetime) -> Sequence[WorkflowInstanceModel]:
        """Find running instances not updated since ``cutoff``.

        Args:
            cutoff: Instances updated at or after this time are healthy.

        Returns:
            Stalled instances, longest stalled first.
        """
        stmt = (
            select(WorkflowInstanceModel)
            .where(
                and_(
                    WorkflowInstanceModel.status == WorkflowStatus.RUNNING.value,
                    WorkflowInstanceModel.updated_at < cutoff,
                )
            )
            .order_by(WorkflowInstanceModel.updated_at.asc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def claim_step(self, instance_id: UUID, seen_step: int, now: datetime) -> bool:
        """Move the cursor from ``seen_step`` to the next step.

        The update only applies while the instance is still running and still at
        ``seen_step``, so two callers that read the same cursor cannot both move
        it.

        Args:
            instance_id: The workflow instance.
            seen_step: The cursor value the caller read.
            now: Timestamp written to ``updated_at``.

        Returns:
            True if this caller moved the cursor.
        """
        stmt = (
            update(WorkflowInstanceModel)
            .where(
                and_(
                    WorkflowInstanceModel.id == instance_id,
                    WorkflowInstanceModel.current_step == seen_step,
                    WorkflowInstanceModel.status == WorkflowStatus.RUNNING.value,
                )
            )
            .values(current_step=seen_step + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def set_status(
        self,
        instance_id: UUID,
        status: WorkflowStatus,
        expected: WorkflowStatus,
        now: datetime,
        *,
        completed_at: datetime | None = None,
    ) -> bool:
        """Transition an instance from ``expected`` to ``status``.

        Args:
            instance_id: The workflow instance.
            status: The new status.
            expected: The status the instance must currently have.
            now: Timestamp written to ``updated_at``.
            completed_at: Optional completion timestamp.

        Returns:
            True if the transition was applied.
        """
        values: dict[str, object] = {"status": status.value, "updated_at": now}
        if completed_at is not None:
            values["completed_at"] = completed_at

        stmt = (
            update(WorkflowInstanceModel)
            .where(
                and_(
                    WorkflowInstanceModel.id == instance_id,
                    WorkflowInstanceModel.status == expected.value,
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


class AgentStatusRepository(SQLAlchemyAsyncRepository[AgentStatusModel]):
    """Repository for agent heartbeats."""

    model_type = AgentStatusModel

    async def record_heartbeat(
        self,
        agent_name: str,
        now: datetime,
        *,
        processed: int,
        tasks_pending: int,
        error: str | None = None,
    ) -> AgentStatusModel:
        """Create or update the agent's row at the end of a run cycle.

        Args:
            agent_name: The agent.
            now: End of the cycle.
            processed: Tasks completed or handed to review in the cycle.
            tasks_pending: Pending tasks left for the agent.
            error: Latest task failure of the cycle, if any task failed.

        Returns:
            The updated row.
        """
        status = await self.get_one_or_none(agent_name=agent_name)
        if status is None:
            status = await self.add(AgentStatusModel(agent_name=agent_name, tasks_pending=0, tasks_processed_today=0))

        same_day = status.last_run_at is not None and status.last_run_at.date() == now.date()
        status.tasks_processed_today = (status.tasks_processed_today if same_day else 0) + processed
        status.tasks_pending = tasks_pending
        status.last_run_at = now
        if error is None:
            status.last_success_at = now
        else:
            status.last_error = error
            status.last_error_at = now
        status.updated_at = now
        await self.session.flush()
        return status

    async def list_all(self) -> Sequence[AgentStatusModel]:
        stmt = select(AgentStatusModel).order_by(AgentStatusModel.agent_name.asc())
        result = await self.session.execute(stmt)
        return result.scalars().all()


class ScheduledJobLogRepository(SQLAlchemyAsyncRepository[ScheduledJobLogModel]):
    """Repository for scheduled job execution records."""

    model_type = ScheduledJobLogModel

    async def finish(
        self,
        entry_id: UUID,
        completed_at: datetime,
        error_message: str | None = None,
    ) -> ScheduledJobLogModel | None:
        """Close a ``started`` entry as completed, or failed when ``error_message`` is set.

        Returns:
            The closed entry, or None if it does not exist.
        """
        entry = await self.get_one_or_none(id=entry_id)
        if entry is None:
            return None

        entry.status = (JobRunStatus.FAILED if error_message is not None else JobRunStatus.COMPLETED).value
        entry.completed_at = completed_at
        entry.duration_ms = max(int((completed_at - entry.started_at).total_seconds() * 1000), 0)
        entry.error_message = error_message
        entry.updated_at = completed_at
        await self.session.flush()
        return entry

    async def find_recent(
        self,
        job_name: str | None = None,
        agent_name: str | None = None,
        limit: int = 50,
    ) -> Sequence[ScheduledJobLogModel]:
        """List executions, newest first.

        Args:
            job_name: Optional job filter.
            agent_name: Optional owner filter.
            limit: Maximum number of results.

        Returns:
            Execution records.
        """
        stmt = select(ScheduledJobLogModel).order_by(ScheduledJobLogModel.started_at.desc()).limit(limit)
        if job_name:
            stmt = stmt.where(ScheduledJobLogModel.job_name == job_name)
        if agent_name:
            stmt = stmt.where(ScheduledJobLogModel.agent_name == agent_name)

        result = await self.session.execute(stmt)
        return result.scalars().all()
