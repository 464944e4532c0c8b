"""Human approval checkpoints over the ``approval_queue`` table."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog

from litestar_agents.core.events import ApprovalCompleted, ApprovalNeeded
from litestar_agents.core.models import ApprovalItemData
from litestar_agents.core.types import ApprovalPriority, ApprovalStatus
from litestar_agents.db.models import ApprovalItemModel
from litestar_agents.db.repositories import ApprovalItemRepository
from litestar_agents.exceptions import ApprovalAlreadyResolvedError, ApprovalNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from litestar_agents.bus import EventBus

__all__ = ["ApprovalGate"]

logger = structlog.get_logger(__name__)

_RESOLVED_STATUSES = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.REVISION_REQUESTED})


class ApprovalGate:
    """Create, resolve and sweep human approval items.

    Resolving an item never advances a workflow directly. It publishes
    ``ApprovalCompleted`` and waits for subscribers, one of which is the
    orchestrator's continuation handler.

    Attributes:
        session_maker: Factory for async sessions against the shared store.
        event_bus: Bus for ``ApprovalNeeded`` and ``ApprovalCompleted``.
        reminder_after: Age at which a pending item is due a reminder.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        event_bus: EventBus,
        *,
        reminder_after: timedelta = timedelta(hours=48),
    ) -> None:
        self.session_maker = session_maker
        self.event_bus = event_bus
        self.reminder_after = reminder_after

    async def create_approval(
        self,
        approval_type: str,
        title: str,
        summary: str | None,
        content: dict[str, Any] | None,
        created_by: str,
        related_task_id: UUID | None = None,
        priority: ApprovalPriority | str = ApprovalPriority.MEDIUM,
    ) -> UUID:
        """Open a pending approval item.

        Args:
            approval_type: Kind of item under review.
            title: Display title.
            summary: Optional short description.
            content: The material under review.
            created_by: Submitting agent.
            related_task_id: Task whose output is under review.
            priority: Review priority.

        Returns:
            The new approval ID.
        """
        priority = ApprovalPriority(priority)
        async with self.session_maker.begin() as session:
            repo = ApprovalItemRepository(session=session)
            item = await repo.add(
                ApprovalItemModel(
                    type=approval_type,
                    status=ApprovalStatus.PENDING.value,
                    priority=priority.value,
                    title=title,
                    summary=summary,
                    content=dict(content or {}),
                    created_by=created_by,
                    related_task_id=related_task_id,
                )
            )
            approval_id = item.id

        logger.info(
            "approval_created",
            approval_id=str(approval_id),
            approval_type=approval_type,
            created_by=created_by,
            priority=priority.value,
        )
        self.event_bus.emit(
            ApprovalNeeded(
                approval_id=approval_id,
                approval_type=approval_type,
                created_by=created_by,
                related_task_id=related_task_id,
            )
        )
        return approval_id

    async def resolve(
        self,
        approval_id: UUID,
        status: ApprovalStatus | str,
        reviewed_by: str,
        feedback: str | None = None,
    ) -> ApprovalItemData:
        """Record a reviewer's decision and notify subscribers.

        The decision is committed before ``ApprovalCompleted`` is published, and
        this call returns only after every subscriber has settled.

        Args:
            approval_id: The item to resolve.
            status: ``approved``, ``rejected`` or ``revision_requested``.
            reviewed_by: Reviewer identity.
            feedback: Optional reviewer notes.

        Returns:
            The resolved item.

        Raises:
            ValueError: If ``status`` is not a decision status.
            ApprovalNotFoundError: If the item does not exist.
            ApprovalAlreadyResolvedError: If the item already left ``pending``.
        """
        decision = ApprovalStatus(status)
        if decision not in _RESOLVED_STATUSES:
            msg = f"Cannot resolve an approval to '{decision.value}'"
            raise ValueError(msg)

        async with self.session_maker.begin() as session:
            repo = ApprovalItemRepository(session=session)
            resolved = await repo.resolve_pending(
                approval_id, decision, reviewed_by, feedback, datetime.now(timezone.utc)
            )
            item = await repo.get_one_or_none(id=approval_id)
            if item is None:
                raise ApprovalNotFoundError(approval_id)
            if not resolved:
                raise ApprovalAlreadyResolvedError(approval_id, item.status)
            data = ApprovalItemData.from_model(item)

        logger.info("approval_resolved", approval_id=str(approval_id), status=decision.value, reviewed_by=reviewed_by)
        await self.event_bus.emit_and_wait(
            ApprovalCompleted(
                approval_id=approval_id,
                status=decision.value,
                reviewed_by=reviewed_by,
                related_task_id=data.related_task_id,
            )
        )
        return data

    async def sweep_needs_reminder(self, older_than: timedelta | None = None) -> list[ApprovalItemData]:
        """Identify pending items due a reminder.

        Only candidates are returned. Sending the reminder and recording it with
        :meth:`mark_reminder_sent` is up to the caller.

        Args:
            older_than: Age threshold; defaults to ``reminder_after``.

        Returns:
            Pending, never-reminded items older than the threshold.
        """
        cutoff = datetime.now(timezone.utc) - (older_than if older_than is not None else self.reminder_after)
        async with self.session_maker() as session:
            items = await ApprovalItemRepository(session=session).find_needs_reminder(cutoff)
            return [ApprovalItemData.from_model(item) for item in items]

    async def mark_reminder_sent(self, approval_id: UUID) -> None:
        async with self.session_maker.begin() as session:
            item = await ApprovalItemRepository(session=session).get_one_or_none(id=approval_id)
            if item is None:
                raise ApprovalNotFoundError(approval_id)
            item.reminder_sent_at = datetime.now(timezone.utc)

    async def get(self, approval_id: UUID) -> ApprovalItemData | None:
        async with self.session_maker() as session:
            item = await ApprovalItemRepository(session=session).get_one_or_none(id=approval_id)
            return ApprovalItemData.from_model(item) if item is not None else None

    async def list_pending(self, approval_type: str | None = None) -> list[ApprovalItemData]:
        """Pending items, high priority first, then oldest first."""
        async with self.session_maker() as session:
            items = await ApprovalItemRepository(session=session).find_pending(approval_type)
            return [ApprovalItemData.from_model(item) for item in items]
