"""In-process publish/subscribe event bus.

The bus is constructed once by the process context and passed to every
component that publishes or subscribes. Handlers may be plain callables or
coroutine functions; a handler raising never affects the publisher or the
other handlers subscribed to the same event.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

import structlog

if TYPE_CHECKING:
    from litestar_agents.core.events import AgentEvent

__all__ = ["EventBus", "EventHandler"]

logger = structlog.get_logger(__name__)

EventHandler: TypeAlias = Callable[[Any], "Awaitable[None] | None"]
"""A handler receives the event data and may return an awaitable."""

EventKey: TypeAlias = "str | type[AgentEvent]"


def _event_name(event: EventKey) -> str:
    if isinstance(event, str):
        return event
    return event.event_name


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__qualname__", repr(handler))


@dataclass
class _Subscription:
    handler: EventHandler
    once: bool = False


class EventBus:
    """Publish/subscribe hub keyed by event name.

    Delivery order between handlers of the same event is not guaranteed.

    Example:
        >>> bus = EventBus()
        >>> bus.subscribe(TaskCreated, on_task_created)
        >>> bus.emit(TaskCreated(task_id=task_id, task_type="write_draft", assigned_agent="content"))
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = {}
        self._pending: set[asyncio.Future[None]] = set()

    def subscribe(self, event: EventKey, handler: EventHandler) -> None:
        """Register ``handler`` for ``event``.

        Args:
            event: Event name or event class.
            handler: Callable receiving the event data.
        """
        self._add(_event_name(event), handler, once=False)

    def subscribe_once(self, event: EventKey, handler: EventHandler) -> None:
        """Register ``handler`` to be removed after its first delivery."""
        self._add(_event_name(event), handler, once=True)

    def unsubscribe(self, event: EventKey, handler: EventHandler) -> None:
        """Remove ``handler`` from ``event``. Unknown handlers are ignored."""
        name = _event_name(event)
        subscriptions = [s for s in self._subscriptions.get(name, []) if s.handler != handler]
        if subscriptions:
            self._subscriptions[name] = subscriptions
        else:
            self._subscriptions.pop(name, None)

    def clear(self, event: EventKey | None = None) -> None:
        """Remove every handler for ``event``, or for all events when None."""
        if event is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(_event_name(event), None)

    def listener_count(self, event: EventKey) -> int:
        return len(self._subscriptions.get(_event_name(event), []))

    def publish(self, event_name: str, data: Any = None) -> None:
        """Deliver ``data`` to every handler without waiting.

        Synchronous handlers run inline; coroutine handlers are scheduled on the
        running loop. Errors are logged per handler and never raised.

        Args:
            event_name: Event name.
            data: Event payload, usually an ``AgentEvent``.
        """
        for handler in self._take_handlers(event_name):
            try:
                result = handler(data)
            except Exception:
                logger.exception("event_handler_failed", event_name=event_name, handler=_handler_name(handler))
                continue

            if inspect.isawaitable(result):
                self._schedule(event_name, handler, result)

    async def publish_and_wait(self, event_name: str, data: Any = None) -> None:
        """Deliver ``data`` to every handler concurrently and wait for all to settle.

        A failing handler is logged; it neither cancels the others nor fails the
        call.

        Args:
            event_name: Event name.
            data: Event payload, usually an ``AgentEvent``.
        """
        handlers = self._take_handlers(event_name)
        if not handlers:
            return

        await asyncio.gather(*(self._invoke(event_name, handler, data) for handler in handlers))

    def emit(self, event: AgentEvent) -> None:
        """Publish a typed event under its ``event_name``."""
        self.publish(event.event_name, event)

    async def emit_and_wait(self, event: AgentEvent) -> None:
        """Publish a typed event under its ``event_name`` and wait for handlers."""
        await self.publish_and_wait(event.event_name, event)

    async def drain(self) -> None:
        """Wait for fire-and-forget handler invocations that are still running."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _add(self, name: str, handler: EventHandler, *, once: bool) -> None:
        subscriptions = self._subscriptions.setdefault(name, [])
        for subscription in subscriptions:
            if subscription.handler == handler:
                subscription.once = once
                return
        subscriptions.append(_Subscription(handler=handler, once=once))

    def _take_handlers(self, name: str) -> list[EventHandler]:
        subscriptions = self._subscriptions.get(name, [])
        handlers = [s.handler for s in subscriptions]
        if any(s.once for s in subscriptions):
            remaining = [s for s in subscriptions if not s.once]
            if remaining:
                self._subscriptions[name] = remaining
            else:
                self._subscriptions.pop(name, None)
        return handlers

    def _schedule(self, event_name: str, handler: EventHandler, awaitable: Awaitable[None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.warning("event_handler_dropped", event_name=event_name, handler=_handler_name(handler))
            return

        future = loop.create_task(self._settle(event_name, handler, awaitable))
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    async def _invoke(self, event_name: str, handler: EventHandler, data: Any) -> None:
        try:
            result = handler(data)
        except Exception:
            logger.exception("event_handler_failed", event_name=event_name, handler=_handler_name(handler))
            return
        if inspect.isawaitable(result):
            await self._settle(event_name, handler, result)

    @staticmethod
    async def _settle(event_name: str, handler: EventHandler, awaitable: Awaitable[None]) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception("event_handler_failed", event_name=event_name, handler=_handler_name(handler))
