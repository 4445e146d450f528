"""Event bus for ShopEase domain changes.

Write paths publish a ResourceChanged after their commit; subscribers such
as InvalidationEngine.handle_event react in the background, in publish order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from shopease.events.schemas import ResourceChanged

logger = logging.getLogger(__name__)

EventHandler = Callable[[ResourceChanged], Awaitable[None]]


class EventBus(Protocol):
    """What a write path needs from a bus."""

    async def publish(self, event: ResourceChanged) -> None: ...


class InMemoryEventBus:
    """Single-process bus dispatching from an asyncio.Queue.

    Every event goes to every handler, one event at a time. A handler that
    raises is logged and the remaining handlers still run.
    """

    def __init__(self, max_size: int = 10000):
        self._queue: asyncio.Queue[ResourceChanged] = asyncio.Queue(maxsize=max_size)
        self._handlers: list[EventHandler] = []
        self._task: asyncio.Task[None] | None = None

    async def publish(self, event: ResourceChanged) -> None:
        """Queue an event. Waits while the queue is full."""
        await self._queue.put(event)

    async def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)
        logger.info(f"Subscribed {getattr(handler, '__qualname__', handler)!s} to change events")

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._dispatch())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    async def drain(self) -> None:
        """Wait until every queued event has been dispatched."""
        await self._queue.join()

    async def _dispatch(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                for handler in self._handlers:
                    try:
                        await handler(event)
                    except Exception:
                        logger.exception(
                            f"{event.resource.value} {event.resource_id} handler failed"
                        )
            finally:
                self._queue.task_done()
