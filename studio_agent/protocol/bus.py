"""Synchronous fan-out of engine events to observers.

Listeners run inline on the engine's event loop, in subscription order.
A listener that raises is logged and skipped; it never disturbs the
exchange.  Listeners may call back into the engine (``cancel()`` in
particular); the engine re-checks its state after every publish.

``EventQueue`` adapts the bus to ``async for`` consumers without ever
blocking the publisher: events are buffered in an unbounded queue.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional, cast

from studio_agent.protocol.events import BaseEngineEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[BaseEngineEvent], None]


class EventBus:
    """Ordered list of listeners; ``publish`` calls each one."""

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def publish(self, event: BaseEngineEvent) -> None:
        # Snapshot: listeners may unsubscribe themselves while handling.
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Event listener failed on {event.type} event")


_CLOSED = object()


class EventQueue:
    """Async iterator over engine events.

    Usage::

        queue = EventQueue(engine.bus)
        engine.send_message("add a bass track")
        async for event in queue:
            if event.type == "processingFinished":
                break
        queue.close()
    """

    def __init__(self, bus: EventBus) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._unsubscribe: Optional[Callable[[], None]] = bus.subscribe(self._queue.put_nowait)

    def close(self) -> None:
        """Stop receiving events; pending iteration ends after buffered events."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            self._queue.put_nowait(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def __aiter__(self) -> AsyncIterator[BaseEngineEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[BaseEngineEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield cast(BaseEngineEvent, item)
