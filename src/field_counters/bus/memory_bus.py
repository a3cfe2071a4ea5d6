"""In-process event bus for tests, the CLI and single-process runs.

Delivery is synchronous: ``publish`` awaits every subscriber of the topic
in subscription order before returning.  Group names are kept only so
the bus is interchangeable with :class:`~.redis_streams.RedisStreamsBus`.
A handler that raises is dead-lettered at once; the other subscribers
still receive the event.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Coroutine
from typing import Any

from field_counters.core.events import BaseEvent

from .dead_letters import DeadLetter, DeadLetterLog, ErrorCallback

logger = logging.getLogger(__name__)

Handler = Callable[[BaseEvent], Coroutine[Any, Any, None]]


class MemoryEventBus:
    def __init__(self, on_handler_error: ErrorCallback | None = None) -> None:
        self._subscribers: dict[str, list[tuple[str, Handler]]] = defaultdict(list)
        self._published: list[tuple[str, BaseEvent]] = []
        self._failures = DeadLetterLog(on_handler_error)
        self._delivered = 0

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def subscribe(self, topic: str, group: str, handler: Handler) -> None:
        self._subscribers[topic].append((group, handler))

    async def publish(self, topic: str, event: BaseEvent) -> None:
        self._published.append((topic, event))
        # Snapshot: a handler may subscribe further handlers while running.
        for group, handler in tuple(self._subscribers[topic]):
            await self._deliver(topic, group, handler, event)

    async def _deliver(
        self, topic: str, group: str, handler: Handler, event: BaseEvent,
    ) -> None:
        try:
            await handler(event)
        except Exception as exc:
            logger.warning(
                "Handler for %s/%s raised on %s",
                topic, group, event.event_id, exc_info=True,
            )
            self._failures.handler_failed(topic, group, event.event_id, exc)
            self._failures.park(
                topic, group, event.event_id, type(event).__name__, str(exc),
            )
        else:
            self._delivered += 1

    # -- observability -------------------------------------------------

    def get_error_counts(self) -> dict[str, int]:
        return self._failures.error_counts()

    @property
    def dead_letters(self) -> list[DeadLetter]:
        return self._failures.entries

    @property
    def messages_processed(self) -> int:
        return self._delivered

    def get_history(self, topic: str | None = None) -> list[tuple[str, BaseEvent]]:
        """Everything published so far, optionally for one topic only."""
        return [(t, e) for t, e in self._published if topic is None or t == topic]
