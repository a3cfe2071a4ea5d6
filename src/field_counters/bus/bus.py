"""Bus selection by run mode."""

from __future__ import annotations

from field_counters.core.enums import Mode

from .dead_letters import ErrorCallback
from .memory_bus import MemoryEventBus
from .redis_streams import RedisStreamsBus


def create_event_bus(
    mode: Mode,
    redis_url: str = "redis://localhost:6379/0",
    max_handler_retries: int = 3,
    on_handler_error: ErrorCallback | None = None,
) -> MemoryEventBus | RedisStreamsBus:
    """In-process bus for ``memory`` mode, Redis Streams for ``redis``.

    ``max_handler_retries`` only applies to Redis: the memory bus
    dead-letters on the first failure.
    """
    if mode is Mode.REDIS:
        return RedisStreamsBus(
            redis_url=redis_url,
            max_handler_retries=max_handler_retries,
            on_handler_error=on_handler_error,
        )
    return MemoryEventBus(on_handler_error=on_handler_error)
