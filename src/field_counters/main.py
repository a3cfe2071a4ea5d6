"""Application bootstrap.

Wires settings, counter store, counting handler, event bus and the
counting tap together, then runs until interrupted.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any

import redis

from .bus.bus import create_event_bus
from .core.config import Settings, load_settings
from .core.enums import Mode
from .core.errors import ConfigurationError
from .counting.handler import CounterMapping, FieldValueCounterHandler
from .metrics.memory_store import InMemoryFieldValueCounterStore
from .metrics.redis_store import RedisFieldValueCounterStore
from .observability.logger import setup_logging
from .observability.metrics import start_metrics_server
from .pipeline.tap import CountingTap
from .storage.definitions import CounterMappingRepository

logger = logging.getLogger(__name__)


def build_store(
    settings: Settings,
) -> InMemoryFieldValueCounterStore | RedisFieldValueCounterStore:
    if settings.mode == Mode.MEMORY:
        return InMemoryFieldValueCounterStore()
    return RedisFieldValueCounterStore.from_url(
        settings.redis_url, prefix=settings.store.counter_prefix,
    )


def collect_mappings(
    settings: Settings,
    repository: CounterMappingRepository | None = None,
) -> list[CounterMapping]:
    """Mappings from the config file, then persisted ones not already declared.

    Raises:
        ConfigurationError: neither source yields a mapping.
    """
    mappings = [CounterMapping.of(m.field, m.counter) for m in settings.mappings]
    if repository is not None:
        declared = {m.counter_name for m in mappings}
        for stored in repository.load_mappings():
            if stored.counter_name not in declared:
                mappings.append(stored)
    if not mappings:
        raise ConfigurationError(
            "No field-to-counter mappings configured or stored."
        )
    return mappings


async def run(
    config_path: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> None:
    """Main entry point. Load config, wire modules, consume until stopped."""
    settings = load_settings(config_path=config_path, overrides=overrides)
    if settings.mode == Mode.MEMORY:
        # Nothing outside this process can publish to an in-memory bus.
        raise ConfigurationError(
            'run needs the Redis bus: pass --redis or set mode = "redis". '
            "Use the count command to tally a file offline."
        )
    setup_logging(settings.observability.log_level, settings.observability.log_format)

    repository = CounterMappingRepository(
        redis.Redis.from_url(settings.redis_url, decode_responses=True),
        prefix=settings.store.mapping_prefix,
    )
    mappings = collect_mappings(settings, repository)

    store = build_store(settings)
    handler = FieldValueCounterHandler(store, mappings)
    bus = create_event_bus(
        settings.mode,
        settings.redis_url,
        max_handler_retries=settings.pipeline.max_handler_retries,
    )
    tap = CountingTap(
        handler,
        bus,
        input_topic=settings.pipeline.input_topic,
        group=settings.pipeline.group,
        output_topic=settings.pipeline.output_topic,
    )

    if settings.observability.metrics_port:
        start_metrics_server(settings.observability.metrics_port, mode=settings.mode.value)

    logger.info(
        "Starting field-counters mode=%s mappings=%s",
        settings.mode.value,
        ", ".join(f"{m.field_path}->{m.counter_name}" for m in mappings),
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    await tap.start()
    await bus.start()
    try:
        await stop.wait()
    finally:
        await bus.stop()
        logger.info("Stopped field-counters: %s", tap.stats)
