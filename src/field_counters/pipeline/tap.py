"""Counting tap: wires the counting handler into a bus pipeline stage.

Consumes ``RecordEvent`` from the input topic, counts it, and forwards
the same event to the output topic.

- Undecodable payloads are not forwarded.  ``DecodingError`` propagates
  to the bus, which dead-letters the message.
- Mapping failures (``CountingError``) are logged and the record is still
  forwarded: a bad leaf never discards the record.
"""

from __future__ import annotations

import asyncio
import logging

from field_counters.core.errors import CountingError
from field_counters.core.events import BaseEvent, RecordEvent
from field_counters.core.interfaces import IEventBus
from field_counters.counting.handler import FieldValueCounterHandler
from field_counters.observability.logger import set_trace_id

logger = logging.getLogger(__name__)


class CountingTap:
    """Subscribe a :class:`FieldValueCounterHandler` to a bus topic.

    The handler runs in a worker thread so a slow counter store does not
    block the event loop.
    """

    def __init__(
        self,
        handler: FieldValueCounterHandler,
        bus: IEventBus,
        input_topic: str,
        group: str,
        output_topic: str | None = None,
    ) -> None:
        self._handler = handler
        self._bus = bus
        self._input_topic = input_topic
        self._group = group
        self._output_topic = output_topic
        self._records_seen = 0
        self._records_forwarded = 0
        self._partial_failures = 0

    async def start(self) -> None:
        await self._bus.subscribe(self._input_topic, self._group, self.on_event)
        logger.info(
            "Counting tap subscribed: %s -> %s (group=%s, %d mapping(s))",
            self._input_topic,
            self._output_topic or "-",
            self._group,
            len(self._handler.mappings),
        )

    async def on_event(self, event: BaseEvent) -> None:
        if not isinstance(event, RecordEvent):
            logger.debug("Ignoring %s on %s", type(event).__name__, self._input_topic)
            return

        self._records_seen += 1
        set_trace_id(event.trace_id)
        try:
            await asyncio.to_thread(self._handler.handle, event.payload)
        except CountingError as exc:
            self._partial_failures += 1
            logger.warning(
                "Record %s counted with %d failed mapping(s)",
                event.event_id,
                len(exc.failures),
            )

        if self._output_topic:
            await self._bus.publish(self._output_topic, event)
            self._records_forwarded += 1

    @property
    def stats(self) -> dict[str, int]:
        return {
            "records_seen": self._records_seen,
            "records_forwarded": self._records_forwarded,
            "partial_failures": self._partial_failures,
        }
