"""Redis Streams event bus.

A topic is a stream and a subscriber group is a consumer group on it, so
each group receives every record at least once.

Acknowledgement rules:

- a message is acknowledged once its handler returns;
- a handler failure leaves it pending and counts an attempt.  Every
  pass of the consumer loop first re-reads the consumer's pending
  entries (id ``0``), so the message is delivered again until
  ``max_handler_retries`` attempts have failed.  It is then
  dead-lettered and acknowledged;
- a handler error listed in ``permanent_errors`` (by default
  ``DecodingError``: the same bytes never decode) is dead-lettered and
  acknowledged on the first attempt, as is an entry that cannot be
  read back as an event.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import NamedTuple

import redis.asyncio as aioredis

from field_counters.core.errors import DecodingError
from field_counters.core.events import BaseEvent

from .dead_letters import DeadLetter, DeadLetterLog, ErrorCallback
from .memory_bus import Handler
from .schemas import decode_event, encode_event

logger = logging.getLogger(__name__)


class _Subscription(NamedTuple):
    topic: str
    group: str
    handler: Handler

    @property
    def consumer(self) -> str:
        return f"{self.group}-worker"


class RedisStreamsBus:
    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        max_stream_length: int = 10_000,
        block_ms: int = 1000,
        batch_size: int = 10,
        max_handler_retries: int = 3,
        on_handler_error: ErrorCallback | None = None,
        permanent_errors: tuple[type[Exception], ...] = (DecodingError,),
    ) -> None:
        self._redis_url = redis_url
        self._redis: aioredis.Redis | None = None
        self._max_len = max_stream_length
        self._block_ms = block_ms
        self._batch_size = batch_size
        self._max_retries = max_handler_retries
        self._permanent_errors = permanent_errors
        self._subscriptions: list[_Subscription] = []
        self._consumers: list[asyncio.Task] = []
        self._failures = DeadLetterLog(on_handler_error)
        self._attempts: Counter[str] = Counter()
        self._acked = 0

    # -- lifecycle -----------------------------------------------------

    async def start(self) -> None:
        self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        for sub in self._subscriptions:
            await self._spawn(sub)

    async def stop(self) -> None:
        for task in self._consumers:
            task.cancel()
        await asyncio.gather(*self._consumers, return_exceptions=True)
        self._consumers.clear()
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    # -- publish / subscribe -------------------------------------------

    async def publish(self, topic: str, event: BaseEvent) -> None:
        if self._redis is None:
            raise RuntimeError("RedisStreamsBus not started")
        await self._redis.xadd(
            topic, encode_event(event), maxlen=self._max_len, approximate=True,
        )

    async def subscribe(self, topic: str, group: str, handler: Handler) -> None:
        """Register ``handler``; consumption begins at once if already started."""
        sub = _Subscription(topic, group, handler)
        self._subscriptions.append(sub)
        if self._redis is not None:
            await self._spawn(sub)

    async def _spawn(self, sub: _Subscription) -> None:
        assert self._redis is not None
        try:
            await self._redis.xgroup_create(sub.topic, sub.group, id="0", mkstream=True)
        except aioredis.ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise
        self._consumers.append(
            asyncio.create_task(self._consume(sub), name=f"consume:{sub.topic}:{sub.group}")
        )

    # -- consumption ---------------------------------------------------

    async def _consume(self, sub: _Subscription) -> None:
        while self._redis is not None:
            try:
                # Pending entries first: failed deliveries waiting for a retry.
                await self._read(sub, "0", block=None)
                await self._read(sub, ">", block=self._block_ms)
            except asyncio.CancelledError:
                return
            except Exception:
                logger.exception("Reading %s/%s failed", sub.topic, sub.group)
                self._failures.count_error(sub.topic, sub.group)
                await asyncio.sleep(1)

    async def _read(self, sub: _Subscription, last_id: str, block: int | None) -> None:
        assert self._redis is not None
        batches = await self._redis.xreadgroup(
            groupname=sub.group,
            consumername=sub.consumer,
            streams={sub.topic: last_id},
            count=self._batch_size,
            block=block,
        )
        for _stream, entries in batches or []:
            for msg_id, fields in entries:
                # A pending entry trimmed from the stream comes back empty.
                await self._process_message(
                    sub.topic, sub.group, sub.handler, msg_id, fields or {},
                )

    async def _process_message(
        self,
        topic: str,
        group: str,
        handler: Handler,
        msg_id: str,
        fields: dict[str, str],
    ) -> None:
        assert self._redis is not None
        event_type = fields.get("_type", "unknown")
        event = decode_event(fields)
        if event is None:
            self._failures.park(topic, group, msg_id, event_type, "deserialization_failed")
            await self._redis.xack(topic, group, msg_id)
            return

        key = f"{topic}/{group}/{msg_id}"
        try:
            await handler(event)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._attempts[key] += 1
            attempts = self._attempts[key]
            logger.warning(
                "Handler for %s/%s failed on %s (attempt %d of %d)",
                topic, group, msg_id, attempts, self._max_retries, exc_info=True,
            )
            self._failures.handler_failed(topic, group, str(msg_id), exc)
            permanent = isinstance(exc, self._permanent_errors)
            if attempts < self._max_retries and not permanent:
                return
            self._failures.park(topic, group, msg_id, event_type, str(exc), attempts)
        else:
            self._acked += 1
        self._attempts.pop(key, None)
        await self._redis.xack(topic, group, msg_id)

    # -- observability -------------------------------------------------

    def get_error_counts(self) -> dict[str, int]:
        return self._failures.error_counts()

    @property
    def dead_letters(self) -> list[DeadLetter]:
        return self._failures.entries

    @property
    def messages_processed(self) -> int:
        return self._acked
