"""Redis-backed counter store.

Each counter is a Redis hash named ``<prefix><counter_name>`` whose
fields are the observed values and whose field values are occurrence
counts.  ``HINCRBY`` makes every increment atomic on the server, so any
number of worker processes can share one counter.

Uses the synchronous ``redis`` client: increments are issued from the
counting handler, which runs in worker threads.
"""

from __future__ import annotations

import logging

import redis

from .models import FieldValueCounter

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "fieldvaluecounters."


class RedisFieldValueCounterStore:
    """Counter store over Redis hashes.

    Args:
        client: A ``redis.Redis`` client created with
            ``decode_responses=True``.
        prefix: Key namespace prefix.
    """

    def __init__(self, client: redis.Redis, *, prefix: str = DEFAULT_PREFIX) -> None:
        self._redis = client
        self._prefix = prefix

    @classmethod
    def from_url(
        cls, redis_url: str = "redis://localhost:6379/0", *, prefix: str = DEFAULT_PREFIX,
    ) -> RedisFieldValueCounterStore:
        client = redis.Redis.from_url(redis_url, decode_responses=True)
        logger.info("Redis counter store: %s", redis_url.split("@")[-1])
        return cls(client, prefix=prefix)

    def _key(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def increment(self, counter_name: str, value: str) -> None:
        self._redis.hincrby(self._key(counter_name), value, 1)

    def find_one(self, name: str) -> FieldValueCounter | None:
        raw = self._redis.hgetall(self._key(name))
        if not raw:
            return None
        return FieldValueCounter(
            name=name,
            field_value_counts={str(k): int(v) for k, v in raw.items()},
        )

    def list_names(self) -> list[str]:
        names = []
        for key in self._redis.scan_iter(match=f"{self._prefix}*", count=100):
            names.append(key[len(self._prefix):])
        return sorted(names)

    def reset(self, name: str) -> None:
        """Zero a counter.  Redis drops empty hashes, so this deletes it."""
        self._redis.delete(self._key(name))

    def delete(self, name: str) -> None:
        self._redis.delete(self._key(name))
        logger.debug("Deleted counter %s", name)

    def health_check(self) -> bool:
        try:
            return bool(self._redis.ping())
        except redis.RedisError:
            logger.exception("Redis health check failed.")
            return False
