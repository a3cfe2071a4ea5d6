"""Prefix-keyed repositories over a key-value store.

Every entity is stored under ``<prefix><serialized id>`` as a single
string value.  Subclasses choose the prefix and supply four hooks:
``serialize``, ``deserialize``, ``key_for`` and ``serialize_id``.

The backing store is anything with the ``get`` / ``set`` / ``delete`` /
``scan_iter`` subset of the synchronous ``redis.Redis`` client, so the
same repository runs against Redis or :class:`InMemoryKeyValueStore`.
"""

from __future__ import annotations

import fnmatch
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import Any, Generic, TypeVar

from field_counters.core.interfaces import KeyValueOperations

logger = logging.getLogger(__name__)

T = TypeVar("T")
ID = TypeVar("ID")


def _decode(raw: Any) -> str | None:
    if raw is None:
        return None
    if isinstance(raw, bytes):
        return raw.decode("utf-8")
    return str(raw)


class AbstractKeyValueRepository(ABC, Generic[T, ID]):
    """CRUD over entities stored as strings under a key prefix."""

    def __init__(self, prefix: str, kv: KeyValueOperations) -> None:
        if not prefix:
            raise ValueError("Repository prefix must not be empty")
        self._prefix = prefix
        self._kv = kv

    @property
    def prefix(self) -> str:
        return self._prefix

    # -- hooks -------------------------------------------------------------

    @abstractmethod
    def serialize(self, entity: T) -> str: ...

    @abstractmethod
    def deserialize(self, value: str) -> T: ...

    @abstractmethod
    def key_for(self, entity: T) -> ID: ...

    @abstractmethod
    def serialize_id(self, id: ID) -> str: ...

    # -- CRUD --------------------------------------------------------------

    def _redis_key(self, id: ID) -> str:
        return f"{self._prefix}{self.serialize_id(id)}"

    def store(self, entity: T) -> T:
        key = self._redis_key(self.key_for(entity))
        self._kv.set(key, self.serialize(entity))
        logger.debug("Stored %s", key)
        return entity

    def find_one(self, id: ID) -> T | None:
        raw = _decode(self._kv.get(self._redis_key(id)))
        if raw is None:
            return None
        return self.deserialize(raw)

    def exists(self, id: ID) -> bool:
        return self._kv.get(self._redis_key(id)) is not None

    def _keys(self) -> list[str]:
        return sorted(
            _decode(k) for k in self._kv.scan_iter(match=f"{self._prefix}*", count=100)
        )

    def find_all(self) -> list[T]:
        """All stored entities, ordered by key."""
        entities: list[T] = []
        for key in self._keys():
            raw = _decode(self._kv.get(key))
            if raw is not None:
                entities.append(self.deserialize(raw))
        return entities

    def count(self) -> int:
        return len(self._keys())

    def delete(self, id: ID) -> None:
        self._kv.delete(self._redis_key(id))
        logger.debug("Deleted %s", self._redis_key(id))

    def delete_entity(self, entity: T) -> None:
        self.delete(self.key_for(entity))

    def delete_all(self) -> None:
        keys = self._keys()
        if keys:
            self._kv.delete(*keys)
        logger.info("Deleted %d entries under %s", len(keys), self._prefix)


class InMemoryKeyValueStore:
    """In-process key-value backend with the ``redis.Redis`` method subset."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> str | None:
        with self._lock:
            return self._data.get(name)

    def set(self, name: str, value: str) -> bool:
        with self._lock:
            self._data[name] = value
        return True

    def delete(self, *names: str) -> int:
        removed = 0
        with self._lock:
            for name in names:
                if self._data.pop(name, None) is not None:
                    removed += 1
        return removed

    def scan_iter(self, match: str | None = None, count: int | None = None) -> Iterator[str]:
        with self._lock:
            keys = list(self._data)
        for key in keys:
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key
