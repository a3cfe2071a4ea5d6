"""Protocol interfaces for the field counter engine.

All collaborator boundaries are defined here as Protocol classes.
Implementations can be swapped (in-memory / Redis) without changing callers.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine, Iterator
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .events import BaseEvent
    from .values import Value
    from field_counters.metrics.models import FieldValueCounter


# ---------------------------------------------------------------------------
# Record source
# ---------------------------------------------------------------------------

@runtime_checkable
class NamedPropertyReadable(Protocol):
    """Property-by-name read access over a typed object."""

    def has(self, name: str) -> bool: ...

    def get(self, name: str) -> Value: ...


# ---------------------------------------------------------------------------
# Decoding collaborator
# ---------------------------------------------------------------------------

@runtime_checkable
class RecordDecoder(Protocol):
    """Turns a raw text payload into a structured record.

    Raises :class:`~field_counters.core.errors.DecodingError` on
    malformed input.
    """

    def decode(self, text: str | bytes) -> Value: ...


# ---------------------------------------------------------------------------
# Counter store
# ---------------------------------------------------------------------------

@runtime_checkable
class FieldValueCounterStore(Protocol):
    """Atomic per-(counter, value) tally.

    ``increment`` must be safe to call concurrently from several threads
    with overlapping counter names.  Each call is one logical occurrence.
    """

    def increment(self, counter_name: str, value: str) -> None: ...


@runtime_checkable
class FieldValueCounterReader(Protocol):
    """Read side of a counter store."""

    def find_one(self, name: str) -> FieldValueCounter | None: ...

    def list_names(self) -> list[str]: ...

    def reset(self, name: str) -> None: ...

    def delete(self, name: str) -> None: ...


# ---------------------------------------------------------------------------
# Key-value backing store for definition repositories
# ---------------------------------------------------------------------------

@runtime_checkable
class KeyValueOperations(Protocol):
    """The subset of the sync ``redis.Redis`` client the repositories use."""

    def get(self, name: str) -> Any: ...

    def set(self, name: str, value: str) -> Any: ...

    def delete(self, *names: str) -> int: ...

    def scan_iter(self, match: str | None = None, count: int | None = None) -> Iterator[Any]: ...


# ---------------------------------------------------------------------------
# Event Bus
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventBus(Protocol):
    """Publish/subscribe event bus."""

    async def publish(self, topic: str, event: BaseEvent) -> None: ...

    async def subscribe(
        self,
        topic: str,
        group: str,
        handler: Callable[[BaseEvent], Coroutine[Any, Any, None]],
    ) -> None: ...

    async def start(self) -> None: ...
    async def stop(self) -> None: ...
