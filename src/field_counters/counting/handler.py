"""Counting handler: a side-effecting tap on a pass-through pipeline stage.

For every incoming record the handler applies each configured
(field path -> counter name) mapping in declared order: extract the
values at the path, then increment the counter once per value.  The
record itself is returned untouched for downstream processing.

Failure isolation:
- A raw text record that cannot be decoded raises ``DecodingError``
  before any mapping runs.
- A mapping that fails (invalid leaf, store error) is recorded and the
  remaining mappings still run.  After all of them ran, the collected
  failures are raised together as ``CountingError``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from field_counters.core.errors import (
    ConfigurationError,
    CountingError,
    DecodingError,
)
from field_counters.core.interfaces import FieldValueCounterStore, RecordDecoder
from field_counters.core.values import Value, is_value, to_value
from field_counters.observability import metrics

from .decoding import JsonRecordDecoder
from .dispatcher import dispatch
from .extractor import extract
from .paths import FieldPath, resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterMapping:
    """Binds one field path to one counter name."""

    field_path: FieldPath
    counter_name: str

    @classmethod
    def of(cls, field_name: str, counter_name: str) -> CounterMapping:
        """Validate and resolve a mapping from its textual form."""
        if not counter_name or not counter_name.strip():
            raise ConfigurationError(
                f"Counter name for field {field_name!r} must not be empty"
            )
        return cls(field_path=resolve(field_name), counter_name=counter_name)


@dataclass
class MappingFailure:
    mapping: CounterMapping
    error: Exception


@dataclass
class HandleReport:
    """Outcome of :meth:`FieldValueCounterHandler.handle_many`."""

    records: int = 0
    increments: int = 0
    undecodable: int = 0
    failures: list[MappingFailure] = field(default_factory=list)


MappingSpec = Union[
    Iterable[CounterMapping],
    Iterable[tuple[str, str]],
    Mapping[str, str],
]


def _build_mappings(mappings: MappingSpec) -> tuple[CounterMapping, ...]:
    if isinstance(mappings, Mapping):
        items: Iterable[Any] = mappings.items()
    else:
        items = mappings
    built: list[CounterMapping] = []
    for item in items:
        if isinstance(item, CounterMapping):
            if not item.counter_name or not item.counter_name.strip():
                raise ConfigurationError(
                    f"Counter name for field {item.field_path!s} must not be empty"
                )
            built.append(item)
        else:
            field_name, counter_name = item
            built.append(CounterMapping.of(field_name, counter_name))
    if not built:
        raise ConfigurationError("At least one field-to-counter mapping is required")
    return tuple(built)


class FieldValueCounterHandler:
    """Counts the occurrence of values at configured field paths.

    Args:
        store: Counter store exposing ``increment(counter_name, value)``.
        mappings: ``CounterMapping`` objects, ``(field_name, counter_name)``
            pairs, or a ``{field_name: counter_name}`` mapping.  Applied in
            the given order.
        decoder: Used for ``str``/``bytes`` records.  Defaults to JSON.

    Raises:
        ConfigurationError: no mappings, or an empty counter name.
        InvalidPathError: a malformed field path.

    The handler holds no per-record state; one instance can be shared by
    concurrent workers.
    """

    def __init__(
        self,
        store: FieldValueCounterStore,
        mappings: MappingSpec,
        decoder: RecordDecoder | None = None,
    ) -> None:
        if store is None:
            raise ConfigurationError("A counter store is required")
        self._store = store
        self._mappings = _build_mappings(mappings)
        self._decoder: RecordDecoder = decoder or JsonRecordDecoder()

    @classmethod
    def for_field(
        cls,
        store: FieldValueCounterStore,
        counter_name: str,
        field_name: str,
        decoder: RecordDecoder | None = None,
    ) -> FieldValueCounterHandler:
        return cls(store, [(field_name, counter_name)], decoder=decoder)

    @property
    def mappings(self) -> tuple[CounterMapping, ...]:
        return self._mappings

    # ------------------------------------------------------------------
    # Record handling
    # ------------------------------------------------------------------

    def handle(self, record: Any) -> Any:
        """Count ``record`` against every mapping and return it unchanged.

        Raises:
            DecodingError: a text record could not be decoded.
            CountingError: one or more mappings failed; the others ran.
        """
        start = time.perf_counter()
        root = self._as_value(record)
        _, failures = self._apply(root)
        metrics.record_handle_latency(time.perf_counter() - start)

        if failures:
            metrics.record_handled("partial")
            raise CountingError(failures)
        metrics.record_handled("ok")
        return record

    def handle_many(self, records: Iterable[Any]) -> HandleReport:
        """Handle a batch, collecting failures instead of raising."""
        report = HandleReport()
        for record in records:
            report.records += 1
            try:
                root = self._as_value(record)
            except DecodingError:
                report.undecodable += 1
                continue
            increments, failures = self._apply(root)
            report.increments += increments
            report.failures.extend(failures)
            metrics.record_handled("partial" if failures else "ok")
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _as_value(self, record: Any) -> Value:
        if isinstance(record, (str, bytes, bytearray)):
            try:
                return self._decoder.decode(record)
            except DecodingError:
                metrics.record_handled("undecodable")
                logger.warning("Dropping undecodable record", exc_info=True)
                raise
        if is_value(record):
            return record
        return to_value(record)

    def _apply(self, root: Value) -> tuple[int, list[MappingFailure]]:
        total = 0
        failures: list[MappingFailure] = []
        for mapping in self._mappings:
            counter = mapping.counter_name
            try:
                issued = dispatch(counter, extract(root, mapping.field_path), self._store)
            except Exception as exc:
                failures.append(MappingFailure(mapping=mapping, error=exc))
                metrics.record_mapping_failure(counter, type(exc).__name__)
                logger.warning(
                    "Mapping %s -> %s failed",
                    mapping.field_path,
                    counter,
                    exc_info=True,
                )
                continue
            total += issued
            metrics.record_increments(counter, issued)
        return total, failures
