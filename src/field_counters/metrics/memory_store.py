"""In-process counter store for tests, the CLI and single-process runs."""

from __future__ import annotations

import threading
from collections import defaultdict

from .models import FieldValueCounter


class InMemoryFieldValueCounterStore:
    """Thread-safe dict-backed counter store.

    A single lock serialises increments, so concurrent workers never lose
    an update.
    """

    def __init__(self) -> None:
        self._counters: dict[str, dict[str, int]] = {}
        self._lock = threading.Lock()

    def increment(self, counter_name: str, value: str) -> None:
        with self._lock:
            counts = self._counters.get(counter_name)
            if counts is None:
                counts = self._counters[counter_name] = defaultdict(int)
            counts[value] += 1

    def find_one(self, name: str) -> FieldValueCounter | None:
        with self._lock:
            counts = self._counters.get(name)
            if counts is None:
                return None
            return FieldValueCounter(name=name, field_value_counts=dict(counts))

    def list_names(self) -> list[str]:
        with self._lock:
            return sorted(self._counters)

    def reset(self, name: str) -> None:
        """Zero a counter while keeping it listed."""
        with self._lock:
            if name in self._counters:
                self._counters[name] = defaultdict(int)

    def delete(self, name: str) -> None:
        with self._lock:
            self._counters.pop(name, None)
