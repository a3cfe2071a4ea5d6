"""Shared fixtures for the field-counters test suite."""

from __future__ import annotations

import threading

import pytest

from field_counters.metrics.memory_store import InMemoryFieldValueCounterStore


class RecordingStore:
    """Counter store that remembers every increment call in order."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self._fail_on = fail_on or set()
        self._lock = threading.Lock()

    def increment(self, counter_name: str, value: str) -> None:
        if counter_name in self._fail_on:
            raise ConnectionError(f"store unavailable for {counter_name}")
        with self._lock:
            self.calls.append((counter_name, value))

    def values_for(self, counter_name: str) -> list[str]:
        return [v for c, v in self.calls if c == counter_name]


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def make_store():
    """Factory for recording stores with custom failure behaviour."""
    return RecordingStore


@pytest.fixture
def memory_store() -> InMemoryFieldValueCounterStore:
    return InMemoryFieldValueCounterStore()


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@pytest.fixture
def checkout_record() -> dict:
    """A job record with three job instances, two of them failed."""
    return {
        "name": "checkout",
        "jobInstances": [
            {"status": "FAILED"},
            {"status": "SUCCESS"},
            {"status": "FAILED"},
        ],
    }


@pytest.fixture
def checkout_json() -> str:
    return (
        '{"name": "checkout", "jobInstances": ['
        '{"status": "FAILED"}, {"status": "SUCCESS"}, {"status": "FAILED"}]}'
    )


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_bus():
    from field_counters.bus.memory_bus import MemoryEventBus

    return MemoryEventBus()
