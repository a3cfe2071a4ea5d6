"""Custom exception hierarchy for the field value counting engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from field_counters.counting.handler import MappingFailure


class FieldCounterError(Exception):
    """Base exception for all field counter errors."""


# --- Configuration ---
class ConfigurationError(FieldCounterError):
    """Invalid counter mapping set or settings."""


class InvalidPathError(ConfigurationError):
    """Malformed dotted field path expression."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Invalid field path {expression!r}: {reason}")


# --- Input ---
class DecodingError(FieldCounterError):
    """Raw payload could not be decoded into a structured record."""


# --- Counting ---
class InvalidValueError(FieldCounterError):
    """A leaf value cannot be converted into a countable key."""


class CountingError(FieldCounterError):
    """One or more mappings failed while handling a single record.

    Every mapping is attempted before this is raised; ``failures`` lists
    the mappings that did not complete, in declared order.
    """

    def __init__(self, failures: list[MappingFailure]):
        self.failures = list(failures)
        names = ", ".join(f.mapping.counter_name for f in self.failures)
        super().__init__(
            f"{len(self.failures)} mapping(s) failed: {names}"
        )


# --- Storage ---
class SerializationError(FieldCounterError):
    """An entity cannot be serialized to or parsed from its stored form."""
