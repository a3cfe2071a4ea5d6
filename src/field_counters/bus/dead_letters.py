"""Failure bookkeeping shared by the bus implementations.

A bus reports every handler failure to a :class:`DeadLetterLog`, which
keeps per ``topic/group`` error counts and forwards the failure to an
optional callback (alerting, metrics).  Messages the bus gives up on are
parked in the log as :class:`DeadLetter` entries.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# (topic, group, message id, exception)
ErrorCallback = Callable[[str, str, str, Exception], None]


@dataclass(frozen=True)
class DeadLetter:
    """A message that was dropped from its stream instead of being handled."""

    topic: str
    group: str
    message_id: str
    event_type: str
    error: str
    attempts: int = 1
    timestamp: float = field(default_factory=time.monotonic)


class DeadLetterLog:
    def __init__(self, on_handler_error: ErrorCallback | None = None) -> None:
        self._on_handler_error = on_handler_error
        self._errors: Counter[str] = Counter()
        self._entries: list[DeadLetter] = []

    def handler_failed(self, topic: str, group: str, message_id: str, exc: Exception) -> None:
        self._errors[f"{topic}/{group}"] += 1
        if self._on_handler_error is None:
            return
        try:
            self._on_handler_error(topic, group, message_id, exc)
        except Exception:
            logger.warning("on_handler_error callback failed", exc_info=True)

    def count_error(self, topic: str, group: str) -> None:
        """Count a failure that is not tied to one message (e.g. a read error)."""
        self._errors[f"{topic}/{group}"] += 1

    def park(
        self,
        topic: str,
        group: str,
        message_id: str,
        event_type: str,
        error: str,
        attempts: int = 1,
    ) -> DeadLetter:
        entry = DeadLetter(topic, group, str(message_id), event_type, error, attempts)
        self._entries.append(entry)
        logger.error(
            "Dead-lettered %s %s on %s/%s after %d attempt(s): %s",
            event_type, message_id, topic, group, attempts, error,
        )
        return entry

    @property
    def entries(self) -> list[DeadLetter]:
        return list(self._entries)

    def error_counts(self) -> dict[str, int]:
        return dict(self._errors)
