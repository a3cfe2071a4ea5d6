"""Events carried on the pipeline bus.

Events are immutable pydantic models so they serialize to and from a
Redis Stream entry unchanged.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return uuid.uuid4().hex


class BaseEvent(BaseModel):
    """Identity, creation time and trace id shared by every event."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=_new_id)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    trace_id: str = Field(default_factory=_new_id)
    source_module: str = ""


class RecordEvent(BaseEvent):
    """One record flowing through the pipeline.

    ``payload`` is raw JSON text or an already-decoded JSON tree.  The
    counting tap forwards the event object as it arrived.
    """

    source_module: str = "ingest"
    payload: Any = None
    headers: dict[str, str] = Field(default_factory=dict)
