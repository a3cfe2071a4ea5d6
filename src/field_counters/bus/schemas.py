"""Event registry and stream wire format.

An event travels on a Redis Stream as two fields: ``_type`` (the event
class name) and ``_data`` (the model's JSON).  Only classes registered
here can be read back.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from field_counters.core.events import BaseEvent, RecordEvent

logger = logging.getLogger(__name__)

# Default topic layout of the counting pipeline.
TOPIC_SCHEMAS: dict[str, list[type[BaseEvent]]] = {
    "records.in": [RecordEvent],
    "records.out": [RecordEvent],
}

EVENT_TYPE_MAP: dict[str, type[BaseEvent]] = {
    cls.__name__: cls for classes in TOPIC_SCHEMAS.values() for cls in classes
}


def get_event_class(event_type_name: str) -> type[BaseEvent] | None:
    return EVENT_TYPE_MAP.get(event_type_name)


def encode_event(event: BaseEvent) -> dict[str, str]:
    return {"_type": type(event).__name__, "_data": event.model_dump_json()}


def decode_event(fields: dict[str, str]) -> BaseEvent | None:
    """Rebuild an event from stream fields; ``None`` if it cannot be read."""
    type_name, data = fields.get("_type"), fields.get("_data")
    if not type_name or not data:
        logger.warning("Stream entry without _type/_data: %s", fields)
        return None
    event_cls = get_event_class(type_name)
    if event_cls is None:
        logger.warning("Unregistered event type %s", type_name)
        return None
    try:
        return event_cls.model_validate_json(data)
    except ValidationError:
        logger.warning("Unreadable %s payload", type_name, exc_info=True)
        return None
