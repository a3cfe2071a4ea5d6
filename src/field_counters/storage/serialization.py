"""Delimited field serialization for persisted definitions.

Definitions are stored as their fields joined by one delimiter
character.  A field may not contain the delimiter: that is checked on
write, so anything that was stored can be parsed back.
"""

from __future__ import annotations

from collections.abc import Sequence

from field_counters.core.errors import SerializationError

DEFAULT_DELIMITER = "\n"


class DelimitedSerializer:
    """Join/split a fixed number of string fields.

    Args:
        field_count: Number of fields every record must have.
        delimiter: Separator between fields.  Must be non-empty.
    """

    def __init__(self, field_count: int, delimiter: str = DEFAULT_DELIMITER) -> None:
        if field_count < 1:
            raise ValueError("field_count must be at least 1")
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self.field_count = field_count
        self.delimiter = delimiter

    def dumps(self, fields: Sequence[str]) -> str:
        if len(fields) != self.field_count:
            raise SerializationError(
                f"Expected {self.field_count} fields, got {len(fields)}"
            )
        for value in fields:
            if self.delimiter in value:
                raise SerializationError(
                    f"Field value {value!r} contains the delimiter {self.delimiter!r}"
                )
        return self.delimiter.join(fields)

    def loads(self, raw: str) -> list[str]:
        parts = raw.split(self.delimiter)
        if len(parts) != self.field_count:
            raise SerializationError(
                f"Expected {self.field_count} fields, got {len(parts)} in {raw!r}"
            )
        return parts
