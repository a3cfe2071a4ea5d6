"""JSON decoding of raw text payloads into record nodes."""

from __future__ import annotations

import json

from field_counters.core.errors import DecodingError
from field_counters.core.values import Value, to_value


class JsonRecordDecoder:
    """Decode a JSON document into a :class:`~field_counters.core.values.Value`.

    Objects become keyed maps, arrays sequences, and JSON primitives
    scalars.  ``null`` becomes ``NULL``.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def decode(self, text: str | bytes) -> Value:
        if isinstance(text, (bytes, bytearray)):
            try:
                text = bytes(text).decode(self._encoding)
            except UnicodeDecodeError as exc:
                raise DecodingError(
                    f"Payload is not valid {self._encoding}: {exc}"
                ) from exc
        try:
            tree = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DecodingError(f"Malformed JSON payload: {exc}") from exc
        return to_value(tree)
