"""Dotted field path resolution.

``"jobInstances.status"`` resolves to the segments
``("jobInstances", "status")``.  The separator cannot be escaped, so a
field name containing ``.`` is not addressable.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from field_counters.core.errors import InvalidPathError

SEPARATOR = "."


@dataclass(frozen=True)
class FieldPath:
    """Ordered, non-empty sequence of path segments."""

    segments: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise InvalidPathError("", "path has no segments")
        for segment in self.segments:
            if not segment:
                raise InvalidPathError(self.expression, "empty segment")

    @property
    def head(self) -> str:
        return self.segments[0]

    @property
    def rest(self) -> FieldPath | None:
        """Path after the head, or ``None`` when the head is terminal."""
        if len(self.segments) == 1:
            return None
        return FieldPath(self.segments[1:])

    @property
    def is_terminal(self) -> bool:
        return len(self.segments) == 1

    @property
    def expression(self) -> str:
        return SEPARATOR.join(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return self.expression


@lru_cache(maxsize=1024)
def resolve(path_expression: str) -> FieldPath:
    """Split a dotted expression into a :class:`FieldPath`.

    Whitespace around each segment is stripped.

    Raises:
        InvalidPathError: the expression is empty or has an empty segment
            (``"a..b"``, ``".a"``, ``"a."``).
    """
    if path_expression is None or not path_expression.strip():
        raise InvalidPathError(path_expression or "", "expression is empty")
    segments = tuple(part.strip() for part in path_expression.split(SEPARATOR))
    if any(not segment for segment in segments):
        raise InvalidPathError(path_expression, "empty segment")
    return FieldPath(segments)
