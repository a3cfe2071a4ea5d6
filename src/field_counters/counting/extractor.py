"""Walk a record along a field path and yield the values found there.

Traversal rules, applied recursively:

- A sequence does not consume a path segment.  Each item is walked with
  the same remaining path, so a list anywhere along the way fans the
  traversal out across all of its elements (in item order).
- A keyed map or composite consumes the head segment by exact key or
  property-name lookup.  A missing or null entry ends that branch.
- When the last segment resolves to a sequence, every item is yielded
  as its own leaf.
- A scalar cannot be indexed: a scalar reached before the path is
  exhausted ends that branch, as does a null.

Absent data is never an error.  It simply contributes no leaves.
"""

from __future__ import annotations

from collections.abc import Iterator

from field_counters.core.values import (
    NULL,
    Composite,
    KeyedMap,
    Scalar,
    Sequence,
    Value,
)

from .paths import FieldPath


def extract(root: Value, path: FieldPath) -> Iterator[Value]:
    """Lazily yield the leaves reachable from ``root`` along ``path``."""
    if isinstance(root, Sequence):
        for item in root.items:
            yield from extract(item, path)
        return

    if isinstance(root, (KeyedMap, Composite)):
        found = root.get(path.head)
        if found is NULL:
            return
        rest = path.rest
        if rest is None:
            if isinstance(found, Sequence):
                yield from found.items
            else:
                yield found
        else:
            yield from extract(found, rest)
        return

    # Scalar with path remaining, or NULL: nothing to yield.
    if isinstance(root, Scalar) or root is NULL:
        return
    raise TypeError(f"Not a record node: {type(root).__name__}")


def extract_all(root: Value, path: FieldPath) -> list[Value]:
    """Materialized :func:`extract`."""
    return list(extract(root, path))
