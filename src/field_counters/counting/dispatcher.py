"""Turn extracted leaves into counter increments."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, time
from enum import Enum

from pydantic import BaseModel

from field_counters.core.errors import InvalidValueError
from field_counters.core.interfaces import FieldValueCounterStore
from field_counters.core.values import (
    NULL,
    Composite,
    ObjectPropertyReader,
    Scalar,
    Sequence,
    Value,
)

logger = logging.getLogger(__name__)


def to_countable(scalar: Scalar) -> str:
    """Canonical string form of a scalar leaf.

    Booleans render as JSON does (``true``/``false``), enums by their
    value, dates in ISO-8601 and bytes as UTF-8 text.
    """
    raw = scalar.raw
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, Enum):
        return str(raw.value)
    if isinstance(raw, (date, time)):
        return raw.isoformat()
    if isinstance(raw, bytes):
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidValueError(f"Leaf bytes are not UTF-8: {raw!r}") from exc
    return str(raw)


def dispatch(
    counter_name: str,
    leaves: Iterable[Value],
    store: FieldValueCounterStore,
) -> int:
    """Issue one ``store.increment`` per leaf and return how many were issued.

    A sequence leaf is fanned out so that each element is counted on its
    own.  Increments already issued stay issued if a later leaf is invalid.

    Raises:
        InvalidValueError: a null element inside a sequence leaf, or a
            map/composite leaf that has no countable form.
    """
    issued = 0
    for leaf in leaves:
        issued += _dispatch_leaf(counter_name, leaf, store)
    return issued


def _dispatch_leaf(
    counter_name: str,
    leaf: Value,
    store: FieldValueCounterStore,
) -> int:
    if isinstance(leaf, Scalar):
        value = to_countable(leaf)
        store.increment(counter_name, value)
        logger.debug("Incremented %s[%s]", counter_name, value)
        return 1
    if isinstance(leaf, Sequence):
        issued = 0
        for element in leaf.items:
            issued += _dispatch_leaf(counter_name, element, store)
        return issued
    if isinstance(leaf, Composite):
        text = _own_text(leaf)
        if text is not None:
            store.increment(counter_name, text)
            logger.debug("Incremented %s[%s]", counter_name, text)
            return 1
    # The extractor drops absent terminals, so a null leaf can only be an
    # element of a collection.
    if leaf is NULL:
        raise InvalidValueError(
            f"Null element in collection leaf for counter {counter_name!r}"
        )
    raise InvalidValueError(
        f"Leaf of kind {leaf.kind.value} for counter {counter_name!r} "
        "has no countable form"
    )


def _own_text(leaf: Composite) -> str | None:
    """``str()`` of a typed object whose class defines its own ``__str__``.

    UUIDs, paths and IP addresses count by their text.  Dataclasses and
    pydantic models only inherit a generic form and return ``None``.
    """
    if not isinstance(leaf.reader, ObjectPropertyReader):
        return None
    target = leaf.reader.target
    for cls in type(target).__mro__:
        if cls is object or cls is BaseModel:
            return None
        if "__str__" in vars(cls):
            return str(target)
    return None
