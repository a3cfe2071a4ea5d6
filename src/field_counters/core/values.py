"""Structural value model for incoming records.

A record is a tree of immutable nodes.  Every node is one of five kinds:

- :class:`Scalar` -- a terminal primitive (string, number, boolean, ...)
- :class:`Sequence` -- an ordered list of nodes
- :class:`KeyedMap` -- a literal string-keyed mapping of nodes
- :class:`Composite` -- a typed object read through named properties
- :data:`NULL` -- absent or ``None``

Plain Python objects are wrapped with :func:`to_value`.  Wrapping is
shallow for maps and composites: nested nodes are wrapped when looked up,
so a large record is never copied up front.
"""

from __future__ import annotations

import dataclasses
import inspect
import numbers
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Union

from .enums import ValueKind
from .interfaces import NamedPropertyReadable

# numbers.Number covers Fraction, complex and the numpy scalar types.
SCALAR_TYPES: tuple[type, ...] = (
    str, bytes, bool, numbers.Number, Decimal, Enum, date, datetime, time,
)


@dataclasses.dataclass(frozen=True)
class Scalar:
    raw: Any
    kind: ClassVar[ValueKind] = ValueKind.SCALAR


@dataclasses.dataclass(frozen=True)
class Sequence:
    items: tuple[Value, ...] = ()
    kind: ClassVar[ValueKind] = ValueKind.SEQUENCE

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclasses.dataclass(frozen=True)
class KeyedMap:
    entries: Mapping[Any, Any]
    kind: ClassVar[ValueKind] = ValueKind.KEYED_MAP

    def has(self, key: str) -> bool:
        return key in self.entries

    def get(self, key: str) -> Value:
        return to_value(self.entries.get(key))


@dataclasses.dataclass(frozen=True)
class Composite:
    reader: NamedPropertyReadable
    kind: ClassVar[ValueKind] = ValueKind.COMPOSITE

    def has(self, name: str) -> bool:
        return self.reader.has(name)

    def get(self, name: str) -> Value:
        if not self.reader.has(name):
            return NULL
        return self.reader.get(name)


class _Null:
    """Singleton marker for an absent or ``None`` node."""

    kind: ClassVar[ValueKind] = ValueKind.NULL
    _instance: ClassVar[_Null | None] = None

    def __new__(cls) -> _Null:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NULL"

    def __bool__(self) -> bool:
        return False


NULL = _Null()

Value = Union[Scalar, Sequence, KeyedMap, Composite, _Null]

_NODE_TYPES = (Scalar, Sequence, KeyedMap, Composite, _Null)


class ObjectPropertyReader:
    """Named-property access over an arbitrary Python object.

    A property is readable when it is a public (non-underscore) attribute
    whose value is not a bound method: dataclass and pydantic fields,
    ``@property`` getters, slots and plain instance attributes all qualify.
    """

    __slots__ = ("_obj",)

    def __init__(self, obj: Any) -> None:
        self._obj = obj

    @property
    def target(self) -> Any:
        return self._obj

    def has(self, name: str) -> bool:
        if not name or name.startswith("_"):
            return False
        try:
            attr = getattr(self._obj, name)
        except AttributeError:
            return False
        return not (inspect.ismethod(attr) or inspect.isbuiltin(attr))

    def get(self, name: str) -> Value:
        return to_value(getattr(self._obj, name))

    def __repr__(self) -> str:
        return f"ObjectPropertyReader({type(self._obj).__name__})"


def to_value(obj: Any) -> Value:
    """Wrap a plain Python object as a record node."""
    if obj is None:
        return NULL
    if isinstance(obj, _NODE_TYPES):
        return obj
    if isinstance(obj, SCALAR_TYPES):
        return Scalar(obj)
    if isinstance(obj, Mapping):
        return KeyedMap(obj)
    if isinstance(obj, (list, tuple, set, frozenset)):
        return Sequence(tuple(to_value(item) for item in obj))
    if isinstance(obj, NamedPropertyReadable):
        return Composite(obj)
    return Composite(ObjectPropertyReader(obj))


def is_value(obj: Any) -> bool:
    return isinstance(obj, _NODE_TYPES)
