"""Enumerations used across the field counter engine."""

from enum import Enum


class Mode(str, Enum):
    MEMORY = "memory"  # In-process bus and counter store
    REDIS = "redis"    # Redis Streams bus and Redis hash counters


class ValueKind(str, Enum):
    """Structural kind of a record node."""

    SCALAR = "scalar"
    SEQUENCE = "sequence"
    KEYED_MAP = "keyed_map"
    COMPOSITE = "composite"
    NULL = "null"


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"
