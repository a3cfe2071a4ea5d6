"""Field value counting engine: path resolution, extraction, dispatch."""

from field_counters.counting.dispatcher import dispatch, to_countable
from field_counters.counting.extractor import extract, extract_all
from field_counters.counting.handler import (
    CounterMapping,
    FieldValueCounterHandler,
    HandleReport,
    MappingFailure,
)
from field_counters.counting.paths import FieldPath, resolve

__all__ = [
    "CounterMapping",
    "FieldPath",
    "FieldValueCounterHandler",
    "HandleReport",
    "MappingFailure",
    "dispatch",
    "extract",
    "extract_all",
    "resolve",
    "to_countable",
]
