"""Persistence of definition entities in a prefix-keyed key-value store."""

from field_counters.storage.definitions import (
    CounterMappingDefinition,
    CounterMappingRepository,
    JobDefinition,
    JobDefinitionRepository,
    StreamDefinition,
    StreamDefinitionRepository,
)
from field_counters.storage.repository import (
    AbstractKeyValueRepository,
    InMemoryKeyValueStore,
)
from field_counters.storage.serialization import DelimitedSerializer

__all__ = [
    "AbstractKeyValueRepository",
    "CounterMappingDefinition",
    "CounterMappingRepository",
    "DelimitedSerializer",
    "InMemoryKeyValueStore",
    "JobDefinition",
    "JobDefinitionRepository",
    "StreamDefinition",
    "StreamDefinitionRepository",
]
