"""Persisted definition entities and their repositories.

- ``JobDefinition`` under ``jobs.<name>``
- ``StreamDefinition`` under ``streams.<name>``
- ``CounterMappingDefinition`` under ``mappings.<counter name>``

Each is stored as its fields joined by a newline.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from field_counters.core.interfaces import KeyValueOperations
from field_counters.counting.handler import CounterMapping

from .repository import AbstractKeyValueRepository
from .serialization import DelimitedSerializer


class NamedDefinition(BaseModel):
    """A named DSL definition (job or stream)."""

    model_config = ConfigDict(frozen=True)

    name: str
    definition: str


class JobDefinition(NamedDefinition):
    pass


class StreamDefinition(NamedDefinition):
    pass


class CounterMappingDefinition(BaseModel):
    """Persisted form of a field-to-counter mapping, keyed by counter name."""

    model_config = ConfigDict(frozen=True)

    name: str
    field_name: str

    def to_mapping(self) -> CounterMapping:
        """Validate and resolve into a runtime mapping."""
        return CounterMapping.of(self.field_name, self.name)


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class _NamedDefinitionRepository(AbstractKeyValueRepository[NamedDefinition, str]):
    entity_type: type[NamedDefinition] = NamedDefinition

    def __init__(self, prefix: str, kv: KeyValueOperations) -> None:
        super().__init__(prefix, kv)
        self._serializer = DelimitedSerializer(field_count=2)

    def serialize(self, entity: NamedDefinition) -> str:
        return self._serializer.dumps([entity.name, entity.definition])

    def deserialize(self, value: str) -> NamedDefinition:
        name, definition = self._serializer.loads(value)
        return self.entity_type(name=name, definition=definition)

    def key_for(self, entity: NamedDefinition) -> str:
        return entity.name

    def serialize_id(self, id: str) -> str:
        return id


class JobDefinitionRepository(_NamedDefinitionRepository):
    entity_type = JobDefinition

    def __init__(self, kv: KeyValueOperations) -> None:
        super().__init__("jobs.", kv)


class StreamDefinitionRepository(_NamedDefinitionRepository):
    entity_type = StreamDefinition

    def __init__(self, kv: KeyValueOperations) -> None:
        super().__init__("streams.", kv)


class CounterMappingRepository(
    AbstractKeyValueRepository[CounterMappingDefinition, str]
):
    def __init__(self, kv: KeyValueOperations, prefix: str = "mappings.") -> None:
        super().__init__(prefix, kv)
        self._serializer = DelimitedSerializer(field_count=2)

    def serialize(self, entity: CounterMappingDefinition) -> str:
        return self._serializer.dumps([entity.name, entity.field_name])

    def deserialize(self, value: str) -> CounterMappingDefinition:
        name, field_name = self._serializer.loads(value)
        return CounterMappingDefinition(name=name, field_name=field_name)

    def key_for(self, entity: CounterMappingDefinition) -> str:
        return entity.name

    def serialize_id(self, id: str) -> str:
        return id

    def load_mappings(self) -> list[CounterMapping]:
        """All stored definitions resolved into runtime mappings."""
        return [d.to_mapping() for d in self.find_all()]
