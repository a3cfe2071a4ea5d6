"""Counter stores implementing the increment contract."""

from field_counters.metrics.memory_store import InMemoryFieldValueCounterStore
from field_counters.metrics.models import FieldValueCounter
from field_counters.metrics.redis_store import RedisFieldValueCounterStore

__all__ = [
    "FieldValueCounter",
    "InMemoryFieldValueCounterStore",
    "RedisFieldValueCounterStore",
]
