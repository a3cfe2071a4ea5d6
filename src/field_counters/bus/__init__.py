"""Topic-routed event bus: in-memory and Redis Streams implementations."""

from field_counters.bus.bus import create_event_bus
from field_counters.bus.dead_letters import DeadLetter
from field_counters.bus.memory_bus import MemoryEventBus
from field_counters.bus.redis_streams import RedisStreamsBus

__all__ = ["DeadLetter", "MemoryEventBus", "RedisStreamsBus", "create_event_bus"]
