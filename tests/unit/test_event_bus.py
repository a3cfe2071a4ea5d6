"""Test the memory bus, Redis Streams message handling, and the bus factory."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from field_counters.bus.bus import create_event_bus
from field_counters.bus.dead_letters import DeadLetterLog
from field_counters.bus.memory_bus import MemoryEventBus
from field_counters.bus.redis_streams import RedisStreamsBus, _Subscription
from field_counters.bus.schemas import decode_event, encode_event, get_event_class
from field_counters.core.enums import Mode
from field_counters.core.errors import DecodingError
from field_counters.core.events import BaseEvent, RecordEvent


class TestMemoryEventBus:
    async def test_publish_invokes_handler(self, memory_bus):
        received = []

        async def handler(event: BaseEvent) -> None:
            received.append(event)

        await memory_bus.subscribe("records.in", "g", handler)
        event = RecordEvent(payload={"name": "x"})
        await memory_bus.publish("records.in", event)

        assert [e.event_id for e in received] == [event.event_id]
        assert memory_bus.messages_processed == 1

    async def test_other_topics_not_delivered(self, memory_bus):
        received = []

        async def handler(event: BaseEvent) -> None:
            received.append(event)

        await memory_bus.subscribe("a", "g", handler)
        await memory_bus.publish("b", BaseEvent())
        assert received == []

    async def test_handler_error_dead_lettered_and_isolated(self):
        errors = []
        bus = MemoryEventBus(on_handler_error=lambda *args: errors.append(args))
        received = []

        async def bad(event: BaseEvent) -> None:
            raise ValueError("boom")

        async def good(event: BaseEvent) -> None:
            received.append(event)

        await bus.subscribe("t", "bad", bad)
        await bus.subscribe("t", "good", good)
        event = BaseEvent()
        await bus.publish("t", event)

        assert len(received) == 1
        assert bus.get_error_counts() == {"t/bad": 1}
        [dead] = bus.dead_letters
        assert dead.message_id == event.event_id
        assert dead.error == "boom"
        assert errors[0][:3] == ("t", "bad", event.event_id)

    async def test_failing_error_callback_is_contained(self):
        def explode(*args):
            raise RuntimeError("callback broke")

        bus = MemoryEventBus(on_handler_error=explode)

        async def bad(event: BaseEvent) -> None:
            raise ValueError("boom")

        await bus.subscribe("t", "g", bad)
        await bus.publish("t", BaseEvent())
        assert len(bus.dead_letters) == 1

    async def test_history_filtered_by_topic(self, memory_bus):
        await memory_bus.publish("a", BaseEvent())
        await memory_bus.publish("b", BaseEvent())
        assert len(memory_bus.get_history()) == 2
        assert [t for t, _ in memory_bus.get_history("a")] == ["a"]


class TestStreamWireFormat:
    def test_round_trips_record_event(self):
        event = RecordEvent(payload='{"name": "x"}', headers={"k": "v"})
        fields = encode_event(event)
        restored = decode_event(fields)
        assert isinstance(restored, RecordEvent)
        assert restored.event_id == event.event_id
        assert restored.payload == '{"name": "x"}'

    def test_decoded_payload_survives(self):
        event = RecordEvent(payload={"jobInstances": [{"status": "FAILED"}]})
        fields = encode_event(event)
        restored = decode_event(fields)
        assert restored.payload == {"jobInstances": [{"status": "FAILED"}]}

    @pytest.mark.parametrize(
        "fields",
        [
            {},
            {"_type": "RecordEvent"},
            {"_type": "NoSuchEvent", "_data": "{}"},
            {"_type": "RecordEvent", "_data": "{not json"},
        ],
    )
    def test_malformed_messages_rejected(self, fields):
        assert decode_event(fields) is None


class TestRedisStreamsProcessMessage:
    def _bus(self, retries=2):
        bus = RedisStreamsBus(max_handler_retries=retries)
        bus._redis = AsyncMock()
        return bus

    def _fields(self):
        return encode_event(RecordEvent(payload={}))

    async def test_ack_after_success(self):
        bus = self._bus()
        handler = AsyncMock()
        await bus._process_message("t", "g", handler, "1-0", self._fields())
        handler.assert_awaited_once()
        bus._redis.xack.assert_awaited_once_with("t", "g", "1-0")
        assert bus.messages_processed == 1

    async def test_failure_left_pending_until_retries_exhausted(self):
        bus = self._bus(retries=2)
        handler = AsyncMock(side_effect=ValueError("boom"))

        await bus._process_message("t", "g", handler, "1-0", self._fields())
        bus._redis.xack.assert_not_awaited()
        assert bus.dead_letters == []

        await bus._process_message("t", "g", handler, "1-0", self._fields())
        bus._redis.xack.assert_awaited_once_with("t", "g", "1-0")
        [dead] = bus.dead_letters
        assert dead.attempts == 2
        assert dead.error == "boom"
        assert bus.get_error_counts() == {"t/g": 2}

    async def test_malformed_message_dead_lettered_at_once(self):
        bus = self._bus()
        handler = AsyncMock()
        await bus._process_message("t", "g", handler, "1-0", {"_type": "Bogus"})
        handler.assert_not_awaited()
        bus._redis.xack.assert_awaited_once_with("t", "g", "1-0")
        assert bus.dead_letters[0].error == "deserialization_failed"

    async def test_decoding_error_dead_lettered_on_first_attempt(self):
        bus = self._bus(retries=3)
        handler = AsyncMock(side_effect=DecodingError("Malformed JSON payload"))
        await bus._process_message("t", "g", handler, "1-0", self._fields())
        bus._redis.xack.assert_awaited_once_with("t", "g", "1-0")
        [dead] = bus.dead_letters
        assert dead.attempts == 1

    async def test_empty_pending_entry_dead_lettered(self):
        bus = self._bus()
        await bus._process_message("t", "g", AsyncMock(), "1-0", {})
        bus._redis.xack.assert_awaited_once_with("t", "g", "1-0")

    async def test_publish_requires_start(self):
        with pytest.raises(RuntimeError, match="not started"):
            await RedisStreamsBus().publish("t", BaseEvent())

    async def test_publish_writes_type_and_json(self):
        bus = self._bus()
        event = RecordEvent(payload={"a": 1})
        await bus.publish("records.in", event)
        args, kwargs = bus._redis.xadd.call_args
        topic, payload = args
        assert topic == "records.in"
        assert payload["_type"] == "RecordEvent"
        assert json.loads(payload["_data"])["payload"] == {"a": 1}


def test_event_class_registry():
    assert get_event_class("RecordEvent") is RecordEvent
    assert get_event_class("Nope") is None


class TestFactory:
    def test_memory_mode(self):
        assert isinstance(create_event_bus(Mode.MEMORY), MemoryEventBus)

    def test_redis_mode(self):
        bus = create_event_bus(Mode.REDIS, "redis://example:6379/1", max_handler_retries=5)
        assert isinstance(bus, RedisStreamsBus)
        assert bus._max_retries == 5


class TestDeadLetterLog:
    def test_errors_counted_per_topic_and_group(self):
        log = DeadLetterLog()
        log.handler_failed("t", "a", "1", ValueError())
        log.handler_failed("t", "a", "2", ValueError())
        log.count_error("t", "b")
        assert log.error_counts() == {"t/a": 2, "t/b": 1}

    def test_park_records_entry(self):
        log = DeadLetterLog()
        entry = log.park("t", "g", 7, "RecordEvent", "boom", attempts=3)
        assert entry.message_id == "7"
        assert log.entries == [entry]


class FakeStream:
    """Consumer-group semantics of one stream: new entries, then pending ones."""

    def __init__(self, entries, max_reads=10):
        self.new = list(entries)
        self.pending: dict[str, dict] = {}
        self.reads: list[str] = []
        self._max_reads = max_reads

    async def xreadgroup(self, groupname, consumername, streams, count, block):
        [(topic, last_id)] = streams.items()
        self.reads.append(last_id)
        if len(self.reads) > self._max_reads:
            raise asyncio.CancelledError
        if last_id == ">":
            delivered, self.new = self.new, []
            self.pending.update(delivered)
        else:
            delivered = list(self.pending.items())
        return [(topic, delivered)] if delivered else []

    async def xack(self, topic, group, msg_id):
        self.pending.pop(msg_id, None)


class TestRedisStreamsConsumeLoop:
    def _run(self, handler, retries, entries):
        stream = FakeStream(entries)
        bus = RedisStreamsBus(max_handler_retries=retries)
        bus._redis = AsyncMock()
        bus._redis.xreadgroup.side_effect = stream.xreadgroup
        bus._redis.xack.side_effect = stream.xack
        return bus, stream, bus._consume(_Subscription("t", "g", handler))

    async def test_failed_message_redelivered_until_dead_lettered(self):
        handler = AsyncMock(side_effect=ValueError("boom"))
        bus, stream, consume = self._run(handler, 3, [("1-0", encode_event(RecordEvent()))])
        await consume

        assert handler.await_count == 3
        [dead] = bus.dead_letters
        assert dead.attempts == 3
        assert stream.pending == {}
        assert bus._attempts == {}

    async def test_transient_failure_succeeds_on_retry(self):
        handler = AsyncMock(side_effect=[ValueError("blip"), None])
        bus, stream, consume = self._run(handler, 3, [("1-0", encode_event(RecordEvent()))])
        await consume

        assert handler.await_count == 2
        assert bus.dead_letters == []
        assert bus.messages_processed == 1
        assert stream.pending == {}

    async def test_pending_entries_read_before_new_ones(self):
        bus, stream, consume = self._run(AsyncMock(), 3, [])
        await consume
        assert stream.reads[:2] == ["0", ">"]
