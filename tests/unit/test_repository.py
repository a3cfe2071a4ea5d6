"""Test prefix-keyed definition repositories and delimited serialization."""

from unittest.mock import MagicMock

import pytest

from field_counters.core.errors import InvalidPathError, SerializationError
from field_counters.counting.handler import CounterMapping
from field_counters.storage.definitions import (
    CounterMappingDefinition,
    CounterMappingRepository,
    JobDefinition,
    JobDefinitionRepository,
    StreamDefinition,
    StreamDefinitionRepository,
)
from field_counters.storage.repository import InMemoryKeyValueStore
from field_counters.storage.serialization import DelimitedSerializer


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


class TestDelimitedSerializer:
    def test_dumps_and_loads(self):
        s = DelimitedSerializer(field_count=2)
        assert s.dumps(["job", "a | b"]) == "job\na | b"
        assert s.loads("job\na | b") == ["job", "a | b"]

    def test_delimiter_inside_field_rejected(self):
        with pytest.raises(SerializationError, match="delimiter"):
            DelimitedSerializer(field_count=2).dumps(["job", "line1\nline2"])

    def test_wrong_field_count(self):
        s = DelimitedSerializer(field_count=2)
        with pytest.raises(SerializationError):
            s.dumps(["only one"])
        with pytest.raises(SerializationError):
            s.loads("a\nb\nc")

    def test_custom_delimiter(self):
        s = DelimitedSerializer(field_count=3, delimiter="|")
        assert s.loads(s.dumps(["a", "", "c"])) == ["a", "", "c"]

    def test_invalid_construction(self):
        with pytest.raises(ValueError):
            DelimitedSerializer(field_count=0)
        with pytest.raises(ValueError):
            DelimitedSerializer(field_count=1, delimiter="")


class TestJobDefinitionRepository:
    def test_store_uses_prefixed_key(self, kv):
        repo = JobDefinitionRepository(kv)
        repo.store(JobDefinition(name="nightly", definition="job --cron '0 0 * * *'"))
        assert kv.get("jobs.nightly") == "nightly\njob --cron '0 0 * * *'"

    def test_find_one_round_trip(self, kv):
        repo = JobDefinitionRepository(kv)
        job = JobDefinition(name="nightly", definition="importer | hdfs")
        repo.store(job)
        found = repo.find_one("nightly")
        assert found == job
        assert isinstance(found, JobDefinition)

    def test_find_missing(self, kv):
        assert JobDefinitionRepository(kv).find_one("ghost") is None

    def test_delete_and_exists(self, kv):
        repo = JobDefinitionRepository(kv)
        job = repo.store(JobDefinition(name="a", definition="x"))
        assert repo.exists("a")
        repo.delete_entity(job)
        assert not repo.exists("a")

    def test_find_all_count_delete_all(self, kv):
        repo = JobDefinitionRepository(kv)
        for name in ("b", "a", "c"):
            repo.store(JobDefinition(name=name, definition=f"def-{name}"))
        assert [j.name for j in repo.find_all()] == ["a", "b", "c"]
        assert repo.count() == 3
        repo.delete_all()
        assert repo.count() == 0

    def test_definition_with_newline_not_stored(self, kv):
        repo = JobDefinitionRepository(kv)
        with pytest.raises(SerializationError):
            repo.store(JobDefinition(name="a", definition="x\ny"))
        assert kv.get("jobs.a") is None


class TestRepositoriesShareStore:
    def test_prefixes_isolate_entity_types(self, kv):
        jobs = JobDefinitionRepository(kv)
        streams = StreamDefinitionRepository(kv)
        jobs.store(JobDefinition(name="x", definition="job"))
        streams.store(StreamDefinition(name="x", definition="http | log"))
        assert jobs.find_one("x").definition == "job"
        assert streams.find_one("x").definition == "http | log"
        assert isinstance(streams.find_one("x"), StreamDefinition)
        assert jobs.count() == 1


class TestCounterMappingRepository:
    def test_round_trip_and_to_mapping(self, kv):
        repo = CounterMappingRepository(kv)
        repo.store(CounterMappingDefinition(name="statusCounts", field_name="jobInstances.status"))
        assert kv.get("mappings.statusCounts") == "statusCounts\njobInstances.status"
        assert repo.load_mappings() == [
            CounterMapping.of("jobInstances.status", "statusCounts"),
        ]

    def test_invalid_path_surfaces_on_load(self, kv):
        repo = CounterMappingRepository(kv)
        repo.store(CounterMappingDefinition(name="c", field_name="a..b"))
        with pytest.raises(InvalidPathError):
            repo.load_mappings()

    def test_works_against_redis_client_bytes(self):
        client = MagicMock()
        client.get.return_value = b"c\nname"
        repo = CounterMappingRepository(client, prefix="fvc.mappings.")
        assert repo.find_one("c") == CounterMappingDefinition(name="c", field_name="name")
        client.get.assert_called_once_with("fvc.mappings.c")


class TestInMemoryKeyValueStore:
    def test_scan_iter_matches_glob(self, kv):
        kv.set("jobs.a", "1")
        kv.set("jobs.b", "2")
        kv.set("streams.a", "3")
        assert sorted(kv.scan_iter(match="jobs.*")) == ["jobs.a", "jobs.b"]

    def test_delete_counts_removed(self, kv):
        kv.set("a", "1")
        assert kv.delete("a", "missing") == 1
