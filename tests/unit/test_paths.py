"""Test dotted field path resolution."""

import pytest

from field_counters.core.errors import ConfigurationError, InvalidPathError
from field_counters.counting.paths import FieldPath, resolve


class TestResolve:
    def test_single_segment(self):
        path = resolve("name")
        assert path.segments == ("name",)
        assert path.is_terminal
        assert path.rest is None

    def test_multi_segment(self):
        path = resolve("jobInstances.status")
        assert path.head == "jobInstances"
        assert path.rest == FieldPath(("status",))
        assert len(path) == 2
        assert str(path) == "jobInstances.status"

    def test_whitespace_around_segments_stripped(self):
        assert resolve(" a . b ").segments == ("a", "b")

    @pytest.mark.parametrize("expr", ["", "   ", "a..b", ".a", "a."])
    def test_malformed_expressions_rejected(self, expr):
        with pytest.raises(InvalidPathError):
            resolve(expr)

    def test_invalid_path_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError, match="empty segment"):
            resolve("a..b")

    def test_result_is_cached(self):
        assert resolve("x.y.z") is resolve("x.y.z")


class TestFieldPath:
    def test_empty_segments_rejected(self):
        with pytest.raises(InvalidPathError):
            FieldPath(())

    def test_empty_segment_rejected(self):
        with pytest.raises(InvalidPathError):
            FieldPath(("a", ""))

    def test_immutable(self):
        path = resolve("a.b")
        with pytest.raises(AttributeError):
            path.segments = ("c",)
