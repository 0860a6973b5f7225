"""
Unit tests for cache key naming and document flattening.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.errors import InvalidInput
from service_records.app.records.keys import (
    cache_entries,
    cache_key,
    descendant_pattern,
    namespace_pattern,
    split_key_path,
)


class TestCacheKey:
    """Test cases for cache_key."""

    def test_top_level_field(self):
        assert cache_key(["svc"]) == "service_data::svc"

    def test_nested_path_is_dotted(self):
        assert cache_key(["svc", "region", "zone"]) == "service_data::svc.region.zone"

    def test_custom_namespace(self):
        assert cache_key(["a"], namespace="other::") == "other::a"

    def test_deterministic(self):
        assert cache_key(["a", "b"]) == cache_key(["a", "b"])

    def test_dotted_field_name_does_not_collide_with_nested_path(self):
        literal = cache_key(["a.b"])
        nested = cache_key(["a", "b"])

        assert literal != nested
        assert literal == "service_data::a\\.b"

    def test_backslash_is_escaped(self):
        assert cache_key(["a\\", "b"]) != cache_key(["a\\.b"])

    def test_empty_path_rejected(self):
        with pytest.raises(InvalidInput):
            cache_key([])


class TestSplitKeyPath:
    """Test cases for split_key_path."""

    def test_splits_on_dots(self):
        assert split_key_path("svc.port") == ["svc", "port"]

    def test_single_segment(self):
        assert split_key_path("svc") == ["svc"]

    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_missing_key(self, key):
        with pytest.raises(InvalidInput) as exc_info:
            split_key_path(key)
        assert exc_info.value.message == "Missing 'key' parameter"

    @pytest.mark.parametrize("key", ["a..b", ".a", "a."])
    def test_empty_segment_rejected(self, key):
        with pytest.raises(InvalidInput):
            split_key_path(key)


class TestCacheEntries:
    """Test cases for recursive flattening."""

    def test_flattens_nested_objects_down_to_leaves(self):
        document = {"a": {"b": {"c": 5}}, "x": 1}

        entries = dict(cache_entries(document))

        assert entries == {
            "service_data::a": {"b": {"c": 5}},
            "service_data::a.b": {"c": 5},
            "service_data::a.b.c": 5,
            "service_data::x": 1,
        }

    def test_does_not_expand_lists(self):
        document = {"hosts": [{"name": "h1"}, {"name": "h2"}]}

        entries = dict(cache_entries(document))

        assert entries == {"service_data::hosts": [{"name": "h1"}, {"name": "h2"}]}

    def test_empty_object_value_gets_an_entry(self):
        assert dict(cache_entries({"a": {}})) == {"service_data::a": {}}

    def test_empty_document(self):
        assert list(cache_entries({})) == []

    def test_prefix_scopes_keys(self):
        entries = dict(cache_entries({"port": 8080}, prefix=["svc"]))
        assert entries == {"service_data::svc.port": 8080}


class TestPatterns:
    """Test cases for SCAN patterns."""

    def test_descendant_pattern(self):
        assert descendant_pattern(["svc"]) == "service_data::svc.*"

    def test_descendant_pattern_escapes_glob_characters(self):
        assert descendant_pattern(["a*b?"]) == "service_data::a\\*b\\?.*"

    def test_descendant_pattern_escapes_key_backslashes(self):
        # cache key is service_data::a\.b, each backslash doubled for the glob
        assert descendant_pattern(["a.b"]) == "service_data::a\\\\.b.*"

    def test_namespace_pattern(self):
        assert namespace_pattern() == "service_data::*"
