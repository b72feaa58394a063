"""
Unit tests for metadata classification and reconciliation.
"""

from datetime import datetime, timezone

import pytest

from knowledge_transfer.models import MetadataKind, kind_of, merge_value, reconcile_metadata


class TestKindOf:
    """Test classification into the closed set of value kinds."""

    @pytest.mark.parametrize("value", [None, True, 3, 0.5, "label", datetime.now(timezone.utc)])
    def test_scalars(self, value):
        assert kind_of(value) == MetadataKind.SCALAR

    @pytest.mark.parametrize("value", [[], [1, 2], ("a",)])
    def test_lists(self, value):
        assert kind_of(value) == MetadataKind.LIST

    def test_mapping(self):
        assert kind_of({"a": 1}) == MetadataKind.MAPPING

    def test_opaque(self):
        assert kind_of(object()) == MetadataKind.OPAQUE
        assert kind_of({1, 2}) == MetadataKind.OPAQUE


class TestMergeValue:
    """Test the per-kind merge functions."""

    def test_lists_concatenate(self):
        assert merge_value(["a"], ["b", "c"]) == ["a", "b", "c"]

    def test_mappings_shallow_merge_second_wins(self):
        assert merge_value({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}

    def test_scalar_first_wins(self):
        assert merge_value("first", "second") == "first"

    def test_opaque_first_wins(self):
        first, second = object(), object()
        assert merge_value(first, second) is first

    def test_kind_mismatch_first_wins(self):
        assert merge_value(["a"], {"b": 1}) == ["a"]
        assert merge_value("text", ["a"]) == "text"

    def test_equal_values_are_not_duplicated(self):
        assert merge_value(["a", "b"], ["a", "b"]) == ["a", "b"]


class TestReconcileMetadata:
    """Test reconciliation of whole metadata bags."""

    def test_quality_fields_take_max(self):
        merged, changed = reconcile_metadata(
            {"importance": 0.4, "confidence": 0.9},
            {"importance": 0.7, "confidence": 0.5},
        )
        assert merged["importance"] == 0.7
        assert merged["confidence"] == 0.9
        assert changed == ["importance"]

    def test_quality_field_missing_side_is_ignored(self):
        merged, _ = reconcile_metadata({"centrality": None}, {"centrality": 0.3})
        assert merged["centrality"] == 0.3

        merged, _ = reconcile_metadata({"centrality": 0.3}, {"centrality": None})
        assert merged["centrality"] == 0.3

    def test_community_labels_combine(self):
        merged, _ = reconcile_metadata({"community": "c1"}, {"community": "c2"})
        assert merged["community"] == "c1+c2"

    def test_equal_community_is_not_combined(self):
        merged, changed = reconcile_metadata({"community": "c1"}, {"community": "c1"})
        assert merged["community"] == "c1"
        assert changed == []

    def test_equal_lists_are_not_concatenated(self):
        merged, changed = reconcile_metadata({"sources": ["x", "y"]}, {"sources": ["x", "y"]})
        assert merged["sources"] == ["x", "y"]
        assert changed == []

    def test_community_single_side(self):
        merged, _ = reconcile_metadata({"community": None}, {"community": "c2"})
        assert merged["community"] == "c2"

        merged, _ = reconcile_metadata({"community": "c1"}, {"community": None})
        assert merged["community"] == "c1"

    def test_absent_key_is_adopted(self):
        merged, changed = reconcile_metadata({"a": 1}, {"b": 2})
        assert merged == {"a": 1, "b": 2}
        assert changed == ["b"]

    def test_other_keys_follow_their_kind(self):
        merged, changed = reconcile_metadata(
            {"sources": ["x"], "extra": {"k": 1}, "owner": "alice"},
            {"sources": ["y"], "extra": {"k": 2}, "owner": "bob"},
        )
        assert merged["sources"] == ["x", "y"]
        assert merged["extra"] == {"k": 2}
        assert merged["owner"] == "alice"
        assert set(changed) == {"sources", "extra"}

    def test_identical_bags_are_unchanged(self):
        bag = {"importance": 0.5, "community": "c1", "sources": ["x"], "extra": {"k": 1}}
        merged, changed = reconcile_metadata(bag, dict(bag))
        assert merged == bag
        assert changed == []

    def test_inputs_are_not_mutated(self):
        first = {"sources": ["x"]}
        second = {"sources": ["y"]}
        reconcile_metadata(first, second)
        assert first == {"sources": ["x"]}
        assert second == {"sources": ["y"]}
