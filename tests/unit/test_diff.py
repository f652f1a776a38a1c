"""
Unit tests for name-set partitioning and structural equality.

Tests cover:
- get_actions partitioning at class/field/index granularity
- Underscore-prefixed names protected from removal
- Idempotence of a converged diff
- deep_equal over primitives, mappings and sequences
"""

import pytest

from cloud.cloudsync.schema.diff import DiffSet, deep_equal, get_actions


class TestGetActions:
    """Tests for get_actions."""

    def test_add_and_update(self):
        """Local-only names are added, shared names are updated."""
        diff = get_actions(["A", "B"], ["B"])

        assert diff.to_add == ["A"]
        assert diff.to_update == ["B"]
        assert diff.to_remove == []

    def test_internal_names_never_removed(self):
        """Remote-only underscore names are excluded from removal."""
        diff = get_actions([], ["_Role", "Foo"])

        assert diff.to_remove == ["Foo"]
        assert diff.to_add == []
        assert diff.to_update == []

    def test_internal_names_can_be_updated(self):
        """An underscore name declared locally is still updated."""
        diff = get_actions(["_User"], ["_User", "_Role"])

        assert diff.to_update == ["_User"]
        assert diff.to_remove == []

    def test_custom_protection(self):
        """The protection predicate can be replaced."""
        diff = get_actions([], ["_Role", "Foo"], protected=lambda name: False)

        assert diff.to_remove == ["_Role", "Foo"]

    @pytest.mark.parametrize(
        "local,remote",
        [
            (["A", "B", "C"], ["B", "C", "D"]),
            ([], ["X", "Y"]),
            (["X", "Y"], []),
            (["same"], ["same"]),
        ],
    )
    def test_partition_reconstructs_inputs(self, local, remote):
        """Every input name lands in exactly one list."""
        diff = get_actions(local, remote)

        combined = diff.to_add + diff.to_update + diff.to_remove
        assert sorted(combined) == sorted(set(local) | set(remote))
        assert len(combined) == len(set(combined))
        assert not set(diff.to_add) & set(diff.to_remove)

    def test_converged_diff_is_all_update(self):
        """Re-diffing after convergence yields nothing to add or remove."""
        local = ["A", "B", "C"]
        diff = get_actions(local, local)

        assert diff.to_add == []
        assert diff.to_remove == []
        assert diff.to_update == local
        assert diff.is_empty

    def test_order_follows_local_then_remote(self):
        """Output order is first appearance in local then remote."""
        diff = get_actions(["C", "A"], ["Z", "A", "B"])

        assert diff.to_add == ["C"]
        assert diff.to_update == ["A"]
        assert diff.to_remove == ["Z", "B"]

    def test_duplicate_input_names(self):
        """Duplicates in the input appear once in the output."""
        diff = get_actions(["A", "A"], ["A"])

        assert diff.to_update == ["A"]

    def test_returns_diffset(self):
        assert isinstance(get_actions([], []), DiffSet)


class TestDeepEqual:
    """Tests for deep_equal."""

    @pytest.mark.parametrize("value", [1, "x", None, {"a": [1, {"b": 2}]}, [1, 2], ()])
    def test_reflexive(self, value):
        assert deep_equal(value, value)

    def test_equal_mappings(self):
        assert deep_equal({"a": 1, "b": 2}, {"a": 1, "b": 2})

    def test_key_order_irrelevant(self):
        assert deep_equal({"a": 1, "b": 2}, {"b": 2, "a": 1})

    def test_key_count_mismatch(self):
        assert not deep_equal({"a": 1}, {"a": 1, "b": 2})
        assert not deep_equal({"a": 1, "b": 2}, {"a": 1})

    def test_same_count_different_keys(self):
        assert not deep_equal({"a": 1, "b": 2}, {"a": 1, "c": 2})

    def test_number_and_string_differ(self):
        assert not deep_equal(1, "1")

    def test_bool_and_number_differ(self):
        assert not deep_equal(1, True)
        assert not deep_equal(0, False)
        assert deep_equal(True, True)

    def test_primitive_and_container_differ(self):
        assert not deep_equal(1, {"a": 1})
        assert not deep_equal([], None)

    def test_nested_difference(self):
        a = {"type": "Object", "defaultValue": {"tags": ["x", "y"]}}
        b = {"type": "Object", "defaultValue": {"tags": ["x", "z"]}}
        assert not deep_equal(a, b)

    def test_sequences(self):
        assert deep_equal([1, [2, 3]], [1, [2, 3]])
        assert deep_equal((1, 2), [1, 2])
        assert not deep_equal([1, 2], [2, 1])
        assert not deep_equal([1], [1, 1])

    def test_mapping_and_list_differ(self):
        assert not deep_equal({}, [])

    def test_index_specs(self):
        """Index descriptors compare by value."""
        assert deep_equal({"email": 1}, {"email": 1})
        assert not deep_equal({"email": 1}, {"email": -1})
