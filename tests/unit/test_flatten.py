"""Unit tests for flatten."""

from __future__ import annotations

from sobject_storage.mapping.flatten import flatten


class TestFlatten:
    def test_nested_mappings_become_dot_paths(self) -> None:
        value = {"Owner__r": {"Name": "Paula", "Address__r": {"City__c": "Lehi"}}, "Id": "a01"}
        assert flatten(value) == {
            "Owner__r.Name": "Paula",
            "Owner__r.Address__r.City__c": "Lehi",
            "Id": "a01",
        }

    def test_lists_are_preserved_and_their_mappings_flattened(self) -> None:
        value = {"a": {"b": [{"c": {"d": 1}}, 2]}}
        assert flatten(value) == {"a.b": [{"c.d": 1}, 2]}

    def test_nested_lists_are_walked(self) -> None:
        assert flatten({"a": [[{"b": {"c": 1}}], "x"]}) == {"a": [[{"b.c": 1}], "x"]}

    def test_flat_input_is_unchanged(self) -> None:
        value = {"Owner__r.Name": "Paula", "Id": "a01", "tags": ["x", "y"]}
        assert flatten(value) == value

    def test_idempotent_on_flat_input(self) -> None:
        value = {"a.b": 1, "c": None, "d": [1, 2]}
        assert flatten(flatten(value)) == flatten(value)

    def test_existing_dotted_keys_are_not_split(self) -> None:
        assert flatten({"a.b": {"c": 1}}) == {"a.b.c": 1}

    def test_empty_mapping_is_kept_as_value(self) -> None:
        assert flatten({"a": {}, "b": 1}) == {"a": {}, "b": 1}

    def test_scalars_and_none_pass_through(self) -> None:
        assert flatten({"a": None, "b": False, "c": 1.5}) == {"a": None, "b": False, "c": 1.5}

    def test_input_is_not_modified(self) -> None:
        inner = [{"c": {"d": 1}}]
        value = {"a": {"b": inner}}
        flatten(value)
        assert value == {"a": {"b": [{"c": {"d": 1}}]}}
        assert inner == [{"c": {"d": 1}}]
