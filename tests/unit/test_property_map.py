"""Unit tests for property map definitions."""

from __future__ import annotations

import dataclasses

import pytest

from sobject_storage.core.exceptions import ValidationError
from sobject_storage.mapping.property_map import (
    BasicProperty,
    LeftInnerJoinRelationship,
    PropertyKind,
    RelatedObject,
    basic_name_map,
    join_relationships,
    normalize_property_map,
    reverse_name_map,
)


class TestLeftInnerJoinRelationship:
    def test_builds_subquery_comparison(self, street_address: LeftInnerJoinRelationship) -> None:
        assert street_address.build_comparison("7601 Interactive Way") == (
            "Owner__c IN (SELECT Person__c FROM Address__c "
            "WHERE StreetAddress__c = '7601 Interactive Way')"
        )

    def test_numeric_value_is_not_quoted(self, street_address: LeftInnerJoinRelationship) -> None:
        assert street_address.build_comparison(7601) == (
            "Owner__c IN (SELECT Person__c FROM Address__c WHERE StreetAddress__c = 7601)"
        )

    def test_list_value_is_ored(self, street_address: LeftInnerJoinRelationship) -> None:
        assert street_address.build_comparison(["a", "b"]) == (
            "Owner__c IN (SELECT Person__c FROM Address__c "
            "WHERE (StreetAddress__c = 'a' OR StreetAddress__c = 'b'))"
        )

    def test_accepts_related_object_instance(self) -> None:
        related = RelatedObject("Organization__c", "Account__c", "Org_ID__c")
        relationship = LeftInnerJoinRelationship("Account__c", related)
        assert relationship.related_object is related

    def test_related_mapping_is_normalized(self, street_address: LeftInnerJoinRelationship) -> None:
        assert street_address.related_object == RelatedObject(
            "Address__c", "Person__c", "StreetAddress__c"
        )

    def test_is_frozen(self, street_address: LeftInnerJoinRelationship) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            street_address.local_property = "Other__c"  # type: ignore[misc]

    def test_missing_local_property_raises(self) -> None:
        with pytest.raises(ValidationError, match="local_property"):
            LeftInnerJoinRelationship(
                "",
                {"name": "A", "comparison_property": "B", "query_value_property": "C"},
            )

    def test_missing_related_object_raises(self) -> None:
        with pytest.raises(ValidationError, match="related_object"):
            LeftInnerJoinRelationship("Owner__c", None)  # type: ignore[arg-type]

    @pytest.mark.parametrize("missing", ["name", "comparison_property", "query_value_property"])
    def test_missing_related_field_raises(self, missing: str) -> None:
        related = {"name": "A", "comparison_property": "B", "query_value_property": "C"}
        del related[missing]
        with pytest.raises(ValidationError, match=missing):
            LeftInnerJoinRelationship("Owner__c", related)

    def test_empty_related_field_raises(self) -> None:
        with pytest.raises(ValidationError, match="name"):
            RelatedObject("", "B", "C")


class TestPropertyMapHelpers:
    @pytest.fixture
    def mixed_map(self, street_address: LeftInnerJoinRelationship) -> dict:
        return {
            "id": "Id",
            "alias": "Id",
            "ownerName": BasicProperty("Owner__r.Name"),
            "streetAddress": street_address,
        }

    def test_normalize_tags_every_entry(self, mixed_map: dict) -> None:
        normalized = normalize_property_map(mixed_map)
        assert normalized["id"] == BasicProperty("Id")
        assert normalized["id"].kind is PropertyKind.BASIC
        assert normalized["streetAddress"].kind is PropertyKind.JOIN

    def test_normalize_returns_new_mapping(self, mixed_map: dict) -> None:
        normalized = normalize_property_map(mixed_map)
        normalized.pop("id")
        assert "id" in mixed_map

    def test_normalize_rejects_unknown_definitions(self) -> None:
        with pytest.raises(ValidationError, match="age"):
            normalize_property_map({"age": 12})

    def test_basic_name_map_excludes_relationships(self, mixed_map: dict) -> None:
        assert basic_name_map(normalize_property_map(mixed_map)) == {
            "id": "Id",
            "alias": "Id",
            "ownerName": "Owner__r.Name",
        }

    def test_join_relationships(self, mixed_map: dict, street_address) -> None:
        assert join_relationships(normalize_property_map(mixed_map)) == {
            "streetAddress": street_address
        }

    def test_reverse_name_map(self, mixed_map: dict) -> None:
        reverse = reverse_name_map(normalize_property_map(mixed_map))
        assert set(reverse) == {"Id", "Owner__r.Name"}
        assert reverse["Owner__r.Name"] == "ownerName"
        assert reverse["Id"] in {"id", "alias"}

    def test_basic_property_requires_name(self) -> None:
        with pytest.raises(ValidationError):
            BasicProperty("")
