"""Property map definitions.

A property map maps friendly names to property definitions. Plain strings
are shorthand for a BasicProperty, which is how static maps are usually
written:

    {"id": "Id", "ownerName": "Owner__r.Name"}

A LeftInnerJoinRelationship describes a friendly property that can only be
queried through a subquery against a related object. It takes part in
query predicates but never in record conversion.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from sobject_storage.core.exceptions import ValidationError, require
from sobject_storage.core.soql import build_comparison


class PropertyKind(Enum):
    """Variant tag of a property definition."""

    BASIC = "basic"
    JOIN = "join"


@dataclass(frozen=True)
class BasicProperty:
    """Plain name-to-name mapping onto a (possibly dot-nested) Salesforce field."""

    kind: ClassVar[PropertyKind] = PropertyKind.BASIC

    remote_name: str

    def __post_init__(self) -> None:
        if not isinstance(self.remote_name, str) or not self.remote_name:
            raise ValidationError("remote_name must be a non-empty string")


@dataclass(frozen=True)
class RelatedObject:
    """The related SObject side of a LeftInnerJoinRelationship."""

    name: str
    comparison_property: str
    query_value_property: str

    def __post_init__(self) -> None:
        missing = [
            label
            for label in ("name", "comparison_property", "query_value_property")
            if not getattr(self, label)
        ]
        if missing:
            raise ValidationError(
                f"Missing required related_object parameter(s): {', '.join(missing)}",
                {"missing": missing},
            )


@dataclass(frozen=True)
class LeftInnerJoinRelationship:
    """Friendly property resolved through a left inner join subquery.

    Given two objects that both reference an Account, this lets a Quote__c
    be queried by the organization ID stored on Organization__c:

        organizationId = LeftInnerJoinRelationship(
            local_property="Account__c",
            related_object={
                "name": "Organization__c",
                "comparison_property": "Account__c",
                "query_value_property": "Org_ID__c",
            },
        )

    ``query({"organizationId": "org0"})`` then renders

        Account__c IN (SELECT Account__c FROM Organization__c WHERE Org_ID__c = 'org0')
    """

    kind: ClassVar[PropertyKind] = PropertyKind.JOIN

    local_property: str
    related_object: RelatedObject

    def __init__(
        self, local_property: str, related_object: RelatedObject | Mapping[str, str]
    ) -> None:
        if not local_property:
            raise ValidationError(
                "Missing required parameter(s): local_property", {"missing": ["local_property"]}
            )
        if related_object is None:
            raise ValidationError(
                "Missing required parameter(s): related_object", {"missing": ["related_object"]}
            )
        if not isinstance(related_object, RelatedObject):
            require(
                related_object,
                ["name", "comparison_property", "query_value_property"],
                "related_object",
            )
            related_object = RelatedObject(
                name=related_object["name"],
                comparison_property=related_object["comparison_property"],
                query_value_property=related_object["query_value_property"],
            )
        object.__setattr__(self, "local_property", local_property)
        object.__setattr__(self, "related_object", related_object)

    def build_comparison(self, value: Any) -> str:
        """Render the subquery comparison for *value* (scalar or list of scalars)."""
        related = self.related_object
        inner = build_comparison(related.query_value_property, value)
        return (
            f"{self.local_property} IN "
            f"(SELECT {related.comparison_property} FROM {related.name} WHERE {inner})"
        )


PropertyDefinition = Union[BasicProperty, LeftInnerJoinRelationship]
RawPropertyMap = Mapping[str, Union[str, BasicProperty, LeftInnerJoinRelationship]]
PropertyMap = dict[str, PropertyDefinition]


def normalize_property_map(raw: RawPropertyMap) -> PropertyMap:
    """Return a new PropertyMap with string shorthands turned into BasicProperty."""
    if not isinstance(raw, Mapping):
        raise ValidationError(f"property map must be a mapping, got {type(raw).__name__}")

    normalized: PropertyMap = {}
    for name, definition in raw.items():
        if isinstance(definition, str):
            normalized[name] = BasicProperty(definition)
        elif isinstance(definition, (BasicProperty, LeftInnerJoinRelationship)):
            normalized[name] = definition
        else:
            raise ValidationError(
                f"Unsupported definition for property '{name}': {type(definition).__name__}"
            )
    return normalized


def basic_name_map(property_map: PropertyMap) -> dict[str, str]:
    """Friendly name -> Salesforce name for basic properties only."""
    return {
        name: definition.remote_name
        for name, definition in property_map.items()
        if definition.kind is PropertyKind.BASIC
    }


def join_relationships(property_map: PropertyMap) -> dict[str, LeftInnerJoinRelationship]:
    """Friendly name -> relationship for join properties only."""
    return {
        name: definition
        for name, definition in property_map.items()
        if definition.kind is PropertyKind.JOIN
    }


def reverse_name_map(property_map: PropertyMap) -> dict[str, str]:
    """Salesforce name -> friendly name, built from basic properties.

    When several friendly names share a Salesforce name the last one wins.
    """
    return {remote: name for name, remote in basic_name_map(property_map).items()}
