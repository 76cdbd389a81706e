"""Mapping layer - property maps and friendly/Salesforce name conversion."""

from __future__ import annotations

from sobject_storage.mapping.flatten import flatten
from sobject_storage.mapping.names import convert_property_names
from sobject_storage.mapping.property_map import (
    BasicProperty,
    LeftInnerJoinRelationship,
    PropertyDefinition,
    PropertyKind,
    PropertyMap,
    RawPropertyMap,
    RelatedObject,
    basic_name_map,
    join_relationships,
    normalize_property_map,
    reverse_name_map,
)
from sobject_storage.mapping.protocol import PropertyMapProvider

__all__ = [
    "flatten",
    "convert_property_names",
    "BasicProperty",
    "LeftInnerJoinRelationship",
    "RelatedObject",
    "PropertyDefinition",
    "PropertyKind",
    "PropertyMap",
    "RawPropertyMap",
    "PropertyMapProvider",
    "basic_name_map",
    "join_relationships",
    "normalize_property_map",
    "reverse_name_map",
]
