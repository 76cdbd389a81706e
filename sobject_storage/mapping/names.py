"""Property name conversion between friendly and Salesforce formats."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sobject_storage.core.exceptions import ValidationError
from sobject_storage.mapping.flatten import flatten


def _convert_one(
    entity: Mapping[str, Any],
    name_map: Mapping[str, str],
    capitalize_unmapped: bool,
) -> dict[str, Any]:
    converted = flatten(entity)

    # Iterate over a snapshot since keys are renamed in place.
    for name in list(converted):
        if name in name_map:
            target = name_map[name]
        elif capitalize_unmapped:
            target = name.capitalize()
        else:
            continue
        if target != name:
            converted[target] = converted.pop(name)
    return converted


def convert_property_names(
    entity: Any,
    name_map: Mapping[str, str] | None,
    capitalize_unmapped: bool = False,
) -> Any:
    """Return a flattened copy of *entity* with keys renamed through *name_map*.

    Nested entities are flattened first, so *name_map* keys may be
    dot-delimited paths:

        convert_property_names(
            {"Product__r": {"Sku__c": "foo"}, "Id": "bar"},
            {"Product__r.Sku__c": "sku", "Id": "id"},
        )
        -> {"sku": "foo", "id": "bar"}

    Keys missing from *name_map* are kept. When *capitalize_unmapped* is
    true they are capitalized instead (``"name"`` -> ``"Name"``).

    A list converts each mapping element independently; other elements
    pass through unchanged.

    Raises:
        ValidationError: If *entity* or *name_map* is missing, or *entity*
            is neither a mapping nor a list.
    """
    if entity is None:
        raise ValidationError("entity parameter is required.")
    if name_map is None:
        raise ValidationError("name_map parameter is required.")

    if isinstance(entity, list):
        return [
            _convert_one(item, name_map, capitalize_unmapped)
            if isinstance(item, Mapping)
            else item
            for item in entity
        ]
    if not isinstance(entity, Mapping):
        raise ValidationError(
            f"entity parameter must be a mapping or a list, got {type(entity).__name__}."
        )
    return _convert_one(entity, name_map, capitalize_unmapped)
