"""Flatten nested records into dot-delimited keys.

    {"Owner__r": {"Name": "Paula"}, "Id": "a01"}
    -> {"Owner__r.Name": "Paula", "Id": "a01"}

Lists are kept as lists; any mapping inside a list is flattened in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_DELIMITER = "."


def _flatten_list(items: list[Any]) -> list[Any]:
    """Return a copy of *items* with mapping elements flattened."""
    result: list[Any] = []
    for item in items:
        if isinstance(item, Mapping):
            result.append(flatten(item))
        elif isinstance(item, list):
            result.append(_flatten_list(item))
        else:
            result.append(item)
    return result


def _flatten_into(target: dict[str, Any], value: Mapping[str, Any], prefix: str | None) -> None:
    for key, item in value.items():
        path = key if prefix is None else f"{prefix}{_DELIMITER}{key}"
        # Empty mappings have no leaves, so they are kept as values.
        if isinstance(item, Mapping) and item:
            _flatten_into(target, item, path)
        elif isinstance(item, list):
            target[path] = _flatten_list(item)
        else:
            target[path] = item


def flatten(value: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten *value* into a single-level dict with dot-path keys.

    Existing keys are never split, so flattening an already flat mapping
    returns an equal mapping. The input is not modified.
    """
    result: dict[str, Any] = {}
    _flatten_into(result, value, None)
    return result
