"""Repository layer - SObject access through friendly property names."""

from __future__ import annotations

from sobject_storage.repository.sobject import DEFAULT_API_VERSION, SObject

__all__ = [
    "SObject",
    "DEFAULT_API_VERSION",
]
