"""Property map provider protocol.

A provider computes the property map on demand, for example to include a
field only once a feature flag says it has been deployed. SObject awaits
the provider at the start of every operation that needs the map.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sobject_storage.mapping.property_map import RawPropertyMap


@runtime_checkable
class PropertyMapProvider(Protocol):
    """Async zero-argument callable returning a raw property map."""

    async def __call__(self) -> RawPropertyMap:
        ...
