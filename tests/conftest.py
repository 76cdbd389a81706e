"""Shared test fixtures."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from sobject_storage.mapping.property_map import LeftInnerJoinRelationship
from sobject_storage.repository.sobject import SObject


@pytest.fixture
def property_map() -> dict[str, Any]:
    """Basic pet property map."""
    return {
        "id": "Id",
        "name": "Name",
        "contactId": "ContactId__c",
        "type": "Type__c",
        "shippingAddressId": "ShippingAddressId__c",
    }


@pytest.fixture
def street_address() -> LeftInnerJoinRelationship:
    return LeftInnerJoinRelationship(
        local_property="Owner__c",
        related_object={
            "name": "Address__c",
            "comparison_property": "Person__c",
            "query_value_property": "StreetAddress__c",
        },
    )


@pytest.fixture
def connection() -> MagicMock:
    """Connection double whose request() coroutine returns an empty query page."""
    conn = MagicMock()
    conn.request = AsyncMock(return_value={"records": [], "done": True})
    return conn


@pytest.fixture
def logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def storage(connection: MagicMock, property_map: dict[str, Any], logger: MagicMock) -> SObject:
    return SObject(connection, object_name="Pet__c", property_map=property_map, logger=logger)


@pytest.fixture
def salesforce_entity() -> dict[str, Any]:
    return {
        "attributes": {"type": "Pet__c", "url": "/services/data/v34.0/sobjects/Pet__c/pet0"},
        "Id": "pet0",
        "Name": "Jimothy",
        "ContactId__c": "contact0",
        "Type__c": "Tarantula",
        "ShippingAddressId__c": "address0",
    }


@pytest.fixture
def friendly_entity() -> dict[str, Any]:
    return {
        "id": "pet0",
        "name": "Jimothy",
        "contactId": "contact0",
        "type": "Tarantula",
        "shippingAddressId": "address0",
    }
