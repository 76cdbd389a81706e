"""
Example 02: Relationships, Providers and Bulk Writes

This example demonstrates left inner join properties, a property map
computed at runtime, and the bulk endpoint used by the *_many methods.
"""

import asyncio
import os

from sobject_storage import LeftInnerJoinRelationship, SalesForceConnection, SObject

street_address = LeftInnerJoinRelationship(
    local_property="Owner__c",
    related_object={
        "name": "Address__c",
        "comparison_property": "Person__c",
        "query_value_property": "StreetAddress__c",
    },
)


async def pet_property_map():
    """Only include the microchip field once it is deployed"""
    property_map = {"id": "Id", "name": "Name", "streetAddress": street_address}
    if os.getenv("MICROCHIP_FIELD_DEPLOYED") == "1":
        property_map["microchipId"] = "Microchip_Id__c"
    return property_map


async def main():
    async with SalesForceConnection.from_env() as connection:
        pets = SObject(
            connection,
            object_name="Pet__c",
            property_map_provider=pet_property_map,
            api_version=52,
        )

        print("=== Relationship Queries ===\n")
        statement = await pets.build_query_statement({"streetAddress": "7601 Interactive Way"})
        print(f"SOQL: {statement}\n")

        neighbours = await pets.query({"streetAddress": "7601 Interactive Way"})
        print(f"{len(neighbours)} pets live at 7601 Interactive Way\n")

        print("=== Bulk Writes ===\n")
        created = await pets.insert_many([{"name": "Rex"}, {"name": "Fido"}])
        print(f"insert_many result: {created}")
        deleted = await pets.delete_many(created)
        print(f"delete_many result: {deleted}")


if __name__ == "__main__":
    asyncio.run(main())
