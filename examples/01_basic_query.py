"""
Example 01: Basic Queries and Writes

This example demonstrates querying and updating a Salesforce SObject through
friendly property names. Credentials are read from SF_LOGIN_URL,
SF_CLIENT_ID, SF_CLIENT_SECRET, SF_USERNAME and SF_PASSWORD.
"""

import asyncio
import logging

from sobject_storage import ConnectionConfig, ResourceNotFoundError, SalesForceConnection, SObject


class Pets(SObject):
    """Pet__c records with friendly property names"""

    object_name = "Pet__c"
    property_map = {
        "id": "Id",
        "name": "Name",
        "type": "Type__c",
        "ownerName": "Owner__r.Name",
    }


async def main():
    logging.basicConfig(level=logging.INFO)
    config = ConnectionConfig.from_env()

    async with SalesForceConnection(config) as connection:
        pets = Pets(connection)

        print("=== Basic Queries ===\n")

        # The SOQL statement that query() sends
        statement = await pets.build_query_statement({"type": ["Cat", "Dog"]})
        print(f"SOQL: {statement}\n")

        # query: every matching record, all pages collected
        results = await pets.query({"type": ["Cat", "Dog"]})
        print(f"query result ({len(results)} records):")
        for pet in results:
            print(f"  - {pet.get('name')} owned by {pet.get('ownerName')}")
        print()

        # insert / update / delete
        created = await pets.insert({"name": "Rex", "type": "Dog"})
        print(f"insert result: {created}")
        await pets.update({"id": created["id"], "name": "Rex II"})
        rex = await pets.get({"id": created["id"]})
        print(f"get result: {rex}")
        await pets.delete({"id": created["id"]})

        # get raises when nothing matches
        try:
            await pets.get({"id": created["id"]})
        except ResourceNotFoundError as e:
            print(f"get after delete: {e}")


if __name__ == "__main__":
    asyncio.run(main())
