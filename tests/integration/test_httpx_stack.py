"""Integration tests running SObject over SalesForceConnection and httpx.

Salesforce itself is replaced by an httpx.MockTransport that serves the
OAuth token endpoint and the REST API.
"""

from __future__ import annotations

import json

import httpx
import pytest

from sobject_storage import (
    AuthenticationError,
    HttpxTransport,
    LeftInnerJoinRelationship,
    ResourceNotFoundError,
    SalesForceConnection,
    SObject,
)

pytestmark = pytest.mark.integration

LOGIN_URL = "https://login.example.com/services/oauth2/token"
INSTANCE = "https://na1.example.com"


class FakeSalesforce:
    """Minimal Salesforce REST API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.tokens_issued = 0
        self.valid_token: str | None = None
        self.revoked = False
        self.requests: list[httpx.Request] = []
        self.failures: list[httpx.Response] = []
        self.pets = [
            {"attributes": {"type": "Pet__c"}, "Id": f"pet{i}", "Name": f"Pet {i}", "Owner__r": {"Name": "Bob"}}
            for i in range(5)
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == LOGIN_URL:
            self.tokens_issued += 1
            self.valid_token = f"token{self.tokens_issued}"
            return httpx.Response(
                200, json={"access_token": self.valid_token, "instance_url": INSTANCE}
            )

        self.requests.append(request)
        if self.revoked or request.headers.get("Authorization") != f"Bearer {self.valid_token}":
            return httpx.Response(
                401, json=[{"errorCode": "INVALID_SESSION_ID", "message": "Session expired"}]
            )
        if self.failures:
            return self.failures.pop(0)

        path = request.url.path
        if path == "/services/data/v34.0/query":
            if "'nobody'" in request.url.params["q"]:
                return httpx.Response(200, json={"done": True, "totalSize": 0, "records": []})
            return httpx.Response(
                200,
                json={
                    "done": False,
                    "totalSize": 5,
                    "nextRecordsUrl": "/services/data/v34.0/query/01g-3",
                    "records": self.pets[:3],
                },
            )
        if path == "/services/data/v34.0/query/01g-3":
            return httpx.Response(200, json={"done": True, "totalSize": 5, "records": self.pets[3:]})
        if path == "/services/data/v34.0/sobjects/Pet__c/" and request.method == "POST":
            return httpx.Response(201, json={"id": "pet9", "success": True, "errors": []})
        if path.startswith("/services/data/v34.0/sobjects/Pet__c/"):
            return httpx.Response(204)
        if path == "/services/apexrest/Pet__c/bulk":
            payload = json.loads(request.content)
            ids = [{"Id": f"new{i}"} for i, _ in enumerate(payload["entities"])]
            return httpx.Response(200, json={"entities": ids})
        return httpx.Response(404, json=[{"errorCode": "NOT_FOUND", "message": path}])


@pytest.fixture
def salesforce() -> FakeSalesforce:
    return FakeSalesforce()


@pytest.fixture
async def connection(salesforce: FakeSalesforce):
    client = httpx.AsyncClient(transport=httpx.MockTransport(salesforce.handle))
    conn = SalesForceConnection(
        transport=HttpxTransport(client=client),
        login_url=LOGIN_URL,
        client_id="client",
        client_secret="secret",
        username="api@example.com",
        password="pw",
        retry_backoff_factor=0,
        request_retries_max=3,
    )
    async with conn:
        yield conn
    await client.aclose()


@pytest.fixture
def pets(connection: SalesForceConnection) -> SObject:
    return SObject(
        connection,
        object_name="Pet__c",
        property_map={
            "id": "Id",
            "name": "Name",
            "ownerName": "Owner__r.Name",
            "streetAddress": LeftInnerJoinRelationship(
                local_property="Owner__c",
                related_object={
                    "name": "Address__c",
                    "comparison_property": "Person__c",
                    "query_value_property": "StreetAddress__c",
                },
            ),
        },
    )


async def test_query_collects_all_pages(pets: SObject, salesforce: FakeSalesforce) -> None:
    results = await pets.query({"streetAddress": "7601 Interactive Way"})

    assert [pet["id"] for pet in results] == ["pet0", "pet1", "pet2", "pet3", "pet4"]
    assert results[0] == {"id": "pet0", "name": "Pet 0", "ownerName": "Bob"}
    first_query = salesforce.requests[0].url.params["q"]
    assert first_query == (
        "SELECT Id, Name, Owner__r.Name FROM Pet__c WHERE Owner__c IN (SELECT Person__c "
        "FROM Address__c WHERE StreetAddress__c = '7601 Interactive Way') "
        "ORDER BY CreatedDate DESC"
    )
    assert salesforce.tokens_issued == 1


async def test_get_not_found(pets: SObject) -> None:
    with pytest.raises(ResourceNotFoundError, match="Pet__c"):
        await pets.get({"name": "nobody"})


async def test_crud_round_trip(pets: SObject, salesforce: FakeSalesforce) -> None:
    assert await pets.insert({"name": "Rex"}) == {"id": "pet9"}
    assert await pets.update({"id": "pet9", "name": "Rex II"}) == {"id": "pet9"}
    assert await pets.delete({"id": "pet9"}) == {"id": "pet9"}

    methods = [(r.method, r.url.path) for r in salesforce.requests]
    assert methods == [
        ("POST", "/services/data/v34.0/sobjects/Pet__c/"),
        ("PATCH", "/services/data/v34.0/sobjects/Pet__c/pet9"),
        ("DELETE", "/services/data/v34.0/sobjects/Pet__c/pet9"),
    ]
    assert json.loads(salesforce.requests[1].content) == {"Name": "Rex II"}


async def test_insert_many(pets: SObject, salesforce: FakeSalesforce) -> None:
    result = await pets.insert_many([{"name": "Rex"}, {"name": "Fido"}])

    assert result == [{"id": "new0"}, {"id": "new1"}]
    assert json.loads(salesforce.requests[0].content) == {
        "entities": [
            {"Name": "Rex", "attributes": {"type": "Pet__c"}},
            {"Name": "Fido", "attributes": {"type": "Pet__c"}},
        ]
    }


async def test_expired_session_is_renewed(pets: SObject, salesforce: FakeSalesforce) -> None:
    await pets.query({"name": "nobody"})
    salesforce.valid_token = "rotated"

    await pets.query({"name": "nobody"})

    assert salesforce.tokens_issued == 2
    assert [r.headers["Authorization"] for r in salesforce.requests] == [
        "Bearer token1",
        "Bearer token1",
        "Bearer token2",
    ]


async def test_revoked_credentials_fail(pets: SObject, salesforce: FakeSalesforce) -> None:
    salesforce.revoked = True

    with pytest.raises(AuthenticationError):
        await pets.query({"name": "nobody"})
    # Initial login plus three renewals.
    assert salesforce.tokens_issued == 4
    assert len(salesforce.requests) == 4


async def test_row_lock_is_retried(pets: SObject, salesforce: FakeSalesforce) -> None:
    salesforce.failures.append(
        httpx.Response(
            400,
            json=[{"errorCode": "UNABLE_TO_LOCK_ROW", "message": "unable to obtain exclusive access"}],
        )
    )

    assert await pets.update({"id": "pet1", "name": "Rex"}) == {"id": "pet1"}
    assert len(salesforce.requests) == 2


async def test_terminal_error_is_not_retried(pets: SObject, salesforce: FakeSalesforce) -> None:
    salesforce.failures.append(
        httpx.Response(400, json=[{"errorCode": "MALFORMED_QUERY", "message": "bad"}])
    )

    with pytest.raises(Exception, match="MALFORMED_QUERY"):
        await pets.query()
    assert len(salesforce.requests) == 1
