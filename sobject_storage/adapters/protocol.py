"""Connection and transport protocols.

SObject talks to Salesforce only through the Connection protocol, so any
object with a compatible ``request()`` coroutine can replace the default
SalesForceConnection. SalesForceConnection in turn performs HTTP through
the Transport protocol.
"""

from __future__ import annotations

from typing import Any, Protocol, TypedDict, runtime_checkable


class _RequiredRequestOptions(TypedDict):
    url: str
    method: str


class RequestOptions(_RequiredRequestOptions, total=False):
    """Options for one Salesforce REST request.

    ``url`` is relative to the instance URL (e.g.
    ``services/data/v34.0/sobjects/Account/001...``). ``json`` is either the
    request body or a boolean meaning "no body, JSON response expected".
    ``qs`` holds query-string parameters.
    """

    json: Any
    headers: dict[str, str]
    qs: dict[str, Any]


@runtime_checkable
class Connection(Protocol):
    """Authenticated request interface consumed by SObject."""

    async def request(self, options: RequestOptions) -> Any:
        """Send a request and return the parsed response body."""
        ...


@runtime_checkable
class Transport(Protocol):
    """Raw HTTP interface consumed by SalesForceConnection."""

    async def send(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and return the parsed JSON body (None when empty).

        Raises:
            RequestError: On a non-2xx response or a transport failure.
        """
        ...

    async def aclose(self) -> None:
        """Release underlying network resources."""
        ...
