"""httpx-based transport for the Salesforce REST API."""

from __future__ import annotations

import json as jsonlib
from typing import Any

import httpx

from sobject_storage.core.exceptions import RequestError


def _error_message(response: httpx.Response, body: Any) -> str:
    """Build a readable message from a Salesforce error response.

    Salesforce returns a list of ``{"errorCode": ..., "message": ...}``
    objects; the OAuth endpoint returns ``{"error": ..., "error_description": ...}``.
    """
    if isinstance(body, list):
        parts = [
            f"{item.get('errorCode', 'UNKNOWN_ERROR')}: {item.get('message', '')}".strip()
            for item in body
            if isinstance(item, dict)
        ]
        if parts:
            return "; ".join(parts)
    if isinstance(body, dict) and "error" in body:
        return f"{body['error']}: {body.get('error_description', '')}".strip()
    return response.text or response.reason_phrase


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (jsonlib.JSONDecodeError, UnicodeDecodeError):
        return response.text


class HttpxTransport:
    """Asynchronous transport using an httpx.AsyncClient.

    The client is created on first use unless one is supplied, in which case
    its lifecycle stays with the caller.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 30.0) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

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
        """Send a request and return the parsed JSON body."""
        try:
            response = await self.client.request(
                method.upper(),
                url,
                json=json,
                data=data,
                headers=headers,
                params=params,
                timeout=timeout if timeout is not None else self._timeout,
            )
        except httpx.HTTPError as e:
            raise RequestError(f"{type(e).__name__}: {e}", context={"url": url}) from e

        body = _parse_body(response)
        if response.is_error:
            raise RequestError(
                _error_message(response, body),
                status_code=response.status_code,
                body=body,
                context={"url": url, "method": method},
            )
        return body

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
