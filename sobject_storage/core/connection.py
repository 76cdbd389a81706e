"""Connection configuration and authenticated Salesforce requests.

ConnectionConfig is a Pydantic model for type-safe connection config.
SalesForceConnection manages the OAuth session, resolves relative API paths
against the instance URL, and retries failed requests with exponential
backoff.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import os
from typing import Any
from urllib.parse import urljoin

import pydantic
from pydantic import BaseModel, Field

from sobject_storage.adapters.protocol import RequestOptions, Transport
from sobject_storage.core.enums import CredentialState, HttpMethod
from sobject_storage.core.exceptions import (
    AuthenticationError,
    MissingCredentialsError,
    RequestError,
    ValidationError,
)
from sobject_storage.core.retry import execute_with_retry

_logger = logging.getLogger(__name__)

# Status codes for which a retry cannot succeed.
NON_RETRYABLE_STATUS_CODES = frozenset({403, 404, 410})

# Salesforce sometimes answers 400/500 for conditions that are the server's
# fault. Requests failing with these error codes are retried.
TRANSIENT_ERROR_CODES = ("UNABLE_TO_LOCK_ROW", "QUERY_TIMEOUT")


class ConnectionConfig(BaseModel):
    """Configuration for a Salesforce API user session."""

    login_url: str
    client_id: str
    client_secret: str
    username: str
    # Depending on org security settings, the security token is appended here.
    password: str
    grant_type: str = "password"
    request_retries_max: int = Field(default=8, ge=0)
    request_timeout: float = Field(default=30.0, gt=0)
    auth_retries_max: int = Field(default=3, ge=0)
    retry_backoff_factor: int = Field(default=50, ge=0)

    @classmethod
    def from_env(cls, prefix: str = "SF_") -> ConnectionConfig:
        """Load configuration from environment variables.

        Raises:
            MissingCredentialsError: If a required variable is unset or empty.
        """
        required = {
            "login_url": f"{prefix}LOGIN_URL",
            "client_id": f"{prefix}CLIENT_ID",
            "client_secret": f"{prefix}CLIENT_SECRET",
            "username": f"{prefix}USERNAME",
            "password": f"{prefix}PASSWORD",
        }
        values: dict[str, Any] = {field: os.getenv(var) for field, var in required.items()}
        missing = [var for field, var in required.items() if not values[field]]
        if missing:
            raise MissingCredentialsError(missing)

        optional = {
            "request_retries_max": f"{prefix}REQUEST_RETRIES_MAX",
            "request_timeout": f"{prefix}REQUEST_TIMEOUT",
        }
        for field, var in optional.items():
            value = os.getenv(var)
            if value:
                values[field] = value
        return build_config(**values)


def build_config(**fields: Any) -> ConnectionConfig:
    """Construct a ConnectionConfig, reporting problems as ValidationError."""
    try:
        return ConnectionConfig(**fields)
    except pydantic.ValidationError as e:
        missing = [
            str(err["loc"][0]) for err in e.errors() if err["type"] == "missing" and err["loc"]
        ]
        raise ValidationError(f"Invalid connection configuration: {e}", {"missing": missing}) from e


def should_retry_request(
    error: BaseException,
    current_retry: int,
    *,
    logger: Any = None,
    max_retries: int | None = None,
) -> bool:
    """Classify a failed Salesforce request as retryable or terminal.

    - 403, 404 and 410 are never retried.
    - 400 and 500 are retried only for UNABLE_TO_LOCK_ROW and QUERY_TIMEOUT.
    - Validation errors and an exhausted authentication budget are never retried.
    - Everything else is retried.
    """
    log = logger or _logger
    status_code = getattr(error, "status_code", None)

    if isinstance(error, (AuthenticationError, ValidationError)):
        retryable = False
    elif status_code in NON_RETRYABLE_STATUS_CODES:
        retryable = False
    elif status_code in (400, 500):
        message = str(error)
        transient = next((code for code in TRANSIENT_ERROR_CODES if code in message), None)
        if transient:
            log.info(
                'Received a "%s" error response from Salesforce, so the request will be retried.',
                transient,
            )
        retryable = transient is not None
    else:
        retryable = True

    if retryable:
        log.error(
            "A Salesforce request threw an error and will be retried (retry attempt %d of %s).",
            current_retry + 1,
            max_retries if max_retries is not None else "?",
            extra={"sobject_context": {"error": repr(error), "status_code": status_code}},
        )
    return retryable


class SalesForceConnection:
    """Sends authenticated requests to the Salesforce REST API.

    The connection logs in with the OAuth username-password flow on first
    use and caches the access token and instance URL. A 401 response renews
    the token and replays the request, at most ``auth_retries_max`` times.
    Other failures are retried with exponential backoff according to
    should_retry_request().

    Its interface is the single ``request()`` coroutine, so a replacement
    only has to implement the Connection protocol.
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        *,
        transport: Transport | None = None,
        logger: Any = None,
        **config_fields: Any,
    ) -> None:
        if config is None:
            config = build_config(**config_fields)
        elif config_fields:
            config = config.model_copy(update=config_fields)
        self.config = config
        self._logger = logger or _logger
        if transport is None:
            from sobject_storage.adapters.httpx_transport import HttpxTransport

            transport = HttpxTransport(timeout=config.request_timeout)
        self._transport = transport
        self._token_task: asyncio.Future[str] | None = None
        self._instance_url: str | None = None
        self._state = CredentialState.NO_CREDENTIAL

    @classmethod
    def from_env(cls, prefix: str = "SF_", **kwargs: Any) -> SalesForceConnection:
        """Build a connection from ``<prefix>*`` environment variables."""
        return cls(ConnectionConfig.from_env(prefix), **kwargs)

    @property
    def state(self) -> CredentialState:
        return self._state

    @property
    def instance_url(self) -> str | None:
        return self._instance_url

    @property
    def transport(self) -> Transport:
        return self._transport

    async def request(self, options: RequestOptions) -> Any:
        """Send a request and return the deserialized response body.

        Args:
            options: ``url`` relative to the instance URL, ``method``,
                ``json`` (body or boolean), optional ``headers`` and ``qs``.

        Raises:
            ValidationError: If ``url`` or ``method`` is missing.
            RequestError: When the request fails and is not (or no longer) retried.
            AuthenticationError: When the session cannot be re-established.
        """
        if not isinstance(options, dict) or not options.get("url") or not options.get("method"):
            raise ValidationError("Request options require 'url' and 'method'")
        try:
            HttpMethod(str(options["method"]).lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported request method: {options['method']!r}"
            ) from None

        return await execute_with_retry(
            lambda: self._request(options),
            max_retries=self.config.request_retries_max,
            retry_backoff_factor=self.config.retry_backoff_factor,
            retry_predicate=self._should_retry,
            logger=self._logger,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> SalesForceConnection:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # --- Session ---

    def _current_token_task(self) -> asyncio.Future[str]:
        if self._token_task is None:
            self._renew_access_token()
        assert self._token_task is not None
        return self._token_task

    def _renew_access_token(self) -> None:
        self._logger.info("Renewing Salesforce access token")
        self._state = CredentialState.RENEWING
        self._token_task = asyncio.ensure_future(self._fetch_access_token())

    async def _fetch_access_token(self) -> str:
        form = {
            "grant_type": self.config.grant_type,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "username": self.config.username,
            "password": self.config.password,
        }
        try:
            result = await self._transport.send(
                "post",
                self.config.login_url,
                data=form,
                timeout=self.config.request_timeout,
            )
            if (
                not isinstance(result, dict)
                or not result.get("access_token")
                or not result.get("instance_url")
            ):
                raise AuthenticationError(
                    "Token response did not include an access_token and instance_url",
                    body=result,
                )
        except Exception:
            # Let the next request start a fresh login instead of replaying this failure.
            if self._token_task is asyncio.current_task():
                self._token_task = None
                self._state = CredentialState.NO_CREDENTIAL
            raise

        self._instance_url = result["instance_url"].rstrip("/") + "/"
        self._state = CredentialState.CREDENTIAL_CACHED
        self._logger.info("Salesforce access token renewed")
        return str(result["access_token"])

    # --- Requests ---

    async def _request(self, options: RequestOptions) -> Any:
        auth_retries_remaining = self.config.auth_retries_max

        while True:
            token_task = self._current_token_task()
            try:
                access_token = await token_task
                return await self._send(options, access_token)
            except Exception as error:
                if getattr(error, "status_code", None) != 401:
                    self._logger.error(
                        "An error occurred while executing a Salesforce request: %s",
                        error,
                        extra={"sobject_context": {"options": options, "error": repr(error)}},
                    )
                    raise

                self._logger.warning("Salesforce session invalid or expired.")
                if auth_retries_remaining <= 0:
                    raise AuthenticationError(
                        "Exceeded the maximum number of authentication retries.",
                        status_code=401,
                        body=getattr(error, "body", None),
                    ) from error
                auth_retries_remaining -= 1

                # A concurrent request may already have renewed the token.
                if self._token_task is token_task:
                    self._renew_access_token()

    async def _send(self, options: RequestOptions, access_token: str) -> Any:
        headers = copy.deepcopy(options.get("headers") or {})
        headers["Authorization"] = f"Bearer {access_token}"
        body = options.get("json")
        if isinstance(body, bool):
            body = None

        return await self._transport.send(
            options["method"],
            urljoin(self._instance_url or "", options["url"]),
            json=copy.deepcopy(body),
            headers=headers,
            params=options.get("qs"),
            timeout=self.config.request_timeout,
        )

    def _should_retry(self, error: BaseException, current_retry: int) -> bool:
        return should_retry_request(
            error,
            current_retry,
            logger=self._logger,
            max_retries=self.config.request_retries_max,
        )
