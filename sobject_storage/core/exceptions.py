"""sobject-storage exception hierarchy.

Every error raised by the package derives from SObjectStorageError and
carries an ErrorKind plus an optional structured context mapping. Raw
httpx exceptions are never exposed to callers.
"""

from __future__ import annotations

import builtins
from collections.abc import Mapping
from typing import Any

from sobject_storage.core.enums import ErrorKind


class SObjectStorageError(Exception):
    """Base exception for all sobject-storage errors."""

    kind: ErrorKind = ErrorKind.REMOTE

    def __init__(self, message: str = "", context: Mapping[str, Any] | None = None) -> None:
        self.message = message
        self.context: dict[str, Any] = dict(context or {})
        super().__init__(message)


# --- Caller input ---


class ValidationError(SObjectStorageError):
    """Raised when a caller supplies missing or malformed input."""

    kind = ErrorKind.VALIDATION


class MissingCredentialsError(ValidationError):
    """Raised when required connection settings are not present."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            "Missing required connection settings: " + ", ".join(missing),
            {"missing": missing},
        )


def require(values: Mapping[str, Any] | None, names: list[str], label: str = "options") -> None:
    """Raise ValidationError unless every name in *names* has a non-None value."""
    if not isinstance(values, Mapping):
        raise ValidationError(f"{label} must be a mapping, got {type(values).__name__}")
    missing = [name for name in names if values.get(name) is None]
    if missing:
        raise ValidationError(
            f"Missing required {label} parameter(s): {', '.join(missing)}",
            {"missing": missing},
        )


# --- Lookup ---


class ResourceNotFoundError(SObjectStorageError):
    """Raised by SObject.get() when no record matches the search options.

    Use SObject.query() instead when zero results are acceptable.
    """

    kind = ErrorKind.NOT_FOUND


# --- Configuration ---


class NotImplementedError(SObjectStorageError, builtins.NotImplementedError):  # noqa: A001
    """Raised when an SObject's object name or property map was never supplied."""

    kind = ErrorKind.NOT_IMPLEMENTED


# --- Remote ---


class RequestError(SObjectStorageError):
    """Raised for a failed HTTP exchange with Salesforce.

    ``status_code`` is None when the request never produced a response
    (connection failure, timeout).
    """

    kind = ErrorKind.REMOTE

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message, context)

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code} - {self.message}"


class AuthenticationError(RequestError):
    """Raised when a session cannot be (re-)established."""

    kind = ErrorKind.AUTHENTICATION
