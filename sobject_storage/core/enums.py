"""Enumerations shared across the package."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Category of a package error, carried by every SObjectStorageError."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    NOT_IMPLEMENTED = "not_implemented"
    REMOTE = "remote"
    AUTHENTICATION = "authentication"


class HttpMethod(Enum):
    """HTTP verbs used against the Salesforce REST API."""

    GET = "get"
    POST = "post"
    PATCH = "patch"
    DELETE = "delete"


class CredentialState(Enum):
    """Lifecycle of the bearer credential held by a SalesForceConnection."""

    NO_CREDENTIAL = "no_credential"
    RENEWING = "renewing"
    CREDENTIAL_CACHED = "credential_cached"
