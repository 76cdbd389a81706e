"""sobject-storage - friendly-name CRUD and SOQL queries for Salesforce SObjects."""

from __future__ import annotations

import logging

from sobject_storage.adapters.httpx_transport import HttpxTransport
from sobject_storage.adapters.protocol import Connection, RequestOptions, Transport
from sobject_storage.core.connection import (
    ConnectionConfig,
    SalesForceConnection,
    should_retry_request,
)
from sobject_storage.core.enums import CredentialState, ErrorKind, HttpMethod
from sobject_storage.core.exceptions import (
    AuthenticationError,
    MissingCredentialsError,
    NotImplementedError,  # noqa: A004
    RequestError,
    ResourceNotFoundError,
    SObjectStorageError,
    ValidationError,
)
from sobject_storage.core.retry import execute_with_retry
from sobject_storage.core.soql import build_comparison
from sobject_storage.mapping import (
    BasicProperty,
    LeftInnerJoinRelationship,
    PropertyMapProvider,
    RelatedObject,
    convert_property_names,
    flatten,
)
from sobject_storage.repository import SObject

# Silent unless the application configures logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Repository
    "SObject",
    # Connection
    "ConnectionConfig",
    "SalesForceConnection",
    "should_retry_request",
    "Connection",
    "Transport",
    "RequestOptions",
    "HttpxTransport",
    # Mapping
    "BasicProperty",
    "LeftInnerJoinRelationship",
    "RelatedObject",
    "PropertyMapProvider",
    "convert_property_names",
    "flatten",
    "build_comparison",
    # Retry
    "execute_with_retry",
    # Enums
    "CredentialState",
    "ErrorKind",
    "HttpMethod",
    # Exceptions
    "SObjectStorageError",
    "ValidationError",
    "MissingCredentialsError",
    "ResourceNotFoundError",
    "NotImplementedError",
    "RequestError",
    "AuthenticationError",
]
