"""SObject repository.

Performs queries and CRUD operations on a Salesforce SObject using friendly
property names, converting records to and from the Salesforce format on
the way through.
"""

from __future__ import annotations

import copy
import functools
import json
import logging
import math
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from sobject_storage.adapters.protocol import Connection, RequestOptions
from sobject_storage.core.exceptions import (
    NotImplementedError,  # noqa: A004
    ResourceNotFoundError,
    ValidationError,
    require,
)
from sobject_storage.core.soql import build_comparison, build_predicate, build_select_statement
from sobject_storage.mapping.names import convert_property_names
from sobject_storage.mapping.protocol import PropertyMapProvider
from sobject_storage.mapping.property_map import (
    PropertyMap,
    RawPropertyMap,
    basic_name_map,
    join_relationships,
    normalize_property_map,
    reverse_name_map,
)

DEFAULT_API_VERSION = "34.0"

Entity = dict[str, Any]
NotFoundErrorFactory = Callable[[str, Mapping[str, Any]], Exception]
F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

_logger = logging.getLogger(__name__)


def _default_not_found_error(message: str, context: Mapping[str, Any]) -> Exception:
    return ResourceNotFoundError(message, context)


def _parse_api_version(api_version: Any) -> str:
    """Normalize ``31``, ``"31"`` or ``31.0`` to ``"31.0"``."""
    if isinstance(api_version, bool):
        raise ValidationError(f"Provided version number '{api_version}' is not a number.")
    try:
        version = float(api_version)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Provided version number '{api_version}' is not a number."
        ) from None
    if not math.isfinite(version):
        raise ValidationError(f"Provided version number '{api_version}' is not a number.")
    return f"{version:.1f}"


def _describe(value: Any) -> str:
    try:
        return json.dumps(value, default=str, sort_keys=True)
    except (TypeError, ValueError):
        return repr(value)


def _require_list(entities: Any) -> list[Any]:
    if not isinstance(entities, list):
        raise ValidationError(
            "First argument must be a list, but instead received a "
            f"{type(entities).__name__}: {_describe(entities)}"
        )
    return entities


def _pick_id(response: Any) -> dict[str, Any]:
    if isinstance(response, Mapping) and "id" in response:
        return {"id": response["id"]}
    return {}


def _has_valid_id(entity: Any) -> bool:
    return isinstance(entity, Mapping) and isinstance(entity.get("id"), str) and bool(entity["id"])


def _logs_failures(operation: str, argument: str) -> Callable[[F], F]:
    """Route any exception escaping *operation* through SObject._log_failure.

    The first argument of the wrapped method is reported under *argument*
    in the log context.
    """

    def decorator(method: F) -> F:
        @functools.wraps(method)
        async def wrapper(self: SObject, *args: Any, **kwargs: Any) -> Any:
            try:
                return await method(self, *args, **kwargs)
            except Exception as error:
                value = args[0] if args else kwargs.get(argument)
                self._log_failure(error, operation, {argument: value})
                raise

        return wrapper  # type: ignore[return-value]

    return decorator


class SObject:
    """Friendly-name access to a single Salesforce SObject type.

    Give it the SObject's name (e.g. ``Account``) and a property map defining
    friendly names for the properties of interest
    (e.g. ``{"primaryContactName": "Primary_Contact__r.Name"}``). Queries and
    writes then use the friendly names and this class converts to and from
    the Salesforce format.

    ``object_name`` and ``property_map`` can be passed to the constructor or
    set as class attributes on a subclass. For a property map that must be
    computed asynchronously (e.g. gated by a feature flag, since querying a
    field that is not deployed yet fails), pass ``property_map_provider``
    or override get_property_map().

    Args:
        connection: Object implementing the Connection protocol, usually a
            SalesForceConnection.
        object_name: SObject name including prefixes/suffixes (``Pet__c``).
        property_map: Friendly name -> Salesforce name or relationship.
        property_map_provider: Async callable returning a property map.
        api_version: e.g. ``"30.0"``, ``31``, ``32.0``. Defaults to 34.0.
        logger: Logger used for failure reporting.
        not_found_error: Factory ``(message, context) -> Exception`` used by
            get() when nothing matches.
        bulk_url_path: Path of the bulk endpoint used by the ``*_many``
            methods. Defaults to ``services/apexrest/<object_name>/bulk``.
    """

    object_name: str | None = None
    property_map: RawPropertyMap | None = None

    def __init__(
        self,
        connection: Connection,
        *,
        object_name: str | None = None,
        property_map: RawPropertyMap | None = None,
        property_map_provider: PropertyMapProvider | None = None,
        api_version: str | int | float | None = None,
        logger: Any = None,
        not_found_error: NotFoundErrorFactory | None = None,
        bulk_url_path: str | None = None,
    ) -> None:
        if connection is None:
            raise ValidationError("connection parameter is required.", {"missing": ["connection"]})
        self._connection = connection
        if object_name is not None:
            self.object_name = object_name
        if property_map is not None:
            self.property_map = property_map
        self._property_map_provider = property_map_provider
        self._logger = logger or _logger
        self._not_found_error = not_found_error or _default_not_found_error
        self._bulk_url_path = bulk_url_path
        self._api_version = (
            DEFAULT_API_VERSION if api_version is None else _parse_api_version(api_version)
        )

    @property
    def api_version(self) -> str:
        return self._api_version

    # --- Property maps ---

    def get_object_name(self) -> str:
        """Return the SObject name, or raise NotImplementedError if none was supplied."""
        if not self.object_name:
            raise NotImplementedError(
                f"{type(self).__name__} does not define an object_name"
            )
        return self.object_name

    async def get_property_map(self) -> PropertyMap:
        """Return a freshly normalized property map for one operation."""
        if self._property_map_provider is not None:
            raw = await self._property_map_provider()
        elif self.property_map is not None:
            raw = self.property_map
        else:
            raise NotImplementedError(f"{type(self).__name__} does not define a property_map")
        return normalize_property_map(raw)

    async def get_reverse_property_map(self) -> dict[str, str]:
        """Salesforce name -> friendly name; relationships are omitted."""
        return reverse_name_map(await self._load_property_map())

    async def get_property_names(self) -> list[str]:
        """Sorted friendly property names."""
        return sorted(await self._load_property_map())

    async def get_salesforce_property_names(self) -> list[str]:
        """Sorted, de-duplicated Salesforce property names."""
        return sorted(await self.get_reverse_property_map())

    # --- Conversion ---

    async def convert_to_salesforce_format(
        self,
        entity: Mapping[str, Any],
        *,
        include_attributes: bool = False,
        include_nested_properties: bool = False,
        property_map: PropertyMap | None = None,
    ) -> Entity:
        """Convert a friendly entity to the Salesforce format.

        Properties that are not in the property map are removed, as are
        nested (dot-delimited) properties unless *include_nested_properties*
        is set. *include_attributes* adds the ``attributes`` object naming
        the SObject type, which Apex needs to deserialize a native SObject.
        """
        if not isinstance(entity, Mapping):
            raise ValidationError(
                f"entity must be a mapping, got {type(entity).__name__}: {_describe(entity)}"
            )
        if property_map is None:
            property_map = await self._load_property_map()

        reverse_map = reverse_name_map(property_map)
        converted = convert_property_names(entity, basic_name_map(property_map))
        result = {
            name: value
            for name, value in converted.items()
            if name in reverse_map and (include_nested_properties or "." not in name)
        }
        if include_attributes:
            result["attributes"] = {"type": self.get_object_name()}
        return result

    async def convert_from_salesforce_format(
        self,
        entity: Mapping[str, Any],
        *,
        property_map: PropertyMap | None = None,
    ) -> Entity:
        """Convert a Salesforce record to the friendly format.

        Only properties named in the property map are kept.
        """
        if property_map is None:
            property_map = await self._load_property_map()

        converted = convert_property_names(entity, reverse_name_map(property_map))
        return {name: converted[name] for name in sorted(property_map) if name in converted}

    async def convert_array_to_salesforce_format(
        self, entities: list[Mapping[str, Any]]
    ) -> list[Entity]:
        """Convert friendly entities, each including the ``attributes`` object."""
        _require_list(entities)
        property_map = await self._load_property_map()
        return [
            await self.convert_to_salesforce_format(
                entity, include_attributes=True, property_map=property_map
            )
            for entity in entities
        ]

    async def convert_array_from_salesforce_format(
        self,
        entities: list[Mapping[str, Any]],
        *,
        property_map: PropertyMap | None = None,
    ) -> list[Entity]:
        """Convert Salesforce records to friendly entities."""
        _require_list(entities)
        if property_map is None:
            property_map = await self._load_property_map()
        return [
            await self.convert_from_salesforce_format(entity, property_map=property_map)
            for entity in entities
        ]

    # --- Queries ---

    async def build_query_statement(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        property_map: PropertyMap | None = None,
    ) -> str:
        """Build the SOQL statement for the given friendly query options."""
        if property_map is None:
            property_map = await self._load_property_map()
        predicate = await self._build_query_predicate(options, property_map)
        return build_select_statement(
            sorted(reverse_name_map(property_map)),
            self.get_object_name(),
            predicate,
        )

    async def execute_query(self, statement: str) -> list[Entity]:
        """Run a SOQL statement and return every record in the Salesforce format.

        Salesforce truncates results (2000 records by default); the
        remaining pages are fetched through ``nextRecordsUrl``.
        """
        response = await self._request(
            {
                "url": self._query_url_path,
                "method": "get",
                "json": True,
                "qs": {"q": statement},
            }
        )
        return await self._get_remaining_query_records(response)

    @_logs_failures("get", "options")
    async def get(self, options: Mapping[str, Any]) -> Entity:
        """Fetch the first entity matching all of the given properties.

        A query is used instead of a fetch by ID so records can be looked up
        by any property and nested properties are included.

        Raises:
            ValidationError: If no known property has a value.
            ResourceNotFoundError: If nothing matches (or whatever the
                ``not_found_error`` factory builds).
        """
        property_map = await self._load_property_map()
        property_names = sorted(property_map)
        if not isinstance(options, Mapping) or not any(
            options.get(name) is not None for name in property_names
        ):
            raise ValidationError(
                "At least one of the following properties is required: "
                + ", ".join(property_names),
                {"options": options},
            )

        results = await self._query(options, property_map)
        if results:
            return results[0]

        object_name = self.get_object_name()
        raise self._not_found_error(
            f"No {object_name} found for the properties: {_describe(options)}",
            {"object_name": object_name, "options": dict(options)},
        )

    @_logs_failures("query", "options")
    async def query(self, options: Mapping[str, Any] | None = None) -> list[Entity]:
        """Return all entities matching the given properties (all entities if none)."""
        return await self._query(options)

    # --- Writes ---

    def get_insert_request_options(self, entity: Entity) -> RequestOptions:
        """Request options for insert(); override to add headers.

        Example, keeping Salesforce from assigning new leads to the default user:

            def get_insert_request_options(self, entity):
                options = super().get_insert_request_options(entity)
                options.setdefault("headers", {})["Sforce-Auto-Assign"] = "FALSE"
                return options
        """
        return {"url": self._object_url_path, "method": "post", "json": entity}

    @_logs_failures("insert", "entity")
    async def insert(self, entity: Mapping[str, Any]) -> dict[str, Any]:
        """Insert an entity and return ``{"id": <new id>}``."""
        formatted = await self.convert_to_salesforce_format(entity)
        response = await self._request(self.get_insert_request_options(formatted))
        return _pick_id(response)

    @_logs_failures("update", "entity")
    async def update(self, entity: Mapping[str, Any]) -> dict[str, Any]:
        """Patch an existing entity with only the properties provided.

        ``entity["id"]`` is required. Returns ``{"id": ...}``.
        """
        require(entity, ["id"], "entity")
        payload = copy.deepcopy(dict(entity))
        # The data services API rejects an Id in the request body.
        entity_id = payload.pop("id")
        result = {"id": entity_id}

        if not payload:
            return result

        formatted = await self.convert_to_salesforce_format(payload)
        await self._request(
            {"url": f"{self._object_url_path}{entity_id}", "method": "patch", "json": formatted}
        )
        return result

    @_logs_failures("delete", "options")
    async def delete(self, options: Mapping[str, Any]) -> dict[str, Any]:
        """Delete the entity with ``options["id"]`` and return ``{"id": ...}``."""
        require(options, ["id"])
        entity_id = options["id"]
        await self._request(
            {"url": f"{self._object_url_path}{entity_id}", "method": "delete", "json": True}
        )
        return {"id": entity_id}

    # --- Bulk writes ---

    @_logs_failures("insert_many", "entities")
    async def insert_many(self, entities: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Insert all entities in one bulk request; returns ids in input order."""
        if not _require_list(entities):
            return []
        formatted = await self.convert_array_to_salesforce_format(entities)
        response = await self._request(
            {"url": self.bulk_url_path, "method": "post", "json": {"entities": formatted}}
        )
        return self._ids_from_bulk_entities(response)

    @_logs_failures("update_many", "entities")
    async def update_many(self, entities: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Patch all entities in one bulk request. Every entity needs an ``id``."""
        if not _require_list(entities):
            return []
        invalid = [index for index, entity in enumerate(entities) if not _has_valid_id(entity)]
        if invalid:
            raise ValidationError(
                f"Entities at positions {invalid} do not have a valid id",
                {"invalid_positions": invalid},
            )
        formatted = await self.convert_array_to_salesforce_format(entities)
        response = await self._request(
            {"url": self.bulk_url_path, "method": "patch", "json": {"entities": formatted}}
        )
        return self._ids_from_bulk_entities(response)

    @_logs_failures("delete_many", "entities")
    async def delete_many(self, entities: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """Delete all entities in one bulk request.

        Entities without a non-empty string ``id`` reject the whole batch
        before anything is sent.
        """
        if not _require_list(entities):
            return []

        ids: list[str] = []
        invalid: list[int] = []
        for index, entity in enumerate(entities):
            if _has_valid_id(entity):
                ids.append(entity["id"])
            else:
                invalid.append(index)
        if invalid:
            raise ValidationError(
                f"Entities at positions {invalid} do not have a valid id",
                {"invalid_positions": invalid},
            )

        response = await self._request(
            {"url": self.bulk_url_path, "method": "delete", "json": {"ids": ids}}
        )
        results = response.get("results") if isinstance(response, Mapping) else None
        return [{"id": entity_id} for entity_id in results or []]

    # --- URLs ---

    @property
    def bulk_url_path(self) -> str:
        if self._bulk_url_path:
            return self._bulk_url_path
        return f"services/apexrest/{self.get_object_name()}/bulk"

    @property
    def _data_services_url_path(self) -> str:
        return f"services/data/v{self._api_version}/"

    @property
    def _object_url_path(self) -> str:
        return f"{self._data_services_url_path}sobjects/{self.get_object_name()}/"

    @property
    def _query_url_path(self) -> str:
        return f"{self._data_services_url_path}query"

    # --- Internals ---

    async def _load_property_map(self) -> PropertyMap:
        # Overrides of get_property_map() may return string shorthands.
        return normalize_property_map(await self.get_property_map())

    async def _query(
        self,
        options: Mapping[str, Any] | None,
        property_map: PropertyMap | None = None,
    ) -> list[Entity]:
        # One map per operation; a provider may answer differently next time.
        if property_map is None:
            property_map = await self._load_property_map()
        statement = await self.build_query_statement(options, property_map=property_map)
        records = await self.execute_query(statement)
        return await self.convert_array_from_salesforce_format(records, property_map=property_map)

    async def _build_query_predicate(
        self,
        options: Mapping[str, Any] | None,
        property_map: PropertyMap,
    ) -> str:
        if not options:
            return ""
        if not isinstance(options, Mapping):
            raise ValidationError(
                f"query options must be a mapping, got {type(options).__name__}"
            )

        # Basic comparisons are sorted so the WHERE clause is deterministic.
        basic_options = await self.convert_to_salesforce_format(
            options, include_nested_properties=True, property_map=property_map
        )
        comparisons = [
            build_comparison(name, basic_options[name]) for name in sorted(basic_options)
        ]

        relationships = join_relationships(property_map)
        comparisons.extend(
            relationships[name].build_comparison(value)
            for name, value in options.items()
            if name in relationships
        )
        return build_predicate(comparisons)

    async def _get_remaining_query_records(self, response: Any) -> list[Entity]:
        if not isinstance(response, Mapping):
            return []
        records = list(response.get("records") or [])

        # Require both an explicit done=False and a cursor so a malformed
        # response can never cause endless polling.
        while response.get("done") is False and response.get("nextRecordsUrl"):
            response = await self._request(
                {"url": response["nextRecordsUrl"], "method": "get", "json": True}
            )
            if not isinstance(response, Mapping):
                break
            records.extend(response.get("records") or [])
        return records

    @staticmethod
    def _ids_from_bulk_entities(response: Any) -> list[dict[str, Any]]:
        entities = response.get("entities") if isinstance(response, Mapping) else None
        return [
            {"id": entity.get("id", entity.get("Id"))}
            for entity in entities or []
            if isinstance(entity, Mapping)
        ]

    async def _request(self, options: RequestOptions) -> Any:
        return await self._connection.request(options)

    def _log_failure(self, error: Exception, operation: str, data: Mapping[str, Any]) -> None:
        # A fresh context per call; the error itself is never modified.
        context = {
            "sobject_type": self.object_name,
            "method": operation,
            **data,
            "error": repr(error),
        }
        self._logger.error(
            "Error in Salesforce request: %s", error, extra={"sobject_context": context}
        )
