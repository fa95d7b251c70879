"""Document emitter: serializes endpoint and schema records into one OpenAPI fragment."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable

import yaml

from apspec.errors import DuplicateEndpointError
from apspec.scanner.types import DeclaredResponse, EndpointRecord, HttpVerb
from apspec.schema.types import SchemaTypeRecord

__all__ = [
    "DocumentEmitter",
    "OPENAPI_VERSION",
    "derive_operation_id",
    "derive_summary",
    "derive_tag",
    "status_description",
]

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.1.0"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
PROBLEM_CONTENT_TYPE = "application/problem+json"

_SCHEMA_REF = "#/components/schemas/{}"

_ACTIONS = {
    HttpVerb.GET: "Get",
    HttpVerb.POST: "Create",
    HttpVerb.PUT: "Update",
    HttpVerb.DELETE: "Delete",
    HttpVerb.PATCH: "Patch",
}

_STATUS_DESCRIPTIONS = {
    200: "Successful response",
    201: "Created",
    204: "No Content",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}

_DEFAULT_ERROR_RESPONSES = {
    400: "#/components/responses/BadRequest",
    401: "#/components/responses/Unauthorized",
    500: "#/components/responses/InternalServerError",
}

_WORD_SPLIT = re.compile(r"[^0-9A-Za-z]+")


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def status_description(status: int) -> str:
    """Standard reason phrase for a declared response status."""
    return _STATUS_DESCRIPTIONS.get(status, f"Response {status}")


def _location(endpoint: EndpointRecord) -> str:
    return f"{endpoint.source_file or '<unknown>'}:{endpoint.line}"


def derive_operation_id(verb: HttpVerb, path: str) -> str:
    """``GET /v1/items/{id}`` -> ``getV1ItemsById``."""
    parts = [verb.value.lower()]
    for segment in path.strip("/").split("/"):
        if not segment:
            continue
        if segment.startswith("{") and segment.endswith("}"):
            parts.append("By")
            segment = segment[1:-1]
        parts.extend(_capitalize(w) for w in _WORD_SPLIT.split(segment) if w)
    return "".join(parts)


def derive_summary(verb: HttpVerb, response_type_name: str) -> str:
    resource = response_type_name.replace("Response", "").replace("Command", "")
    return f"{_ACTIONS[verb]} {resource}".strip() or _ACTIONS[verb]


def derive_tag(path: str) -> str:
    """First non-parameter path segment, capitalized."""
    for segment in path.strip("/").split("/"):
        if segment and not segment.startswith("{"):
            return _capitalize(segment)
    return "Default"


class DocumentEmitter:
    """Deterministic OpenAPI fragment writer.

    Paths are sorted lexicographically, verbs within a path are sorted, and
    component schemas are sorted by name, so identical input always yields
    byte-identical output.
    """

    def __init__(self, title: str = "API", version: str = "1.0.0") -> None:
        self._title = title
        self._version = version

    def build(
        self,
        endpoints: Iterable[EndpointRecord],
        schemas: Iterable[SchemaTypeRecord],
    ) -> dict[str, Any]:
        """Build the fragment as an ordered mapping."""
        schema_list = sorted(schemas, key=lambda s: s.name)
        by_name = {s.name: s for s in schema_list}

        grouped: dict[str, list[EndpointRecord]] = {}
        seen: dict[tuple[HttpVerb, str], EndpointRecord] = {}
        for endpoint in endpoints:
            slot = (endpoint.verb, endpoint.path)
            if slot in seen:
                raise DuplicateEndpointError(
                    verb=endpoint.verb.value,
                    path=endpoint.path,
                    first=_location(seen[slot]),
                    second=_location(endpoint),
                )
            seen[slot] = endpoint
            grouped.setdefault(endpoint.path, []).append(endpoint)

        paths: dict[str, Any] = {}
        for path in sorted(grouped):
            operations: dict[str, Any] = {}
            for endpoint in sorted(grouped[path], key=lambda e: e.verb.value):
                operations[endpoint.verb.value.lower()] = self._operation(endpoint, by_name)
            paths[path] = operations

        return {
            "openapi": OPENAPI_VERSION,
            "info": {"title": self._title, "version": self._version},
            "paths": paths,
            "components": {"schemas": {s.name: self._schema(s) for s in schema_list}},
        }

    def emit(
        self,
        endpoints: Iterable[EndpointRecord],
        schemas: Iterable[SchemaTypeRecord],
    ) -> str:
        """Serialize the fragment to YAML text."""
        document = self.build(endpoints, schemas)
        logger.debug(
            "Emitting fragment '%s' with %d path(s) and %d schema(s)",
            self._title,
            len(document["paths"]),
            len(document["components"]["schemas"]),
        )
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True, default_flow_style=False)

    # ----- Operations -----

    def _operation(self, endpoint: EndpointRecord, schemas: dict[str, SchemaTypeRecord]) -> dict[str, Any]:
        operation: dict[str, Any] = {
            "operationId": endpoint.operation_id or derive_operation_id(endpoint.verb, endpoint.path),
            "summary": endpoint.summary or derive_summary(endpoint.verb, endpoint.response_type_name),
        }
        if endpoint.description is not None:
            operation["description"] = endpoint.description
        operation["tags"] = list(endpoint.tags) if endpoint.tags else [derive_tag(endpoint.path)]
        operation["security"] = [{"JwtBearer": []}] if endpoint.requires_auth else []

        parameters = [
            {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}
            for name in endpoint.path_parameters
        ]
        if parameters:
            operation["parameters"] = parameters

        if endpoint.verb.has_body:
            content_type = endpoint.accepts_content_type
            if content_type == FORM_CONTENT_TYPE:
                body_schema = self._form_schema(endpoint, schemas.get(endpoint.request_type_name))
            else:
                body_schema = {"$ref": _SCHEMA_REF.format(endpoint.request_type_name)}
            operation["requestBody"] = {
                "required": True,
                "content": {content_type: {"schema": body_schema}},
            }

        operation["responses"] = self._responses(endpoint)
        return operation

    def _form_schema(self, endpoint: EndpointRecord, record: SchemaTypeRecord | None) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "object"}
        if record is None or not record.fields:
            schema["description"] = f"{endpoint.request_type_name} form fields"
            return schema
        schema["properties"] = {f.wire_name: {"type": "string"} for f in record.fields}
        required = [f.wire_name for f in record.fields if not f.nullable]
        if required:
            schema["required"] = required
        return schema

    def _responses(self, endpoint: EndpointRecord) -> dict[str, Any]:
        declared = {d.status: d for d in endpoint.declared_responses}
        responses: dict[int, Any] = {}

        if 200 not in declared:
            responses[200] = {
                "description": status_description(200),
                "content": {
                    endpoint.produces_content_type: {
                        "schema": {"$ref": _SCHEMA_REF.format(endpoint.response_type_name)}
                    }
                },
            }
        for status, response in declared.items():
            responses[status] = self._declared_response(response)
        for status, ref in _DEFAULT_ERROR_RESPONSES.items():
            if status not in declared:
                responses[status] = {"$ref": ref}

        return {str(status): responses[status] for status in sorted(responses)}

    def _declared_response(self, response: DeclaredResponse) -> dict[str, Any]:
        body: dict[str, Any] = {"description": status_description(response.status)}
        if response.response_type is not None:
            body["content"] = {
                response.content_type: {"schema": {"$ref": _SCHEMA_REF.format(response.response_type.name)}}
            }
        elif response.content_type == PROBLEM_CONTENT_TYPE:
            body["content"] = {response.content_type: {"schema": {"type": "object"}}}
        return body

    # ----- Components -----

    def _schema(self, record: SchemaTypeRecord) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "object"}
        if not record.resolved or not record.fields:
            schema["description"] = f"{record.role.value.capitalize()} type - properties to be documented"
            return schema
        schema["properties"] = {f.wire_name: f.to_openapi() for f in record.fields}
        required = [f.wire_name for f in record.fields if f.required]
        if required:
            schema["required"] = required
        return schema
