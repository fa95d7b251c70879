"""Tests for DocumentEmitter output and derivation rules."""

from __future__ import annotations

from typing import Any

import pytest
import yaml

from apspec.emitter import DocumentEmitter, derive_operation_id, derive_summary, derive_tag, status_description
from apspec.errors import DuplicateEndpointError
from apspec.scanner.forest import SourceForest
from apspec.scanner.oracle import SourceOracle
from apspec.scanner.scanner import EndpointScanner
from apspec.scanner.types import DeclaredResponse, EndpointRecord, HttpVerb
from apspec.schema.assembler import SchemaAssembler
from apspec.schema.types import (
    FieldRecord,
    PrimitiveShape,
    ResolvedSchema,
    SchemaRole,
    TypeHandle,
    UnresolvedSchema,
)


def _endpoint(verb: HttpVerb = HttpVerb.GET, path: str = "/v1/items/{id}", **kwargs: Any) -> EndpointRecord:
    kwargs.setdefault("request_type", TypeHandle("GetItemCommand"))
    kwargs.setdefault("response_type", TypeHandle("GetItemResponse"))
    return EndpointRecord(verb=verb, path=path, **kwargs)


@pytest.fixture
def items_document(items_forest: SourceForest) -> dict[str, Any]:
    oracle = SourceOracle(items_forest)
    endpoints = EndpointScanner(items_forest, oracle=oracle).scan()
    schemas = SchemaAssembler(oracle=oracle, forest=items_forest).assemble(endpoints)
    return yaml.safe_load(DocumentEmitter(title="Items", version="2.0.0").emit(endpoints, schemas))


# === Derivations ===


class TestDerivations:
    @pytest.mark.parametrize(
        ("verb", "path", "expected"),
        [
            (HttpVerb.GET, "/v1/items/{id}", "getV1ItemsById"),
            (HttpVerb.POST, "/v1/items", "postV1Items"),
            (HttpVerb.DELETE, "/v1/order-lines/{line_id}", "deleteV1OrderLinesByLineId"),
            (HttpVerb.GET, "/", "get"),
        ],
    )
    def test_operation_id(self, verb: HttpVerb, path: str, expected: str) -> None:
        assert derive_operation_id(verb, path) == expected

    @pytest.mark.parametrize(
        ("verb", "response", "expected"),
        [
            (HttpVerb.GET, "GetItemResponse", "Get GetItem"),
            (HttpVerb.POST, "CreateItemResponse", "Create CreateItem"),
            (HttpVerb.PUT, "ItemCommand", "Update Item"),
            (HttpVerb.PATCH, "Patched", "Patch Patched"),
            (HttpVerb.DELETE, "Response", "Delete"),
        ],
    )
    def test_summary(self, verb: HttpVerb, response: str, expected: str) -> None:
        assert derive_summary(verb, response) == expected

    def test_tag(self) -> None:
        assert derive_tag("/v1/items") == "V1"
        assert derive_tag("/{tenant}/items") == "Items"
        assert derive_tag("/{id}") == "Default"

    def test_status_descriptions(self) -> None:
        assert status_description(404) == "Not Found"
        assert status_description(422) == "Unprocessable Entity"
        assert status_description(418) == "Response 418"


# === Operations ===


class TestOperations:
    def test_get_with_empty_types(self) -> None:
        """GET /v1/items/{id} with zero-field types and no metadata."""
        endpoint = _endpoint()
        schemas = [
            ResolvedSchema("GetItemCommand", SchemaRole.REQUEST),
            ResolvedSchema("GetItemResponse", SchemaRole.RESPONSE),
        ]
        document = DocumentEmitter().build([endpoint], schemas)
        operation = document["paths"]["/v1/items/{id}"]["get"]
        assert list(document["paths"]["/v1/items/{id}"]) == ["get"]
        assert operation["operationId"] == "getV1ItemsById"
        assert operation["summary"] == "Get GetItem"
        assert operation["tags"] == ["V1"]
        assert operation["security"] == [{"JwtBearer": []}]
        assert operation["parameters"] == [
            {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}
        ]
        assert "requestBody" not in operation
        assert operation["responses"]["400"] == {"$ref": "#/components/responses/BadRequest"}
        assert operation["responses"]["401"] == {"$ref": "#/components/responses/Unauthorized"}
        assert operation["responses"]["500"] == {"$ref": "#/components/responses/InternalServerError"}
        assert document["components"]["schemas"]["GetItemCommand"] == {
            "type": "object",
            "description": "Request type - properties to be documented",
        }

    def test_anonymous_security_is_empty_list(self) -> None:
        document = DocumentEmitter().build([_endpoint(requires_auth=False)], [])
        assert document["paths"]["/v1/items/{id}"]["get"]["security"] == []

    def test_request_body_for_write_verbs(self) -> None:
        document = DocumentEmitter().build([_endpoint(HttpVerb.PUT, accepts_content_type="application/xml")], [])
        body = document["paths"]["/v1/items/{id}"]["put"]["requestBody"]
        assert body == {
            "required": True,
            "content": {"application/xml": {"schema": {"$ref": "#/components/schemas/GetItemCommand"}}},
        }

    def test_form_encoded_request_is_inline(self) -> None:
        fields = (
            FieldRecord("username", "username", PrimitiveShape("string")),
            FieldRecord("remember_me", "rememberMe", PrimitiveShape("boolean"), nullable=True),
            FieldRecord("attempts", "attempts", PrimitiveShape("integer", "int32"), has_default=True),
        )
        endpoint = _endpoint(
            HttpVerb.POST,
            "/v1/token",
            request_type=TypeHandle("LoginCommand"),
            accepts_content_type="application/x-www-form-urlencoded",
        )
        document = DocumentEmitter().build([endpoint], [ResolvedSchema("LoginCommand", SchemaRole.REQUEST, fields)])
        schema = document["paths"]["/v1/token"]["post"]["requestBody"]["content"][
            "application/x-www-form-urlencoded"
        ]["schema"]
        assert schema == {
            "type": "object",
            "properties": {
                "username": {"type": "string"},
                "rememberMe": {"type": "string"},
                "attempts": {"type": "string"},
            },
            "required": ["username", "attempts"],
        }

    def test_form_encoded_unresolved_request(self) -> None:
        endpoint = _endpoint(
            HttpVerb.POST,
            "/v1/token",
            request_type=TypeHandle("LoginCommand"),
            accepts_content_type="application/x-www-form-urlencoded",
        )
        document = DocumentEmitter().build([endpoint], [UnresolvedSchema("LoginCommand", SchemaRole.REQUEST)])
        schema = document["paths"]["/v1/token"]["post"]["requestBody"]["content"][
            "application/x-www-form-urlencoded"
        ]["schema"]
        assert schema == {"type": "object", "description": "LoginCommand form fields"}

    def test_declared_responses_override_defaults(self) -> None:
        endpoint = _endpoint(
            declared_responses=(
                DeclaredResponse(400, TypeHandle("ValidationProblem")),
                DeclaredResponse(404, None, "application/problem+json"),
                DeclaredResponse(204),
            ),
            produces_content_type="text/html",
        )
        responses = DocumentEmitter().build([endpoint], [])["paths"]["/v1/items/{id}"]["get"]["responses"]
        assert list(responses) == ["200", "204", "400", "401", "404", "500"]
        assert responses["200"]["content"] == {
            "text/html": {"schema": {"$ref": "#/components/schemas/GetItemResponse"}}
        }
        assert responses["204"] == {"description": "No Content"}
        assert responses["400"] == {
            "description": "Bad Request",
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/ValidationProblem"}}},
        }
        assert responses["404"]["content"] == {"application/problem+json": {"schema": {"type": "object"}}}

    def test_metadata_overrides_derivations(self) -> None:
        endpoint = _endpoint(operation_id="FetchItem", summary="Fetch", description="Loads one item.", tags=("A", "B"))
        operation = DocumentEmitter().build([endpoint], [])["paths"]["/v1/items/{id}"]["get"]
        assert operation["operationId"] == "FetchItem"
        assert operation["summary"] == "Fetch"
        assert operation["description"] == "Loads one item."
        assert operation["tags"] == ["A", "B"]


# === Whole document ===


class TestDocument:
    def test_header(self, items_document: dict[str, Any]) -> None:
        assert items_document["openapi"] == "3.1.0"
        assert items_document["info"] == {"title": "Items", "version": "2.0.0"}

    def test_paths_and_verbs_sorted(self, items_document: dict[str, Any]) -> None:
        assert list(items_document["paths"]) == ["/v1/items", "/v1/items/{id}"]
        assert list(items_document["paths"]["/v1/items/{id}"]) == ["delete", "get"]

    def test_schemas_sorted_with_properties(self, items_document: dict[str, Any]) -> None:
        schemas = items_document["components"]["schemas"]
        assert list(schemas) == sorted(schemas)
        assert schemas["GetItemResponse"] == {
            "type": "object",
            "properties": {
                "itemId": {"type": "string"},
                "displayName": {"type": "string"},
                "status": {"type": "string", "enum": ["ACTIVE", "ARCHIVED"]},
                "tags": {"type": "array", "items": {"$ref": "#/components/schemas/Tag"}},
            },
            "required": ["itemId", "status"],
        }
        assert schemas["CreateItemCommand"]["properties"]["password"] == {
            "type": "string",
            "description": "Initial secret",
        }

    def test_every_operation_has_id_and_summary(self, items_document: dict[str, Any]) -> None:
        for path_item in items_document["paths"].values():
            for operation in path_item.values():
                assert operation["operationId"]
                assert operation["summary"]

    def test_output_is_deterministic(self, items_forest: SourceForest) -> None:
        def render() -> str:
            oracle = SourceOracle(items_forest)
            endpoints = EndpointScanner(items_forest, oracle=oracle).scan()
            schemas = SchemaAssembler(oracle=oracle, forest=items_forest).assemble(endpoints)
            return DocumentEmitter().emit(list(reversed(endpoints)), list(reversed(schemas)))

        assert render() == render()

    def test_same_verb_and_path_twice_is_rejected(self) -> None:
        first = _endpoint(source_file="app/a.py", line=10)
        second = _endpoint(response_type=TypeHandle("OtherResponse"), source_file="app/b.py", line=4)
        with pytest.raises(DuplicateEndpointError) as exc_info:
            DocumentEmitter().build([first, second], [])
        assert exc_info.value.message == (
            "duplicate endpoint GET /v1/items/{id}: registered at app/a.py:10 and app/b.py:4"
        )

    def test_same_path_different_verbs_allowed(self) -> None:
        document = DocumentEmitter().build([_endpoint(), _endpoint(HttpVerb.DELETE)], [])
        assert list(document["paths"]["/v1/items/{id}"]) == ["delete", "get"]
