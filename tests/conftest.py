"""Shared fixtures: sample route sources and OpenAPI fragments."""

from __future__ import annotations

import textwrap
from typing import Any, Callable

import pytest

from apspec.document.part import DocumentFragment
from apspec.scanner.forest import SourceForest


# === Source samples ===


ITEMS_SOURCE = textwrap.dedent(
    '''
    from dataclasses import dataclass
    from enum import Enum
    from typing import Optional

    from pydantic import BaseModel, Field

    from apspec.markers import endpoint_summary, tags
    from myapp.routing import RouteBuilder

    ITEMS_PATH = "/v1/items"


    class Status(str, Enum):
        ACTIVE = "active"
        ARCHIVED = "archived"


    class Tag(BaseModel):
        label: str


    class GetItemCommand(BaseModel):
        pass


    class GetItemResponse(BaseModel):
        item_id: str
        display_name: str | None
        status: Status
        tags: list[Tag] = []


    @endpoint_summary("Create a new item")
    @tags("Inventory")
    class CreateItemCommand(BaseModel):
        name: str
        description: Optional[str] = None
        count: int
        password: str = Field(description="Initial secret")


    @dataclass
    class CreateItemResponse:
        id: str
        created: bool = True


    class NotFoundError(BaseModel):
        message: str


    def configure(routes: RouteBuilder) -> None:
        routes.map_get[GetItemCommand, GetItemResponse](ITEMS_PATH + "/{id}", get_item)
        routes.map_post[CreateItemCommand, CreateItemResponse](ITEMS_PATH, create_item) \\
            .with_name("CreateItem") \\
            .produces[NotFoundError](404) \\
            .produces_problem(422)
        routes.map_delete[GetItemCommand, GetItemResponse](f"{ITEMS_PATH}/{{id}}", delete_item).allow_anonymous()
    '''
)


@pytest.fixture
def items_source() -> str:
    return ITEMS_SOURCE


@pytest.fixture
def build_forest() -> Callable[..., SourceForest]:
    """Returns a factory building a forest from one source string or a ``{path: text}`` mapping."""

    def _build(sources: str | dict[str, str], path: str = "routes.py") -> SourceForest:
        if isinstance(sources, str):
            sources = {path: sources}
        return SourceForest.from_sources({p: textwrap.dedent(t) for p, t in sources.items()})

    return _build


@pytest.fixture
def items_forest(build_forest: Callable[..., SourceForest]) -> SourceForest:
    return build_forest(ITEMS_SOURCE, path="app/routes.py")


# === Fragments ===


def _operation(**overrides: Any) -> dict[str, Any]:
    operation: dict[str, Any] = {
        "operationId": "getV1Items",
        "summary": "Get Items",
        "security": [{"JwtBearer": []}],
        "responses": {
            "200": {
                "description": "Successful response",
                "content": {"application/json": {"schema": {"$ref": "#/components/schemas/ItemList"}}},
            },
            "400": {"$ref": "#/components/responses/BadRequest"},
            "401": {"$ref": "#/components/responses/Unauthorized"},
            "500": {"$ref": "#/components/responses/InternalServerError"},
        },
    }
    operation.update(overrides)
    return operation


@pytest.fixture
def make_operation() -> Callable[..., dict[str, Any]]:
    return _operation


@pytest.fixture
def common_fragments() -> list[DocumentFragment]:
    """The three shared fragments: schemas, responses, security."""
    schemas = {
        "openapi": "3.1.0",
        "components": {
            "schemas": {
                "ProblemDetails": {
                    "type": "object",
                    "properties": {"title": {"type": "string"}, "status": {"type": "integer"}},
                }
            }
        },
    }
    responses = {
        "openapi": "3.1.0",
        "components": {
            "responses": {
                "BadRequest": {"description": "Bad Request"},
                "Unauthorized": {"description": "Unauthorized"},
                "InternalServerError": {"description": "Internal Server Error"},
            }
        },
    }
    security = {
        "openapi": "3.1.0",
        "components": {
            "securitySchemes": {"JwtBearer": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}}
        },
    }
    return [
        DocumentFragment(name="schemas", origin="common/schemas.yaml", root=schemas),
        DocumentFragment(name="responses", origin="common/responses.yaml", root=responses),
        DocumentFragment(name="security", origin="common/security.yaml", root=security),
    ]


@pytest.fixture
def make_partial() -> Callable[..., DocumentFragment]:
    """Returns a factory for a per-service fragment with one GET operation per path."""

    def _make(name: str, *paths: str, schemas: dict[str, Any] | None = None) -> DocumentFragment:
        root: dict[str, Any] = {
            "openapi": "3.1.0",
            "paths": {p: {"get": _operation()} for p in paths},
            "components": {"schemas": schemas if schemas is not None else {"ItemList": {"type": "object"}}},
        }
        return DocumentFragment(name=name, origin=f"services/{name}.yaml", root=root)

    return _make
