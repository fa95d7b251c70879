"""Schema type definitions and data structures for the apspec schema system."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

__all__ = [
    "SchemaRole",
    "TypeHandle",
    "PrimitiveShape",
    "EnumShape",
    "ArrayShape",
    "ObjectShape",
    "ReferenceShape",
    "SchemaShape",
    "FieldDeclaration",
    "TypeDeclaration",
    "FieldRecord",
    "UnresolvedSchema",
    "ResolvedSchema",
    "SchemaTypeRecord",
    "merge_schema_records",
]


class SchemaRole(str, Enum):
    """Why a type appears in the document."""

    REQUEST = "request"
    RESPONSE = "response"
    SHARED = "shared"


@dataclass(frozen=True)
class TypeHandle:
    """An abstract reference to a type as written in source.

    ``name`` is the simple name (``Optional``, ``list``, ``CreateItemCommand``),
    ``args`` the subscript arguments. ``enum_members`` is set when the oracle
    knows the type is an enumeration (or a ``Literal``).
    """

    name: str
    args: tuple[TypeHandle, ...] = ()
    qualified_name: str | None = None
    enum_members: tuple[str, ...] | None = None

    @property
    def display_name(self) -> str:
        return self.qualified_name or self.name


@dataclass(frozen=True)
class PrimitiveShape:
    kind: str
    format: str | None = None

    def to_openapi(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.kind}
        if self.format is not None:
            schema["format"] = self.format
        return schema


@dataclass(frozen=True)
class EnumShape:
    members: tuple[str, ...]

    def to_openapi(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "string"}
        if self.members:
            schema["enum"] = list(self.members)
        return schema


@dataclass(frozen=True)
class ArrayShape:
    element: SchemaShape

    def to_openapi(self) -> dict[str, Any]:
        return {"type": "array", "items": self.element.to_openapi()}


@dataclass(frozen=True)
class ObjectShape:
    """An opaque object (dictionaries, ``Any``)."""

    def to_openapi(self) -> dict[str, Any]:
        return {"type": "object"}


@dataclass(frozen=True)
class ReferenceShape:
    name: str

    def to_openapi(self) -> dict[str, Any]:
        return {"$ref": f"#/components/schemas/{self.name}"}


SchemaShape = Union[PrimitiveShape, EnumShape, ArrayShape, ObjectShape, ReferenceShape]


@dataclass(frozen=True)
class FieldDeclaration:
    """A field as declared on a type, before resolution."""

    name: str
    annotation: TypeHandle
    has_default: bool = False
    description: str | None = None


@dataclass(frozen=True)
class TypeDeclaration:
    """A type known to the symbol oracle."""

    name: str
    source_path: str
    kind: str = "class"
    fields: tuple[FieldDeclaration, ...] = ()
    enum_members: tuple[str, ...] = ()
    decorators: tuple[ast.expr, ...] = ()

    @property
    def is_enum(self) -> bool:
        return self.kind == "enum"


@dataclass(frozen=True)
class FieldRecord:
    """A resolved field of a request/response type."""

    source_name: str
    wire_name: str
    shape: SchemaShape
    nullable: bool = False
    has_default: bool = False
    description: str | None = None

    @property
    def required(self) -> bool:
        return not self.nullable and not self.has_default

    @property
    def enum_values(self) -> tuple[str, ...]:
        if isinstance(self.shape, EnumShape):
            return self.shape.members
        return ()

    def to_openapi(self) -> dict[str, Any]:
        schema = self.shape.to_openapi()
        if self.description is not None and "$ref" not in schema:
            schema["description"] = self.description
        return schema


@dataclass(frozen=True)
class UnresolvedSchema:
    """A type whose fields could not be determined."""

    name: str
    role: SchemaRole

    @property
    def resolved(self) -> bool:
        return False

    @property
    def fields(self) -> tuple[FieldRecord, ...]:
        return ()


@dataclass(frozen=True)
class ResolvedSchema:
    """A type with its resolved field list."""

    name: str
    role: SchemaRole
    fields: tuple[FieldRecord, ...] = field(default_factory=tuple)

    @property
    def resolved(self) -> bool:
        return True


SchemaTypeRecord = Union[UnresolvedSchema, ResolvedSchema]


def merge_schema_records(existing: SchemaTypeRecord, incoming: SchemaTypeRecord) -> SchemaTypeRecord:
    """Combine two records sharing a name.

    A resolved record replaces an unresolved one; otherwise the existing
    record is kept. Field lists are never unioned.
    """
    if not existing.resolved and incoming.resolved:
        return incoming
    return existing
