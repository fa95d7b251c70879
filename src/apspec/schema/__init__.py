"""apspec schema system -- type handles, field records and schema assembly.

Example usage::

    from apspec.schema import TypeDescriptorResolver, TypeHandle

    shape = TypeDescriptorResolver().resolve(TypeHandle(name="int"))
"""

from __future__ import annotations

from apspec.schema.resolver import TypeDescriptorResolver, to_camel_case
from apspec.schema.types import (
    ArrayShape,
    EnumShape,
    FieldDeclaration,
    FieldRecord,
    ObjectShape,
    PrimitiveShape,
    ReferenceShape,
    ResolvedSchema,
    SchemaRole,
    SchemaShape,
    SchemaTypeRecord,
    TypeDeclaration,
    TypeHandle,
    UnresolvedSchema,
    merge_schema_records,
)

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
    "TypeDescriptorResolver",
    "to_camel_case",
]
