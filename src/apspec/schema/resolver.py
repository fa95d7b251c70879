"""Type descriptor resolution: maps type handles to OpenAPI schema shapes."""

from __future__ import annotations

import logging

from apspec.schema.types import (
    ArrayShape,
    EnumShape,
    FieldDeclaration,
    FieldRecord,
    ObjectShape,
    PrimitiveShape,
    ReferenceShape,
    SchemaShape,
    TypeDeclaration,
    TypeHandle,
)

__all__ = ["TypeDescriptorResolver", "to_camel_case"]

logger = logging.getLogger(__name__)

_PRIMITIVE_MAP: dict[str, PrimitiveShape] = {
    # integers
    "int": PrimitiveShape("integer", "int32"),
    "int8": PrimitiveShape("integer", "int32"),
    "int16": PrimitiveShape("integer", "int32"),
    "int32": PrimitiveShape("integer", "int32"),
    "uint8": PrimitiveShape("integer", "int32"),
    "uint16": PrimitiveShape("integer", "int32"),
    "byte": PrimitiveShape("integer", "int32"),
    "short": PrimitiveShape("integer", "int32"),
    "int64": PrimitiveShape("integer", "int64"),
    "uint32": PrimitiveShape("integer", "int64"),
    "uint64": PrimitiveShape("integer", "int64"),
    "long": PrimitiveShape("integer", "int64"),
    # floating point
    "float16": PrimitiveShape("number", "float"),
    "float32": PrimitiveShape("number", "float"),
    "single": PrimitiveShape("number", "float"),
    "float": PrimitiveShape("number", "double"),
    "float64": PrimitiveShape("number", "double"),
    "double": PrimitiveShape("number", "double"),
    "Decimal": PrimitiveShape("number", "double"),
    # misc
    "bool": PrimitiveShape("boolean"),
    "str": PrimitiveShape("string"),
    "datetime": PrimitiveShape("string", "date-time"),
    "date": PrimitiveShape("string", "date"),
    "time": PrimitiveShape("string", "time"),
    "timedelta": PrimitiveShape("string", "time"),
    "UUID": PrimitiveShape("string", "uuid"),
    "AnyUrl": PrimitiveShape("string", "uri"),
    "HttpUrl": PrimitiveShape("string", "uri"),
    "Url": PrimitiveShape("string", "uri"),
}

_COLLECTION_NAMES = frozenset(
    {
        "list",
        "List",
        "Sequence",
        "MutableSequence",
        "set",
        "Set",
        "MutableSet",
        "AbstractSet",
        "frozenset",
        "FrozenSet",
        "Iterable",
        "Iterator",
        "Collection",
        "deque",
        "Deque",
    }
)

_TUPLE_NAMES = frozenset({"tuple", "Tuple"})

_OPAQUE_NAMES = frozenset(
    {
        "dict",
        "Dict",
        "Mapping",
        "MutableMapping",
        "defaultdict",
        "DefaultDict",
        "OrderedDict",
        "Counter",
        "Any",
        "object",
    }
)

_OPTIONAL_NAMES = frozenset({"Optional"})
_UNION_NAMES = frozenset({"Union", "UnionType"})
_NONE_NAMES = frozenset({"None", "NoneType"})


def _lower_head(word: str) -> str:
    """Lower-case a leading capital run: ``ItemId`` -> ``itemId``, ``URLValue`` -> ``urlValue``."""
    run = 0
    while run < len(word) and word[run].isupper():
        run += 1
    if run <= 1 or run == len(word):
        return word[:run].lower() + word[run:]
    return word[: run - 1].lower() + word[run - 1 :]


def to_camel_case(name: str) -> str:
    """Convert a snake_case or PascalCase source name to its camelCase wire name."""
    parts = [p for p in name.split("_") if p]
    if not parts:
        return name
    return _lower_head(parts[0]) + "".join(p[0].upper() + p[1:] for p in parts[1:])


class TypeDescriptorResolver:
    """Stateless mapper from type handles to schema shapes and field records."""

    def unwrap_optional(self, handle: TypeHandle) -> tuple[TypeHandle, bool]:
        """Strip ``Optional``/``| None`` wrappers. Returns (inner, nullable)."""
        if handle.name in _OPTIONAL_NAMES and len(handle.args) == 1:
            inner, _ = self.unwrap_optional(handle.args[0])
            return inner, True

        if handle.name in _UNION_NAMES and handle.args:
            non_null = [a for a in handle.args if a.name not in _NONE_NAMES]
            nullable = len(non_null) != len(handle.args)
            if len(non_null) == 1:
                inner, inner_nullable = self.unwrap_optional(non_null[0])
                return inner, nullable or inner_nullable
            if nullable:
                return TypeHandle(name=handle.name, args=tuple(non_null)), True

        return handle, False

    def resolve(self, handle: TypeHandle) -> SchemaShape:
        """Map a type handle to a schema shape. Optional wrappers are unwrapped first."""
        handle, _ = self.unwrap_optional(handle)

        if handle.enum_members is not None:
            return EnumShape(members=handle.enum_members)

        primitive = _PRIMITIVE_MAP.get(handle.name)
        if primitive is not None:
            return primitive

        if handle.name in _COLLECTION_NAMES:
            if len(handle.args) == 1:
                return ArrayShape(element=self.resolve(handle.args[0]))
            return ArrayShape(element=ObjectShape())

        if handle.name in _TUPLE_NAMES:
            # tuple[X, ...] is a homogeneous sequence
            if len(handle.args) == 2 and handle.args[1].name == "...":
                return ArrayShape(element=self.resolve(handle.args[0]))
            if len(handle.args) == 1:
                return ArrayShape(element=self.resolve(handle.args[0]))
            return ObjectShape()

        if handle.name in _OPAQUE_NAMES or handle.name in _UNION_NAMES:
            return ObjectShape()

        return ReferenceShape(name=handle.name)

    def resolve_field(self, declaration: FieldDeclaration) -> FieldRecord:
        """Resolve one declared field into a FieldRecord."""
        inner, nullable = self.unwrap_optional(declaration.annotation)
        return FieldRecord(
            source_name=declaration.name,
            wire_name=to_camel_case(declaration.name),
            shape=self.resolve(inner),
            nullable=nullable,
            has_default=declaration.has_default,
            description=declaration.description,
        )

    def resolve_fields(self, declaration: TypeDeclaration) -> tuple[FieldRecord, ...]:
        """Resolve every field of a declared type, in declaration order."""
        records = tuple(self.resolve_field(f) for f in declaration.fields)
        logger.debug("Resolved %d field(s) for type '%s'", len(records), declaration.name)
        return records
