"""Schema assembly: collects every type referenced by the scanned endpoints."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from apspec.scanner.forest import SourceFile, SourceForest
from apspec.scanner.oracle import SymbolOracle
from apspec.scanner.types import EndpointRecord
from apspec.schema.resolver import TypeDescriptorResolver
from apspec.schema.types import (
    ArrayShape,
    ReferenceShape,
    ResolvedSchema,
    SchemaRole,
    SchemaShape,
    SchemaTypeRecord,
    TypeHandle,
    UnresolvedSchema,
    merge_schema_records,
)

__all__ = ["SchemaAssembler"]

logger = logging.getLogger(__name__)


class SchemaAssembler:
    """Resolves request, response and nested types into schema records.

    Records sharing a name are combined with ``merge_schema_records``: a
    resolved record overrides an unresolved one, otherwise the first wins.
    """

    def __init__(
        self,
        oracle: SymbolOracle | None = None,
        forest: SourceForest | None = None,
        resolver: TypeDescriptorResolver | None = None,
    ) -> None:
        self._oracle = oracle
        self._forest = forest
        self._resolver = resolver or TypeDescriptorResolver()

    def assemble(self, endpoints: Iterable[EndpointRecord]) -> list[SchemaTypeRecord]:
        """Return the distinct schema records, sorted by type name."""
        records: dict[str, SchemaTypeRecord] = {}
        for endpoint in endpoints:
            source = self._forest.get(endpoint.source_file) if self._forest is not None else None
            self._add(records, endpoint.request_type, SchemaRole.REQUEST, source, nested=False)
            self._add(records, endpoint.response_type, SchemaRole.RESPONSE, source, nested=False)
            for declared in endpoint.declared_responses:
                if declared.response_type is not None:
                    self._add(records, declared.response_type, SchemaRole.RESPONSE, source, nested=False)

        ordered = [records[name] for name in sorted(records)]
        logger.debug(
            "Assembled %d schema(s), %d resolved",
            len(ordered),
            sum(1 for r in ordered if r.resolved),
        )
        return ordered

    def _add(
        self,
        records: dict[str, SchemaTypeRecord],
        handle: TypeHandle,
        role: SchemaRole,
        source: SourceFile | None,
        nested: bool,
    ) -> None:
        handle, _ = self._resolver.unwrap_optional(handle)
        name = handle.name
        declaration = self._oracle.describe_type(name, source) if self._oracle is not None else None

        if nested and (declaration is None or declaration.is_enum):
            return

        record: SchemaTypeRecord
        if declaration is None or declaration.is_enum:
            record = UnresolvedSchema(name=name, role=role)
        else:
            record = ResolvedSchema(name=name, role=role, fields=self._resolver.resolve_fields(declaration))

        existing = records.get(name)
        stored = merge_schema_records(existing, record) if existing is not None else record
        records[name] = stored
        if stored is existing or declaration is None or not stored.resolved:
            return

        declaring_source = None
        if self._forest is not None:
            declaring_source = self._forest.get(declaration.source_path)
        for field_record in stored.fields:
            for reference in _references(field_record.shape):
                if reference not in records:
                    self._add(records, TypeHandle(name=reference), SchemaRole.SHARED, declaring_source, nested=True)


def _references(shape: SchemaShape) -> Iterator[str]:
    if isinstance(shape, ReferenceShape):
        yield shape.name
    elif isinstance(shape, ArrayShape):
        yield from _references(shape.element)
