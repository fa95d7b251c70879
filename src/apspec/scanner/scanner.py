"""Endpoint scanner: finds route-registration call sites in a source forest."""

from __future__ import annotations

import ast
import logging

from apspec.scanner.forest import SourceFile, SourceForest
from apspec.scanner.metadata import DEFAULT_CONTENT_TYPE, MetadataExtractor
from apspec.scanner.oracle import SourceOracle, SymbolOracle, split_callee
from apspec.scanner.types import EndpointRecord, HttpVerb
from apspec.schema.types import TypeHandle

__all__ = ["EndpointScanner", "VERB_METHODS", "OPEN_VERB_METHOD"]

logger = logging.getLogger(__name__)

VERB_METHODS: dict[str, HttpVerb] = {
    "map_get": HttpVerb.GET,
    "map_post": HttpVerb.POST,
    "map_put": HttpVerb.PUT,
    "map_delete": HttpVerb.DELETE,
    "map_patch": HttpVerb.PATCH,
}
OPEN_VERB_METHOD = "map"


class EndpointScanner:
    """Scans every file of a forest for route registrations.

    A call matches when its method name is one of ``VERB_METHODS`` (or the
    open ``map`` form taking the verb as first argument) and it is invoked on
    a route builder. Call sites that cannot be fully resolved are skipped.
    """

    def __init__(
        self,
        forest: SourceForest,
        oracle: SymbolOracle | None = None,
        extractor: MetadataExtractor | None = None,
    ) -> None:
        self._forest = forest
        self._oracle: SymbolOracle = oracle if oracle is not None else SourceOracle(forest)
        self._extractor = extractor if extractor is not None else MetadataExtractor(forest, self._oracle)

    @property
    def oracle(self) -> SymbolOracle:
        return self._oracle

    def scan(self) -> list[EndpointRecord]:
        """Return one record per registration call site, ordered by location."""
        records: list[EndpointRecord] = []
        seen: set[tuple[str, int, int]] = set()

        for source in self._forest:
            for node in ast.walk(source.tree):
                if not isinstance(node, ast.Call):
                    continue
                key = (source.path, node.lineno, node.col_offset)
                if key in seen:
                    continue
                record = self._scan_call(node, source)
                if record is None:
                    continue
                seen.add(key)
                records.append(record)
                logger.debug(
                    "Discovered %s %s (%s -> %s) at %s:%d",
                    record.verb.value,
                    record.path,
                    record.request_type_name,
                    record.response_type_name,
                    source.path,
                    node.lineno,
                )

        records.sort(key=lambda r: (r.source_file, r.line))
        if not records:
            logger.warning("No endpoint registrations found in %d source file(s)", len(self._forest))
        return records

    def _scan_call(self, call: ast.Call, source: SourceFile) -> EndpointRecord | None:
        parts = split_callee(call.func)
        if parts is None:
            return None
        method, receiver, type_arg_nodes = parts
        if method not in VERB_METHODS and method != OPEN_VERB_METHOD:
            return None

        type_args = self._type_arguments(call, source, receiver, type_arg_nodes)
        if type_args is None:
            return None
        request_type, response_type = type_args

        args = list(call.args)
        if method == OPEN_VERB_METHOD:
            if not args:
                return None
            verb = self._verb(args.pop(0), source)
            if verb is None:
                logger.debug("Skipping %s:%d: unresolvable verb", source.path, call.lineno)
                return None
        else:
            verb = VERB_METHODS[method]

        if not args:
            return None
        path = self._oracle.constant_value(args[0], source)
        if not isinstance(path, str) or not path:
            logger.debug("Skipping %s:%d: unresolvable path", source.path, call.lineno)
            return None

        request_declaration = self._oracle.describe_type(request_type.name, source)
        metadata = self._extractor.extract(call, source, request_declaration)

        return EndpointRecord(
            verb=verb,
            path=path,
            request_type=request_type,
            response_type=response_type,
            requires_auth=metadata.requires_auth if metadata.requires_auth is not None else True,
            accepts_content_type=metadata.accepts_content_type or DEFAULT_CONTENT_TYPE,
            produces_content_type=metadata.produces_content_type or DEFAULT_CONTENT_TYPE,
            operation_id=metadata.operation_id,
            summary=metadata.summary,
            description=metadata.description,
            tags=metadata.tags or (),
            declared_responses=metadata.sorted_responses(),
            source_file=source.path,
            line=call.lineno,
        )

    def _type_arguments(
        self,
        call: ast.Call,
        source: SourceFile,
        receiver: ast.expr,
        type_arg_nodes: tuple[ast.expr, ...],
    ) -> tuple[TypeHandle, TypeHandle] | None:
        symbol = self._oracle.resolve_method(call, source)
        if symbol is not None:
            if len(symbol.type_args) != 2:
                return None
            request = self._oracle.resolve_type(symbol.type_args[0], source)
            response = self._oracle.resolve_type(symbol.type_args[1], source)
            if request is None or response is None:
                return None
            return request, response

        # Receiver type unknown: fall back to the generic argument text,
        # unless the receiver is known to be something other than a builder.
        known = self._oracle.receiver_type(receiver, source)
        if known is not None and not self._oracle.is_route_builder(known):
            return None
        if len(type_arg_nodes) != 2:
            return None
        names = [_syntactic_name(node) for node in type_arg_nodes]
        if not all(names):
            return None
        return TypeHandle(name=names[0]), TypeHandle(name=names[1])

    def _verb(self, node: ast.expr, source: SourceFile) -> HttpVerb | None:
        if isinstance(node, ast.Attribute):
            candidate: object = node.attr
        else:
            candidate = self._oracle.constant_value(node, source)
        if not isinstance(candidate, str):
            return None
        try:
            return HttpVerb(candidate.upper())
        except ValueError:
            return None


def _syntactic_name(node: ast.expr) -> str | None:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        text = node.value.strip()
    else:
        text = ast.unparse(node)
    # Keep only the simple name of a dotted reference.
    text = text.rsplit(".", 1)[-1]
    return text if text.isidentifier() else None
