"""Metadata extraction from fluent builder chains and request-type decorators."""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, field
from typing import Any

from apspec.scanner.forest import SourceFile, SourceForest
from apspec.scanner.oracle import SymbolOracle, annotation_name
from apspec.scanner.types import DeclaredResponse
from apspec.schema.types import TypeDeclaration, TypeHandle

__all__ = ["EndpointMetadata", "MetadataExtractor"]

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"
PROBLEM_CONTENT_TYPE = "application/problem+json"

# Decorator names on the request type and the chain operation they mirror.
_DECORATOR_OPERATIONS = {
    "endpoint_name": "with_name",
    "endpoint_summary": "with_summary",
    "endpoint_description": "with_description",
    "tags": "with_tags",
    "allow_anonymous": "allow_anonymous",
    "accepts": "accepts",
    "produces": "produces",
    "produces_problem": "produces_problem",
}


@dataclass
class EndpointMetadata:
    """Metadata gathered for one endpoint. ``None`` means unset."""

    requires_auth: bool | None = None
    accepts_content_type: str | None = None
    produces_content_type: str | None = None
    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    tags: tuple[str, ...] | None = None
    declared_responses: dict[int, DeclaredResponse] = field(default_factory=dict)

    def fill_from(self, other: EndpointMetadata) -> EndpointMetadata:
        """Copy values from ``other`` only where this instance is unset."""
        for name in (
            "requires_auth",
            "accepts_content_type",
            "produces_content_type",
            "operation_id",
            "summary",
            "description",
            "tags",
        ):
            if getattr(self, name) is None:
                setattr(self, name, getattr(other, name))
        for status, response in other.declared_responses.items():
            self.declared_responses.setdefault(status, response)
        return self

    def sorted_responses(self) -> tuple[DeclaredResponse, ...]:
        return tuple(self.declared_responses[s] for s in sorted(self.declared_responses))


class MetadataExtractor:
    """Reads endpoint metadata from the call chain around a registration.

    Values set by the fluent chain always win; decorators on the request
    type only fill in what the chain left unset.
    """

    def __init__(self, forest: SourceForest, oracle: SymbolOracle) -> None:
        self._forest = forest
        self._oracle = oracle

    def extract(
        self,
        call: ast.Call,
        source: SourceFile,
        request_declaration: TypeDeclaration | None = None,
    ) -> EndpointMetadata:
        metadata = self.from_chain(call, source)
        if request_declaration is not None:
            metadata.fill_from(self.from_decorators(request_declaration))
        return metadata

    def from_chain(self, call: ast.Call, source: SourceFile) -> EndpointMetadata:
        """Walk outward through ``call.a(...).b[T](...)`` chained calls."""
        metadata = EndpointMetadata()
        node: ast.AST = call
        while True:
            attribute = self._forest.parent(node)
            if not isinstance(attribute, ast.Attribute) or attribute.value is not node:
                break
            holder: ast.AST = attribute
            type_args: tuple[ast.expr, ...] = ()
            outer = self._forest.parent(attribute)
            if isinstance(outer, ast.Subscript) and outer.value is attribute:
                slice_node = outer.slice
                type_args = tuple(slice_node.elts) if isinstance(slice_node, ast.Tuple) else (slice_node,)
                holder = outer
                outer = self._forest.parent(outer)
            if not isinstance(outer, ast.Call) or outer.func is not holder:
                break
            self._apply(metadata, attribute.attr, type_args, outer, source)
            node = outer
        return metadata

    def from_decorators(self, declaration: TypeDeclaration) -> EndpointMetadata:
        """Read marker decorators attached to the request type."""
        metadata = EndpointMetadata()
        source = self._forest.get(declaration.source_path)
        if source is None:
            return metadata
        for decorator in declaration.decorators:
            if isinstance(decorator, ast.Call):
                func: ast.expr = decorator.func
                type_args: tuple[ast.expr, ...] = ()
                if isinstance(func, ast.Subscript):
                    slice_node = func.slice
                    type_args = tuple(slice_node.elts) if isinstance(slice_node, ast.Tuple) else (slice_node,)
                    func = func.value
                operation = _DECORATOR_OPERATIONS.get(annotation_name(func) or "")
                if operation is not None:
                    self._apply(metadata, operation, type_args, decorator, source)
            else:
                operation = _DECORATOR_OPERATIONS.get(annotation_name(decorator) or "")
                if operation == "allow_anonymous":
                    metadata.requires_auth = False
        return metadata

    # ----- Operations -----

    def _apply(
        self,
        metadata: EndpointMetadata,
        operation: str,
        type_args: tuple[ast.expr, ...],
        call: ast.Call,
        source: SourceFile,
    ) -> None:
        args = call.args
        keywords = {kw.arg: kw.value for kw in call.keywords if kw.arg is not None}

        if operation == "allow_anonymous":
            metadata.requires_auth = False
        elif operation == "with_name":
            metadata.operation_id = self._string(args, keywords, "name", source) or metadata.operation_id
        elif operation == "with_summary":
            metadata.summary = self._string(args, keywords, "summary", source) or metadata.summary
        elif operation == "with_description":
            metadata.description = self._string(args, keywords, "description", source) or metadata.description
        elif operation == "with_tags":
            tags = [self._oracle.constant_value(arg, source) for arg in args]
            values = tuple(t for t in tags if isinstance(t, str) and t)
            if values:
                metadata.tags = values
        elif operation == "accepts":
            content_type = self._string(args, keywords, "content_type", source)
            if content_type:
                metadata.accepts_content_type = content_type
        elif operation == "produces":
            self._apply_produces(metadata, type_args, args, keywords, source)
        elif operation == "produces_problem":
            status = self._value(args, 0, keywords, "status", source)
            if not isinstance(status, int):
                return
            content_type = self._value(args, 1, keywords, "content_type", source)
            metadata.declared_responses[status] = DeclaredResponse(
                status=status,
                response_type=None,
                content_type=content_type if isinstance(content_type, str) else PROBLEM_CONTENT_TYPE,
            )
        else:
            logger.debug("Ignoring unrecognized chain call '%s' in %s", operation, source.path)

    def _apply_produces(
        self,
        metadata: EndpointMetadata,
        type_args: tuple[ast.expr, ...],
        args: list[ast.expr],
        keywords: dict[str, ast.expr],
        source: SourceFile,
    ) -> None:
        response_type = self._response_type(type_args, keywords, source)
        first = self._value(args, 0, keywords, "status", source)

        if isinstance(first, str):
            if response_type is None:
                metadata.produces_content_type = first
            return
        if not isinstance(first, int):
            return

        content_type = self._value(args, 1, keywords, "content_type", source)
        content_type = content_type if isinstance(content_type, str) else None
        if response_type is None and first == 200:
            if content_type is not None:
                metadata.produces_content_type = content_type
            return
        metadata.declared_responses[first] = DeclaredResponse(
            status=first,
            response_type=response_type,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
        )

    def _response_type(
        self,
        type_args: tuple[ast.expr, ...],
        keywords: dict[str, ast.expr],
        source: SourceFile,
    ) -> TypeHandle | None:
        if type_args:
            return self._oracle.resolve_type(type_args[0], source)
        if "response_type" in keywords:
            return self._oracle.resolve_type(keywords["response_type"], source)
        return None

    def _value(
        self,
        args: list[ast.expr],
        index: int,
        keywords: dict[str, ast.expr],
        keyword: str,
        source: SourceFile,
    ) -> Any:
        if len(args) > index:
            return self._oracle.constant_value(args[index], source)
        if keyword in keywords:
            return self._oracle.constant_value(keywords[keyword], source)
        return None

    def _string(
        self,
        args: list[ast.expr],
        keywords: dict[str, ast.expr],
        keyword: str,
        source: SourceFile,
    ) -> str | None:
        value = self._value(args, 0, keywords, keyword, source)
        return value if isinstance(value, str) and value else None
