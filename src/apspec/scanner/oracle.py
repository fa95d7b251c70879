"""Symbol oracle: resolves identifiers, type arguments and constants in a source forest."""

from __future__ import annotations

import ast
import inspect
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Protocol, runtime_checkable

from apspec.scanner.forest import SourceFile, SourceForest
from apspec.schema.types import FieldDeclaration, TypeDeclaration, TypeHandle

__all__ = [
    "MethodSymbol",
    "SymbolOracle",
    "SourceOracle",
    "split_callee",
    "annotation_name",
]

logger = logging.getLogger(__name__)

_ENUM_BASES = frozenset({"Enum", "StrEnum", "IntEnum", "Flag", "IntFlag"})
_FIELD_FACTORIES = frozenset({"Field", "field", "attrib", "ib"})
_DEFAULT_KEYWORDS = frozenset({"default", "default_factory", "factory"})
_MAX_FOLD_DEPTH = 16


@dataclass(frozen=True)
class MethodSymbol:
    """The resolved identity of a route-registration call."""

    name: str
    owner: str
    type_args: tuple[ast.expr, ...]


@runtime_checkable
class SymbolOracle(Protocol):
    """Resolves symbols the scanner cannot determine syntactically."""

    def resolve_method(self, call: ast.Call, source: SourceFile) -> MethodSymbol | None: ...

    def receiver_type(self, receiver: ast.expr, source: SourceFile) -> str | None: ...

    def is_route_builder(self, type_name: str) -> bool: ...

    def resolve_type(self, expr: ast.expr, source: SourceFile) -> TypeHandle | None: ...

    def constant_value(self, expr: ast.expr, source: SourceFile) -> str | int | None: ...

    def describe_type(self, name: str, source: SourceFile | None = None) -> TypeDeclaration | None: ...


def split_callee(func: ast.expr) -> tuple[str, ast.expr, tuple[ast.expr, ...]] | None:
    """Split ``recv.method[T1, T2]`` into (method, receiver, type argument nodes)."""
    type_args: tuple[ast.expr, ...] = ()
    if isinstance(func, ast.Subscript):
        slice_node = func.slice
        type_args = tuple(slice_node.elts) if isinstance(slice_node, ast.Tuple) else (slice_node,)
        func = func.value
    if not isinstance(func, ast.Attribute):
        return None
    return func.attr, func.value, type_args


def annotation_name(expr: ast.expr | None) -> str | None:
    """Return the simple type name an annotation refers to."""
    if expr is None:
        return None
    if isinstance(expr, ast.Name):
        return expr.id
    if isinstance(expr, ast.Attribute):
        return expr.attr
    if isinstance(expr, ast.Subscript):
        return annotation_name(expr.value)
    if isinstance(expr, ast.Constant) and isinstance(expr.value, str):
        try:
            parsed = ast.parse(expr.value, mode="eval").body
        except SyntaxError:
            return None
        return annotation_name(parsed)
    if isinstance(expr, ast.BinOp) and isinstance(expr.op, ast.BitOr):
        left = annotation_name(expr.left)
        return left if left not in (None, "None") else annotation_name(expr.right)
    if isinstance(expr, ast.Call):
        return annotation_name(expr.func)
    return None


class SourceOracle:
    """Parser + type-table implementation of SymbolOracle over a SourceForest."""

    def __init__(self, forest: SourceForest, builder_markers: tuple[str, ...] = ("RouteBuilder",)) -> None:
        self._forest = forest
        self._builder_markers = builder_markers
        self._classes: dict[str, list[tuple[SourceFile, ast.ClassDef]]] = {}
        self._constants: dict[str, dict[str, ast.expr]] = {}
        self._declarations: dict[tuple[str, str], TypeDeclaration | None] = {}

        for source in forest:
            for node in ast.walk(source.tree):
                if isinstance(node, ast.ClassDef):
                    self._classes.setdefault(node.name, []).append((source, node))
            constants: dict[str, ast.expr] = {}
            for stmt in source.tree.body:
                if isinstance(stmt, ast.Assign) and len(stmt.targets) == 1 and isinstance(stmt.targets[0], ast.Name):
                    constants[stmt.targets[0].id] = stmt.value
                elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name) and stmt.value is not None:
                    constants[stmt.target.id] = stmt.value
            self._constants[source.path] = constants

    @property
    def forest(self) -> SourceForest:
        return self._forest

    # ----- Method identity -----

    def resolve_method(self, call: ast.Call, source: SourceFile) -> MethodSymbol | None:
        parts = split_callee(call.func)
        if parts is None:
            return None
        method, receiver, type_args = parts
        owner = self.receiver_type(receiver, source)
        if owner is None or not self.is_route_builder(owner):
            return None
        return MethodSymbol(name=method, owner=owner, type_args=type_args)

    def receiver_type(self, receiver: ast.expr, source: SourceFile) -> str | None:
        """Find the declared type of a call receiver from annotations in scope."""
        if isinstance(receiver, ast.Name):
            return self._name_type(receiver, source)
        if (
            isinstance(receiver, ast.Attribute)
            and isinstance(receiver.value, ast.Name)
            and receiver.value.id == "self"
        ):
            return self._self_attribute_type(receiver, receiver.attr)
        return None

    def is_route_builder(self, type_name: str, _seen: frozenset[str] = frozenset()) -> bool:
        if any(marker in type_name for marker in self._builder_markers):
            return True
        if type_name in _seen:
            return False
        for _, classdef in self._classes.get(type_name, []):
            for base in classdef.bases:
                base_name = annotation_name(base)
                if base_name and self.is_route_builder(base_name, _seen | {type_name}):
                    return True
        return False

    def _name_type(self, name: ast.Name, source: SourceFile) -> str | None:
        for scope in self._forest.ancestors(name):
            if isinstance(scope, (ast.FunctionDef, ast.AsyncFunctionDef)):
                found = _lookup_in_function(scope, name.id)
                if found is not None:
                    return found
        return _lookup_in_body(source.tree.body, name.id)

    def _self_attribute_type(self, receiver: ast.Attribute, attr: str) -> str | None:
        classdef = next((n for n in self._forest.ancestors(receiver) if isinstance(n, ast.ClassDef)), None)
        if classdef is None:
            return None
        for node in ast.walk(classdef):
            if not isinstance(node, ast.AnnAssign):
                continue
            target = node.target
            if isinstance(target, ast.Name) and target.id == attr:
                return annotation_name(node.annotation)
            if (
                isinstance(target, ast.Attribute)
                and isinstance(target.value, ast.Name)
                and target.value.id == "self"
                and target.attr == attr
            ):
                return annotation_name(node.annotation)
        return None

    # ----- Types -----

    def resolve_type(self, expr: ast.expr, source: SourceFile) -> TypeHandle | None:
        return self._to_handle(expr, source, depth=0)

    def _to_handle(self, expr: ast.expr, source: SourceFile, depth: int) -> TypeHandle | None:
        if depth > _MAX_FOLD_DEPTH:
            return None
        if isinstance(expr, ast.Constant):
            if expr.value is None:
                return TypeHandle(name="None")
            if expr.value is Ellipsis:
                return TypeHandle(name="...")
            if isinstance(expr.value, str):
                try:
                    parsed = ast.parse(expr.value.strip(), mode="eval").body
                except SyntaxError:
                    return None
                return self._to_handle(parsed, source, depth + 1)
            return None
        if isinstance(expr, ast.Name):
            return self._named_handle(expr.id, expr.id, source)
        if isinstance(expr, ast.Attribute):
            return self._named_handle(expr.attr, ast.unparse(expr), source)
        if isinstance(expr, ast.BinOp) and isinstance(expr.op, ast.BitOr):
            left = self._to_handle(expr.left, source, depth + 1)
            right = self._to_handle(expr.right, source, depth + 1)
            if left is None or right is None:
                return None
            members = _flatten_union(left) + _flatten_union(right)
            return TypeHandle(name="Union", args=members)
        if isinstance(expr, ast.Subscript):
            base = self._to_handle(expr.value, source, depth + 1)
            if base is None:
                return None
            elements = list(expr.slice.elts) if isinstance(expr.slice, ast.Tuple) else [expr.slice]
            if base.name == "Literal":
                values = tuple(
                    str(e.value) for e in elements if isinstance(e, ast.Constant) and e.value is not None
                )
                return TypeHandle(name="Literal", qualified_name=base.qualified_name, enum_members=values)
            if base.name == "Annotated":
                return self._to_handle(elements[0], source, depth + 1)
            args: list[TypeHandle] = []
            for element in elements:
                handle = self._to_handle(element, source, depth + 1)
                if handle is None:
                    return None
                args.append(handle)
            return TypeHandle(name=base.name, args=tuple(args), qualified_name=base.qualified_name)
        return None

    def _named_handle(self, name: str, qualified: str, source: SourceFile) -> TypeHandle:
        enum_members: tuple[str, ...] | None = None
        found = self._find_class(name, source)
        if found is not None and self._is_enum(found[1]):
            enum_members = _enum_members(found[1])
        return TypeHandle(
            name=name,
            qualified_name=qualified if qualified != name else None,
            enum_members=enum_members,
        )

    def _find_class(self, name: str, source: SourceFile | None) -> tuple[SourceFile, ast.ClassDef] | None:
        candidates = self._classes.get(name)
        if not candidates:
            return None
        if source is not None:
            for candidate in candidates:
                if candidate[0].path == source.path:
                    return candidate
        return candidates[0]

    def _is_enum(self, classdef: ast.ClassDef, _seen: frozenset[str] = frozenset()) -> bool:
        for base in classdef.bases:
            base_name = annotation_name(base)
            if base_name is None:
                continue
            if base_name in _ENUM_BASES:
                return True
            if base_name in _seen or base_name == classdef.name:
                continue
            found = self._find_class(base_name, None)
            if found is not None and self._is_enum(found[1], _seen | {classdef.name}):
                return True
        return False

    def describe_type(self, name: str, source: SourceFile | None = None) -> TypeDeclaration | None:
        """Describe a class declared in the forest, or None if unknown."""
        found = self._find_class(name, source)
        if found is None:
            return None
        key = (found[0].path, name)
        if key not in self._declarations:
            self._declarations[key] = self._build_declaration(found[0], found[1], frozenset())
        return self._declarations[key]

    def _build_declaration(
        self, source: SourceFile, classdef: ast.ClassDef, seen: frozenset[str]
    ) -> TypeDeclaration:
        if self._is_enum(classdef):
            return TypeDeclaration(
                name=classdef.name,
                source_path=source.path,
                kind="enum",
                enum_members=_enum_members(classdef),
                decorators=tuple(classdef.decorator_list),
            )

        fields: dict[str, FieldDeclaration] = {}
        for base in classdef.bases:
            base_name = annotation_name(base)
            if base_name is None or base_name in seen or base_name == classdef.name:
                continue
            found = self._find_class(base_name, source)
            if found is None:
                continue
            inherited = self._build_declaration(found[0], found[1], seen | {classdef.name})
            for f in inherited.fields:
                fields[f.name] = f

        init_defaults = _init_defaults(classdef)
        body = classdef.body
        for index, stmt in enumerate(body):
            if not isinstance(stmt, ast.AnnAssign) or not isinstance(stmt.target, ast.Name):
                continue
            field_name = stmt.target.id
            if field_name.startswith("_") or field_name == "model_config":
                continue
            if annotation_name(stmt.annotation) == "ClassVar":
                continue

            annotation, metadata = _split_annotated(stmt.annotation)
            handle = self._to_handle(annotation, source, depth=0) or TypeHandle(name="object")

            has_default = _has_default(stmt.value) or field_name.lower() in init_defaults
            description = _field_description(stmt.value)
            for item in metadata:
                if isinstance(item, ast.Call) and annotation_name(item.func) in _FIELD_FACTORIES:
                    has_default = has_default or _has_default(item)
                    description = description or _field_description(item)
            if description is None and index + 1 < len(body):
                description = _attribute_docstring(body[index + 1])

            fields[field_name] = FieldDeclaration(
                name=field_name,
                annotation=handle,
                has_default=has_default,
                description=description,
            )

        return TypeDeclaration(
            name=classdef.name,
            source_path=source.path,
            kind="class",
            fields=tuple(fields.values()),
            decorators=tuple(classdef.decorator_list),
        )

    # ----- Constants -----

    def constant_value(self, expr: ast.expr, source: SourceFile) -> str | int | None:
        """Constant-fold a string or integer expression, or return None."""
        return self._fold(expr, source, depth=0)

    def _fold(self, expr: ast.expr, source: SourceFile, depth: int) -> Any:
        if depth > _MAX_FOLD_DEPTH:
            return None

        if isinstance(expr, ast.Constant):
            if isinstance(expr.value, bool):
                return None
            if isinstance(expr.value, (str, int)):
                return expr.value
            return None

        if isinstance(expr, ast.Name):
            local = self._constants.get(source.path, {})
            if expr.id in local:
                return self._fold(local[expr.id], source, depth + 1)
            # imported from another module of the forest
            for other in self._forest:
                if other.path != source.path and expr.id in self._constants.get(other.path, {}):
                    return self._fold(self._constants[other.path][expr.id], other, depth + 1)
            return None

        if isinstance(expr, ast.Attribute) and isinstance(expr.value, (ast.Name, ast.Attribute)):
            owner = annotation_name(expr.value)
            if owner == "HTTPStatus":
                try:
                    return HTTPStatus[expr.attr].value
                except KeyError:
                    return None
            found = self._find_class(owner, source) if owner else None
            if found is None:
                return None
            for stmt in found[1].body:
                if (
                    isinstance(stmt, ast.Assign)
                    and len(stmt.targets) == 1
                    and isinstance(stmt.targets[0], ast.Name)
                    and stmt.targets[0].id == expr.attr
                ):
                    return self._fold(stmt.value, found[0], depth + 1)
                if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name) and stmt.target.id == expr.attr:
                    return self._fold(stmt.value, found[0], depth + 1) if stmt.value is not None else None
            return None

        if isinstance(expr, ast.BinOp) and isinstance(expr.op, ast.Add):
            left = self._fold(expr.left, source, depth + 1)
            right = self._fold(expr.right, source, depth + 1)
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            return None

        if isinstance(expr, ast.JoinedStr):
            pieces: list[str] = []
            for value in expr.values:
                if isinstance(value, ast.Constant) and isinstance(value.value, str):
                    pieces.append(value.value)
                elif isinstance(value, ast.FormattedValue) and value.format_spec is None and value.conversion == -1:
                    folded = self._fold(value.value, source, depth + 1)
                    if folded is None:
                        return None
                    pieces.append(str(folded))
                else:
                    return None
            return "".join(pieces)

        return None


# ----- Helpers -----


def _flatten_union(handle: TypeHandle) -> tuple[TypeHandle, ...]:
    if handle.name == "Union" and handle.qualified_name is None:
        return handle.args
    return (handle,)


def _lookup_in_function(func: ast.FunctionDef | ast.AsyncFunctionDef, name: str) -> str | None:
    arguments = func.args
    for arg in [*arguments.posonlyargs, *arguments.args, *arguments.kwonlyargs]:
        if arg.arg == name and arg.annotation is not None:
            return annotation_name(arg.annotation)
    return _lookup_in_body(func.body, name)


def _lookup_in_body(body: list[ast.stmt], name: str) -> str | None:
    """Find ``name: T`` or ``name = T(...)`` in a scope, not descending into nested scopes."""
    pending: list[ast.AST] = list(body)
    while pending:
        node = pending.pop(0)
        if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name) and node.target.id == name:
            return annotation_name(node.annotation)
        if (
            isinstance(node, ast.Assign)
            and isinstance(node.value, ast.Call)
            and any(isinstance(t, ast.Name) and t.id == name for t in node.targets)
        ):
            constructor = annotation_name(node.value.func)
            # Only class-style constructors name a type; factory functions are unknown.
            if constructor and constructor[:1].isupper():
                return constructor
        pending.extend(
            child
            for child in ast.iter_child_nodes(node)
            if not isinstance(child, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef, ast.Lambda))
        )
    return None


def _enum_members(classdef: ast.ClassDef) -> tuple[str, ...]:
    members: list[str] = []
    for stmt in classdef.body:
        if isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                if isinstance(target, ast.Name) and not target.id.startswith("_"):
                    members.append(target.id)
        elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name) and stmt.value is not None:
            if not stmt.target.id.startswith("_"):
                members.append(stmt.target.id)
    return tuple(members)


def _init_defaults(classdef: ast.ClassDef) -> set[str]:
    """Lower-cased names of ``__init__`` parameters that declare a default."""
    names: set[str] = set()
    for stmt in classdef.body:
        if not isinstance(stmt, ast.FunctionDef) or stmt.name != "__init__":
            continue
        arguments = stmt.args
        positional = [*arguments.posonlyargs, *arguments.args]
        for arg in positional[len(positional) - len(arguments.defaults) :]:
            names.add(arg.arg.lower())
        for arg, default in zip(arguments.kwonlyargs, arguments.kw_defaults):
            if default is not None:
                names.add(arg.arg.lower())
    return names


def _split_annotated(annotation: ast.expr) -> tuple[ast.expr, list[ast.expr]]:
    if (
        isinstance(annotation, ast.Subscript)
        and annotation_name(annotation.value) == "Annotated"
        and isinstance(annotation.slice, ast.Tuple)
        and annotation.slice.elts
    ):
        elements = annotation.slice.elts
        return elements[0], list(elements[1:])
    return annotation, []


def _is_ellipsis(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and node.value is Ellipsis


def _has_default(value: ast.expr | None) -> bool:
    if value is None:
        return False
    if isinstance(value, ast.Call) and annotation_name(value.func) in _FIELD_FACTORIES:
        if value.args and not _is_ellipsis(value.args[0]):
            return True
        return any(kw.arg in _DEFAULT_KEYWORDS and not _is_ellipsis(kw.value) for kw in value.keywords)
    return True


def _field_description(value: ast.expr | None) -> str | None:
    if isinstance(value, ast.Call) and annotation_name(value.func) in _FIELD_FACTORIES:
        for kw in value.keywords:
            if kw.arg == "description" and isinstance(kw.value, ast.Constant) and isinstance(kw.value.value, str):
                return kw.value.value
    return None


def _attribute_docstring(stmt: ast.stmt) -> str | None:
    if isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant) and isinstance(stmt.value.value, str):
        return inspect.cleandoc(stmt.value.value)
    return None
