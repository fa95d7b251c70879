"""Endpoint records produced by the scanner."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from apspec.schema.types import TypeHandle

__all__ = ["HttpVerb", "DeclaredResponse", "EndpointRecord", "path_parameters"]

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


class HttpVerb(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"

    @property
    def has_body(self) -> bool:
        return self in (HttpVerb.POST, HttpVerb.PUT, HttpVerb.PATCH)


@dataclass(frozen=True)
class DeclaredResponse:
    """An explicitly declared additional response."""

    status: int
    response_type: TypeHandle | None = None
    content_type: str = "application/json"


@dataclass(frozen=True)
class EndpointRecord:
    """One discovered route registration. Immutable once scanned."""

    verb: HttpVerb
    path: str
    request_type: TypeHandle
    response_type: TypeHandle
    requires_auth: bool = True
    accepts_content_type: str = "application/json"
    produces_content_type: str = "application/json"
    operation_id: str | None = None
    summary: str | None = None
    description: str | None = None
    tags: tuple[str, ...] = ()
    declared_responses: tuple[DeclaredResponse, ...] = ()
    source_file: str = ""
    line: int = 0

    @property
    def request_type_name(self) -> str:
        return self.request_type.name

    @property
    def response_type_name(self) -> str:
        return self.response_type.name

    @property
    def path_parameters(self) -> list[str]:
        return path_parameters(self.path)


def path_parameters(path: str) -> list[str]:
    """Return the ``{placeholder}`` names of a path template, in order."""
    return _PLACEHOLDER.findall(path)
