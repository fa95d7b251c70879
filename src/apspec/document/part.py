"""Document fragments: one parsed OpenAPI part with its origin."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = ["DocumentFragment"]


@dataclass(frozen=True)
class DocumentFragment:
    """A parsed fragment. ``origin`` is the source path or resource it was read from."""

    name: str
    origin: str
    root: dict[str, Any] = field(hash=False)
    raw: str = ""

    @property
    def paths(self) -> dict[str, Any]:
        paths = self.root.get("paths")
        return paths if isinstance(paths, dict) else {}

    @property
    def components(self) -> dict[str, Any]:
        components = self.root.get("components")
        return components if isinstance(components, dict) else {}
