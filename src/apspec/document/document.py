"""The composed, cached OpenAPI document and its load statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

__all__ = ["LoadStats", "ComposedDocument"]


@dataclass(frozen=True)
class LoadStats:
    """Statistics of one successful warm-up."""

    duration_seconds: float
    fragment_count: int
    path_count: int

    @property
    def duration_ms(self) -> float:
        return self.duration_seconds * 1000


@dataclass(frozen=True)
class ComposedDocument:
    """The merged document with its JSON and YAML serializations."""

    root: dict[str, Any] = field(hash=False)
    json: str
    yaml: str
    version: str
    loaded_at: datetime
    stats: LoadStats

    @property
    def path_count(self) -> int:
        return self.stats.path_count
