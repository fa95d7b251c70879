"""Build-time generation: scan -> assemble -> emit, producing a GeneratedSpec."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from apspec.config import Config
from apspec.emitter import DocumentEmitter
from apspec.errors import ConfigError
from apspec.scanner.forest import SourceForest
from apspec.scanner.oracle import SourceOracle, SymbolOracle
from apspec.scanner.scanner import EndpointScanner
from apspec.schema.assembler import SchemaAssembler

__all__ = ["GeneratorOptions", "GeneratedSpec", "generate_spec", "render_module"]

logger = logging.getLogger(__name__)


class GeneratorOptions(BaseModel):
    """Settings for one generated fragment."""

    model_config = ConfigDict(extra="forbid")

    name: str = "API"
    title: str | None = None
    version: str = "1.0.0"
    builder_markers: list[str] = Field(default_factory=lambda: ["RouteBuilder"])

    @property
    def effective_title(self) -> str:
        """Explicit title, or the name with dots replaced by spaces."""
        return self.title or self.name.replace(".", " ")

    @classmethod
    def from_config(cls, config: Config) -> GeneratorOptions:
        section = config.get("generator", {}) or {}
        if not isinstance(section, dict):
            raise ConfigError(message="Config key 'generator' must be a mapping")
        try:
            return cls(**section)
        except ValidationError as e:
            raise ConfigError(message=f"Invalid generator options: {e}", cause=e) from e


@dataclass(frozen=True)
class GeneratedSpec:
    """The build-time artifact a service ships: YAML plus its endpoint list."""

    yaml: str
    endpoints: tuple[tuple[str, str], ...] = ()

    @property
    def endpoint_count(self) -> int:
        return len(self.endpoints)

    @classmethod
    def from_module(cls, module: ModuleType) -> GeneratedSpec:
        """Read a module written by ``render_module``."""
        yaml_text = getattr(module, "YAML", None)
        if not isinstance(yaml_text, str):
            raise ConfigError(message=f"Module '{module.__name__}' does not define a YAML string")
        endpoints: Any = getattr(module, "ENDPOINTS", ())
        return cls(yaml=yaml_text, endpoints=tuple((str(m), str(p)) for m, p in endpoints))


def generate_spec(
    forest: SourceForest,
    options: GeneratorOptions | None = None,
    oracle: SymbolOracle | None = None,
) -> GeneratedSpec:
    """Scan ``forest`` for registrations and emit one OpenAPI fragment."""
    options = options or GeneratorOptions()
    if oracle is None:
        oracle = SourceOracle(forest, builder_markers=tuple(options.builder_markers))

    endpoints = EndpointScanner(forest, oracle=oracle).scan()
    schemas = SchemaAssembler(oracle=oracle, forest=forest).assemble(endpoints)
    yaml_text = DocumentEmitter(title=options.effective_title, version=options.version).emit(endpoints, schemas)

    listed = tuple(sorted({(e.verb.value, e.path) for e in endpoints}, key=lambda item: (item[1], item[0])))
    logger.info(
        "Generated spec '%s': %d endpoint(s), %d schema(s)",
        options.effective_title,
        len(listed),
        len(schemas),
    )
    return GeneratedSpec(yaml=yaml_text, endpoints=listed)


def render_module(spec: GeneratedSpec, title: str | None = None) -> str:
    """Render a Python module embedding ``spec``, readable with ``GeneratedSpec.from_module``."""
    header = f"Generated OpenAPI specification for {title}." if title else "Generated OpenAPI specification."
    lines = [
        repr(f"{header} Do not edit."),
        "",
        f"YAML = {spec.yaml!r}",
        "",
        f"ENDPOINT_COUNT = {spec.endpoint_count}",
        "",
        "ENDPOINTS = (",
    ]
    lines.extend(f"    ({method!r}, {path!r})," for method, path in spec.endpoints)
    lines.append(")")
    return "\n".join(lines) + "\n"
