"""Document part loaders: read shared and per-service fragments from any source."""

from __future__ import annotations

import importlib.resources
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Protocol, Sequence

import yaml

from apspec.config import Config
from apspec.document.part import DocumentFragment
from apspec.errors import ConfigError, FragmentParseError, ResourceNotFoundError

__all__ = [
    "DocumentLoader",
    "ResourceReader",
    "ResourceDocumentLoader",
    "FileDocumentLoader",
    "parse_fragment",
    "load_generated_fragment",
]

logger = logging.getLogger(__name__)


class _HasYaml(Protocol):
    yaml: str


class _FragmentYamlLoader(yaml.SafeLoader):
    """SafeLoader that keeps timestamps as strings so fragments stay JSON-native."""

    yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
        for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }


class DocumentLoader(ABC):
    """Fan-in boundary of the provider.

    ``load_common`` returns the shared fragments in order (schemas,
    responses, security); ``load_partials`` the per-service fragments.
    """

    @abstractmethod
    def load_common(self) -> list[DocumentFragment]: ...

    @abstractmethod
    def load_partials(self) -> list[DocumentFragment]: ...


def parse_fragment(name: str, origin: str, raw: str) -> DocumentFragment:
    """Parse JSON or YAML text into a fragment. The root must be a mapping."""
    if not raw.strip():
        raise FragmentParseError(message=f"OpenAPI resource '{origin}' is empty.")
    try:
        root = yaml.load(raw, Loader=_FragmentYamlLoader)
    except yaml.YAMLError as e:
        raise FragmentParseError(message=f"OpenAPI resource '{origin}' is not valid JSON or YAML: {e}", cause=e) from e
    if root is None:
        raise FragmentParseError(message=f"OpenAPI resource '{origin}' is empty.")
    if not isinstance(root, dict):
        raise FragmentParseError(message=f"OpenAPI resource '{origin}' must contain a mapping at its root.")
    return DocumentFragment(name=name, origin=origin, root=root, raw=raw)


def load_generated_fragment(name: str, spec: _HasYaml) -> DocumentFragment:
    """Build a fragment from an in-memory generated spec."""
    return parse_fragment(name, f"generated:{name}", spec.yaml)


class ResourceReader:
    """Reads text resources shipped inside a Python package.

    Relative paths may use ``/`` or ``\\`` separators; the dotted resource
    name ``package.base.seg.file`` is reported when a resource is missing.
    """

    def __init__(self, package: str, base: str = "") -> None:
        if not package:
            raise ConfigError(message="ResourceReader requires a package name")
        self._package = package
        self._base = [p for p in base.replace("\\", "/").split("/") if p]

    def resource_name(self, relative_path: str) -> str:
        return ".".join([self._package, *self._base, *_segments(relative_path)])

    def read_text(self, relative_path: str) -> str:
        target = self._root()
        for segment in _segments(relative_path):
            target = target.joinpath(segment)
        if not target.is_file():
            raise ResourceNotFoundError(relative_path=relative_path, resource_name=self.resource_name(relative_path))
        return target.read_text(encoding="utf-8")

    def list_resources(self) -> list[str]:
        """Relative paths (``/``-separated) of every file under the base directory."""
        found: list[str] = []
        root = self._root()
        if root.is_dir():
            self._collect(root, "", found)
        return sorted(found)

    def _root(self) -> Any:
        try:
            target = importlib.resources.files(self._package)
        except ModuleNotFoundError as e:
            raise ConfigError(message=f"Resource package '{self._package}' cannot be imported", cause=e) from e
        for segment in self._base:
            target = target.joinpath(segment)
        return target

    def _collect(self, node: Any, prefix: str, found: list[str]) -> None:
        for child in node.iterdir():
            if child.name == "__pycache__":
                continue
            relative = f"{prefix}{child.name}"
            if child.is_dir():
                self._collect(child, relative + "/", found)
            else:
                found.append(relative)


class ResourceDocumentLoader(DocumentLoader):
    """Base for loaders reading fragments from package resources.

    Subclasses implement ``load_common`` / ``load_partials`` in terms of
    ``load(name, path)``.
    """

    def __init__(self, reader: ResourceReader) -> None:
        if reader is None:
            raise ConfigError(message="ResourceDocumentLoader requires a ResourceReader")
        self._reader = reader

    @property
    def reader(self) -> ResourceReader:
        return self._reader

    def load(self, name: str, path: str) -> DocumentFragment:
        raw = self._reader.read_text(path)
        logger.debug("Loaded resource fragment '%s' from %s", name, path)
        return parse_fragment(name, path, raw)


class FileDocumentLoader(DocumentLoader):
    """Reads fragments from the file system.

    Entries are paths or ``{name, path}`` mappings; the name defaults to the
    file stem. Relative paths resolve against ``base_dir``.
    """

    def __init__(
        self,
        common: Iterable[str | Path | dict[str, Any]],
        partials: Iterable[str | Path | dict[str, Any]],
        base_dir: str | Path | None = None,
        extra_partials: Sequence[DocumentFragment] = (),
    ) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self._common = [self._entry(e) for e in common]
        self._partials = [self._entry(e) for e in partials]
        self._extra_partials = list(extra_partials)

    @classmethod
    def from_config(cls, config: Config, base_dir: str | Path | None = None) -> FileDocumentLoader:
        """Build from ``document.common`` and ``document.partials``."""
        common = config.get("document.common", [])
        partials = config.get("document.partials", [])
        if not isinstance(common, list) or not isinstance(partials, list):
            raise ConfigError(message="Config keys 'document.common' and 'document.partials' must be lists")
        return cls(common, partials, base_dir=base_dir)

    def load_common(self) -> list[DocumentFragment]:
        return [self._load(name, path) for name, path in self._common]

    def load_partials(self) -> list[DocumentFragment]:
        return [self._load(name, path) for name, path in self._partials] + self._extra_partials

    def _entry(self, entry: str | Path | dict[str, Any]) -> tuple[str, Path]:
        if isinstance(entry, dict):
            if "path" not in entry:
                raise ConfigError(message=f"Fragment entry is missing 'path': {entry}")
            path = Path(entry["path"])
            name = str(entry.get("name") or path.stem)
        else:
            path = Path(entry)
            name = path.stem
        if not path.is_absolute():
            path = self._base_dir / path
        return name, path

    def _load(self, name: str, path: Path) -> DocumentFragment:
        if not path.is_file():
            raise ResourceNotFoundError(relative_path=str(path), resource_name=name)
        raw = path.read_text(encoding="utf-8")
        logger.debug("Loaded file fragment '%s' from %s", name, path)
        return parse_fragment(name, path.as_posix(), raw)


def _segments(relative_path: str) -> list[str]:
    return [p for p in relative_path.replace("\\", "/").split("/") if p]
