"""Syntax forest: an immutable snapshot of parsed Python source files."""

from __future__ import annotations

import ast
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Mapping

from apspec.errors import ConfigNotFoundError

__all__ = ["SourceFile", "SourceForest"]

logger = logging.getLogger(__name__)

_SKIP_DIR_NAMES = {"__pycache__", "node_modules", "build", "dist"}


@dataclass(frozen=True)
class SourceFile:
    """One parsed source file."""

    path: str
    text: str
    tree: ast.Module


class SourceForest:
    """A set of parsed modules with parent links for every syntax node.

    Files that fail to parse are skipped with a warning so that
    partially-written source can still be analysed.
    """

    def __init__(self, files: Iterable[SourceFile]) -> None:
        self._files: list[SourceFile] = list(files)
        self._by_path: dict[str, SourceFile] = {f.path: f for f in self._files}
        self._parents: dict[ast.AST, ast.AST] = {}
        for source in self._files:
            for node in ast.walk(source.tree):
                for child in ast.iter_child_nodes(node):
                    self._parents[child] = node

    @classmethod
    def from_sources(cls, sources: Mapping[str, str]) -> SourceForest:
        """Build a forest from in-memory ``{path: text}`` pairs."""
        files: list[SourceFile] = []
        for path, text in sources.items():
            parsed = _parse(path, text)
            if parsed is not None:
                files.append(parsed)
        return cls(files)

    @classmethod
    def from_paths(cls, paths: Iterable[str | Path], root: str | Path | None = None) -> SourceForest:
        """Build a forest from files on disk. Paths are recorded relative to ``root`` when given."""
        base = Path(root).resolve() if root is not None else None
        files: list[SourceFile] = []
        for raw in paths:
            file_path = Path(raw).resolve()
            if not file_path.exists():
                raise ConfigNotFoundError(config_path=str(file_path))
            display = file_path.relative_to(base).as_posix() if base is not None else file_path.as_posix()
            parsed = _parse(display, file_path.read_text(encoding="utf-8"))
            if parsed is not None:
                files.append(parsed)
        return cls(files)

    @classmethod
    def from_directory(cls, root: str | Path) -> SourceForest:
        """Recursively collect ``*.py`` files under ``root`` in sorted order."""
        root_path = Path(root).resolve()
        if not root_path.exists():
            raise ConfigNotFoundError(config_path=str(root_path))

        found: list[Path] = []
        for dir_path, dir_names, file_names in os.walk(root_path):
            dir_names[:] = sorted(d for d in dir_names if d not in _SKIP_DIR_NAMES and not d.startswith("."))
            for name in sorted(file_names):
                if name.endswith(".py") and not name.startswith("."):
                    found.append(Path(dir_path) / name)
        return cls.from_paths(found, root=root_path)

    @property
    def files(self) -> list[SourceFile]:
        return list(self._files)

    def __iter__(self) -> Iterator[SourceFile]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def get(self, path: str) -> SourceFile | None:
        return self._by_path.get(path)

    def parent(self, node: ast.AST) -> ast.AST | None:
        """Return the syntactic parent of ``node``, or None at module level."""
        return self._parents.get(node)

    def ancestors(self, node: ast.AST) -> Iterator[ast.AST]:
        current = self._parents.get(node)
        while current is not None:
            yield current
            current = self._parents.get(current)


def _parse(path: str, text: str) -> SourceFile | None:
    try:
        tree = ast.parse(text, filename=path)
    except SyntaxError as e:
        logger.warning("Skipping %s: syntax error at line %s: %s", path, e.lineno, e.msg)
        return None
    return SourceFile(path=path, text=text, tree=tree)
