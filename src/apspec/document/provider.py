"""Document provider: one-shot load, merge, lint and cache."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone

import yaml

from apspec.document.document import ComposedDocument, LoadStats
from apspec.document.linter import PolicyLinter
from apspec.document.loader import DocumentLoader
from apspec.document.merger import DocumentMerger
from apspec.errors import ConfigError, DocumentNotLoadedError, OpenApiValidationError

__all__ = ["DocumentProvider"]

logger = logging.getLogger(__name__)

REQUIRED_COMMON_FRAGMENTS = 3


class DocumentProvider:
    """Loads, merges and lints fragments once, then serves the cached document.

    ``warm_up`` is not guarded by a lock; callers that may race on the first
    call must serialize it themselves. A failed warm-up caches nothing, so it
    can be retried.
    """

    def __init__(
        self,
        loader: DocumentLoader | None,
        merger: DocumentMerger | None,
        linter: PolicyLinter | None,
    ) -> None:
        if loader is None:
            raise ConfigError(message="DocumentProvider requires a loader")
        if merger is None:
            raise ConfigError(message="DocumentProvider requires a merger")
        if linter is None:
            raise ConfigError(message="DocumentProvider requires a linter")
        self._loader = loader
        self._merger = merger
        self._linter = linter
        self._document: ComposedDocument | None = None
        self._load_count = 0

    @property
    def document(self) -> ComposedDocument:
        if self._document is None:
            raise DocumentNotLoadedError()
        return self._document

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    @property
    def load_count(self) -> int:
        return self._load_count

    def warm_up(self) -> ComposedDocument:
        """Load and validate the document on first call; later calls return the cache."""
        if self._document is not None:
            return self._document

        start = time.time()
        common = self._loader.load_common()
        partials = self._loader.load_partials()

        errors: list[str] = []
        for fragment in common:
            errors.extend(self._linter.lint(fragment.origin, fragment.root, require_paths=False))
        for fragment in partials:
            errors.extend(self._linter.lint(fragment.origin, fragment.root, require_paths=True))

        if len(common) < REQUIRED_COMMON_FRAGMENTS:
            raise ConfigError(
                message="load_common() must return at least 3 fragments: schemas, responses, and security."
            )

        merged = self._merger.merge(common[0], common[1], common[2], partials)
        errors.extend(self._linter.lint("merged", merged))

        if errors:
            logger.error("OpenAPI warm-up failed with %d error(s)", len(errors))
            raise OpenApiValidationError(errors=errors)

        paths = merged.get("paths")
        stats = LoadStats(
            duration_seconds=time.time() - start,
            fragment_count=len(common) + len(partials),
            path_count=len(paths) if isinstance(paths, dict) else 0,
        )
        self._document = ComposedDocument(
            root=merged,
            json=json.dumps(merged, indent=2, ensure_ascii=False),
            yaml=yaml.safe_dump(merged, sort_keys=False, allow_unicode=True, default_flow_style=False),
            version=str(merged.get("openapi", "3.1.0")),
            loaded_at=datetime.now(timezone.utc),
            stats=stats,
        )
        self._load_count += 1
        logger.info(
            "OpenAPI document loaded: %d fragment(s), %d path(s) in %.1fms",
            stats.fragment_count,
            stats.path_count,
            stats.duration_ms,
        )
        return self._document
