"""Document merger: composes shared and per-service fragments into one document."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Sequence

from apspec.config import Config
from apspec.document.part import DocumentFragment
from apspec.errors import ComponentConflictError, DuplicatePathError

__all__ = ["DocumentMerger"]

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.1.0"


class DocumentMerger:
    """Merges fragments; collisions are errors, never silent overwrites.

    Subclass and override the ``get_*`` accessors to customize the
    document header, or pass a ``Config`` carrying ``document.*`` keys.
    """

    def __init__(self, config: Config | None = None) -> None:
        self._config = config or Config()

    def get_server_url(self) -> str:
        return str(self._config.get("document.server_url", "https://localhost:5001"))

    def get_api_title(self) -> str:
        return str(self._config.get("document.title", "API"))

    def get_api_description(self) -> str:
        return str(self._config.get("document.description", "Consolidated OpenAPI contract."))

    def get_api_version(self) -> str:
        return str(self._config.get("document.version", "1.0.0"))

    def merge(
        self,
        common_schemas: DocumentFragment,
        common_responses: DocumentFragment,
        common_security: DocumentFragment,
        partials: Sequence[DocumentFragment],
    ) -> dict[str, Any]:
        """Compose the three shared fragments and the per-service fragments in order."""
        root: dict[str, Any] = {
            "openapi": OPENAPI_VERSION,
            "info": {
                "title": self.get_api_title(),
                "version": self.get_api_version(),
                "description": self.get_api_description(),
            },
            "servers": [{"url": self.get_server_url(), "description": "API Gateway"}],
            "paths": {},
            "components": {},
        }

        for shared in (common_schemas, common_responses, common_security):
            self.merge_components(root, shared)

        paths: dict[str, Any] = root["paths"]
        for partial in partials:
            for path, item in partial.paths.items():
                if path in paths:
                    raise DuplicatePathError(path=path, fragment_name=partial.name)
                paths[path] = copy.deepcopy(item)
            self.merge_components(root, partial)

        logger.debug(
            "Merged %d partial fragment(s) into %d path(s)",
            len(partials),
            len(paths),
        )
        return root

    def merge_components(self, root: dict[str, Any], fragment: DocumentFragment) -> None:
        """Merge ``fragment.components`` section by section into ``root``."""
        target_components: dict[str, Any] = root.setdefault("components", {})
        for section_name, section in fragment.components.items():
            if not isinstance(section, dict):
                continue
            target = target_components.get(section_name)
            if not isinstance(target, dict):
                target = {}
                target_components[section_name] = target
            for key, value in section.items():
                if key in target:
                    existing = _canonical(target[key])
                    incoming = _canonical(value)
                    if existing == incoming:
                        continue
                    raise ComponentConflictError(section=section_name, key=key, existing=existing, incoming=incoming)
                target[key] = copy.deepcopy(value)


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
