"""Policy linter for OpenAPI fragments and composed documents."""

from __future__ import annotations

import logging
import re
from typing import Any

from apspec.document.options import LintOptions

__all__ = ["PolicyLinter", "is_version_segment"]

logger = logging.getLogger(__name__)

REQUIRED_VERSION = "3.1.0"
METHODS = ("get", "post", "put", "patch", "delete", "options", "head")
ACCEPTED_SCHEMES = ("JwtBearer", "OAuth2")

_VERSION_SEGMENT = re.compile(r"^[vV]\d+(\.\d+)?$")


def is_version_segment(segment: str) -> bool:
    """``v1``, ``V2``, ``v1.1`` are version segments."""
    return bool(_VERSION_SEGMENT.match(segment))


class PolicyLinter:
    """Validates structural and policy rules.

    Every check appends to one error list and all checks run to
    completion; the only early exit is a missing ``openapi`` field.
    """

    def __init__(self, options: LintOptions | None = None) -> None:
        self._options = options if options is not None else LintOptions.empty()
        self._sensitive = {n.lower() for n in self._options.sensitive_field_names}
        self._denylist = {s.lower() for s in self._options.disallowed_generic_segments}

    @property
    def options(self) -> LintOptions:
        return self._options

    def lint(self, source_name: str, root: dict[str, Any], require_paths: bool = True) -> list[str]:
        """Return every violation found in ``root``, each prefixed with ``source_name``."""
        errors: list[str] = []

        if root.get("openapi") is None:
            errors.append(f"{source_name}: missing 'openapi' version field")
            return errors

        version = str(root["openapi"])
        if version != REQUIRED_VERSION:
            errors.append(f"{source_name}: OpenAPI version must be {REQUIRED_VERSION}, found '{version}'")

        paths = root.get("paths")
        if not isinstance(paths, dict) or not paths:
            if require_paths:
                errors.append(f"{source_name}: at least one path is required")
            return errors

        for path, path_item in paths.items():
            path = str(path)
            segments = [s for s in path.split("/") if s]
            if not any(is_version_segment(s) for s in segments):
                errors.append(f"{source_name}: path '{path}' must include version (e.g., /v1/)")
            if self.is_generic_path(path):
                errors.append(f"{source_name}: path '{path}' is too generic")
            if not isinstance(path_item, dict):
                continue
            for method in METHODS:
                operation = path_item.get(method)
                if isinstance(operation, dict):
                    self._lint_operation(source_name, f"{method} {path}", operation, errors)

        self._lint_sensitive_fields(source_name, root, errors)

        if errors:
            logger.debug("Lint of '%s' found %d error(s)", source_name, len(errors))
        return errors

    def is_generic_path(self, path: str) -> bool:
        """True when every post-version segment is a placeholder, or any is denylisted."""
        segments = [s for s in path.split("/") if s]
        version_index = next((i for i, s in enumerate(segments) if is_version_segment(s)), -1)
        if version_index < 0 or version_index == len(segments) - 1:
            return False
        tail = segments[version_index + 1 :]
        all_placeholders = all(s.startswith("{") and s.endswith("}") for s in tail)
        return all_placeholders or any(s.lower() in self._denylist for s in tail)

    def _lint_operation(self, source_name: str, location: str, operation: dict[str, Any], errors: list[str]) -> None:
        security = operation.get("security")
        if isinstance(security, list):
            # An empty list marks the operation as anonymous.
            if security and not any(
                isinstance(entry, dict) and scheme in entry for entry in security for scheme in ACCEPTED_SCHEMES
            ):
                errors.append(f"{source_name}: JwtBearer or OAuth2 required for '{location}'")
        else:
            errors.append(f"{source_name}: security required for '{location}'")

        responses = operation.get("responses")
        if not isinstance(responses, dict) or not responses:
            errors.append(f"{source_name}: at least one response required for '{location}'")
        else:
            declared = {str(status) for status in responses}
            for required in self._options.required_error_responses:
                if str(required) not in declared:
                    errors.append(f"{source_name}: response {required} is required for '{location}'")

        request_body = operation.get("requestBody")
        if isinstance(request_body, dict):
            self._lint_content(source_name, location, request_body, errors)

        if isinstance(responses, dict):
            for status, response in responses.items():
                # Bodiless responses (204, untyped 404) carry no content.
                if isinstance(response, dict) and "$ref" not in response and "content" in response:
                    self._lint_content(source_name, f"{location} response {status}", response, errors)

    def _lint_content(self, source_name: str, location: str, container: dict[str, Any], errors: list[str]) -> None:
        content = container.get("content")
        if not isinstance(content, dict):
            errors.append(f"{source_name}: content required for {location}")
            return
        for media_type, media in content.items():
            if isinstance(media, dict) and media.get("schema") is None:
                errors.append(f"{source_name}: schema required for {location} ({media_type})")

    def _lint_sensitive_fields(self, source_name: str, root: dict[str, Any], errors: list[str]) -> None:
        if not self._sensitive:
            return
        components = root.get("components")
        schemas = components.get("schemas") if isinstance(components, dict) else None
        if not isinstance(schemas, dict):
            return
        for schema_name, schema in schemas.items():
            properties = schema.get("properties") if isinstance(schema, dict) else None
            if not isinstance(properties, dict):
                continue
            for property_name, property_schema in properties.items():
                if str(property_name).lower() not in self._sensitive:
                    continue
                description = property_schema.get("description") if isinstance(property_schema, dict) else None
                if not isinstance(description, str) or not description.strip():
                    errors.append(
                        f"{source_name}: sensitive field '{property_name}' in schema '{schema_name}' "
                        "must include description"
                    )
