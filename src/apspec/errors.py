"""Error hierarchy for the apspec toolkit."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

__all__ = [
    "ApSpecError",
    "ConfigNotFoundError",
    "ConfigError",
    "ResourceNotFoundError",
    "FragmentParseError",
    "DuplicatePathError",
    "DuplicateEndpointError",
    "ComponentConflictError",
    "DocumentNotLoadedError",
    "OpenApiValidationError",
    "ErrorCodes",
]


class ApSpecError(Exception):
    """Base error for all apspec errors."""

    def __init__(
        self,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details: dict[str, Any] = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ConfigNotFoundError(ApSpecError):
    """Raised when a configuration file cannot be found."""

    def __init__(self, config_path: str, **kwargs: Any) -> None:
        super().__init__(
            code="CONFIG_NOT_FOUND",
            message=f"Configuration file not found: {config_path}",
            details={"config_path": config_path},
            **kwargs,
        )


class ConfigError(ApSpecError):
    """Raised when configuration or wiring is invalid."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(code="CONFIG_INVALID", message=message, **kwargs)


class ResourceNotFoundError(ApSpecError):
    """Raised when an OpenAPI resource cannot be located."""

    def __init__(self, relative_path: str, resource_name: str, **kwargs: Any) -> None:
        super().__init__(
            code="RESOURCE_NOT_FOUND",
            message=(
                f"OpenAPI resource '{relative_path}' not found. "
                f"Expected resource name: '{resource_name}'."
            ),
            details={"relative_path": relative_path, "resource_name": resource_name},
            **kwargs,
        )


class FragmentParseError(ApSpecError):
    """Raised when a document fragment is empty or not a mapping."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(code="FRAGMENT_PARSE_ERROR", message=message, **kwargs)


class DuplicatePathError(ApSpecError):
    """Raised when two fragments declare the same path."""

    def __init__(self, path: str, fragment_name: str, **kwargs: Any) -> None:
        super().__init__(
            code="DUPLICATE_PATH",
            message=f"duplicate path '{path}' from {fragment_name}",
            details={"path": path, "fragment_name": fragment_name},
            **kwargs,
        )

    @property
    def path(self) -> str:
        """The path declared twice."""
        return self.details["path"]


class DuplicateEndpointError(ApSpecError):
    """Raised when two call sites register the same verb and path."""

    def __init__(self, verb: str, path: str, first: str, second: str, **kwargs: Any) -> None:
        super().__init__(
            code="DUPLICATE_ENDPOINT",
            message=f"duplicate endpoint {verb} {path}: registered at {first} and {second}",
            details={"verb": verb, "path": path, "locations": [first, second]},
            **kwargs,
        )


class ComponentConflictError(ApSpecError):
    """Raised when the same component key carries differing definitions."""

    def __init__(self, section: str, key: str, existing: str, incoming: str, **kwargs: Any) -> None:
        super().__init__(
            code="COMPONENT_CONFLICT",
            message=(
                f"conflicting component '{section}.{key}'. "
                f"Existing: {existing}, Incoming: {incoming}."
            ),
            details={"section": section, "key": key, "existing": existing, "incoming": incoming},
            **kwargs,
        )


class DocumentNotLoadedError(ApSpecError):
    """Raised when the composed document is read before a successful warm-up."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(
            code="DOCUMENT_NOT_LOADED",
            message="OpenAPI document not initialized. Call warm_up() first.",
            **kwargs,
        )


class OpenApiValidationError(ApSpecError):
    """Raised when lint checks fail. Bundles every message in order."""

    def __init__(self, errors: list[str], **kwargs: Any) -> None:
        super().__init__(
            code="OPENAPI_VALIDATION_FAILED",
            message="OpenAPI validation failed. " + " | ".join(errors),
            details={"errors": list(errors)},
            **kwargs,
        )

    @property
    def errors(self) -> list[str]:
        """The validation messages."""
        return self.details["errors"]


class ErrorCodes:
    """All apspec error codes as constants.

    Use these instead of hardcoding error code strings.

    Example:
        if error.code == ErrorCodes.DUPLICATE_PATH:
            handle_duplicate()
    """

    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_INVALID = "CONFIG_INVALID"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    FRAGMENT_PARSE_ERROR = "FRAGMENT_PARSE_ERROR"
    DUPLICATE_PATH = "DUPLICATE_PATH"
    DUPLICATE_ENDPOINT = "DUPLICATE_ENDPOINT"
    COMPONENT_CONFLICT = "COMPONENT_CONFLICT"
    DOCUMENT_NOT_LOADED = "DOCUMENT_NOT_LOADED"
    OPENAPI_VALIDATION_FAILED = "OPENAPI_VALIDATION_FAILED"

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("ErrorCodes is immutable")
