"""Lint policy options."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from apspec.config import Config
from apspec.errors import ConfigError, ConfigNotFoundError

__all__ = ["LintOptions"]


class LintOptions(BaseModel):
    """Policy lists for the linter. Serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    required_error_responses: list[str] = Field(default_factory=list, alias="requiredErrorResponses")
    sensitive_field_names: list[str] = Field(default_factory=list, alias="sensitiveFieldNames")
    disallowed_generic_segments: list[str] = Field(default_factory=list, alias="disallowedGenericSegments")

    @field_validator("required_error_responses", mode="before")
    @classmethod
    def _status_codes_as_strings(cls, value: object) -> object:
        # YAML reads bare status codes as integers.
        if isinstance(value, list):
            return [str(item) for item in value]
        return value

    @classmethod
    def empty(cls) -> LintOptions:
        return cls()

    @classmethod
    def load(cls, path: str | Path) -> LintOptions:
        """Load options from a JSON or YAML file."""
        options_path = Path(path)
        if not options_path.exists():
            raise ConfigNotFoundError(config_path=str(options_path))
        text = options_path.read_text(encoding="utf-8")
        try:
            data = json.loads(text) if options_path.suffix == ".json" else yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(message=f"Invalid lint options file: {options_path}", cause=e) from e
        return cls._validate(data or {}, str(options_path))

    @classmethod
    def from_config(cls, config: Config) -> LintOptions:
        """Read the ``lint`` section of a Config, or empty options."""
        return cls._validate(config.get("lint", {}) or {}, "lint")

    @classmethod
    def _validate(cls, data: object, origin: str) -> LintOptions:
        if not isinstance(data, dict):
            raise ConfigError(message=f"Lint options must be a mapping: {origin}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(message=f"Invalid lint options in {origin}: {e}", cause=e) from e
