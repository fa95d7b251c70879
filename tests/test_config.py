"""Tests for Config loading and dot-path access."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from apspec.config import Config
from apspec.errors import ConfigError, ConfigNotFoundError


class TestConfig:
    def test_dot_path_get(self) -> None:
        config = Config({"document": {"title": "Gateway", "server_url": "https://api.example.com"}})
        assert config.get("document.title") == "Gateway"
        assert config.get("document.version", "1.0.0") == "1.0.0"
        assert config.get("missing.key") is None

    def test_load_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "apspec.yaml"
        path.write_text("generator:\n  name: Orders\nlint:\n  requiredErrorResponses: ['400']\n")
        config = Config.load(path)
        assert config.get("generator.name") == "Orders"
        assert config.get("lint.requiredErrorResponses") == ["400"]

    def test_empty_file_is_empty_config(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert Config.load(path).get("anything") is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigNotFoundError):
            Config.load(tmp_path / "nope.yaml")

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            Config.load(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("a: [unclosed\n")
        with pytest.raises(ConfigError) as exc_info:
            Config.load(path)
        assert isinstance(exc_info.value.cause, yaml.YAMLError)
