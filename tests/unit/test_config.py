"""Tests for YAML config loading."""

from __future__ import annotations

import pytest

from pazuzu.common.config import AppConfig, load_config
from pazuzu.common.errors import ConfigError


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path) -> None:
        cfg = load_config(tmp_path / "absent.yaml")
        assert cfg == AppConfig()
        assert cfg.compose.base_image is None

    def test_env_vars_resolved(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("CATALOG_DB", "postgresql://db/catalog")
        monkeypatch.delenv("BASE_IMAGE", raising=False)
        path = tmp_path / "cfg.yaml"
        path.write_text(
            "database:\n  url: ${CATALOG_DB}\n"
            "compose:\n  base_image: ${BASE_IMAGE:debian:12}\n"
        )
        cfg = load_config(path)
        assert cfg.database.url == "postgresql://db/catalog"
        assert cfg.compose.base_image == "debian:12"

    def test_empty_file_gives_defaults(self, tmp_path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == AppConfig()

    def test_malformed_yaml(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("database: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_values(self, tmp_path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("database:\n  echo: definitely\n")
        with pytest.raises(ConfigError):
            load_config(path)
