"""Tests for configuration management."""

import logging
from pathlib import Path

from src.utils.config import Config, get_config, get_database_url
from src.utils.constants import MAX_BOM_DEPTH


class TestConfig:
    """Tests for the Config class."""

    def test_development_uses_project_data_dir(self, monkeypatch):
        monkeypatch.delenv("PLM_DATABASE_URL", raising=False)
        config = Config("development")

        assert config.is_development
        assert config.database_path.parent.name == "data"
        assert config.database_url.startswith("sqlite:///")
        assert config.database_url.endswith("data/plm.db")

    def test_production_uses_documents_dir(self, monkeypatch):
        monkeypatch.delenv("PLM_DATABASE_URL", raising=False)
        config = Config("production")

        assert config.is_production
        assert config.database_path == Path.home() / "Documents" / "PLM" / "plm.db"

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("PLM_DATABASE_URL", "sqlite:///:memory:")

        config = Config("production")

        assert config.database_url == "sqlite:///:memory:"
        assert config.database_url_overridden is True

    def test_default_max_bom_depth(self, monkeypatch):
        monkeypatch.delenv("PLM_MAX_BOM_DEPTH", raising=False)

        assert Config().max_bom_depth == MAX_BOM_DEPTH == 50

    def test_max_bom_depth_override(self, monkeypatch):
        monkeypatch.setenv("PLM_MAX_BOM_DEPTH", "12")

        assert Config().max_bom_depth == 12

    def test_invalid_max_bom_depth_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("PLM_MAX_BOM_DEPTH", "deep")

        with caplog.at_level(logging.WARNING):
            config = Config()

        assert config.max_bom_depth == MAX_BOM_DEPTH
        assert "PLM_MAX_BOM_DEPTH" in caplog.text

    def test_non_positive_max_bom_depth_falls_back(self, monkeypatch):
        monkeypatch.setenv("PLM_MAX_BOM_DEPTH", "0")

        assert Config().max_bom_depth == MAX_BOM_DEPTH


class TestGetConfig:
    """Tests for the configuration singleton."""

    def test_environment_from_env_var(self, monkeypatch):
        monkeypatch.setenv("PLM_ENV", "development")

        assert get_config().environment == "development"

    def test_singleton_keeps_first_environment(self, monkeypatch):
        monkeypatch.setenv("PLM_ENV", "development")
        first = get_config()

        second = get_config("production")

        assert second is first
        assert second.environment == "development"

    def test_get_database_url(self, monkeypatch):
        monkeypatch.setenv("PLM_DATABASE_URL", "sqlite:////tmp/plm-test.db")

        assert get_database_url() == "sqlite:////tmp/plm-test.db"
