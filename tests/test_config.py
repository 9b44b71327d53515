"""Tests for configuration loading and path resolution."""

from pathlib import Path

import pytest

from micasa.config import (
    DEFAULT_CACHE_TTL_DAYS,
    DEFAULT_MAX_DOCUMENT_SIZE,
    Settings,
)
from micasa.core import open_store
from micasa.exceptions import ValidationError
from micasa.host.environment import get_config_path, get_db_path, validate_db_path


def _write_config(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


class TestSettings:
    """Tests for Settings."""

    def test_defaults_without_config_file(self):
        """No config file means built-in defaults."""
        settings = Settings()

        assert settings.db_path is None
        assert settings.max_document_size == DEFAULT_MAX_DOCUMENT_SIZE
        assert settings.cache_ttl_days == DEFAULT_CACHE_TTL_DAYS
        assert settings.show_dashboard is True
        assert settings.log_level == "warning"

    def test_loads_toml_sections(self, tmp_path):
        """Values are read from their TOML sections."""
        config = _write_config(tmp_path / "config.toml", """
version = 2

[storage]
db_path = "/srv/house.db"
max_document_size = 1024
cache_ttl_days = 0

[ui]
show_dashboard = false

[logging]
level = "debug"
""")
        settings = Settings(config_path=config)

        assert settings.db_path == "/srv/house.db"
        assert settings.max_document_size == 1024
        assert settings.cache_ttl_days == 0
        assert settings.show_dashboard is False
        assert settings.log_level == "debug"

    def test_explicit_arguments_win(self, tmp_path):
        """Keyword overrides beat the config file."""
        config = _write_config(tmp_path / "config.toml", """
version = 2
[storage]
max_document_size = 1024
""")
        settings = Settings(max_document_size=2048, config_path=config)
        assert settings.max_document_size == 2048

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        """MICASA_CONFIG_PATH locates the config file."""
        config = _write_config(tmp_path / "elsewhere.toml", "version = 2\n[ui]\nshow_dashboard = false\n")
        monkeypatch.setenv("MICASA_CONFIG_PATH", str(config))

        assert get_config_path() == config
        assert Settings().show_dashboard is False

    def test_log_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("MICASA_LOG_LEVEL", "error")
        assert Settings().log_level == "error"

    @pytest.mark.parametrize("body", [
        "[storage]\nmax_document_size = 10\n",
        "version = 1\n",
        "version = \"2\"\n",
    ])
    def test_version_must_be_two(self, tmp_path, body):
        """A config file without version = 2 is rejected."""
        config = _write_config(tmp_path / "config.toml", body)
        with pytest.raises(ValidationError):
            Settings(config_path=config)

    @pytest.mark.parametrize("section, value", [
        ("max_document_size", "0"),
        ("max_document_size", "-5"),
        ("max_document_size", "\"big\""),
        ("cache_ttl_days", "-1"),
    ])
    def test_limits_validated_at_load(self, tmp_path, section, value):
        """Bad limits fail at load time and name the field."""
        config = _write_config(
            tmp_path / "config.toml", f"version = 2\n[storage]\n{section} = {value}\n"
        )
        with pytest.raises(ValidationError) as exc_info:
            Settings(config_path=config)
        assert exc_info.value.details["key"] == section

    def test_invalid_toml(self, tmp_path):
        """Malformed TOML is a ValidationError naming the file."""
        config = _write_config(tmp_path / "config.toml", "version = = 2")
        with pytest.raises(ValidationError, match="Invalid TOML"):
            Settings(config_path=config)

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")


class TestDbPath:
    """Tests for database path resolution."""

    def test_default_under_xdg_data_home(self, tmp_path):
        """Without overrides the database lives in the XDG data directory."""
        assert get_db_path() == tmp_path / "xdg-data" / "micasa" / "micasa.db"

    def test_environment_override(self, tmp_path, monkeypatch):
        """MICASA_DB_PATH is used when nothing is configured."""
        monkeypatch.setenv("MICASA_DB_PATH", str(tmp_path / "env.db"))
        assert get_db_path() == tmp_path / "env.db"

    def test_configured_path_beats_environment(self, tmp_path, monkeypatch):
        """An explicit path wins over MICASA_DB_PATH."""
        monkeypatch.setenv("MICASA_DB_PATH", str(tmp_path / "env.db"))
        assert get_db_path(str(tmp_path / "explicit.db")) == tmp_path / "explicit.db"

    @pytest.mark.parametrize("path", [
        "",
        "https://example.com/house.db",
        "file:house.db",
        "house.db?mode=ro",
    ])
    def test_rejects_uri_like_paths(self, path):
        with pytest.raises(ValidationError):
            validate_db_path(path)

    def test_memory_path_accepted(self):
        validate_db_path(":memory:")

    def test_open_store_uses_settings(self, tmp_path):
        """open_store opens and bootstraps the configured database."""
        db_path = tmp_path / "configured.db"
        settings = Settings(db_path=str(db_path), max_document_size=4096)

        store = open_store(settings)
        try:
            assert store.max_document_size == 4096
            assert store.lookups.list_project_types()
        finally:
            store.close()
        assert db_path.exists()
