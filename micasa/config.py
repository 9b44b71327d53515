"""Configuration management for micasa.

Configuration is loaded from an optional TOML file and handed to the store
at startup. Limits are validated here, once, so the store never has to
re-check them at use time.

Config File Resolution:
1. Explicit path argument
2. MICASA_CONFIG_PATH environment variable
3. $XDG_CONFIG_HOME/micasa/config.toml (default ~/.config/micasa/config.toml)

File format (``version = 2`` is required):

    version = 2

    [storage]
    db_path = "~/house.db"
    max_document_size = 52428800
    cache_ttl_days = 30

    [ui]
    show_dashboard = true

    [logging]
    level = "info"

Database Path Resolution: explicit argument > ``[storage] db_path`` >
MICASA_DB_PATH > XDG data directory (see micasa.host.environment).
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional

from micasa.exceptions import ValidationError
from micasa.host.environment import (
    LOG_LEVEL_ENV,
    get_config_path,
    get_env,
    validate_db_path,
)

# Python 3.11+ has tomllib in stdlib, otherwise use tomli
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

CONFIG_VERSION = 2
DEFAULT_MAX_DOCUMENT_SIZE = 50 << 20
DEFAULT_CACHE_TTL_DAYS = 30
DEFAULT_LOG_LEVEL = "warning"

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def load_toml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config.toml file

    Returns:
        Dictionary with configuration sections

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config file is invalid TOML
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValidationError(
                f"Invalid TOML in {config_path}: {e}", {"path": str(config_path)}
            ) from e


def _require_int(value: Any, key: str, minimum: int, path: Path | None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{key} must be an integer, got {value!r}",
            {"key": key, "value": value, "path": str(path) if path else None},
        )
    if value < minimum:
        comparison = "positive" if minimum == 1 else f"at least {minimum}"
        raise ValidationError(
            f"{key} must be {comparison}, got {value}",
            {"key": key, "value": value, "minimum": minimum,
             "path": str(path) if path else None},
        )
    return value


class Settings:
    """micasa settings with TOML configuration support.

    Configuration Loading:
    1. Load from TOML config file (if it exists)
    2. Apply explicit keyword overrides
    3. Fall back to built-in defaults
    4. Validate everything once

    Attributes:
        db_path: Configured database path, or None to use the environment
            override / default location
        max_document_size: Largest accepted document payload in bytes (> 0)
        cache_ttl_days: Age after which cached document files are evicted (>= 0)
        show_dashboard: Whether the dashboard is shown on startup
        log_level: Logging level name
        config_path: File the settings were read from (may not exist)
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        max_document_size: Optional[int] = None,
        cache_ttl_days: Optional[int] = None,
        show_dashboard: Optional[bool] = None,
        log_level: Optional[str] = None,
        config_path: Optional[Path] = None,
    ):
        """Initialize settings.

        Args:
            db_path: Database path, overriding the config file
            max_document_size: Document size limit, overriding the config file
            cache_ttl_days: Cache TTL, overriding the config file
            show_dashboard: Dashboard toggle, overriding the config file
            log_level: Logging level, overriding the config file and
                MICASA_LOG_LEVEL
            config_path: Optional explicit path to config.toml

        Raises:
            ValidationError: If the config file or any value is invalid
        """
        self.config_path = get_config_path(config_path)
        self._config: dict[str, Any] = {}

        if self.config_path.exists():
            self._config = load_toml_config(self.config_path)
            self._check_version()
            logger.debug("loaded config from %s", self.config_path)

        storage = self._section("storage")
        ui = self._section("ui")
        logging_config = self._section("logging")

        self.db_path = db_path if db_path is not None else storage.get("db_path")
        self.max_document_size = (
            max_document_size if max_document_size is not None
            else storage.get("max_document_size", DEFAULT_MAX_DOCUMENT_SIZE)
        )
        self.cache_ttl_days = (
            cache_ttl_days if cache_ttl_days is not None
            else storage.get("cache_ttl_days", DEFAULT_CACHE_TTL_DAYS)
        )
        self.show_dashboard = (
            show_dashboard if show_dashboard is not None
            else ui.get("show_dashboard", True)
        )

        # Apply log level (arg > env var > TOML > default)
        self.log_level = (
            log_level
            or get_env(LOG_LEVEL_ENV)
            or logging_config.get("level", DEFAULT_LOG_LEVEL)
        )

        self._validate()

    def _section(self, name: str) -> dict[str, Any]:
        section = self._config.get(name, {})
        if not isinstance(section, dict):
            raise ValidationError(
                f"[{name}] in {self.config_path} must be a table",
                {"section": name, "path": str(self.config_path)},
            )
        return section

    def _check_version(self) -> None:
        version = self._config.get("version")
        if version is None:
            raise ValidationError(
                f"{self.config_path} is missing `version`; expected version = {CONFIG_VERSION}",
                {"path": str(self.config_path)},
            )
        if version != CONFIG_VERSION:
            raise ValidationError(
                f"{self.config_path} has unsupported version {version!r}; "
                f"expected {CONFIG_VERSION}",
                {"path": str(self.config_path), "version": version},
            )

    def _validate(self) -> None:
        path = self.config_path if self._config else None
        self.max_document_size = _require_int(
            self.max_document_size, "max_document_size", 1, path
        )
        self.cache_ttl_days = _require_int(self.cache_ttl_days, "cache_ttl_days", 0, path)

        if not isinstance(self.show_dashboard, bool):
            raise ValidationError(
                f"show_dashboard must be true or false, got {self.show_dashboard!r}",
                {"key": "show_dashboard", "value": self.show_dashboard},
            )

        if self.db_path is not None:
            if not isinstance(self.db_path, str):
                raise ValidationError(
                    f"db_path must be a string, got {self.db_path!r}",
                    {"key": "db_path", "value": self.db_path},
                )
            validate_db_path(self.db_path)

        if str(self.log_level).lower() not in LOG_LEVELS:
            raise ValidationError(
                f"unknown log level {self.log_level!r}; expected one of {sorted(LOG_LEVELS)}",
                {"key": "log_level", "value": self.log_level},
            )

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return getattr(self, key, default)


def configure_logging(settings: Settings) -> None:
    """Configure root logging for an application entry point.

    The library never calls this on its own.
    """
    logging.basicConfig(
        level=LOG_LEVELS[str(settings.log_level).lower()],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
