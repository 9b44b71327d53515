"""Environment variable access and path resolution.

This module resolves where micasa keeps its files, following the XDG base
directory conventions with explicit environment overrides.

Database Path Resolution Order:
1. Explicitly configured path (argument or ``[storage] db_path``)
2. ``MICASA_DB_PATH`` environment variable
3. ``$XDG_DATA_HOME/micasa/micasa.db`` (default ``~/.local/share/micasa/micasa.db``)

The document cache lives under ``$XDG_CACHE_HOME/micasa/documents`` and the
config file under ``$XDG_CONFIG_HOME/micasa/config.toml``.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import ValidationError

APP_NAME = "micasa"
DB_FILENAME = "micasa.db"
MEMORY_DB_PATH = ":memory:"

DB_PATH_ENV = "MICASA_DB_PATH"
CONFIG_PATH_ENV = "MICASA_CONFIG_PATH"
LOG_LEVEL_ENV = "MICASA_LOG_LEVEL"

_URI_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


@dataclass
class RuntimeContext:
    """Resolved locations for one micasa process.

    Attributes:
        data_dir: Directory holding the database file
        config_dir: Directory holding config.toml
        cache_dir: Root cache directory for the application
    """
    data_dir: Path
    config_dir: Path
    cache_dir: Path

    def get_db_path(self) -> Path:
        """Return the default database file path."""
        return self.data_dir / DB_FILENAME

    def get_config_path(self) -> Path:
        """Return config file path for this context."""
        return self.config_dir / "config.toml"

    def get_document_cache_dir(self) -> Path:
        """Return the directory extracted documents are written to."""
        return self.cache_dir / "documents"


def _xdg_dir(env_var: str, fallback: str) -> Path:
    value = get_env(env_var)
    if value:
        return Path(value)
    return Path.home() / fallback


def resolve_context() -> RuntimeContext:
    """Resolve per-user directories from the XDG environment variables.

    Returns:
        RuntimeContext with data, config and cache directories

    Examples:
        >>> ctx = resolve_context()
        >>> ctx.get_db_path()
        Path('~/.local/share/micasa/micasa.db').expanduser()
    """
    return RuntimeContext(
        data_dir=_xdg_dir("XDG_DATA_HOME", ".local/share") / APP_NAME,
        config_dir=_xdg_dir("XDG_CONFIG_HOME", ".config") / APP_NAME,
        cache_dir=_xdg_dir("XDG_CACHE_HOME", ".cache") / APP_NAME,
    )


def get_env(key: str, default: str | None = None) -> str | None:
    """Get environment variable.

    Args:
        key: Environment variable name
        default: Default value if not found

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def get_db_path(configured: Optional[str | Path] = None) -> Path:
    """Resolve the database file path.

    The ``MICASA_DB_PATH`` override is only consulted when no explicit path
    is configured.

    Args:
        configured: Explicitly configured path, if any

    Returns:
        Path to database file

    Raises:
        ValidationError: If the resolved path is not a plain file path

    Examples:
        >>> os.environ['MICASA_DB_PATH'] = '/custom/house.db'
        >>> get_db_path()
        Path('/custom/house.db')
        >>> get_db_path('/explicit.db')
        Path('/explicit.db')
    """
    if configured:
        path = str(configured)
    else:
        path = get_env(DB_PATH_ENV) or str(resolve_context().get_db_path())

    validate_db_path(path)
    if path == MEMORY_DB_PATH:
        return Path(path)
    return Path(path).expanduser()


def validate_db_path(path: str) -> None:
    """Reject database paths that SQLite would interpret as URIs.

    Args:
        path: Candidate database path

    Raises:
        ValidationError: If the path is empty, URI-like, or has a query string
    """
    if not path or not path.strip():
        raise ValidationError("database path must not be empty", {"path": path})
    if path == MEMORY_DB_PATH:
        return
    if _URI_SCHEME_RE.match(path):
        raise ValidationError(
            f"database path {path!r} looks like a URI; pass a filesystem path",
            {"path": path},
        )
    if path.lower().startswith("file:"):
        raise ValidationError(
            f"database path {path!r} uses the file: URI form; pass a filesystem path",
            {"path": path},
        )
    if "?" in path:
        raise ValidationError(
            f"database path {path!r} contains '?'; query parameters are not supported",
            {"path": path},
        )


def get_config_path(config_override: Optional[Path] = None) -> Path:
    """Get configuration file path.

    Args:
        config_override: Optional explicit config path

    Returns:
        Path to configuration file (``MICASA_CONFIG_PATH`` wins over the
        XDG default)
    """
    if config_override:
        return Path(config_override)
    env_path = get_env(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return resolve_context().get_config_path()


def document_cache_dir() -> Path:
    """Return the process-wide document cache directory."""
    return resolve_context().get_document_cache_dir()
