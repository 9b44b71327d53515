"""Host access: environment, filesystem and clock."""

from .environment import (
    RuntimeContext,
    document_cache_dir,
    get_config_path,
    get_db_path,
    get_env,
    resolve_context,
    validate_db_path,
)
from .filesystem import ensure_dir, resolve_path, write_private_file
from .time import now_iso, now_utc

__all__ = [
    "RuntimeContext",
    "document_cache_dir",
    "get_config_path",
    "get_db_path",
    "get_env",
    "resolve_context",
    "validate_db_path",
    "ensure_dir",
    "resolve_path",
    "write_private_file",
    "now_iso",
    "now_utc",
]
