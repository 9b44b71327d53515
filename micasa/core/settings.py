"""Persisted key-value settings.

The raw surface is ``get(key)`` / ``put(key, value)``, last write wins.
Typed accessors sit on top for the keys the application knows about
(``SettingKey``); a stored value they cannot parse is corruption, not a
reason to fall back to the default.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from ..exceptions import CorruptionError, ValidationError
from ..host.time import now_iso, parse_timestamp
from .models import AppSetting
from .types import SettingKey

if TYPE_CHECKING:
    from . import Store

TRUE_TOKENS = ("1", "true", "on", "yes")
FALSE_TOKENS = ("0", "false", "off", "no")

DEFAULT_SHOW_DASHBOARD = True


def parse_bool_setting(raw: str, key: str) -> bool:
    """Parse a stored boolean setting.

    Raises:
        CorruptionError: If the value is not a recognized boolean token
    """
    token = raw.strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise CorruptionError(
        f"setting {key!r} has invalid boolean value {raw!r}",
        {"table": "settings", "column": key, "value": raw},
    )


class SettingsOperations:
    """Generic and typed access to the settings table."""

    def __init__(self, store: "Store"):
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    def get(self, key: str | SettingKey) -> str | None:
        """Return the stored value, or None if the key was never written."""
        row = self._conn.execute(
            "SELECT value FROM settings WHERE key = ?", (str(key),)
        ).fetchone()
        return row["value"] if row else None

    def put(self, key: str | SettingKey, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Raises:
            ValidationError: If the key is blank or the value is not a string
        """
        key = str(key)
        if not key.strip():
            raise ValidationError("setting key must not be empty", {"key": key})
        if not isinstance(value, str):
            raise ValidationError(
                f"setting {key!r} value must be a string, got {type(value).__name__}",
                {"key": key},
            )
        self._conn.execute(
            """INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET
                 value = excluded.value,
                 updated_at = excluded.updated_at""",
            (key, value, now_iso()),
        )

    def list(self) -> list[AppSetting]:
        """All stored settings ordered by key."""
        rows = self._conn.execute(
            "SELECT key, value, updated_at FROM settings ORDER BY key ASC"
        ).fetchall()
        return [
            AppSetting(
                key=row["key"],
                value=row["value"],
                updated_at=parse_timestamp(row["updated_at"], "settings.updated_at"),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Typed settings
    # ------------------------------------------------------------------

    def get_show_dashboard(self) -> bool:
        """Whether the dashboard is shown on startup (default True).

        Raises:
            CorruptionError: If the stored value is not a boolean token
        """
        raw = self.get(SettingKey.SHOW_DASHBOARD)
        if raw is None:
            return DEFAULT_SHOW_DASHBOARD
        return parse_bool_setting(raw, SettingKey.SHOW_DASHBOARD.value)

    def put_show_dashboard(self, show: bool) -> None:
        self.put(SettingKey.SHOW_DASHBOARD, "true" if show else "false")

    def get_last_model(self) -> str | None:
        """Last used LLM model name, or None if unset or blank."""
        raw = self.get(SettingKey.LAST_MODEL)
        if raw is None:
            return None
        model = raw.strip()
        return model or None

    def put_last_model(self, model: str) -> None:
        self.put(SettingKey.LAST_MODEL, model.strip())
