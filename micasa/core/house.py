"""House profile operations.

There is at most one house profile. It is not soft-deletable and is written
with an upsert rather than through the create/delete lifecycle.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import TYPE_CHECKING

from ..exceptions import ValidationError
from ..host.time import format_date, now_iso, parse_optional_date
from .entity import row_timestamps, row_value
from .models import HouseProfile, HouseProfileInput
from .query import build_update_clause
from .types import HouseProfileId

if TYPE_CHECKING:
    from . import Store

logger = logging.getLogger(__name__)

_TEXT_DEFAULT = ""


class HouseProfileOperations:
    """Read and write the singleton house profile."""

    def __init__(self, store: "Store"):
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    def get(self) -> HouseProfile | None:
        """Return the house profile, or None if none has been saved."""
        row = self._conn.execute(
            "SELECT * FROM house_profiles ORDER BY id ASC LIMIT 1"
        ).fetchone()
        if row is None:
            return None
        return self._from_row(row)

    def create(self, profile: HouseProfileInput) -> HouseProfileId:
        """Create the house profile.

        Raises:
            ValidationError: If the input is malformed or a profile exists
        """
        profile.validate()
        with self._store.transaction() as conn:
            if self._existing_id(conn) is not None:
                raise ValidationError("house profile already exists", {"table": "house_profiles"})
            return self._insert(conn, profile)

    def upsert(self, profile: HouseProfileInput) -> HouseProfileId:
        """Create the house profile or overwrite the existing one in place.

        The existing row keeps its id and created_at; updated_at is bumped.

        Raises:
            ValidationError: If the input is malformed
        """
        profile.validate()
        with self._store.transaction() as conn:
            existing = self._existing_id(conn)
            if existing is None:
                return self._insert(conn, profile)

            values = self._values(profile)
            values["updated_at"] = now_iso()
            set_clause, params = build_update_clause(values)
            conn.execute(
                f"UPDATE house_profiles SET {set_clause} WHERE id = ?",
                [*params, existing.value],
            )
            logger.info("updated house profile %d", existing.value)
            return existing

    # ------------------------------------------------------------------

    @staticmethod
    def _existing_id(conn: sqlite3.Connection) -> HouseProfileId | None:
        row = conn.execute("SELECT id FROM house_profiles ORDER BY id ASC LIMIT 1").fetchone()
        return HouseProfileId(row["id"]) if row else None

    @staticmethod
    def _values(profile: HouseProfileInput) -> dict:
        values = {}
        for name in HouseProfileInput.field_names():
            value = getattr(profile, name)
            if isinstance(value, date):
                value = format_date(value)
            values[name] = value
        values["nickname"] = profile.nickname.strip()
        return values

    def _insert(self, conn: sqlite3.Connection, profile: HouseProfileInput) -> HouseProfileId:
        now = now_iso()
        values = {**self._values(profile), "created_at": now, "updated_at": now}
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = conn.execute(
            f"INSERT INTO house_profiles ({columns}) VALUES ({placeholders})",
            list(values.values()),
        )
        logger.info("created house profile %d", cursor.lastrowid)
        return HouseProfileId(cursor.lastrowid)

    @staticmethod
    def _from_row(row: sqlite3.Row) -> HouseProfile:
        values = {}
        for name in HouseProfileInput.field_names():
            if name == "insurance_renewal":
                values[name] = parse_optional_date(
                    row_value(row, name), "house_profiles.insurance_renewal"
                )
            elif name in ("year_built", "square_feet", "lot_square_feet", "bedrooms",
                          "bathrooms", "property_tax_cents", "hoa_fee_cents"):
                values[name] = row_value(row, name)
            else:
                values[name] = row_value(row, name, _TEXT_DEFAULT)
        return HouseProfile(
            id=HouseProfileId(row["id"]),
            **values,
            **row_timestamps(row, "house_profiles"),
        )
