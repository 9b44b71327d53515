"""Seed the fixed lookup tables (project types, maintenance categories)."""

import logging
import sqlite3

from micasa.host.time import now_iso
from micasa.schemas import DEFAULT_MAINTENANCE_CATEGORIES, DEFAULT_PROJECT_TYPES

logger = logging.getLogger(__name__)

LOOKUP_TABLES = {
    "project_types": DEFAULT_PROJECT_TYPES,
    "maintenance_categories": DEFAULT_MAINTENANCE_CATEGORIES,
}


def seed_lookup(conn: sqlite3.Connection, table: str, names: tuple[str, ...]) -> int:
    """Insert each name that is not already present.

    Existing rows are never duplicated or overwritten, so this is safe on
    databases that already carry their own lookup rows.

    Args:
        conn: Database connection (should be in a transaction)
        table: Lookup table name
        names: Names to ensure

    Returns:
        Number of rows inserted
    """
    inserted = 0
    for name in names:
        now = now_iso()
        cursor = conn.execute(
            f"""INSERT INTO {table} (name, created_at, updated_at)
                SELECT ?, ?, ?
                WHERE NOT EXISTS (SELECT 1 FROM {table} WHERE name = ?)""",
            (name, now, now, name),
        )
        inserted += cursor.rowcount
    return inserted


def seed_defaults(conn: sqlite3.Connection) -> None:
    for table, names in LOOKUP_TABLES.items():
        inserted = seed_lookup(conn, table, names)
        if inserted:
            logger.info("seeded %d %s", inserted, table)
