"""Query builders and the read-only query surface.

QUERY BUILDER SCOPE:
Abstract query patterns that are repeated MORE THAN TWICE.
Don't build a full ORM - just helpers for common patterns.

READ-ONLY QUERIES:
The natural-language assistant runs its own SQL against the store. It only
gets a single SELECT at a time, screened for mutating keywords, with results
stringified and capped at MAX_QUERY_ROWS. The keyword screen only produces
friendlier errors: the statement is compiled under an authorizer that permits
reads and function calls and nothing else, so a write hidden behind a CTE
(``WITH ... REPLACE INTO``) is refused by SQLite itself.
"""

from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..exceptions import ValidationError

if TYPE_CHECKING:
    from . import Store

DEFAULT_ORDER = "updated_at DESC, id DESC"
MAX_QUERY_ROWS = 200

DISALLOWED_KEYWORDS = (
    "INSERT", "UPDATE", "DELETE", "DROP", "ALTER", "CREATE", "ATTACH",
    "DETACH", "PRAGMA", "REINDEX", "VACUUM",
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Authorizer actions a read-only statement may perform
READ_ONLY_ACTIONS = frozenset({sqlite3.SQLITE_SELECT, sqlite3.SQLITE_READ, sqlite3.SQLITE_FUNCTION})


def build_where_clause(
    conditions: dict[str, Any],
    param_map: dict[str, str] | None = None
) -> tuple[str, list[Any]]:
    """Build dynamic WHERE clause from condition dictionary.

    Args:
        conditions: Dictionary of condition names to values.
                    Values that are None are excluded from the clause.
        param_map: Optional mapping from condition names to SQL fragments.
                   If a condition name is in param_map, use its SQL fragment.
                   Otherwise, default to "{key} = ?" format.

    Returns:
        Tuple of (where_clause, params) where:
        - where_clause: SQL WHERE clause (without "WHERE" keyword)
        - params: List of parameter values for placeholders

    Examples:
        >>> build_where_clause({"project_id": 3, "vendor_id": None})
        ('project_id = ?', [3])

        >>> build_where_clause({"name": "Roof"}, {"name": "name LIKE ?"})
        ('name LIKE ?', ['Roof'])

        >>> build_where_clause({})
        ('1=1', [])
    """
    where_parts = []
    params = []

    for key, value in conditions.items():
        if value is None:
            continue

        if param_map and key in param_map:
            where_parts.append(param_map[key])
        else:
            where_parts.append(f"{key} = ?")
        params.append(value)

    where_clause = " AND ".join(where_parts) if where_parts else "1=1"
    return where_clause, params


def build_update_clause(
    data: dict[str, Any],
    exclude: set[str] | None = None
) -> tuple[str, list[Any]]:
    """Build an UPDATE SET clause from a data dictionary.

    None values are written as NULL, so optional fields can be cleared.

    Examples:
        >>> build_update_clause({"city": "Springfield", "year_built": None})
        ('city = ?, year_built = ?', ['Springfield', None])
    """
    exclude = exclude or set()
    update_parts = []
    params = []

    for key, value in data.items():
        if key in exclude:
            continue
        update_parts.append(f"{key} = ?")
        params.append(value)

    return ", ".join(update_parts), params


def build_list_query(
    table: str,
    include_deleted: bool,
    conditions: dict[str, Any] | None = None,
    order_by: str = DEFAULT_ORDER,
    columns: str = "*",
) -> tuple[str, list[Any]]:
    """Build the listing query shared by every soft-deletable table.

    Args:
        table: Table to list
        include_deleted: Keep rows with deleted_at set
        conditions: Equality filters (None values skipped)
        order_by: ORDER BY expression
        columns: Select list

    Examples:
        >>> build_list_query("quotes", False, {"project_id": 3})
        ('SELECT * FROM quotes WHERE project_id = ? AND deleted_at IS NULL '
         'ORDER BY updated_at DESC, id DESC', [3])
    """
    where_clause, params = build_where_clause(conditions or {})
    if not include_deleted:
        where_clause = (
            "deleted_at IS NULL" if where_clause == "1=1"
            else f"{where_clause} AND deleted_at IS NULL"
        )
    return f"SELECT {columns} FROM {table} WHERE {where_clause} ORDER BY {order_by}", params


def _contains_word(text: str, word: str) -> bool:
    return re.search(rf"\b{word}\b", text) is not None


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return f"[{len(value)} bytes]"
    return str(value)


@dataclass(frozen=True)
class PragmaColumn:
    cid: int
    name: str
    column_type: str
    not_null: bool
    default_value: str | None
    primary_key: int


class ReadOnlyQueryOperations:
    """Schema introspection and screened SELECT execution."""

    def __init__(self, store: "Store"):
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    def table_names(self) -> list[str]:
        """User tables, alphabetically."""
        rows = self._conn.execute(
            """SELECT name FROM sqlite_master
               WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
               ORDER BY name ASC"""
        ).fetchall()
        return [row[0] for row in rows]

    def table_columns(self, table: str) -> list[PragmaColumn]:
        """Column metadata for ``table``.

        Raises:
            ValidationError: If table is not a plain identifier
        """
        if not _IDENTIFIER_RE.match(table):
            raise ValidationError(f"invalid table name: {table!r}", {"table": table})
        rows = self._conn.execute(f"PRAGMA table_info({table})").fetchall()
        return [
            PragmaColumn(
                cid=row[0],
                name=row[1],
                column_type=row[2],
                not_null=bool(row[3]),
                default_value=row[4],
                primary_key=row[5],
            )
            for row in rows
        ]

    def run(self, sql: str) -> tuple[list[str], list[list[str]]]:
        """Execute a single read-only SELECT.

        Args:
            sql: Query text

        Returns:
            Tuple of (column names, rows) where every value is a string and
            at most MAX_QUERY_ROWS rows are returned

        Raises:
            ValidationError: If the query is empty, chains statements, is not
                a SELECT/WITH query, contains a mutating keyword, or would
                do anything but read when compiled
        """
        trimmed = sql.strip() if sql else ""
        if not trimmed:
            raise ValidationError("empty query")
        if ";" in trimmed:
            raise ValidationError("multiple statements are not allowed", {"query": trimmed})

        upper = trimmed.upper()
        if not (upper.startswith("SELECT") or upper.startswith("WITH")):
            raise ValidationError("only SELECT queries are allowed", {"query": trimmed})

        for keyword in DISALLOWED_KEYWORDS:
            if _contains_word(upper, keyword):
                raise ValidationError(
                    f"query contains disallowed keyword: {keyword}",
                    {"query": trimmed, "keyword": keyword},
                )

        denied: list[int] = []

        def authorize(action, arg1, arg2, db_name, trigger):
            if action in READ_ONLY_ACTIONS:
                return sqlite3.SQLITE_OK
            denied.append(action)
            return sqlite3.SQLITE_DENY

        conn = self._conn
        conn.set_authorizer(authorize)
        try:
            cursor = conn.execute(trimmed)
            columns = [description[0] for description in cursor.description or ()]
            rows = [
                [_stringify(value) for value in row]
                for row in cursor.fetchmany(MAX_QUERY_ROWS)
            ]
            cursor.close()
        except sqlite3.DatabaseError as e:
            if denied:
                raise ValidationError(
                    "query must only read data",
                    {"query": trimmed, "denied_actions": denied},
                ) from e
            raise
        finally:
            conn.set_authorizer(None)
        return columns, rows
