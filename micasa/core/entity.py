"""Soft-delete lifecycle shared by every deletable entity.

Rows are never removed by the store. Deleting a row stamps ``deleted_at`` and
appends a ``deletion_records`` entry; restoring clears the stamp and closes
that entry. Both writes happen in one transaction, so no reader ever sees a
deleted row without its audit record or the reverse.

GUARDS:
- Delete guards: a parent cannot be deleted while live rows reference it
  (project <- quotes; vendor <- quotes, incidents, service log entries;
  appliance <- maintenance items, incidents; maintenance item <- service
  log entries). Checked on every attempt, not enforced as a constraint.
- Restore guards: a row cannot come back while a parent it references is
  still deleted.
- Create guards: new rows may only reference existing, live parents.

IMPORT CONVENTION:
- Store accesses LifecycleOperations through ``store.lifecycle``
- Per-entity operation classes derive from EntityOperations and delegate
  their soft_delete/restore here
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from ..exceptions import ReferentialIntegrityError, ResourceNotFound, ValidationError
from ..host.time import now_iso, parse_optional_timestamp, parse_timestamp
from .query import build_list_query
from .types import EntityId, EntityKind

if TYPE_CHECKING:
    from . import Store

logger = logging.getLogger(__name__)

# Parent kind -> (dependent kind, column on the dependent referencing the parent)
DELETE_GUARDS: dict[EntityKind, tuple[tuple[EntityKind, str], ...]] = {
    EntityKind.PROJECT: ((EntityKind.QUOTE, "project_id"),),
    EntityKind.VENDOR: (
        (EntityKind.QUOTE, "vendor_id"),
        (EntityKind.INCIDENT, "vendor_id"),
        (EntityKind.SERVICE_LOG, "vendor_id"),
    ),
    EntityKind.APPLIANCE: (
        (EntityKind.MAINTENANCE, "appliance_id"),
        (EntityKind.INCIDENT, "appliance_id"),
    ),
    EntityKind.MAINTENANCE: ((EntityKind.SERVICE_LOG, "maintenance_item_id"),),
}

# Child kind -> (parent kind, column on the child referencing the parent)
RESTORE_GUARDS: dict[EntityKind, tuple[tuple[EntityKind, str], ...]] = {
    EntityKind.QUOTE: (
        (EntityKind.PROJECT, "project_id"),
        (EntityKind.VENDOR, "vendor_id"),
    ),
    EntityKind.MAINTENANCE: ((EntityKind.APPLIANCE, "appliance_id"),),
    EntityKind.SERVICE_LOG: (
        (EntityKind.MAINTENANCE, "maintenance_item_id"),
        (EntityKind.VENDOR, "vendor_id"),
    ),
    EntityKind.INCIDENT: (
        (EntityKind.APPLIANCE, "appliance_id"),
        (EntityKind.VENDOR, "vendor_id"),
    ),
}


# ============================================================================
# ROW HELPERS
# ============================================================================

def row_value(row: sqlite3.Row, key: str, default: Any = None) -> Any:
    """Read an optional column, tolerating databases that lack it."""
    if key in row.keys():
        value = row[key]
        return default if value is None else value
    return default


def optional_id(id_type: type[EntityId], raw: int | None) -> EntityId | None:
    """Typed id for a nullable foreign key column (NULL or 0 means unset)."""
    if raw is None or raw == 0:
        return None
    return id_type(raw)


def id_value(value: EntityId | int | None) -> int | None:
    if value is None:
        return None
    return int(value)


def row_timestamps(row: sqlite3.Row, table: str) -> dict[str, Any]:
    """Parse the bookkeeping timestamps of a row."""
    stamps = {
        "created_at": parse_timestamp(row["created_at"], f"{table}.created_at"),
        "updated_at": parse_timestamp(row["updated_at"], f"{table}.updated_at"),
    }
    if "deleted_at" in row.keys():
        stamps["deleted_at"] = parse_optional_timestamp(row["deleted_at"], f"{table}.deleted_at")
    return stamps


# ============================================================================
# LIFECYCLE
# ============================================================================

class LifecycleOperations:
    """Soft-delete and restore with guards and audit records."""

    def __init__(self, store: "Store"):
        """Initialize lifecycle operations with a Store instance.

        Args:
            store: Store instance for database access
        """
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    def soft_delete(self, target: EntityId) -> None:
        """Mark a live row as deleted and append its audit record.

        Args:
            target: Typed id of the row

        Raises:
            ValidationError: If the id's type has no soft-delete lifecycle
            ResourceNotFound: If the row does not exist or is already deleted
            ReferentialIntegrityError: If live rows still reference it
        """
        kind = self._lifecycle_kind(target)
        entity_id = target.value

        with self._store.transaction() as conn:
            deleted_at = self._current_state(conn, kind, entity_id)
            if deleted_at is not None:
                raise ResourceNotFound(
                    f"{kind.label} {entity_id} is already deleted",
                    {"entity_kind": kind.value, "entity_id": entity_id, "table": kind.table},
                )
            self._check_delete_guards(conn, kind, entity_id)

            now = now_iso()
            conn.execute(
                f"""UPDATE {kind.table} SET deleted_at = ?, updated_at = ?
                    WHERE id = ? AND deleted_at IS NULL""",
                (now, now, entity_id),
            )
            conn.execute(
                """INSERT INTO deletion_records (entity, target_id, deleted_at)
                   VALUES (?, ?, ?)""",
                (kind.value, entity_id, now),
            )

        logger.info("soft-deleted %s %d", kind.value, entity_id)

    def restore(self, target: EntityId) -> None:
        """Bring a deleted row back and close its latest audit record.

        Args:
            target: Typed id of the row

        Raises:
            ValidationError: If the id's type has no soft-delete lifecycle
            ResourceNotFound: If the row does not exist or is not deleted
            ReferentialIntegrityError: If a parent it references is deleted
        """
        kind = self._lifecycle_kind(target)
        entity_id = target.value

        with self._store.transaction() as conn:
            deleted_at = self._current_state(conn, kind, entity_id)
            if deleted_at is None:
                raise ResourceNotFound(
                    f"{kind.label} {entity_id} is not deleted",
                    {"entity_kind": kind.value, "entity_id": entity_id, "table": kind.table},
                )
            self._check_restore_guards(conn, kind, entity_id)

            now = now_iso()
            conn.execute(
                f"""UPDATE {kind.table} SET deleted_at = NULL, updated_at = ?
                    WHERE id = ? AND deleted_at IS NOT NULL""",
                (now, entity_id),
            )
            conn.execute(
                """UPDATE deletion_records SET restored_at = ?
                   WHERE id = (
                       SELECT id FROM deletion_records
                       WHERE entity = ? AND target_id = ? AND restored_at IS NULL
                       ORDER BY id DESC LIMIT 1
                   )""",
                (now, kind.value, entity_id),
            )

        logger.info("restored %s %d", kind.value, entity_id)

    def is_live(self, target: EntityId) -> bool:
        """Return True if the row exists and is not deleted."""
        kind = self._lifecycle_kind(target)
        row = self._conn.execute(
            f"SELECT deleted_at FROM {kind.table} WHERE id = ?", (target.value,)
        ).fetchone()
        return row is not None and row["deleted_at"] is None

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def require_live_parent(
        self,
        conn: sqlite3.Connection,
        parent: EntityId,
        child_kind: EntityKind,
    ) -> None:
        """Check that a row about to be created references a live parent.

        Raises:
            ResourceNotFound: If the parent does not exist
            ReferentialIntegrityError: If the parent is deleted
        """
        kind = self._lifecycle_kind(parent)
        row = conn.execute(
            f"SELECT deleted_at FROM {kind.table} WHERE id = ?", (parent.value,)
        ).fetchone()
        details = {
            "entity_kind": child_kind.value,
            "parent_kind": kind.value,
            "parent_id": parent.value,
            "table": kind.table,
        }
        if row is None:
            raise ResourceNotFound(
                f"{child_kind.label} references {kind.label} {parent.value}, which does not exist",
                details,
            )
        if row["deleted_at"] is not None:
            raise ReferentialIntegrityError(
                f"{child_kind.label} references {kind.label} {parent.value}, which is deleted; "
                f"restore the {kind.label} first",
                blocking_count=1,
                details=details,
            )

    def require_lookup(
        self, conn: sqlite3.Connection, table: str, lookup_id: EntityId, label: str
    ) -> None:
        """Check that a lookup row (project type, maintenance category) exists.

        Raises:
            ResourceNotFound: If it does not
        """
        row = conn.execute(f"SELECT 1 FROM {table} WHERE id = ?", (lookup_id.value,)).fetchone()
        if row is None:
            raise ResourceNotFound(
                f"{label} {lookup_id.value} not found",
                {"table": table, "entity_id": lookup_id.value},
            )

    def _check_delete_guards(
        self, conn: sqlite3.Connection, kind: EntityKind, entity_id: int
    ) -> None:
        for dependent, column in DELETE_GUARDS.get(kind, ()):
            count = conn.execute(
                f"""SELECT COUNT(*) FROM {dependent.table}
                    WHERE {column} = ? AND deleted_at IS NULL""",
                (entity_id,),
            ).fetchone()[0]
            if count > 0:
                raise ReferentialIntegrityError(
                    f"cannot delete {kind.label} {entity_id} because {count} "
                    f"{dependent.label}(s) reference it; delete those first",
                    blocking_count=count,
                    details={
                        "entity_kind": kind.value,
                        "entity_id": entity_id,
                        "table": kind.table,
                        "dependent": dependent.value,
                    },
                )

    def _check_restore_guards(
        self, conn: sqlite3.Connection, kind: EntityKind, entity_id: int
    ) -> None:
        guards = RESTORE_GUARDS.get(kind, ())
        if not guards:
            return

        row = conn.execute(
            f"SELECT * FROM {kind.table} WHERE id = ?", (entity_id,)
        ).fetchone()
        for parent, column in guards:
            parent_id = row_value(row, column)
            if not parent_id:
                continue
            parent_row = conn.execute(
                f"SELECT deleted_at FROM {parent.table} WHERE id = ?", (parent_id,)
            ).fetchone()
            if parent_row is None or parent_row["deleted_at"] is not None:
                state = "deleted" if parent_row is not None else "missing"
                raise ReferentialIntegrityError(
                    f"cannot restore {kind.label} {entity_id} because its {parent.label} "
                    f"{parent_id} is {state}; restore the {parent.label} first",
                    blocking_count=1,
                    details={
                        "entity_kind": kind.value,
                        "entity_id": entity_id,
                        "table": kind.table,
                        "parent_kind": parent.value,
                        "parent_id": parent_id,
                    },
                )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _lifecycle_kind(target: EntityId) -> EntityKind:
        if not isinstance(target, EntityId):
            raise ValidationError(
                f"expected a typed entity id, got {target!r}", {"value": target}
            )
        if target.kind is None:
            raise ValidationError(
                f"{type(target).__name__} has no soft-delete lifecycle",
                {"entity_id": target.value},
            )
        return target.kind

    @staticmethod
    def _current_state(conn: sqlite3.Connection, kind: EntityKind, entity_id: int) -> str | None:
        """Return the row's deleted_at value, raising if the row is absent."""
        row = conn.execute(
            f"SELECT deleted_at FROM {kind.table} WHERE id = ?", (entity_id,)
        ).fetchone()
        if row is None:
            raise ResourceNotFound(
                f"{kind.label} {entity_id} not found",
                {"entity_kind": kind.value, "entity_id": entity_id, "table": kind.table},
            )
        return row["deleted_at"]


# ============================================================================
# PER-ENTITY BASE
# ============================================================================

class EntityOperations:
    """Shared create/get/list/soft_delete/restore plumbing for one table.

    Subclasses set ``kind`` and ``id_type`` and implement ``_from_row``.
    """

    kind: EntityKind
    id_type: type[EntityId]

    def __init__(self, store: "Store"):
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    @property
    def _table(self) -> str:
        return self.kind.table

    def get(self, entity_id: EntityId | int):
        """Get a row by id, deleted or not.

        Raises:
            ResourceNotFound: If no row has this id
        """
        entity_id = self.id_type.coerce(entity_id)
        row = self._conn.execute(
            f"SELECT * FROM {self._table} WHERE id = ?", (entity_id.value,)
        ).fetchone()
        if row is None:
            raise ResourceNotFound(
                f"{self.kind.label} {entity_id.value} not found",
                {"entity_kind": self.kind.value, "entity_id": entity_id.value,
                 "table": self._table},
            )
        return self._from_row(row)

    def soft_delete(self, entity_id: EntityId | int) -> None:
        self._store.lifecycle.soft_delete(self.id_type.coerce(entity_id))

    def restore(self, entity_id: EntityId | int) -> None:
        self._store.lifecycle.restore(self.id_type.coerce(entity_id))

    def _select(
        self,
        include_deleted: bool,
        conditions: dict[str, Any] | None = None,
    ) -> list:
        sql, params = build_list_query(self._table, include_deleted, conditions)
        return [self._from_row(row) for row in self._conn.execute(sql, params)]

    def _insert(self, conn: sqlite3.Connection, values: dict[str, Any]) -> EntityId:
        """Insert a row stamped with created_at = updated_at = now."""
        now = now_iso()
        values = {**values, "created_at": now, "updated_at": now}
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = conn.execute(
            f"INSERT INTO {self._table} ({columns}) VALUES ({placeholders})",
            list(values.values()),
        )
        new_id = self.id_type(cursor.lastrowid)
        logger.debug("created %s %d", self.kind.value, new_id.value)
        return new_id

    def _from_row(self, row: sqlite3.Row):
        raise NotImplementedError

    def list(self, include_deleted: bool = False) -> list:
        """List rows, most recently modified first (ties broken by id, descending).

        Args:
            include_deleted: Include soft-deleted rows
        """
        return self._select(include_deleted)
