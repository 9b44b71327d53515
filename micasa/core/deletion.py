"""Deletion audit log reads.

Records are written only by LifecycleOperations as part of soft_delete and
restore; this module never mutates them.
"""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from ..exceptions import ValidationError
from ..host.time import parse_optional_timestamp, parse_timestamp
from .models import DeletionRecord
from .query import build_where_clause
from .types import DeletionRecordId, EntityId, EntityKind

if TYPE_CHECKING:
    from . import Store


class DeletionLogOperations:
    """Answer what was deleted, when, and whether it came back."""

    def __init__(self, store: "Store"):
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    def list(
        self,
        entity_kind: EntityKind | None = None,
        target_id: int | None = None,
    ) -> list[DeletionRecord]:
        """Audit records, newest first.

        Args:
            entity_kind: Only records for this kind
            target_id: Only records for this row id
        """
        where_clause, params = build_where_clause({
            "entity": entity_kind.value if entity_kind is not None else None,
            "target_id": target_id,
        })
        rows = self._conn.execute(
            f"""SELECT id, entity, target_id, deleted_at, restored_at
                FROM deletion_records WHERE {where_clause}
                ORDER BY id DESC""",
            params,
        ).fetchall()
        return [self._from_row(row) for row in rows]

    def history(self, target: EntityId) -> list[DeletionRecord]:
        """Every delete episode of one row, newest first."""
        if target.kind is None:
            raise ValidationError(
                f"{type(target).__name__} has no soft-delete lifecycle",
                {"entity_id": target.value},
            )
        return self.list(target.kind, target.value)

    def latest_for(self, target: EntityId) -> DeletionRecord | None:
        """The most recent delete episode of one row, if any."""
        records = self.history(target)
        return records[0] if records else None

    @staticmethod
    def _from_row(row: sqlite3.Row) -> DeletionRecord:
        return DeletionRecord(
            id=DeletionRecordId(row["id"]),
            entity_kind=EntityKind.parse(row["entity"], "deletion_records.entity"),
            target_id=row["target_id"],
            deleted_at=parse_timestamp(row["deleted_at"], "deletion_records.deleted_at"),
            restored_at=parse_optional_timestamp(
                row["restored_at"], "deletion_records.restored_at"
            ),
        )
