"""Service log operations.

Each entry records one servicing of a maintenance item, optionally by a
vendor.
"""

from __future__ import annotations

import sqlite3

from ..host.time import format_date, parse_date
from .entity import EntityOperations, optional_id, row_timestamps, row_value
from .models import NewServiceLogEntry, ServiceLogEntry
from .query import build_list_query
from .types import EntityKind, MaintenanceItemId, ServiceLogEntryId, VendorId


class ServiceLogOperations(EntityOperations):
    kind = EntityKind.SERVICE_LOG
    id_type = ServiceLogEntryId

    def create(self, new: NewServiceLogEntry) -> ServiceLogEntryId:
        """Record a servicing.

        Raises:
            ValidationError: If the input is malformed
            ResourceNotFound: If the maintenance item or vendor does not exist
            ReferentialIntegrityError: If the maintenance item or vendor is deleted
        """
        new.validate()
        item_id = MaintenanceItemId.coerce(new.maintenance_item_id)
        vendor_id = VendorId.coerce(new.vendor_id) if new.vendor_id is not None else None

        with self._store.transaction() as conn:
            lifecycle = self._store.lifecycle
            lifecycle.require_live_parent(conn, item_id, self.kind)
            if vendor_id is not None:
                lifecycle.require_live_parent(conn, vendor_id, self.kind)
            return self._insert(conn, {
                "maintenance_item_id": item_id.value,
                "serviced_at": format_date(new.serviced_at),
                "vendor_id": vendor_id.value if vendor_id else None,
                "cost_cents": new.cost_cents,
                "notes": new.notes,
            })

    def list_for_maintenance(
        self, item_id: MaintenanceItemId | int, include_deleted: bool = False
    ) -> list[ServiceLogEntry]:
        """Entries for one maintenance item, most recently serviced first."""
        item_id = MaintenanceItemId.coerce(item_id)
        sql, params = build_list_query(
            self._table,
            include_deleted,
            {"maintenance_item_id": item_id.value},
            order_by="serviced_at DESC, id DESC",
        )
        return [self._from_row(row) for row in self._conn.execute(sql, params)]

    def _from_row(self, row: sqlite3.Row) -> ServiceLogEntry:
        return ServiceLogEntry(
            id=ServiceLogEntryId(row["id"]),
            maintenance_item_id=MaintenanceItemId(row["maintenance_item_id"]),
            serviced_at=parse_date(row["serviced_at"], "service_log_entries.serviced_at"),
            vendor_id=optional_id(VendorId, row["vendor_id"]),
            cost_cents=row["cost_cents"],
            notes=row_value(row, "notes", ""),
            **row_timestamps(row, "service_log_entries"),
        )
