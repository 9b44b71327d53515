"""Maintenance item operations.

A maintenance item recurs every ``interval_months`` months, belongs to a
maintenance category and may be tied to an appliance.
"""

from __future__ import annotations

import sqlite3

from ..host.time import format_date, parse_optional_date
from .entity import EntityOperations, optional_id, row_timestamps, row_value
from .models import MaintenanceItem, NewMaintenanceItem
from .types import ApplianceId, EntityKind, MaintenanceCategoryId, MaintenanceItemId


class MaintenanceOperations(EntityOperations):
    """Maintenance item CRUD and listing."""

    kind = EntityKind.MAINTENANCE
    id_type = MaintenanceItemId

    def create(self, new: NewMaintenanceItem) -> MaintenanceItemId:
        """Create a maintenance item.

        Raises:
            ValidationError: If the input is malformed
            ResourceNotFound: If the category or appliance does not exist
            ReferentialIntegrityError: If the appliance is deleted
        """
        new.validate()
        category_id = MaintenanceCategoryId.coerce(new.category_id)
        appliance_id = (
            ApplianceId.coerce(new.appliance_id) if new.appliance_id is not None else None
        )

        with self._store.transaction() as conn:
            lifecycle = self._store.lifecycle
            lifecycle.require_lookup(
                conn, "maintenance_categories", category_id, "maintenance category"
            )
            if appliance_id is not None:
                lifecycle.require_live_parent(conn, appliance_id, self.kind)
            return self._insert(conn, {
                "name": new.name.strip(),
                "category_id": category_id.value,
                "appliance_id": appliance_id.value if appliance_id else None,
                "last_serviced_at": format_date(new.last_serviced_at),
                "interval_months": new.interval_months,
                "manual_url": new.manual_url,
                "manual_text": new.manual_text,
                "notes": new.notes,
                "cost_cents": new.cost_cents,
            })

    def list_for_appliance(
        self, appliance_id: ApplianceId | int, include_deleted: bool = False
    ) -> list[MaintenanceItem]:
        appliance_id = ApplianceId.coerce(appliance_id)
        return self._select(include_deleted, {"appliance_id": appliance_id.value})

    def _from_row(self, row: sqlite3.Row) -> MaintenanceItem:
        return MaintenanceItem(
            id=MaintenanceItemId(row["id"]),
            name=row["name"],
            category_id=MaintenanceCategoryId(row["category_id"]),
            appliance_id=optional_id(ApplianceId, row_value(row, "appliance_id")),
            last_serviced_at=parse_optional_date(
                row_value(row, "last_serviced_at"), "maintenance_items.last_serviced_at"
            ),
            interval_months=row["interval_months"],
            manual_url=row_value(row, "manual_url", ""),
            manual_text=row_value(row, "manual_text", ""),
            notes=row_value(row, "notes", ""),
            cost_cents=row_value(row, "cost_cents"),
            **row_timestamps(row, "maintenance_items"),
        )
