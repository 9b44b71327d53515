"""Appliance operations."""

from __future__ import annotations

import sqlite3

from ..host.time import format_date, parse_optional_date
from .entity import EntityOperations, row_timestamps, row_value
from .models import Appliance, NewAppliance
from .types import ApplianceId, EntityKind


class ApplianceOperations(EntityOperations):
    kind = EntityKind.APPLIANCE
    id_type = ApplianceId

    def create(self, new: NewAppliance) -> ApplianceId:
        """Create an appliance.

        Raises:
            ValidationError: If the name is blank or cost is negative
        """
        new.validate()
        with self._store.transaction() as conn:
            return self._insert(conn, {
                "name": new.name.strip(),
                "brand": new.brand,
                "model_number": new.model_number,
                "serial_number": new.serial_number,
                "purchase_date": format_date(new.purchase_date),
                "warranty_expiry": format_date(new.warranty_expiry),
                "location": new.location,
                "cost_cents": new.cost_cents,
                "notes": new.notes,
            })

    def _from_row(self, row: sqlite3.Row) -> Appliance:
        return Appliance(
            id=ApplianceId(row["id"]),
            name=row["name"],
            brand=row_value(row, "brand", ""),
            model_number=row_value(row, "model_number", ""),
            serial_number=row_value(row, "serial_number", ""),
            purchase_date=parse_optional_date(
                row_value(row, "purchase_date"), "appliances.purchase_date"
            ),
            warranty_expiry=parse_optional_date(
                row_value(row, "warranty_expiry"), "appliances.warranty_expiry"
            ),
            location=row_value(row, "location", ""),
            cost_cents=row_value(row, "cost_cents"),
            notes=row_value(row, "notes", ""),
            **row_timestamps(row, "appliances"),
        )
