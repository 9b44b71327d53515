"""Vendor operations."""

from __future__ import annotations

import sqlite3

from ..exceptions import ResourceNotFound, ValidationError
from .entity import EntityOperations, row_timestamps, row_value
from .models import NewVendor, Vendor
from .types import EntityKind, VendorId


class VendorOperations(EntityOperations):
    """Vendor CRUD and listing. Names are unique across live and deleted vendors."""

    kind = EntityKind.VENDOR
    id_type = VendorId

    def create(self, new: NewVendor) -> VendorId:
        """Create a vendor.

        Raises:
            ValidationError: If the name is blank or already taken
        """
        new.validate()
        name = new.name.strip()

        with self._store.transaction() as conn:
            existing = conn.execute(
                "SELECT id FROM vendors WHERE name = ?", (name,)
            ).fetchone()
            if existing is not None:
                raise ValidationError(
                    f"vendor {name!r} already exists",
                    {"field": "name", "entity_id": existing["id"]},
                )
            return self._insert(conn, {
                "name": name,
                "contact_name": new.contact_name,
                "email": new.email,
                "phone": new.phone,
                "website": new.website,
                "notes": new.notes,
            })

    def get_by_name(self, name: str) -> Vendor:
        """Get a vendor by exact name.

        Raises:
            ResourceNotFound: If no vendor has this name
        """
        row = self._conn.execute(
            "SELECT * FROM vendors WHERE name = ?", (name.strip(),)
        ).fetchone()
        if row is None:
            raise ResourceNotFound(f"vendor {name!r} not found", {"name": name})
        return self._from_row(row)

    def _from_row(self, row: sqlite3.Row) -> Vendor:
        return Vendor(
            id=VendorId(row["id"]),
            name=row["name"],
            contact_name=row_value(row, "contact_name", ""),
            email=row_value(row, "email", ""),
            phone=row_value(row, "phone", ""),
            website=row_value(row, "website", ""),
            notes=row_value(row, "notes", ""),
            **row_timestamps(row, "vendors"),
        )
