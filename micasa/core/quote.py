"""Quote operations.

A quote always references an existing project and vendor, both live at the
time the quote is created.
"""

from __future__ import annotations

import sqlite3

from ..host.time import format_date, parse_optional_date
from .entity import EntityOperations, row_timestamps, row_value
from .models import NewQuote, Quote
from .types import EntityKind, ProjectId, QuoteId, VendorId


class QuoteOperations(EntityOperations):
    """Quote CRUD and listing."""

    kind = EntityKind.QUOTE
    id_type = QuoteId

    def create(self, new: NewQuote) -> QuoteId:
        """Create a quote for a project from a vendor.

        Raises:
            ValidationError: If the input is malformed
            ResourceNotFound: If the project or vendor does not exist
            ReferentialIntegrityError: If the project or vendor is deleted
        """
        new.validate()
        project_id = ProjectId.coerce(new.project_id)
        vendor_id = VendorId.coerce(new.vendor_id)

        with self._store.transaction() as conn:
            lifecycle = self._store.lifecycle
            lifecycle.require_live_parent(conn, project_id, self.kind)
            lifecycle.require_live_parent(conn, vendor_id, self.kind)
            return self._insert(conn, {
                "project_id": project_id.value,
                "vendor_id": vendor_id.value,
                "total_cents": new.total_cents,
                "labor_cents": new.labor_cents,
                "materials_cents": new.materials_cents,
                "other_cents": new.other_cents,
                "received_date": format_date(new.received_date),
                "notes": new.notes,
            })

    def list_for_project(
        self, project_id: ProjectId | int, include_deleted: bool = False
    ) -> list[Quote]:
        project_id = ProjectId.coerce(project_id)
        return self._select(include_deleted, {"project_id": project_id.value})

    def _from_row(self, row: sqlite3.Row) -> Quote:
        return Quote(
            id=QuoteId(row["id"]),
            project_id=ProjectId(row["project_id"]),
            vendor_id=VendorId(row["vendor_id"]),
            total_cents=row["total_cents"],
            labor_cents=row_value(row, "labor_cents"),
            materials_cents=row_value(row, "materials_cents"),
            other_cents=row_value(row, "other_cents"),
            received_date=parse_optional_date(
                row_value(row, "received_date"), "quotes.received_date"
            ),
            notes=row_value(row, "notes", ""),
            **row_timestamps(row, "quotes"),
        )
