"""Incident operations.

Incidents are household problems (leaks, breakdowns) with a status and a
severity, optionally tied to an appliance and/or the vendor handling them.
"""

from __future__ import annotations

import sqlite3

from ..host.time import format_date, parse_date, parse_optional_date
from .entity import EntityOperations, optional_id, row_timestamps, row_value
from .models import Incident, NewIncident
from .types import (
    ApplianceId,
    EntityKind,
    IncidentId,
    IncidentSeverity,
    IncidentStatus,
    VendorId,
)


class IncidentOperations(EntityOperations):
    """Incident CRUD and listing."""

    kind = EntityKind.INCIDENT
    id_type = IncidentId

    def create(self, new: NewIncident) -> IncidentId:
        """Create an incident.

        Raises:
            ValidationError: If the input is malformed
            ResourceNotFound: If the appliance or vendor does not exist
            ReferentialIntegrityError: If the appliance or vendor is deleted
        """
        new.validate()
        appliance_id = (
            ApplianceId.coerce(new.appliance_id) if new.appliance_id is not None else None
        )
        vendor_id = VendorId.coerce(new.vendor_id) if new.vendor_id is not None else None

        with self._store.transaction() as conn:
            lifecycle = self._store.lifecycle
            if appliance_id is not None:
                lifecycle.require_live_parent(conn, appliance_id, self.kind)
            if vendor_id is not None:
                lifecycle.require_live_parent(conn, vendor_id, self.kind)
            return self._insert(conn, {
                "title": new.title.strip(),
                "description": new.description,
                "status": IncidentStatus(new.status).value,
                "severity": IncidentSeverity(new.severity).value,
                "date_noticed": format_date(new.date_noticed),
                "date_resolved": format_date(new.date_resolved),
                "location": new.location,
                "cost_cents": new.cost_cents,
                "appliance_id": appliance_id.value if appliance_id else None,
                "vendor_id": vendor_id.value if vendor_id else None,
                "notes": new.notes,
            })

    def _from_row(self, row: sqlite3.Row) -> Incident:
        return Incident(
            id=IncidentId(row["id"]),
            title=row["title"],
            description=row_value(row, "description", ""),
            status=IncidentStatus.parse(row["status"], "incidents.status"),
            severity=IncidentSeverity.parse(row["severity"], "incidents.severity"),
            date_noticed=parse_date(row["date_noticed"], "incidents.date_noticed"),
            date_resolved=parse_optional_date(
                row_value(row, "date_resolved"), "incidents.date_resolved"
            ),
            location=row_value(row, "location", ""),
            cost_cents=row_value(row, "cost_cents"),
            appliance_id=optional_id(ApplianceId, row_value(row, "appliance_id")),
            vendor_id=optional_id(VendorId, row_value(row, "vendor_id")),
            notes=row_value(row, "notes", ""),
            **row_timestamps(row, "incidents"),
        )
