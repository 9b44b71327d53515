"""Dashboard aggregates.

All figures are computed over live rows only. ``today`` defaults to the
current UTC date and can be pinned by callers (and tests).
"""

from __future__ import annotations

import sqlite3
from datetime import date, timedelta
from typing import TYPE_CHECKING

from ..exceptions import ValidationError
from ..host.time import format_date, now_utc
from .models import (
    Appliance,
    DashboardCounts,
    Incident,
    MaintenanceItem,
    Project,
    ServiceLogEntry,
)
from .project import ACTIVE_STATUSES
from .types import IncidentStatus, ProjectStatus

if TYPE_CHECKING:
    from . import Store

OPEN_INCIDENT_STATUSES = (IncidentStatus.OPEN, IncidentStatus.IN_PROGRESS)
CLOSED_PROJECT_STATUSES = (ProjectStatus.COMPLETED, ProjectStatus.ABANDONED)


def _today(today: date | None) -> date:
    return today if today is not None else now_utc().date()


def _placeholders(values: tuple) -> str:
    return ", ".join("?" for _ in values)


class DashboardOperations:
    """Counts and short lists for the overview screen."""

    def __init__(self, store: "Store"):
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    def counts(self, today: date | None = None) -> DashboardCounts:
        """Count open projects, maintenance due and open incidents.

        A maintenance item is due when it has never been serviced or when
        ``last_serviced_at + interval_months`` is on or before ``today``.
        """
        closed = tuple(status.value for status in CLOSED_PROJECT_STATUSES)
        projects_due = self._conn.execute(
            f"""SELECT COUNT(*) FROM projects
                WHERE deleted_at IS NULL AND status NOT IN ({_placeholders(closed)})""",
            closed,
        ).fetchone()[0]

        maintenance_due = self._conn.execute(
            """SELECT COUNT(*) FROM maintenance_items
               WHERE deleted_at IS NULL
                 AND (
                   last_serviced_at IS NULL
                   OR date(last_serviced_at, '+' || interval_months || ' months') <= date(?)
                 )""",
            (format_date(_today(today)),),
        ).fetchone()[0]

        open_statuses = tuple(status.value for status in OPEN_INCIDENT_STATUSES)
        incidents_open = self._conn.execute(
            f"""SELECT COUNT(*) FROM incidents
                WHERE deleted_at IS NULL AND status IN ({_placeholders(open_statuses)})""",
            open_statuses,
        ).fetchone()[0]

        return DashboardCounts(
            projects_due=projects_due,
            maintenance_due=maintenance_due,
            incidents_open=incidents_open,
        )

    def list_active_projects(self) -> list[Project]:
        """Live projects that are underway or delayed."""
        return self._store.projects.list_by_status(ACTIVE_STATUSES)

    def list_open_incidents(self) -> list[Incident]:
        """Live open/in-progress incidents, most severe first, then most recent."""
        incidents = [
            incident for incident in self._store.incidents.list()
            if incident.status in OPEN_INCIDENT_STATUSES
        ]
        # list() is already newest first; sort is stable
        incidents.sort(key=lambda incident: incident.severity.rank)
        return incidents

    def list_maintenance_with_schedule(self) -> list[MaintenanceItem]:
        return [item for item in self._store.maintenance.list() if item.interval_months > 0]

    def list_expiring_warranties(
        self,
        today: date | None = None,
        look_back_days: int = 30,
        horizon_days: int = 90,
    ) -> list[Appliance]:
        """Live appliances whose warranty ends within the given window.

        Args:
            today: Reference date
            look_back_days: Include warranties that expired this many days ago
            horizon_days: Include warranties expiring within this many days

        Returns:
            Appliances ordered by expiry date, soonest first

        Raises:
            ValidationError: If either window is negative
        """
        if look_back_days < 0:
            raise ValidationError(
                f"look_back_days must be non-negative, got {look_back_days}",
                {"look_back_days": look_back_days},
            )
        if horizon_days < 0:
            raise ValidationError(
                f"horizon_days must be non-negative, got {horizon_days}",
                {"horizon_days": horizon_days},
            )

        reference = _today(today)
        start = reference - timedelta(days=look_back_days)
        end = reference + timedelta(days=horizon_days)
        appliances = [
            appliance for appliance in self._store.appliances.list()
            if appliance.warranty_expiry is not None and start <= appliance.warranty_expiry <= end
        ]
        appliances.sort(key=lambda appliance: (appliance.warranty_expiry, -appliance.id.value))
        return appliances

    def list_recent_service_logs(self, limit: int = 5) -> list[ServiceLogEntry]:
        return self._store.service_log.list()[:max(limit, 0)]

    def ytd_service_spend_cents(self, year_start: date | None = None) -> int:
        """Sum of live service log costs since ``year_start`` (default: Jan 1 this year)."""
        if year_start is None:
            year_start = date(_today(None).year, 1, 1)
        row = self._conn.execute(
            """SELECT COALESCE(SUM(cost_cents), 0) FROM service_log_entries
               WHERE deleted_at IS NULL AND serviced_at >= ?""",
            (format_date(year_start),),
        ).fetchone()
        return row[0]

    def total_project_spend_cents(self) -> int:
        row = self._conn.execute(
            "SELECT COALESCE(SUM(actual_cents), 0) FROM projects WHERE deleted_at IS NULL"
        ).fetchone()
        return row[0]
