"""Project operations.

IMPORT CONVENTION:
- Store accesses these through the store.projects property
"""

from __future__ import annotations

import sqlite3

from ..host.time import format_date, parse_optional_date
from .entity import EntityOperations, row_timestamps, row_value
from .models import NewProject, Project
from .types import EntityKind, ProjectId, ProjectStatus, ProjectTypeId

ACTIVE_STATUSES = (ProjectStatus.UNDERWAY, ProjectStatus.DELAYED)


class ProjectOperations(EntityOperations):
    """Project CRUD and listing."""

    kind = EntityKind.PROJECT
    id_type = ProjectId

    def create(self, new: NewProject) -> ProjectId:
        """Create a project.

        Args:
            new: Validated field values

        Returns:
            The new project's id

        Raises:
            ValidationError: If the input is malformed
            ResourceNotFound: If the project type does not exist
        """
        new.validate()
        project_type_id = ProjectTypeId.coerce(new.project_type_id)

        with self._store.transaction() as conn:
            self._store.lifecycle.require_lookup(
                conn, "project_types", project_type_id, "project type"
            )
            return self._insert(conn, {
                "title": new.title.strip(),
                "project_type_id": project_type_id.value,
                "status": ProjectStatus(new.status).value,
                "description": new.description,
                "start_date": format_date(new.start_date),
                "end_date": format_date(new.end_date),
                "budget_cents": new.budget_cents,
                "actual_cents": new.actual_cents,
            })

    def list_by_status(
        self, statuses: tuple[ProjectStatus, ...], include_deleted: bool = False
    ) -> list[Project]:
        """List projects whose status is one of ``statuses``."""
        return [p for p in self.list(include_deleted) if p.status in statuses]

    def _from_row(self, row: sqlite3.Row) -> Project:
        return Project(
            id=ProjectId(row["id"]),
            title=row["title"],
            project_type_id=ProjectTypeId(row["project_type_id"]),
            status=ProjectStatus.parse(row["status"], "projects.status"),
            description=row_value(row, "description", ""),
            start_date=parse_optional_date(row_value(row, "start_date"), "projects.start_date"),
            end_date=parse_optional_date(row_value(row, "end_date"), "projects.end_date"),
            budget_cents=row_value(row, "budget_cents"),
            actual_cents=row_value(row, "actual_cents"),
            **row_timestamps(row, "projects"),
        )
