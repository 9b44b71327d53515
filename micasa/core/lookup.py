"""Lookup tables: project types and maintenance categories."""

import sqlite3
from typing import TYPE_CHECKING

from ..host.time import parse_timestamp
from .models import MaintenanceCategory, ProjectType
from .types import MaintenanceCategoryId, ProjectTypeId

if TYPE_CHECKING:
    from . import Store


class LookupOperations:
    def __init__(self, store: "Store"):
        self._store = store

    @property
    def _conn(self) -> sqlite3.Connection:
        return self._store.connection

    def list_project_types(self) -> list[ProjectType]:
        """All project types ordered by name."""
        rows = self._conn.execute(
            "SELECT id, name, created_at, updated_at FROM project_types ORDER BY name ASC"
        ).fetchall()
        return [
            ProjectType(
                id=ProjectTypeId(row["id"]),
                name=row["name"],
                created_at=parse_timestamp(row["created_at"], "project_types.created_at"),
                updated_at=parse_timestamp(row["updated_at"], "project_types.updated_at"),
            )
            for row in rows
        ]

    def list_maintenance_categories(self) -> list[MaintenanceCategory]:
        """All maintenance categories ordered by name."""
        rows = self._conn.execute(
            "SELECT id, name, created_at, updated_at FROM maintenance_categories ORDER BY name ASC"
        ).fetchall()
        return [
            MaintenanceCategory(
                id=MaintenanceCategoryId(row["id"]),
                name=row["name"],
                created_at=parse_timestamp(row["created_at"], "maintenance_categories.created_at"),
                updated_at=parse_timestamp(row["updated_at"], "maintenance_categories.updated_at"),
            )
            for row in rows
        ]

    def project_type_by_name(self, name: str) -> ProjectType | None:
        for project_type in self.list_project_types():
            if project_type.name == name:
                return project_type
        return None

    def maintenance_category_by_name(self, name: str) -> MaintenanceCategory | None:
        for category in self.list_maintenance_categories():
            if category.name == name:
                return category
        return None
