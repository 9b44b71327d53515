"""Schema access utilities for micasa.

This module provides runtime access to the bundled SQL schema and the
compatibility contract an existing database must honor.

The contract is column presence, not DDL text: any database that has every
table in ``REQUIRED_SCHEMA`` with at least the listed columns can be opened,
whoever created it. Extra tables and columns are tolerated.

USAGE:
    >>> from micasa.schemas import get_sql_schema, REQUIRED_SCHEMA
    >>>
    >>> ddl = get_sql_schema()
    >>> REQUIRED_SCHEMA["quotes"]
    ('id', 'project_id', 'vendor_id', 'total_cents', ...)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Try importlib.resources for bundled package support
try:
    from importlib.resources import files as resource_files
    HAS_RESOURCE_FILES = True
except ImportError:
    HAS_RESOURCE_FILES = False


# ============================================================================
# CONSTANTS
# ============================================================================

VALID_SCHEMAS = {"micasa"}

REQUIRED_SCHEMA: dict[str, tuple[str, ...]] = {
    "house_profiles": (
        "id", "nickname", "address_line_1", "address_line_2", "city", "state",
        "postal_code", "year_built", "square_feet", "lot_square_feet", "bedrooms",
        "bathrooms", "foundation_type", "wiring_type", "roof_type", "exterior_type",
        "heating_type", "cooling_type", "water_source", "sewer_type", "parking_type",
        "basement_type", "insurance_carrier", "insurance_policy", "insurance_renewal",
        "property_tax_cents", "hoa_name", "hoa_fee_cents", "created_at", "updated_at",
    ),
    "project_types": ("id", "name", "created_at", "updated_at"),
    "vendors": ("id", "name", "created_at", "updated_at", "deleted_at"),
    "projects": (
        "id", "title", "project_type_id", "status", "created_at", "updated_at", "deleted_at",
    ),
    "quotes": (
        "id", "project_id", "vendor_id", "total_cents", "created_at", "updated_at", "deleted_at",
    ),
    "maintenance_categories": ("id", "name", "created_at", "updated_at"),
    "appliances": ("id", "name", "created_at", "updated_at", "deleted_at"),
    "maintenance_items": (
        "id", "name", "category_id", "interval_months", "created_at", "updated_at", "deleted_at",
    ),
    "service_log_entries": (
        "id", "maintenance_item_id", "serviced_at", "vendor_id", "cost_cents", "notes",
        "created_at", "updated_at", "deleted_at",
    ),
    "incidents": (
        "id", "title", "status", "severity", "date_noticed", "created_at", "updated_at",
        "deleted_at",
    ),
    "documents": (
        "id", "title", "file_name", "entity_kind", "entity_id", "mime_type", "size_bytes",
        "sha256", "data", "created_at", "updated_at", "deleted_at",
    ),
    "deletion_records": ("id", "entity", "target_id", "deleted_at", "restored_at"),
    "settings": ("key", "value", "updated_at"),
    "chat_inputs": ("id", "input", "created_at"),
}


@dataclass(frozen=True)
class RequiredIndex:
    name: str
    table: str
    columns: tuple[str, ...]
    unique: bool = False

    @property
    def create_sql(self) -> str:
        unique = "UNIQUE " if self.unique else ""
        return (
            f"CREATE {unique}INDEX IF NOT EXISTS {self.name} "
            f"ON {self.table} ({', '.join(self.columns)})"
        )


# Indexes ensured on every bootstrap, both for new and attached databases.
REQUIRED_INDEXES: tuple[RequiredIndex, ...] = (
    RequiredIndex("idx_project_types_name", "project_types", ("name",), unique=True),
    RequiredIndex("idx_vendors_name", "vendors", ("name",), unique=True),
    RequiredIndex("idx_vendors_deleted_at", "vendors", ("deleted_at",)),
    RequiredIndex("idx_projects_project_type_id", "projects", ("project_type_id",)),
    RequiredIndex("idx_projects_deleted_at", "projects", ("deleted_at",)),
    RequiredIndex("idx_quotes_project_id", "quotes", ("project_id",)),
    RequiredIndex("idx_quotes_vendor_id", "quotes", ("vendor_id",)),
    RequiredIndex("idx_quotes_deleted_at", "quotes", ("deleted_at",)),
    RequiredIndex(
        "idx_maintenance_categories_name", "maintenance_categories", ("name",), unique=True
    ),
    RequiredIndex("idx_appliances_deleted_at", "appliances", ("deleted_at",)),
    RequiredIndex("idx_maintenance_items_category_id", "maintenance_items", ("category_id",)),
    RequiredIndex("idx_maintenance_items_deleted_at", "maintenance_items", ("deleted_at",)),
    RequiredIndex(
        "idx_service_log_entries_maintenance_item_id",
        "service_log_entries",
        ("maintenance_item_id",),
    ),
    RequiredIndex("idx_service_log_entries_vendor_id", "service_log_entries", ("vendor_id",)),
    RequiredIndex("idx_service_log_entries_deleted_at", "service_log_entries", ("deleted_at",)),
    RequiredIndex("idx_incidents_deleted_at", "incidents", ("deleted_at",)),
    RequiredIndex("idx_doc_entity", "documents", ("entity_kind", "entity_id")),
    RequiredIndex("idx_documents_deleted_at", "documents", ("deleted_at",)),
    RequiredIndex("idx_deletion_records_entity", "deletion_records", ("entity",)),
    RequiredIndex("idx_deletion_records_target_id", "deletion_records", ("target_id",)),
    RequiredIndex("idx_deletion_records_deleted_at", "deletion_records", ("deleted_at",)),
    RequiredIndex("idx_entity_restored", "deletion_records", ("entity", "restored_at")),
)

DEFAULT_PROJECT_TYPES: tuple[str, ...] = (
    "Appliance", "Electrical", "Exterior", "Flooring", "HVAC", "Landscaping",
    "Painting", "Plumbing", "Remodel", "Roof", "Structural", "Windows",
)

DEFAULT_MAINTENANCE_CATEGORIES: tuple[str, ...] = (
    "Appliance", "Electrical", "Exterior", "HVAC", "Interior", "Landscaping",
    "Plumbing", "Safety", "Structural",
)


# ============================================================================
# SQL SCHEMA ACCESS
# ============================================================================

def get_sql_schema(name: str = "micasa") -> str:
    """Get bundled SQL schema content.

    Args:
        name: Schema name (only 'micasa' is bundled)

    Returns:
        SQL schema content as string

    Raises:
        ValueError: If name is not a bundled schema
        FileNotFoundError: If schema file not found in bundled or file locations
    """
    if name not in VALID_SCHEMAS:
        raise ValueError(
            f"Invalid schema: {name!r}. Must be one of: {sorted(VALID_SCHEMAS)}"
        )

    # Try importlib.resources first (bundled package)
    if HAS_RESOURCE_FILES:
        try:
            schema_file = resource_files("micasa.schemas") / "sql" / f"{name}.sql"
            if schema_file.is_file():
                return schema_file.read_text(encoding="utf-8")
        except (FileNotFoundError, ModuleNotFoundError, AttributeError):
            # Fall through to file reading
            pass

    # Fall back to file reading (development mode)
    file_path = Path(__file__).parent / "sql" / f"{name}.sql"
    if file_path.exists():
        return file_path.read_text(encoding="utf-8")

    raise FileNotFoundError(
        f"SQL schema file not found for {name!r}. Searched: {file_path}"
    )
