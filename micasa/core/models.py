"""Records returned by the store and the typed inputs it accepts.

Records are read-only snapshots of one row. Inputs (``New*``) are the only
way to create rows; each validates its own shape before the store touches the
database, raising ``ValidationError`` with the offending field in
``details``.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime

from ..exceptions import ValidationError
from .types import (
    ApplianceId,
    ChatInputId,
    DeletionRecordId,
    DocumentEntityKind,
    DocumentId,
    EntityKind,
    HouseProfileId,
    IncidentId,
    IncidentSeverity,
    IncidentStatus,
    MaintenanceCategoryId,
    MaintenanceItemId,
    ProjectId,
    ProjectStatus,
    ProjectTypeId,
    QuoteId,
    ServiceLogEntryId,
    VendorId,
)


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _require_text(value: str, field_name: str, entity: str) -> None:
    if not value or not value.strip():
        raise ValidationError(
            f"{entity} {field_name} is required",
            {"field": field_name},
        )


def _require_non_negative(value: int | None, field_name: str, entity: str) -> None:
    if value is not None and value < 0:
        raise ValidationError(
            f"{entity} {field_name} cannot be negative (got {value})",
            {"field": field_name, "value": value},
        )


def _require_ordered(start: date | None, end: date | None, start_name: str,
                     end_name: str, entity: str) -> None:
    if start is not None and end is not None and end < start:
        raise ValidationError(
            f"{entity} {end_name} ({end}) is before {start_name} ({start})",
            {"field": end_name, start_name: start.isoformat(), end_name: end.isoformat()},
        )


def _require_variant(value, enum_cls, field_name: str, entity: str) -> None:
    try:
        enum_cls(value)
    except ValueError:
        raise ValidationError(
            f"{entity} {field_name} {value!r} is not a valid {enum_cls.__name__}",
            {"field": field_name, "value": str(value)},
        ) from None


# ============================================================================
# LOOKUPS
# ============================================================================

@dataclass(frozen=True)
class ProjectType:
    id: ProjectTypeId
    name: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class MaintenanceCategory:
    id: MaintenanceCategoryId
    name: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# HOUSE PROFILE
# ============================================================================

@dataclass
class HouseProfileInput:
    """Field values for the singleton house profile."""

    nickname: str
    address_line_1: str = ""
    address_line_2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    year_built: int | None = None
    square_feet: int | None = None
    lot_square_feet: int | None = None
    bedrooms: int | None = None
    bathrooms: float | None = None
    foundation_type: str = ""
    wiring_type: str = ""
    roof_type: str = ""
    exterior_type: str = ""
    heating_type: str = ""
    cooling_type: str = ""
    water_source: str = ""
    sewer_type: str = ""
    parking_type: str = ""
    basement_type: str = ""
    insurance_carrier: str = ""
    insurance_policy: str = ""
    insurance_renewal: date | None = None
    property_tax_cents: int | None = None
    hoa_name: str = ""
    hoa_fee_cents: int | None = None

    def validate(self) -> None:
        _require_text(self.nickname, "nickname", "house")
        for name in ("year_built", "square_feet", "lot_square_feet", "bedrooms"):
            _require_non_negative(getattr(self, name), name, "house")
        if self.bathrooms is not None and self.bathrooms < 0:
            raise ValidationError(
                f"house bathrooms cannot be negative (got {self.bathrooms})",
                {"field": "bathrooms", "value": self.bathrooms},
            )
        _require_non_negative(self.property_tax_cents, "property_tax_cents", "house")
        _require_non_negative(self.hoa_fee_cents, "hoa_fee_cents", "house")

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]


@dataclass
class HouseProfile(HouseProfileInput):
    """Stored house profile: the input fields plus row bookkeeping."""

    id: HouseProfileId | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ============================================================================
# PROJECTS, VENDORS, QUOTES
# ============================================================================

@dataclass
class NewProject:
    title: str
    project_type_id: ProjectTypeId
    status: ProjectStatus = ProjectStatus.IDEATING
    description: str = ""
    start_date: date | None = None
    end_date: date | None = None
    budget_cents: int | None = None
    actual_cents: int | None = None

    def validate(self) -> None:
        _require_text(self.title, "title", "project")
        _require_variant(self.status, ProjectStatus, "status", "project")
        _require_non_negative(self.budget_cents, "budget_cents", "project")
        _require_non_negative(self.actual_cents, "actual_cents", "project")
        _require_ordered(self.start_date, self.end_date, "start_date", "end_date", "project")


@dataclass(frozen=True)
class Project:
    id: ProjectId
    title: str
    project_type_id: ProjectTypeId
    status: ProjectStatus
    description: str
    start_date: date | None
    end_date: date | None
    budget_cents: int | None
    actual_cents: int | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


@dataclass
class NewVendor:
    name: str
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""
    notes: str = ""

    def validate(self) -> None:
        _require_text(self.name, "name", "vendor")


@dataclass(frozen=True)
class Vendor:
    id: VendorId
    name: str
    contact_name: str
    email: str
    phone: str
    website: str
    notes: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


@dataclass
class NewQuote:
    project_id: ProjectId
    vendor_id: VendorId
    total_cents: int
    labor_cents: int | None = None
    materials_cents: int | None = None
    other_cents: int | None = None
    received_date: date | None = None
    notes: str = ""

    def validate(self) -> None:
        if self.total_cents is None or self.total_cents <= 0:
            raise ValidationError(
                f"quote total_cents must be positive (got {self.total_cents})",
                {"field": "total_cents", "value": self.total_cents},
            )
        for name in ("labor_cents", "materials_cents", "other_cents"):
            _require_non_negative(getattr(self, name), name, "quote")


@dataclass(frozen=True)
class Quote:
    id: QuoteId
    project_id: ProjectId
    vendor_id: VendorId
    total_cents: int
    labor_cents: int | None
    materials_cents: int | None
    other_cents: int | None
    received_date: date | None
    notes: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


# ============================================================================
# APPLIANCES, MAINTENANCE, SERVICE LOG
# ============================================================================

@dataclass
class NewAppliance:
    name: str
    brand: str = ""
    model_number: str = ""
    serial_number: str = ""
    purchase_date: date | None = None
    warranty_expiry: date | None = None
    location: str = ""
    cost_cents: int | None = None
    notes: str = ""

    def validate(self) -> None:
        _require_text(self.name, "name", "appliance")
        _require_non_negative(self.cost_cents, "cost_cents", "appliance")


@dataclass(frozen=True)
class Appliance:
    id: ApplianceId
    name: str
    brand: str
    model_number: str
    serial_number: str
    purchase_date: date | None
    warranty_expiry: date | None
    location: str
    cost_cents: int | None
    notes: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


@dataclass
class NewMaintenanceItem:
    name: str
    category_id: MaintenanceCategoryId
    interval_months: int
    appliance_id: ApplianceId | None = None
    last_serviced_at: date | None = None
    manual_url: str = ""
    manual_text: str = ""
    notes: str = ""
    cost_cents: int | None = None

    def validate(self) -> None:
        _require_text(self.name, "name", "maintenance item")
        if self.interval_months is None or self.interval_months < 1:
            raise ValidationError(
                f"maintenance interval_months must be at least 1 (got {self.interval_months})",
                {"field": "interval_months", "value": self.interval_months},
            )
        _require_non_negative(self.cost_cents, "cost_cents", "maintenance item")


@dataclass(frozen=True)
class MaintenanceItem:
    id: MaintenanceItemId
    name: str
    category_id: MaintenanceCategoryId
    appliance_id: ApplianceId | None
    last_serviced_at: date | None
    interval_months: int
    manual_url: str
    manual_text: str
    notes: str
    cost_cents: int | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


@dataclass
class NewServiceLogEntry:
    maintenance_item_id: MaintenanceItemId
    serviced_at: date
    vendor_id: VendorId | None = None
    cost_cents: int | None = None
    notes: str = ""

    def validate(self) -> None:
        if self.serviced_at is None:
            raise ValidationError(
                "service log serviced_at is required", {"field": "serviced_at"}
            )
        _require_non_negative(self.cost_cents, "cost_cents", "service log entry")


@dataclass(frozen=True)
class ServiceLogEntry:
    id: ServiceLogEntryId
    maintenance_item_id: MaintenanceItemId
    serviced_at: date
    vendor_id: VendorId | None
    cost_cents: int | None
    notes: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


# ============================================================================
# INCIDENTS
# ============================================================================

@dataclass
class NewIncident:
    title: str
    date_noticed: date
    status: IncidentStatus = IncidentStatus.OPEN
    severity: IncidentSeverity = IncidentSeverity.SOON
    description: str = ""
    date_resolved: date | None = None
    location: str = ""
    cost_cents: int | None = None
    appliance_id: ApplianceId | None = None
    vendor_id: VendorId | None = None
    notes: str = ""

    def validate(self) -> None:
        _require_text(self.title, "title", "incident")
        _require_variant(self.status, IncidentStatus, "status", "incident")
        _require_variant(self.severity, IncidentSeverity, "severity", "incident")
        if self.date_noticed is None:
            raise ValidationError(
                "incident date_noticed is required", {"field": "date_noticed"}
            )
        _require_ordered(
            self.date_noticed, self.date_resolved, "date_noticed", "date_resolved", "incident"
        )
        _require_non_negative(self.cost_cents, "cost_cents", "incident")


@dataclass(frozen=True)
class Incident:
    id: IncidentId
    title: str
    description: str
    status: IncidentStatus
    severity: IncidentSeverity
    date_noticed: date
    date_resolved: date | None
    location: str
    cost_cents: int | None
    appliance_id: ApplianceId | None
    vendor_id: VendorId | None
    notes: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


# ============================================================================
# DOCUMENTS
# ============================================================================

@dataclass
class NewDocument:
    title: str
    file_name: str
    mime_type: str
    data: bytes = field(repr=False)
    entity_kind: DocumentEntityKind = DocumentEntityKind.NONE
    entity_id: int = 0
    notes: str = ""

    def validate(self) -> None:
        _require_text(self.title, "title", "document")
        _require_text(self.file_name, "file_name", "document")
        _require_text(self.mime_type, "mime_type", "document")
        _require_variant(self.entity_kind, DocumentEntityKind, "entity_kind", "document")
        if not self.data:
            raise ValidationError("document data is required", {"field": "data"})
        kind = DocumentEntityKind(self.entity_kind)
        if kind is not DocumentEntityKind.NONE and int(self.entity_id) <= 0:
            raise ValidationError(
                f"document linked to {kind.value} needs a positive entity_id",
                {"field": "entity_id", "value": int(self.entity_id)},
            )


@dataclass(frozen=True)
class Document:
    id: DocumentId
    title: str
    file_name: str
    entity_kind: DocumentEntityKind
    entity_id: int
    mime_type: str
    size_bytes: int
    checksum_sha256: str
    notes: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


# ============================================================================
# AUDIT, SETTINGS, CHAT
# ============================================================================

@dataclass(frozen=True)
class DeletionRecord:
    id: DeletionRecordId
    entity_kind: EntityKind
    target_id: int
    deleted_at: datetime
    restored_at: datetime | None

    @property
    def is_restored(self) -> bool:
        return self.restored_at is not None


@dataclass(frozen=True)
class AppSetting:
    key: str
    value: str
    updated_at: datetime


@dataclass(frozen=True)
class ChatInput:
    id: ChatInputId
    input: str
    created_at: datetime


@dataclass(frozen=True)
class DashboardCounts:
    projects_due: int
    maintenance_due: int
    incidents_open: int
