"""Domain types for micasa.

These types define the identifiers and enumerations shared by the store,
the mutation journal and callers.

IDENTIFIERS:
Every table has its own id type (``ProjectId``, ``VendorId``, ...). They all
wrap a positive integer, but an id of one type never compares equal to an id
of another, so a ``VendorId`` cannot be passed where a ``ProjectId`` is meant
without it showing up. Ids of soft-deletable entities also name their
``EntityKind``, which makes them usable as lifecycle references on their own.

ENUMERATIONS:
Status, severity and kind fields are stored as fixed string tokens. ``parse``
maps a stored token back to its variant and raises ``CorruptionError`` for
anything unknown; there is no fallback variant.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from ..exceptions import CorruptionError, ValidationError


# ============================================================================
# ENUMERATIONS
# ============================================================================

class _TokenEnum(Enum):
    """Enum whose values are the tokens stored in the database."""

    @classmethod
    def parse(cls, raw: str, column: str | None = None):
        """Map a stored token back to its variant.

        Args:
            raw: Token read from the database
            column: Column name used in the error message

        Raises:
            CorruptionError: If the token is not a known variant
        """
        try:
            return cls(raw)
        except ValueError:
            column = column or cls.__name__
            raise CorruptionError(
                f"unknown {column} value {raw!r}",
                {"column": column, "value": raw},
            ) from None

    def __str__(self) -> str:
        return self.value


class EntityKind(_TokenEnum):
    """Soft-deletable entity kinds; the value is the deletion audit tag."""

    PROJECT = "project"
    QUOTE = "quote"
    MAINTENANCE = "maintenance"
    APPLIANCE = "appliance"
    SERVICE_LOG = "service_log"
    VENDOR = "vendor"
    DOCUMENT = "document"
    INCIDENT = "incident"

    @property
    def table(self) -> str:
        """Table holding rows of this kind."""
        return _KIND_TABLES[self]

    @property
    def label(self) -> str:
        """Human-readable singular name used in error messages."""
        return _KIND_LABELS[self]


_KIND_TABLES = {
    EntityKind.PROJECT: "projects",
    EntityKind.QUOTE: "quotes",
    EntityKind.MAINTENANCE: "maintenance_items",
    EntityKind.APPLIANCE: "appliances",
    EntityKind.SERVICE_LOG: "service_log_entries",
    EntityKind.VENDOR: "vendors",
    EntityKind.DOCUMENT: "documents",
    EntityKind.INCIDENT: "incidents",
}

_KIND_LABELS = {
    EntityKind.PROJECT: "project",
    EntityKind.QUOTE: "quote",
    EntityKind.MAINTENANCE: "maintenance item",
    EntityKind.APPLIANCE: "appliance",
    EntityKind.SERVICE_LOG: "service log entry",
    EntityKind.VENDOR: "vendor",
    EntityKind.DOCUMENT: "document",
    EntityKind.INCIDENT: "incident",
}


class DocumentEntityKind(_TokenEnum):
    """What a document is attached to; NONE means unlinked."""

    NONE = ""
    PROJECT = "project"
    QUOTE = "quote"
    MAINTENANCE = "maintenance"
    APPLIANCE = "appliance"
    SERVICE_LOG = "service_log"
    VENDOR = "vendor"
    INCIDENT = "incident"

    @property
    def entity_kind(self) -> EntityKind | None:
        if self is DocumentEntityKind.NONE:
            return None
        return EntityKind(self.value)


class ProjectStatus(_TokenEnum):
    IDEATING = "ideating"
    PLANNED = "planned"
    QUOTED = "quoted"
    UNDERWAY = "underway"
    DELAYED = "delayed"
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_closed(self) -> bool:
        return self in (ProjectStatus.COMPLETED, ProjectStatus.ABANDONED)


class IncidentStatus(_TokenEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class IncidentSeverity(_TokenEnum):
    URGENT = "urgent"
    SOON = "soon"
    WHENEVER = "whenever"

    @property
    def rank(self) -> int:
        """Sort rank, most pressing first."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    IncidentSeverity.URGENT: 0,
    IncidentSeverity.SOON: 1,
    IncidentSeverity.WHENEVER: 2,
}


class SettingKey(_TokenEnum):
    """Keys of the typed settings stored in the settings table."""

    SHOW_DASHBOARD = "ui.show_dashboard"
    LAST_MODEL = "llm.model"


# ============================================================================
# IDENTIFIERS
# ============================================================================

@dataclass(frozen=True, order=True)
class EntityId:
    """Positive integer id of one row of one table.

    Subclasses set ``kind`` when their rows have a soft-delete lifecycle.
    Equality and ordering only hold between ids of the same class.
    """

    value: int
    kind: ClassVar[EntityKind | None] = None

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError(
                f"{type(self).__name__} must wrap an int, got {self.value!r}",
                {"value": self.value},
            )
        if self.value <= 0:
            raise ValidationError(
                f"{type(self).__name__} must be positive, got {self.value}",
                {"value": self.value},
            )

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def coerce(cls, value: "int | EntityId"):
        """Accept either a raw int or an id of this exact class.

        Raises:
            ValidationError: If ``value`` is an id of another entity type
        """
        if isinstance(value, EntityId):
            if type(value) is not cls:
                raise ValidationError(
                    f"expected {cls.__name__}, got {type(value).__name__}",
                    {"value": value.value},
                )
            return value
        return cls(value)


class ProjectId(EntityId):
    kind = EntityKind.PROJECT


class QuoteId(EntityId):
    kind = EntityKind.QUOTE


class VendorId(EntityId):
    kind = EntityKind.VENDOR


class ApplianceId(EntityId):
    kind = EntityKind.APPLIANCE


class MaintenanceItemId(EntityId):
    kind = EntityKind.MAINTENANCE


class ServiceLogEntryId(EntityId):
    kind = EntityKind.SERVICE_LOG


class IncidentId(EntityId):
    kind = EntityKind.INCIDENT


class DocumentId(EntityId):
    kind = EntityKind.DOCUMENT


class HouseProfileId(EntityId):
    pass


class ProjectTypeId(EntityId):
    pass


class MaintenanceCategoryId(EntityId):
    pass


class DeletionRecordId(EntityId):
    pass


class ChatInputId(EntityId):
    pass


ID_TYPES_BY_KIND: dict[EntityKind, type[EntityId]] = {
    EntityKind.PROJECT: ProjectId,
    EntityKind.QUOTE: QuoteId,
    EntityKind.MAINTENANCE: MaintenanceItemId,
    EntityKind.APPLIANCE: ApplianceId,
    EntityKind.SERVICE_LOG: ServiceLogEntryId,
    EntityKind.VENDOR: VendorId,
    EntityKind.DOCUMENT: DocumentId,
    EntityKind.INCIDENT: IncidentId,
}


def lifecycle_ref(kind: EntityKind, value: int) -> EntityId:
    """Build the typed id for a row of a soft-deletable kind."""
    return ID_TYPES_BY_KIND[kind](value)
