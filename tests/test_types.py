"""Tests for typed ids, stored enum tokens, input validation and timestamps."""

from datetime import date, datetime, timezone

import pytest

from micasa.core.models import NewIncident, NewProject, NewQuote
from micasa.core.types import (
    DocumentEntityKind,
    EntityKind,
    IncidentSeverity,
    ProjectId,
    ProjectStatus,
    ProjectTypeId,
    QuoteId,
    VendorId,
    lifecycle_ref,
)
from micasa.exceptions import CorruptionError, ValidationError
from micasa.host.time import format_timestamp, parse_date, parse_timestamp


class TestEntityIds:
    """Tests for the per-table id types."""

    def test_ids_of_different_types_differ(self):
        assert ProjectId(1) != VendorId(1)
        assert ProjectId(1) == ProjectId(1)
        assert ProjectId(1) < ProjectId(2)

    def test_ids_must_be_positive_ints(self):
        for bad in (0, -3, True, "1", 1.0):
            with pytest.raises(ValidationError):
                ProjectId(bad)

    def test_coerce(self):
        assert ProjectId.coerce(5) == ProjectId(5)
        with pytest.raises(ValidationError):
            ProjectId.coerce(QuoteId(5))

    def test_lifecycle_ref(self):
        ref = lifecycle_ref(EntityKind.SERVICE_LOG, 9)
        assert ref.kind is EntityKind.SERVICE_LOG
        assert int(ref) == 9


class TestEnumTokens:
    """Stored tokens map back to their variants or fail loudly."""

    def test_parse_known_token(self):
        assert ProjectStatus.parse("underway") is ProjectStatus.UNDERWAY
        assert DocumentEntityKind.parse("") is DocumentEntityKind.NONE

    def test_unknown_token_is_corruption(self):
        with pytest.raises(CorruptionError) as exc_info:
            IncidentSeverity.parse("meh", "incidents.severity")
        assert exc_info.value.details == {"column": "incidents.severity", "value": "meh"}

    def test_corrupted_row_surfaces_on_read(self, store, project_id):
        """A row rewritten with an unknown status cannot be read back."""
        store.connection.execute(
            "UPDATE projects SET status = 'someday' WHERE id = ?", (project_id.value,)
        )
        with pytest.raises(CorruptionError):
            store.projects.list()

    def test_entity_kind_tables(self):
        assert EntityKind.MAINTENANCE.table == "maintenance_items"
        assert EntityKind.SERVICE_LOG.label == "service log entry"


class TestInputValidation:
    """New* inputs validate their own shape."""

    def test_blank_title(self):
        with pytest.raises(ValidationError) as exc_info:
            NewProject(title="  ", project_type_id=ProjectTypeId(1)).validate()
        assert exc_info.value.details["field"] == "title"

    def test_end_before_start(self):
        with pytest.raises(ValidationError):
            NewProject(
                title="Deck", project_type_id=ProjectTypeId(1),
                start_date=date(2025, 5, 1), end_date=date(2025, 4, 1),
            ).validate()

    def test_negative_budget(self):
        with pytest.raises(ValidationError):
            NewProject(title="Deck", project_type_id=ProjectTypeId(1),
                       budget_cents=-1).validate()

    def test_quote_total_positive(self):
        with pytest.raises(ValidationError):
            NewQuote(project_id=ProjectId(1), vendor_id=VendorId(1), total_cents=0).validate()

    def test_incident_resolved_before_noticed(self):
        with pytest.raises(ValidationError):
            NewIncident(title="Leak", date_noticed=date(2025, 5, 2),
                        date_resolved=date(2025, 5, 1)).validate()


class TestTimestamps:
    """Tests for timestamp storage and lenient parsing."""

    def test_format_is_fixed_width_utc(self):
        dt = datetime(2025, 1, 2, 3, 4, 5, 6, tzinfo=timezone.utc)
        assert format_timestamp(dt) == "2025-01-02T03:04:05.000006Z"

    @pytest.mark.parametrize("raw, second", [
        ("2025-01-02T03:04:05Z", 5),
        ("2025-01-02 03:04:05", 5),
        ("2025-01-02T03:04:05.000000000Z", 5),
        ("2025-01-02T05:04:05+02:00", 5),
        ("2025-01-02T03:04Z", 0),
    ])
    def test_parse_variants(self, raw, second):
        """Timestamps from other writers parse to the same UTC instant."""
        expected = datetime(2025, 1, 2, 3, 4, second, tzinfo=timezone.utc)
        assert parse_timestamp(raw) == expected

    def test_parse_garbage_is_corruption(self):
        with pytest.raises(CorruptionError):
            parse_timestamp("yesterday", "projects.created_at")

    def test_parse_date_from_timestamp(self):
        assert parse_date("2025-03-04T23:00:00Z") == date(2025, 3, 4)
        assert parse_date("2025-03-04") == date(2025, 3, 4)
