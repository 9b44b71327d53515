"""Tests for the mutation journal (undo/redo)."""

from datetime import date

import pytest

from micasa.core.models import (
    NewAppliance,
    NewDocument,
    NewIncident,
    NewQuote,
    NewVendor,
)
from micasa.core.types import ApplianceId, VendorId
from micasa.exceptions import ReferentialIntegrityError, ValidationError
from micasa.journal import JOURNAL_CAPACITY, Mutation, MutationJournal, MutationKind


@pytest.fixture
def journal(store):
    return MutationJournal(store)


def _vendor_ids(store):
    return [vendor.id for vendor in store.vendors.list()]


class TestMutation:
    """Tests for Mutation.inverse."""

    @pytest.mark.parametrize("kind, inverse", [
        (MutationKind.CREATED, MutationKind.SOFT_DELETED),
        (MutationKind.SOFT_DELETED, MutationKind.RESTORED),
        (MutationKind.RESTORED, MutationKind.SOFT_DELETED),
    ])
    def test_inverse(self, kind, inverse):
        target = VendorId(3)
        assert Mutation(kind, target).inverse() == Mutation(inverse, target)


class TestUndoRedo:
    """Round trips through undo and redo."""

    def test_create_undo_redo_round_trip(self, store, journal):
        """create, undo hides the row, redo brings it back unchanged."""
        vendor_id = journal.create(NewVendor(name="Plumb Co", email="hi@plumb.example"))
        original = store.vendors.get(vendor_id)

        assert journal.undo() is True
        assert vendor_id not in _vendor_ids(store)

        assert journal.redo() is True
        assert vendor_id in _vendor_ids(store)
        restored = store.vendors.get(vendor_id)
        assert restored.name == original.name
        assert restored.email == original.email
        assert restored.created_at == original.created_at

    def test_soft_delete_undo_restores(self, store, journal, vendor_id):
        """Undoing a soft delete restores the row."""
        journal.soft_delete(vendor_id)
        assert vendor_id not in _vendor_ids(store)

        journal.undo()
        assert vendor_id in _vendor_ids(store)

        journal.redo()
        assert vendor_id not in _vendor_ids(store)

    def test_restore_undo_deletes_again(self, store, journal, vendor_id):
        """Undoing a restore deletes the row again."""
        store.vendors.soft_delete(vendor_id)
        journal.restore(vendor_id)

        journal.undo()
        assert vendor_id not in _vendor_ids(store)

    def test_empty_stacks_report_nothing(self, journal):
        """undo/redo on empty stacks return False rather than raising."""
        assert journal.undo() is False
        assert journal.redo() is False
        assert not journal.can_undo
        assert not journal.can_redo

    def test_new_mutation_clears_redo(self, store, journal):
        """A fresh mutation after undo discards the redo history."""
        journal.create(NewVendor(name="First"))
        journal.undo()
        assert journal.can_redo

        journal.create(NewVendor(name="Second"))
        assert not journal.can_redo
        assert journal.redo() is False

    def test_redo_moves_back_to_undo(self, journal):
        """redo pushes the original mutation back onto the undo stack."""
        target = journal.create(NewAppliance(name="Dishwasher"))
        journal.undo()
        journal.redo()

        assert journal.peek_undo() == Mutation(MutationKind.CREATED, target)
        assert journal.redo_depth == 0

    def test_sessions_are_independent(self, store):
        """Two journals on one store do not share history."""
        first = MutationJournal(store)
        second = MutationJournal(store)
        first.create(NewVendor(name="Only in first"))

        assert first.can_undo
        assert not second.can_undo


class TestCapacity:
    """The journal keeps at most JOURNAL_CAPACITY entries per stack."""

    def test_sixty_creates_leave_fifty_steps(self, store, journal):
        """Only the 50 most recent mutations are undoable."""
        created = [journal.create(NewAppliance(name=f"Appliance {i}")) for i in range(60)]

        assert journal.undo_depth == JOURNAL_CAPACITY
        undone = 0
        while journal.undo():
            undone += 1
        assert undone == 50

        live = {appliance.id for appliance in store.appliances.list()}
        assert live == set(created[:10])

    def test_redo_stack_is_capped(self, store):
        """The redo stack follows the same cap."""
        journal = MutationJournal(store, capacity=3)
        for i in range(5):
            journal.create(NewAppliance(name=f"Lamp {i}"))
        while journal.undo():
            pass

        assert journal.redo_depth == 3

    def test_capacity_must_be_positive(self, store):
        """A journal needs room for at least one entry."""
        with pytest.raises(ValidationError):
            MutationJournal(store, capacity=0)


class TestFailures:
    """A failing store call leaves both stacks untouched."""

    def test_failed_redo_can_be_retried(self, store, journal, project_id, vendor_id):
        """A blocked redo raises, keeps the redo entry, and succeeds once unblocked."""
        journal.soft_delete(project_id)
        journal.undo()
        quote_id = store.quotes.create(NewQuote(
            project_id=project_id, vendor_id=vendor_id, total_cents=500
        ))

        with pytest.raises(ReferentialIntegrityError):
            journal.redo()
        assert journal.redo_depth == 1
        assert journal.undo_depth == 0

        store.quotes.soft_delete(quote_id)
        assert journal.redo() is True
        assert journal.undo_depth == 1

    def test_failed_undo_keeps_entry(self, store, journal, vendor_id):
        """A blocked undo raises and leaves the undo stack as it was."""
        appliance_id = journal.create(NewAppliance(name="Water heater"))
        store.incidents.create(_incident(appliance_id, vendor_id))

        with pytest.raises(ReferentialIntegrityError):
            journal.undo()
        assert journal.undo_depth == 1
        assert journal.redo_depth == 0
        assert journal.peek_undo().target == appliance_id

    def test_documents_are_not_journaled(self, journal):
        """Only soft-deletable entity inputs can be created through the journal."""
        with pytest.raises(ValidationError):
            journal.create(NewDocument(
                title="Receipt", file_name="r.pdf", mime_type="application/pdf", data=b"x"
            ))
        assert not journal.can_undo


def _incident(appliance_id: ApplianceId, vendor_id: VendorId) -> NewIncident:
    return NewIncident(
        title="Pilot light out",
        date_noticed=date(2024, 11, 3),
        appliance_id=appliance_id,
        vendor_id=vendor_id,
    )
