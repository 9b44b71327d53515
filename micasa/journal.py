"""Mutation journal: bounded undo/redo over store lifecycle operations.

This module layers undo/redo on top of the Store without the Store knowing
about it. Callers route create/soft-delete/restore through the journal;
every successful call is recorded and can be inverted later.

ARCHITECTURE:
- One MutationJournal per open store session, owned by the caller
  (no process-wide state, so independent sessions never interfere)
- Two in-memory stacks (undo, redo), each capped at JOURNAL_CAPACITY;
  when full, the oldest entry is dropped
- Every undo/redo is re-validated by the Store (guards included)

INVERSE MAPPING:
- CREATED      -> undo soft-deletes the row, redo restores it
- SOFT_DELETED -> undo restores the row,    redo soft-deletes it again
- RESTORED     -> undo soft-deletes the row, redo restores it again

FAILURE SEMANTICS:
The store call runs in its own transaction and the stacks only change after
it commits. If the store raises (for example a project cannot be re-deleted
because a quote was added since), the error propagates and both stacks stay
exactly as they were, so the step can be retried or abandoned.

USAGE:
    journal = MutationJournal(store)
    project_id = journal.create(NewProject(title="Deck", project_type_id=type_id))
    journal.undo()   # project hidden
    journal.redo()   # project back
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from .core.models import (
    NewAppliance,
    NewIncident,
    NewMaintenanceItem,
    NewProject,
    NewQuote,
    NewServiceLogEntry,
    NewVendor,
)
from .core.types import EntityId
from .exceptions import ValidationError

if TYPE_CHECKING:
    from .core import Store

logger = logging.getLogger(__name__)

JOURNAL_CAPACITY = 50


class MutationKind(Enum):
    """What a journaled mutation did."""

    CREATED = "created"
    SOFT_DELETED = "soft_deleted"
    RESTORED = "restored"


@dataclass(frozen=True)
class Mutation:
    """One journaled mutation of one row."""

    kind: MutationKind
    target: EntityId

    def inverse(self) -> "Mutation":
        """The mutation that undoes this one."""
        if self.kind is MutationKind.SOFT_DELETED:
            return Mutation(MutationKind.RESTORED, self.target)
        return Mutation(MutationKind.SOFT_DELETED, self.target)


class MutationJournal:
    """
    Bounded undo/redo history for one store session.

    Attributes:
        capacity: Maximum entries kept on each stack
    """

    def __init__(self, store: "Store", capacity: int = JOURNAL_CAPACITY):
        """Initialize an empty journal.

        Args:
            store: Store the mutations are applied through
            capacity: Maximum entries per stack

        Raises:
            ValidationError: If capacity is not positive
        """
        if capacity <= 0:
            raise ValidationError(
                f"journal capacity must be positive, got {capacity}", {"capacity": capacity}
            )
        self._store = store
        self.capacity = capacity
        self._undo: deque[Mutation] = deque()
        self._redo: deque[Mutation] = deque()
        self._creators: dict[type, Callable[[Any], EntityId]] = {
            NewProject: lambda new: store.projects.create(new),
            NewVendor: lambda new: store.vendors.create(new),
            NewQuote: lambda new: store.quotes.create(new),
            NewAppliance: lambda new: store.appliances.create(new),
            NewMaintenanceItem: lambda new: store.maintenance.create(new),
            NewServiceLogEntry: lambda new: store.service_log.create(new),
            NewIncident: lambda new: store.incidents.create(new),
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def create(self, new: Any) -> EntityId:
        """Create a row through the store and record it.

        Args:
            new: A New* input of a soft-deletable entity type

        Returns:
            Typed id of the new row

        Raises:
            ValidationError: If the input type is not journaled
        """
        creator = self._creators.get(type(new))
        if creator is None:
            raise ValidationError(
                f"{type(new).__name__} inputs are not journaled",
                {"input_type": type(new).__name__},
            )
        target = creator(new)
        self._record(Mutation(MutationKind.CREATED, target))
        return target

    def soft_delete(self, target: EntityId) -> None:
        """Soft-delete a row through the store and record it."""
        self._store.soft_delete(target)
        self._record(Mutation(MutationKind.SOFT_DELETED, target))

    def restore(self, target: EntityId) -> None:
        """Restore a row through the store and record it."""
        self._store.restore(target)
        self._record(Mutation(MutationKind.RESTORED, target))

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------

    def undo(self) -> bool:
        """Invert the most recent mutation.

        Returns:
            False if there was nothing to undo

        Raises:
            MicasaError: Whatever the store raised; stacks are unchanged
        """
        if not self._undo:
            return False

        mutation = self._undo[-1]
        self._apply(mutation.inverse())
        self._undo.pop()
        self._push(self._redo, mutation)
        logger.debug("undid %s %s", mutation.kind.value, mutation.target)
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone mutation.

        Returns:
            False if there was nothing to redo

        Raises:
            MicasaError: Whatever the store raised; stacks are unchanged
        """
        if not self._redo:
            return False

        mutation = self._redo[-1]
        self._apply(mutation)
        self._redo.pop()
        self._push(self._undo, mutation)
        logger.debug("redid %s %s", mutation.kind.value, mutation.target)
        return True

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def peek_undo(self) -> Mutation | None:
        return self._undo[-1] if self._undo else None

    def peek_redo(self) -> Mutation | None:
        return self._redo[-1] if self._redo else None

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record(self, mutation: Mutation) -> None:
        self._push(self._undo, mutation)
        self._redo.clear()
        logger.debug("recorded %s %s", mutation.kind.value, mutation.target)

    def _push(self, stack: deque, mutation: Mutation) -> None:
        if len(stack) >= self.capacity:
            dropped = stack.popleft()
            logger.warning(
                "journal full, dropping oldest %s %s", dropped.kind.value, dropped.target
            )
        stack.append(mutation)

    def _apply(self, mutation: Mutation) -> None:
        if mutation.kind is MutationKind.SOFT_DELETED:
            self._store.soft_delete(mutation.target)
        else:
            # CREATED and RESTORED both make the row live again
            self._store.restore(mutation.target)
