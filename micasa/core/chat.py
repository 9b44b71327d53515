"""Assistant input history.

A bounded, append-only ring of the last CHAT_HISTORY_MAX inputs typed into
the assistant prompt. Submitting the same text twice in a row stores it once;
earlier duplicates are kept.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..host.time import now_iso, parse_timestamp
from .models import ChatInput
from .types import ChatInputId

if TYPE_CHECKING:
    from . import Store

logger = logging.getLogger(__name__)

CHAT_HISTORY_MAX = 200


class ChatHistoryOperations:
    def __init__(self, store: "Store", capacity: int = CHAT_HISTORY_MAX):
        self._store = store
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, text: str) -> bool:
        """Record an input.

        Blank input and a repeat of the immediately preceding input are
        skipped. Entries beyond the capacity are dropped oldest first.

        Returns:
            True if a new entry was stored
        """
        if not text or not text.strip():
            return False

        with self._store.transaction() as conn:
            last = conn.execute(
                "SELECT input FROM chat_inputs ORDER BY id DESC LIMIT 1"
            ).fetchone()
            if last is not None and last["input"] == text:
                return False

            conn.execute(
                "INSERT INTO chat_inputs (input, created_at) VALUES (?, ?)",
                (text, now_iso()),
            )
            trimmed = conn.execute(
                """DELETE FROM chat_inputs WHERE id NOT IN (
                       SELECT id FROM chat_inputs ORDER BY id DESC LIMIT ?
                   )""",
                (self._capacity,),
            ).rowcount

        if trimmed > 0:
            logger.debug("trimmed %d old chat input(s)", trimmed)
        return True

    def load(self) -> list[ChatInput]:
        """Stored inputs, oldest first."""
        rows = self._store.connection.execute(
            "SELECT id, input, created_at FROM chat_inputs ORDER BY id ASC"
        ).fetchall()
        return [
            ChatInput(
                id=ChatInputId(row["id"]),
                input=row["input"],
                created_at=parse_timestamp(row["created_at"], "chat_inputs.created_at"),
            )
            for row in rows
        ]

    def load_texts(self) -> list[str]:
        return [entry.input for entry in self.load()]
