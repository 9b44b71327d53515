"""Document storage and the on-disk extraction cache.

Documents live in the database as BLOBs next to their SHA-256 checksum and
size, both computed from the payload at insert time and never changed.

CACHE:
``extract`` materializes a payload as ``{sha256}-{file name}`` inside the
cache directory so other programs can open it. A cache file whose length
already matches the stored size is reused untouched; anything else is
rewritten atomically with owner-only permissions. ``evict_stale_cache``
removes cache files by age alone and is safe to run alongside extraction:
files being written are fresh and never older than the TTL.
"""

from __future__ import annotations

import hashlib
import logging
import re
import sqlite3
import time
from pathlib import Path

from ..exceptions import (
    CapacityExceededError,
    CorruptionError,
    ResourceNotFound,
    ValidationError,
)
from ..host.filesystem import write_private_file
from .entity import EntityOperations, row_timestamps, row_value
from .models import Document, NewDocument
from .query import build_list_query
from .types import DocumentEntityKind, DocumentId, EntityKind

logger = logging.getLogger(__name__)

FALLBACK_FILE_NAME = "document.bin"
SECONDS_PER_DAY = 24 * 60 * 60

# Metadata columns; the payload is only read by extract()
_METADATA_COLUMNS = (
    "id, title, file_name, entity_kind, entity_id, mime_type, size_bytes, sha256, "
    "notes, created_at, updated_at, deleted_at"
)

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")


def checksum_sha256(data: bytes) -> str:
    """Lowercase hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def sanitize_file_name(file_name: str) -> str:
    """Reduce a user-supplied file name to a safe cache file name component.

    Directory parts (either separator) are dropped and unusual characters
    become underscores.

    Examples:
        >>> sanitize_file_name("../../etc/passwd")
        'passwd'
        >>> sanitize_file_name("C:\\\\scans\\\\roof quote.pdf")
        'roof_quote.pdf'
        >>> sanitize_file_name("")
        'document.bin'
    """
    base = re.split(r"[\\/]", file_name or "")[-1].strip()
    base = _UNSAFE_CHARS_RE.sub("_", base)
    if base.strip(".") == "":
        return FALLBACK_FILE_NAME
    return base


def cache_file_name(checksum: str, file_name: str) -> str:
    return f"{checksum}-{sanitize_file_name(file_name)}"


class DocumentOperations(EntityOperations):
    """Insert, list and extract documents."""

    kind = EntityKind.DOCUMENT
    id_type = DocumentId

    def create(self, new: NewDocument) -> DocumentId:
        """Store a document.

        Args:
            new: Document metadata and payload

        Returns:
            The new document's id

        Raises:
            CapacityExceededError: If the payload exceeds the store's maximum
            ValidationError: If metadata is missing or the payload is empty
        """
        data = bytes(new.data) if new.data is not None else b""
        allowed = self._store.max_document_size
        if len(data) > allowed:
            raise CapacityExceededError(
                f"document is {len(data)} bytes, which exceeds the maximum of {allowed} bytes",
                actual=len(data),
                allowed=allowed,
            )
        new.validate()

        entity_kind = DocumentEntityKind(new.entity_kind)
        checksum = checksum_sha256(data)

        with self._store.transaction() as conn:
            document_id = self._insert(conn, {
                "title": new.title.strip(),
                "file_name": new.file_name,
                "entity_kind": entity_kind.value,
                "entity_id": int(new.entity_id) if entity_kind is not DocumentEntityKind.NONE else 0,
                "mime_type": new.mime_type,
                "size_bytes": len(data),
                "sha256": checksum,
                "data": data,
                "notes": new.notes,
            })

        logger.info(
            "stored document %d (%d bytes, sha256 %s)", document_id.value, len(data), checksum
        )
        return document_id

    def insert(
        self,
        title: str,
        file_name: str,
        entity_kind: DocumentEntityKind | str,
        entity_id: int,
        mime_type: str,
        data: bytes,
        notes: str = "",
    ) -> DocumentId:
        """Argument form of create(); pass ``DocumentEntityKind.NONE`` and 0 for unlinked."""
        return self.create(NewDocument(
            title=title,
            file_name=file_name,
            mime_type=mime_type,
            data=data,
            entity_kind=entity_kind,
            entity_id=entity_id,
            notes=notes,
        ))

    def get(self, entity_id: DocumentId | int) -> Document:
        """Get document metadata by id, deleted or not.

        Raises:
            ResourceNotFound: If no document has this id
        """
        document_id = DocumentId.coerce(entity_id)
        row = self._conn.execute(
            f"SELECT {_METADATA_COLUMNS} FROM documents WHERE id = ?", (document_id.value,)
        ).fetchone()
        if row is None:
            raise ResourceNotFound(
                f"document {document_id.value} not found",
                {"entity_kind": self.kind.value, "entity_id": document_id.value,
                 "table": "documents"},
            )
        return self._from_row(row)

    def list_for_entity(
        self,
        entity_kind: DocumentEntityKind,
        entity_id: int,
        include_deleted: bool = False,
    ) -> list[Document]:
        """Documents attached to one entity."""
        return self._select(
            include_deleted,
            {"entity_kind": DocumentEntityKind(entity_kind).value, "entity_id": int(entity_id)},
        )

    def read_data(self, document_id: DocumentId | int) -> bytes:
        """Return the stored payload.

        Raises:
            ResourceNotFound: If no document has this id
        """
        document = self.get(document_id)
        row = self._conn.execute(
            "SELECT data FROM documents WHERE id = ?", (document.id.value,)
        ).fetchone()
        return bytes(row["data"] or b"")

    def extract(self, document_id: DocumentId | int) -> Path:
        """Materialize a document's payload in the cache directory.

        Returns:
            Path of the cache file

        Raises:
            ResourceNotFound: If no document has this id
            ValidationError: If the stored payload is empty
            CorruptionError: If the payload no longer matches its checksum
        """
        document = self.get(document_id)
        cache_dir = self._store.cache_dir
        target = cache_dir / cache_file_name(document.checksum_sha256, document.file_name)

        try:
            if target.is_file() and target.stat().st_size == document.size_bytes:
                logger.debug("cache hit for document %d at %s", document.id.value, target)
                return target
        except FileNotFoundError:
            # evicted between the two checks
            pass

        data = self.read_data(document.id)
        if not data:
            raise ValidationError(
                f"document {document.id.value} has no content",
                {"entity_id": document.id.value},
            )
        actual = checksum_sha256(data)
        if actual != document.checksum_sha256:
            raise CorruptionError(
                f"document {document.id.value} payload does not match its checksum",
                {
                    "table": "documents",
                    "column": "sha256",
                    "entity_id": document.id.value,
                    "value": document.checksum_sha256,
                    "actual": actual,
                },
            )

        logger.debug("cache miss for document %d, writing %s", document.id.value, target)
        return write_private_file(target, data)

    def evict_stale(self, ttl_days: int) -> int:
        """Sweep this store's cache directory. See evict_stale_cache."""
        return evict_stale_cache(self._store.cache_dir, ttl_days)

    def _select(self, include_deleted: bool, conditions=None) -> list:
        sql, params = build_list_query(
            self._table, include_deleted, conditions, columns=_METADATA_COLUMNS
        )
        return [self._from_row(row) for row in self._conn.execute(sql, params)]

    def _from_row(self, row: sqlite3.Row) -> Document:
        return Document(
            id=DocumentId(row["id"]),
            title=row["title"],
            file_name=row["file_name"],
            entity_kind=DocumentEntityKind.parse(row["entity_kind"] or "", "documents.entity_kind"),
            entity_id=row["entity_id"] or 0,
            mime_type=row["mime_type"],
            size_bytes=row["size_bytes"],
            checksum_sha256=row["sha256"],
            notes=row_value(row, "notes", ""),
            **row_timestamps(row, "documents"),
        )


def evict_stale_cache(cache_dir: str | Path, ttl_days: int) -> int:
    """Delete cache files last modified more than ``ttl_days`` days ago.

    Args:
        cache_dir: Cache directory to sweep
        ttl_days: Age limit in days; zero or negative disables eviction

    Returns:
        Number of files removed
    """
    directory = Path(cache_dir)
    if ttl_days <= 0 or not directory.is_dir():
        return 0

    cutoff = time.time() - ttl_days * SECONDS_PER_DAY
    removed = 0
    for entry in directory.iterdir():
        try:
            if entry.is_dir():
                continue
            if entry.stat().st_mtime < cutoff:
                entry.unlink()
                removed += 1
        except FileNotFoundError:
            # removed or replaced concurrently
            continue

    if removed:
        logger.info("evicted %d stale cache file(s) from %s", removed, directory)
    return removed
