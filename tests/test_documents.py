"""Tests for the document store and its extraction cache."""

import hashlib
import os
import stat
import time

import pytest

from micasa.core.document import cache_file_name, evict_stale_cache, sanitize_file_name
from micasa.core.models import NewDocument
from micasa.core.types import DocumentEntityKind, EntityKind
from micasa.exceptions import (
    CapacityExceededError,
    CorruptionError,
    ResourceNotFound,
    ValidationError,
)

PAYLOAD = b"%PDF-1.7 roof quote"


def _insert(store, data=PAYLOAD, **kwargs):
    fields = {
        "title": "Roof quote",
        "file_name": "quote.pdf",
        "mime_type": "application/pdf",
        "data": data,
        "entity_kind": DocumentEntityKind.NONE,
        "entity_id": 0,
    }
    fields.update(kwargs)
    return store.documents.insert(**fields)


class TestInsert:
    """Tests for documents.insert / create."""

    def test_checksum_matches_independent_digest(self, store):
        """checksum_sha256 is the SHA-256 of the exact payload bytes."""
        document_id = _insert(store)
        document = store.documents.get(document_id)

        assert document.checksum_sha256 == hashlib.sha256(PAYLOAD).hexdigest()
        assert document.size_bytes == len(PAYLOAD)
        assert store.documents.read_data(document_id) == PAYLOAD

    def test_over_maximum_rejected(self, store):
        """A payload over the configured maximum raises CapacityExceededError."""
        store.set_max_document_size(10)

        with pytest.raises(CapacityExceededError) as exc_info:
            _insert(store, data=b"x" * 11)

        assert exc_info.value.actual == 11
        assert exc_info.value.allowed == 10
        assert store.documents.list(include_deleted=True) == []

    def test_at_maximum_accepted(self, store):
        """A payload exactly at the maximum is stored."""
        store.set_max_document_size(10)
        document_id = _insert(store, data=b"x" * 10)
        assert store.documents.get(document_id).size_bytes == 10

    def test_empty_payload_rejected(self, store):
        """Empty payloads are a validation failure."""
        with pytest.raises(ValidationError):
            _insert(store, data=b"")

    def test_non_positive_maximum_rejected(self, store):
        """The size limit must be positive."""
        with pytest.raises(ValidationError):
            store.set_max_document_size(0)

    def test_linked_document_listed_for_entity(self, store, project_id):
        """Documents attached to an entity are listed for it."""
        linked = _insert(
            store, entity_kind=DocumentEntityKind.PROJECT, entity_id=project_id.value
        )
        _insert(store, title="Unlinked")

        documents = store.documents.list_for_entity(DocumentEntityKind.PROJECT, project_id.value)
        assert [d.id for d in documents] == [linked]
        assert documents[0].entity_kind.entity_kind is EntityKind.PROJECT

    def test_linked_document_needs_entity_id(self, store):
        """A link without a positive entity id is rejected."""
        with pytest.raises(ValidationError):
            store.documents.create(NewDocument(
                title="Manual",
                file_name="manual.pdf",
                mime_type="application/pdf",
                data=PAYLOAD,
                entity_kind=DocumentEntityKind.APPLIANCE,
            ))

    def test_unlinked_kind_as_plain_string(self, store):
        """An empty string entity_kind is accepted as unlinked."""
        new = NewDocument(
            title="Manual",
            file_name="manual.pdf",
            mime_type="application/pdf",
            data=PAYLOAD,
            entity_kind="",
            entity_id=0,
        )
        new.validate()

        document = store.documents.get(store.documents.create(new))
        assert document.entity_kind is DocumentEntityKind.NONE
        assert document.entity_id == 0

    def test_linked_kind_as_plain_string_needs_entity_id(self):
        """A string entity_kind naming an entity still requires a positive id."""
        new = NewDocument(
            title="Manual",
            file_name="manual.pdf",
            mime_type="application/pdf",
            data=PAYLOAD,
            entity_kind="project",
            entity_id=0,
        )
        with pytest.raises(ValidationError):
            new.validate()

    def test_unknown_kind_string_rejected(self):
        """An unknown entity_kind string is a validation error."""
        new = NewDocument(
            title="Manual",
            file_name="manual.pdf",
            mime_type="application/pdf",
            data=PAYLOAD,
            entity_kind="garage",
            entity_id=1,
        )
        with pytest.raises(ValidationError):
            new.validate()

    def test_insert_positional_arguments(self, store, appliance_id):
        """insert takes title, file name, link, mime type and data in that order."""
        document_id = store.documents.insert(
            "Manual",
            "manual.pdf",
            DocumentEntityKind.APPLIANCE,
            appliance_id.value,
            "application/pdf",
            PAYLOAD,
        )

        document = store.documents.get(document_id)
        assert document.entity_kind is DocumentEntityKind.APPLIANCE
        assert document.entity_id == appliance_id.value
        assert document.mime_type == "application/pdf"
        assert store.documents.read_data(document_id) == PAYLOAD

    def test_documents_soft_delete(self, store):
        """Documents share the soft-delete lifecycle and audit trail."""
        document_id = _insert(store)
        store.documents.soft_delete(document_id)

        assert store.documents.list() == []
        assert store.deletions.latest_for(document_id).entity_kind is EntityKind.DOCUMENT


class TestExtract:
    """Tests for documents.extract and the cache directory."""

    def test_extract_writes_payload(self, store, cache_dir):
        """extract materializes the payload under {sha256}-{file name}."""
        document_id = _insert(store, file_name="Roof Quote (final).pdf")
        path = store.documents.extract(document_id)

        digest = hashlib.sha256(PAYLOAD).hexdigest()
        assert path == cache_dir / f"{digest}-Roof_Quote__final_.pdf"
        assert path.read_bytes() == PAYLOAD

    def test_extract_is_owner_only(self, store):
        """Cache files are readable and writable by the owner only."""
        path = store.documents.extract(_insert(store))
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_extract_is_idempotent(self, store):
        """Two extractions yield the same path and bytes."""
        document_id = _insert(store)
        first = store.documents.extract(document_id)
        first_bytes = first.read_bytes()
        second = store.documents.extract(document_id)

        assert first == second
        assert second.read_bytes() == first_bytes

    def test_extract_reuses_matching_cache_file(self, store):
        """A cache file of the right size is not rewritten."""
        document_id = _insert(store)
        path = store.documents.extract(document_id)
        old = time.time() - 3600
        os.utime(path, (old, old))

        store.documents.extract(document_id)
        assert path.stat().st_mtime == pytest.approx(old)

    def test_extract_after_cache_file_removed(self, store):
        """Deleting the cache file between calls is harmless."""
        document_id = _insert(store)
        path = store.documents.extract(document_id)
        path.unlink()

        again = store.documents.extract(document_id)
        assert again.read_bytes() == PAYLOAD

    def test_extract_heals_truncated_cache_file(self, store):
        """A cache file of the wrong size is rewritten."""
        document_id = _insert(store)
        path = store.documents.extract(document_id)
        path.write_bytes(b"trunc")

        store.documents.extract(document_id)
        assert path.read_bytes() == PAYLOAD

    def test_extract_detects_corrupted_payload(self, store):
        """A payload that no longer matches its checksum raises CorruptionError."""
        document_id = _insert(store)
        store.connection.execute(
            "UPDATE documents SET data = ? WHERE id = ?", (b"tampered", document_id.value)
        )
        with pytest.raises(CorruptionError):
            store.documents.extract(document_id)

    def test_extract_missing_document(self, store):
        """Extracting an unknown id raises ResourceNotFound."""
        with pytest.raises(ResourceNotFound):
            store.documents.extract(12345)


class TestCacheNames:
    """Tests for cache file naming."""

    @pytest.mark.parametrize("raw, expected", [
        ("quote.pdf", "quote.pdf"),
        ("../../etc/passwd", "passwd"),
        ("C:\\scans\\roof quote.pdf", "roof_quote.pdf"),
        ("", "document.bin"),
        ("..", "document.bin"),
        ("naïve.txt", "na_ve.txt"),
    ])
    def test_sanitize_file_name(self, raw, expected):
        """Only the base name survives, with unusual characters replaced."""
        assert sanitize_file_name(raw) == expected

    def test_cache_file_name(self):
        assert cache_file_name("abc", "a b.txt") == "abc-a_b.txt"


class TestEvictStaleCache:
    """Tests for evict_stale_cache."""

    def _age(self, path, days):
        old = time.time() - days * 24 * 60 * 60
        os.utime(path, (old, old))

    def test_evicts_only_old_files(self, tmp_path):
        """Files older than the TTL go, fresh files and directories stay."""
        cache = tmp_path / "cache"
        cache.mkdir()
        stale = cache / "stale.pdf"
        fresh = cache / "fresh.pdf"
        subdir = cache / "nested"
        stale.write_bytes(b"old")
        fresh.write_bytes(b"new")
        subdir.mkdir()
        self._age(stale, 40)
        self._age(subdir, 40)

        assert evict_stale_cache(cache, 30) == 1
        assert not stale.exists()
        assert fresh.exists()
        assert subdir.exists()

    def test_zero_ttl_is_noop(self, tmp_path):
        """ttl_days <= 0 evicts nothing."""
        cache = tmp_path / "cache"
        cache.mkdir()
        stale = cache / "stale.pdf"
        stale.write_bytes(b"old")
        self._age(stale, 400)

        assert evict_stale_cache(cache, 0) == 0
        assert evict_stale_cache(cache, -1) == 0
        assert stale.exists()

    def test_missing_directory_is_noop(self, tmp_path):
        """A missing cache directory evicts nothing."""
        assert evict_stale_cache(tmp_path / "absent", 30) == 0

    def test_extract_rematerializes_evicted_file(self, store):
        """After eviction, extract writes the file again from the database."""
        document_id = _insert(store)
        path = store.documents.extract(document_id)
        self._age(path, 60)

        assert store.documents.evict_stale(30) == 1
        assert not path.exists()
        assert store.documents.extract(document_id).read_bytes() == PAYLOAD
