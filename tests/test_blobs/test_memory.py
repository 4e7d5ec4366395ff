"""Tests for InMemoryBlobStore."""

import hashlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

import blobfields.blobs._memory as memory_module
from blobfields.blobs import BlobReference, BlobStore, InMemoryBlobStore
from blobfields.errors import BlobIntegrityError, BlobNotFoundError


def _unknown_ref() -> BlobReference:
    return BlobReference(id="nonexistent", sha256="x", media_type=None, kind="field", size=0)


def test_put_describes_the_stored_bytes() -> None:
    store = InMemoryBlobStore()
    payload = b'{"a": 1}'
    ref = store.put_blob(payload, media_type="application/json", kind="field")

    assert (ref.media_type, ref.kind, ref.size) == ("application/json", "field", len(payload))
    assert ref.sha256 == hashlib.sha256(payload).hexdigest()
    assert store.has_blob(ref) is True
    assert store.get_blob(ref) == payload


def test_put_defaults() -> None:
    ref = InMemoryBlobStore().put_blob(b"data")
    assert ref.kind == "file"
    assert ref.media_type is None


def test_identical_payloads_get_distinct_blobs() -> None:
    store = InMemoryBlobStore()
    first = store.put_blob(b"same")
    second = store.put_blob(b"same")
    assert first.id != second.id
    assert first.sha256 == second.sha256
    assert len(store.list_blobs()) == 2


def test_get_unknown_blob() -> None:
    store = InMemoryBlobStore()
    assert store.has_blob(_unknown_ref()) is False
    with pytest.raises(BlobNotFoundError) as exc_info:
        store.get_blob(_unknown_ref())
    assert exc_info.value.blob_id == "nonexistent"


def test_get_verifies_digest() -> None:
    store = InMemoryBlobStore()
    ref = store.put_blob(b"original")
    forged = replace(ref, sha256=hashlib.sha256(b"other").hexdigest())
    with pytest.raises(BlobIntegrityError) as exc_info:
        store.get_blob(forged)
    assert exc_info.value.actual == ref.sha256


def test_satisfies_protocol_with_bucket() -> None:
    assert isinstance(InMemoryBlobStore(), BlobStore)
    assert InMemoryBlobStore().bucket == "fs"
    assert InMemoryBlobStore("attachments").bucket == "attachments"


@pytest.mark.parametrize("bucket", ["", "a/b", "..", "a\\b"])
def test_rejects_invalid_bucket(bucket: str) -> None:
    with pytest.raises(ValueError, match="bucket"):
        InMemoryBlobStore(bucket)


def test_delete_by_ref_or_id() -> None:
    store = InMemoryBlobStore()
    first = store.put_blob(b"one")
    second = store.put_blob(b"two")

    assert store.delete_blob(first) is True
    assert store.delete_blob(second.id) is True
    assert store.delete_blob(first) is False
    assert store.list_blobs() == ()
    with pytest.raises(BlobNotFoundError):
        store.get_blob(first)


def test_list_orders_oldest_first_and_filters() -> None:
    store = InMemoryBlobStore()
    content = store.put_blob(b"1", kind="field", metadata={"record_id": "r1", "field_name": "content"})
    complement = store.put_blob(b"2", kind="field", metadata={"record_id": "r1", "field_name": "complement"})
    other = store.put_blob(b"3", media_type="text/plain", metadata={"record_id": "r2", "field_name": "content"})
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    for offset, ref in enumerate((other, complement, content)):
        payload, entry = store._blobs[ref.id]
        store._blobs[ref.id] = (payload, replace(entry, created_at=base + timedelta(seconds=offset)))

    assert [entry.ref for entry in store.list_blobs()] == [other, complement, content]
    assert [entry.ref for entry in store.list_blobs(kind="field")] == [complement, content]
    assert [entry.ref for entry in store.list_blobs(media_type="text/plain")] == [other]
    assert [entry.ref for entry in store.list_blobs(metadata={"record_id": "r1"})] == [complement, content]
    (match,) = store.list_blobs(metadata={"record_id": "r1", "field_name": "content"})
    assert match.metadata == {"record_id": "r1", "field_name": "content"}


def test_caller_mutations_do_not_reach_the_store() -> None:
    store = InMemoryBlobStore()
    metadata = {"record_id": "r1"}
    payload = bytearray(b"data")
    ref = store.put_blob(payload, metadata=metadata)  # type: ignore[arg-type]
    metadata["record_id"] = "changed"
    payload[:] = b"xxxx"

    assert store.list_blobs()[0].metadata["record_id"] == "r1"
    assert store.get_blob(ref) == b"data"


def test_get_records_access_time(monkeypatch: pytest.MonkeyPatch) -> None:
    created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    accessed_at = created_at + timedelta(minutes=1)
    ticks = iter((created_at, accessed_at))
    monkeypatch.setattr(memory_module, "utc_now", lambda: next(ticks))
    store = InMemoryBlobStore()

    ref = store.put_blob(b"data")
    (entry,) = store.list_blobs()
    assert (entry.created_at, entry.last_accessed_at) == (created_at, None)

    store.get_blob(ref)
    (entry,) = store.list_blobs()
    assert entry.last_accessed_at == accessed_at


def test_concurrent_puts_and_deletes() -> None:
    store = InMemoryBlobStore()
    with ThreadPoolExecutor(max_workers=8) as pool:
        refs = list(pool.map(lambda index: store.put_blob(str(index).encode()), range(64)))
        deleted = list(pool.map(store.delete_blob, refs[:32]))

    assert len({ref.id for ref in refs}) == 64
    assert all(deleted)
    assert {entry.ref for entry in store.list_blobs()} == set(refs[32:])
