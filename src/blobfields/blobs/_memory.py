"""InMemoryBlobStore: dict-based blob storage for development and testing."""

from __future__ import annotations

import hashlib
import threading
import uuid
from typing import TYPE_CHECKING

from blobfields.blobs._reference import BlobReference
from blobfields.blobs._store import (
    DEFAULT_BUCKET,
    BlobEntry,
    entry_matches_filters,
    normalize_blob_id,
    sort_entries,
    utc_now,
    validate_bucket,
)
from blobfields.errors import BlobIntegrityError, BlobNotFoundError

if TYPE_CHECKING:
    from collections.abc import Mapping


class InMemoryBlobStore:
    """Dict-backed blob store for one bucket, guarded by a lock.

    Payloads are copied on write. Nothing survives the process.
    """

    def __init__(self, bucket: str = DEFAULT_BUCKET) -> None:
        """Initialize an empty in-memory store for one bucket."""
        self._bucket = validate_bucket(bucket)
        self._blobs: dict[str, tuple[bytes, BlobEntry]] = {}
        self._lock = threading.Lock()

    @property
    def bucket(self) -> str:
        """Return the bucket name."""
        return self._bucket

    def put_blob(
        self,
        data: bytes,
        *,
        media_type: str | None = None,
        kind: str = "file",
        metadata: Mapping[str, str] | None = None,
    ) -> BlobReference:
        """Copy bytes into the store under a fresh ID and return a BlobReference."""
        payload = bytes(data)
        ref = BlobReference(
            id=uuid.uuid4().hex,
            sha256=hashlib.sha256(payload).hexdigest(),
            media_type=media_type,
            kind=kind,
            size=len(payload),
        )
        with self._lock:
            self._blobs[ref.id] = (payload, BlobEntry(ref=ref, created_at=utc_now(), metadata=metadata or {}))
        return ref

    def get_blob(self, ref: BlobReference) -> bytes:
        """Return stored bytes after verifying their SHA-256 digest."""
        with self._lock:
            stored = self._blobs.get(ref.id)
        if stored is None:
            raise BlobNotFoundError(ref.id)
        payload, entry = stored
        actual = hashlib.sha256(payload).hexdigest()
        if actual != ref.sha256:
            raise BlobIntegrityError(ref.id, ref.sha256, actual)
        with self._lock:
            if ref.id in self._blobs:
                self._blobs[ref.id] = (payload, entry.touched(utc_now()))
        return payload

    def has_blob(self, ref: BlobReference) -> bool:
        """Check whether a blob exists."""
        with self._lock:
            return ref.id in self._blobs

    def delete_blob(self, ref_or_id: BlobReference | str) -> bool:
        """Delete a blob by reference or ID. Return ``False`` when it was not stored."""
        with self._lock:
            return self._blobs.pop(normalize_blob_id(ref_or_id), None) is not None

    def list_blobs(
        self,
        *,
        kind: str | None = None,
        media_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> tuple[BlobEntry, ...]:
        """List stored blobs, oldest first, optionally filtered by kind/media type/metadata."""
        with self._lock:
            snapshot = [entry for _, entry in self._blobs.values()]
        return sort_entries(
            tuple(
                entry
                for entry in snapshot
                if entry_matches_filters(entry, kind=kind, media_type=media_type, metadata=metadata)
            )
        )
