"""FileBlobStore: file-system-based blob storage."""

import contextlib
import hashlib
import json
import logging
import threading
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import NamedTuple

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
from blobfields.errors import BlobIntegrityError, BlobNotFoundError, BlobStoreError

logger = logging.getLogger(__name__)

_PAYLOAD_SUFFIX = ".blob"
_META_SUFFIX = ".meta.json"


class _BlobPaths(NamedTuple):
    payload: Path
    sidecar: Path


class FileBlobStore:
    """File-system-based blob store.

    Each blob lives in ``<root>/<bucket>/`` as a ``<id>.blob`` payload next to
    a ``<id>.meta.json`` sidecar holding its BlobEntry. Buckets sharing a root
    never see each other's blobs. IDs that would resolve outside the bucket
    directory are treated as missing.
    """

    def __init__(self, root: str | Path, bucket: str = DEFAULT_BUCKET) -> None:
        """Open (or create) the bucket directory and index its existing sidecars."""
        self._bucket = validate_bucket(bucket)
        self._root = Path(root)
        self._dir = self._root / self._bucket
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._entries: dict[str, BlobEntry] = dict(self._scan())

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    @property
    def bucket(self) -> str:
        """Return the bucket name."""
        return self._bucket

    @property
    def directory(self) -> Path:
        """Return the directory holding this bucket's blobs."""
        return self._dir

    def _paths(self, blob_id: str) -> _BlobPaths | None:
        base = self._dir.resolve()
        payload = (self._dir / f"{blob_id}{_PAYLOAD_SUFFIX}").resolve()
        if payload.parent != base:
            return None
        return _BlobPaths(payload, payload.with_name(f"{blob_id}{_META_SUFFIX}"))

    def _scan(self) -> dict[str, BlobEntry]:
        """Read every sidecar whose payload still exists. Unreadable sidecars are skipped."""
        found: dict[str, BlobEntry] = {}
        for sidecar in self._dir.glob(f"*{_META_SUFFIX}"):
            blob_id = sidecar.name[: -len(_META_SUFFIX)]
            paths = self._paths(blob_id)
            if paths is None or not paths.payload.exists():
                continue
            try:
                entry = BlobEntry.from_dict(json.loads(sidecar.read_text(encoding="utf-8")))
            except (OSError, ValueError, TypeError) as exc:
                logger.warning("Skipping unreadable sidecar %s: %s", sidecar, exc)
                continue
            if entry.ref.id != blob_id:
                logger.warning("Skipping sidecar %s: it describes blob %s", sidecar, entry.ref.id)
                continue
            found[blob_id] = entry
        return found

    @staticmethod
    def _write_sidecar(paths: _BlobPaths, entry: BlobEntry) -> None:
        paths.sidecar.write_text(json.dumps(entry.to_dict(), ensure_ascii=False), encoding="utf-8")

    def put_blob(
        self,
        data: bytes,
        *,
        media_type: str | None = None,
        kind: str = "file",
        metadata: Mapping[str, str] | None = None,
    ) -> BlobReference:
        """Write bytes under a fresh ID and return a BlobReference."""
        blob_id = uuid.uuid4().hex
        paths = self._paths(blob_id)
        if paths is None:
            msg = f"Generated blob ID {blob_id!r} resolves outside the bucket directory."
            raise ValueError(msg)

        ref = BlobReference(
            id=blob_id,
            sha256=hashlib.sha256(data).hexdigest(),
            media_type=media_type,
            kind=kind,
            size=len(data),
        )
        entry = BlobEntry(ref=ref, created_at=utc_now(), metadata=metadata or {})
        try:
            paths.payload.write_bytes(data)
            self._write_sidecar(paths, entry)
        except OSError as exc:
            msg = f"Cannot write blob {blob_id} in bucket {self._bucket!r}: {exc}"
            raise BlobStoreError(msg, blob_id=blob_id) from exc
        with self._lock:
            self._entries[blob_id] = entry
        return ref

    def get_blob(self, ref: BlobReference) -> bytes:
        """Read a blob, verify its SHA-256 digest and record the access time."""
        paths = self._paths(ref.id)
        if paths is None:
            raise BlobNotFoundError(ref.id)
        try:
            data = paths.payload.read_bytes()
        except FileNotFoundError as exc:
            raise BlobNotFoundError(ref.id) from exc
        except OSError as exc:
            msg = f"Cannot read blob {ref.id} in bucket {self._bucket!r}: {exc}"
            raise BlobStoreError(msg, blob_id=ref.id) from exc

        actual = hashlib.sha256(data).hexdigest()
        if actual != ref.sha256:
            raise BlobIntegrityError(ref.id, ref.sha256, actual)

        # Access time is advisory; the payload was already read.
        with self._lock, contextlib.suppress(OSError):
            current = self._entries.get(ref.id)
            if current is not None:
                touched = current.touched(utc_now())
                self._entries[ref.id] = touched
                self._write_sidecar(paths, touched)
        return data

    def has_blob(self, ref: BlobReference) -> bool:
        """Check whether a blob payload exists."""
        paths = self._paths(ref.id)
        return paths is not None and paths.payload.exists()

    def delete_blob(self, ref_or_id: BlobReference | str) -> bool:
        """Delete a blob payload and its sidecar. Return ``False`` when neither existed."""
        blob_id = normalize_blob_id(ref_or_id)
        paths = self._paths(blob_id)
        if paths is None:
            return False
        with self._lock:
            self._entries.pop(blob_id, None)

        deleted = False
        try:
            for path in paths:
                if path.exists():
                    path.unlink(missing_ok=True)
                    deleted = True
        except OSError as exc:
            msg = f"Cannot delete blob {blob_id} in bucket {self._bucket!r}: {exc}"
            raise BlobStoreError(msg, blob_id=blob_id) from exc
        return deleted

    def list_blobs(
        self,
        *,
        kind: str | None = None,
        media_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> tuple[BlobEntry, ...]:
        """List stored blobs, oldest first, dropping index entries whose payload vanished."""
        with self._lock:
            for blob_id in [blob_id for blob_id, entry in self._entries.items() if not self.has_blob(entry.ref)]:
                del self._entries[blob_id]
            snapshot = tuple(self._entries.values())
        return sort_entries(
            tuple(
                entry
                for entry in snapshot
                if entry_matches_filters(entry, kind=kind, media_type=media_type, metadata=metadata)
            )
        )
