"""BlobStore: protocol for blob storage backends."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from blobfields.blobs._reference import BlobReference
from blobfields.serde import as_str_object_dict, require_string

DEFAULT_BUCKET = "fs"


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def normalize_blob_id(ref_or_id: BlobReference | str) -> str:
    """Normalize a blob selector into a blob ID string."""
    if isinstance(ref_or_id, str):
        return ref_or_id
    return ref_or_id.id


def validate_bucket(bucket: str) -> str:
    """Validate a bucket name usable as a single directory component."""
    if not isinstance(bucket, str) or not bucket:
        msg = "bucket must be a non-empty string."
        raise ValueError(msg)
    if "/" in bucket or "\\" in bucket or bucket in (".", ".."):
        msg = f"bucket {bucket!r} must not contain path separators."
        raise ValueError(msg)
    return bucket


@dataclass(frozen=True, slots=True)
class BlobEntry:
    """One stored blob and its store-side metadata."""

    ref: BlobReference
    created_at: datetime
    last_accessed_at: datetime | None = None
    metadata: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        """Freeze metadata so entries can be shared between threads."""
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def touched(self, at: datetime) -> BlobEntry:
        """Return a copy with `last_accessed_at` set to ``at``."""
        return replace(self, last_accessed_at=at)

    def to_dict(self) -> dict[str, object]:
        """Serialize the entry: reference fields, ISO-8601 timestamps and metadata."""
        return {
            **self.ref.to_dict(),
            "created_at": self.created_at.isoformat(),
            "last_accessed_at": None if self.last_accessed_at is None else self.last_accessed_at.isoformat(),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object]) -> BlobEntry:
        """Deserialize an entry. Naive timestamps are read as UTC."""
        data = as_str_object_dict(value, field_name="BlobEntry")
        metadata = as_str_object_dict(data.get("metadata") or {}, field_name="BlobEntry.metadata")
        for key, item in metadata.items():
            if not isinstance(item, str):
                msg = f"BlobEntry.metadata[{key!r}] must be a string."
                raise TypeError(msg)
        accessed = data.get("last_accessed_at")
        last_accessed_at = (
            None if accessed is None else _parse_timestamp(accessed, field_name="BlobEntry.last_accessed_at")
        )
        return cls(
            ref=BlobReference.from_dict(data, field_name="BlobEntry"),
            created_at=_parse_timestamp(data.get("created_at"), field_name="BlobEntry.created_at"),
            last_accessed_at=last_accessed_at,
            metadata={key: str(item) for key, item in metadata.items()},
        )


def _parse_timestamp(value: object, *, field_name: str) -> datetime:
    parsed = datetime.fromisoformat(require_string(value, field_name=field_name))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def entry_matches_filters(
    entry: BlobEntry,
    *,
    kind: str | None = None,
    media_type: str | None = None,
    metadata: Mapping[str, str] | None = None,
) -> bool:
    """Return whether an entry matches list_blobs filters."""
    if kind is not None and entry.ref.kind != kind:
        return False
    if media_type is not None and entry.ref.media_type != media_type:
        return False
    if metadata:
        return all(entry.metadata.get(key) == value for key, value in metadata.items())
    return True


def sort_entries(entries: tuple[BlobEntry, ...]) -> tuple[BlobEntry, ...]:
    """Order entries oldest first (`created_at`, then `ref.id`)."""
    return tuple(sorted(entries, key=lambda entry: (entry.created_at, entry.ref.id)))


@runtime_checkable
class BlobStore(Protocol):
    """Blob storage protocol.

    Implementations store/retrieve bytes inside one bucket and must be safe to
    call from several threads at once, since field operations fan out
    concurrently.
    """

    @property
    def bucket(self) -> str:
        """Return the logical namespace this store writes to."""
        ...

    def put_blob(
        self,
        data: bytes,
        *,
        media_type: str | None = None,
        kind: str = "file",
        metadata: Mapping[str, str] | None = None,
    ) -> BlobReference:
        """Store bytes as a new blob and return its BlobReference."""
        ...

    def get_blob(self, ref: BlobReference) -> bytes:
        """Retrieve bytes by BlobReference."""
        ...

    def has_blob(self, ref: BlobReference) -> bool:
        """Check whether a blob exists."""
        ...

    def delete_blob(self, ref_or_id: BlobReference | str) -> bool:
        """Delete a blob by reference or ID. Return ``True`` when deleted."""
        ...

    def list_blobs(
        self,
        *,
        kind: str | None = None,
        media_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> tuple[BlobEntry, ...]:
        """List stored blobs, optionally filtered by kind/media type/metadata."""
        ...
