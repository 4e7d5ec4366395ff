"""blobfields: keep large record fields in a blob store behind lightweight references."""

import importlib.metadata as importlib_metadata

from blobfields.blobs import BlobEntry, BlobReference, BlobStore, FileBlobStore, InMemoryBlobStore
from blobfields.collection import RecordCollection
from blobfields.config import ExternalizeConfig
from blobfields.errors import (
    BlobfieldsError,
    BlobIntegrityError,
    BlobNotFoundError,
    BlobStoreError,
    FieldSyncError,
    PersistenceError,
    RecordNotFoundError,
    SerializationError,
)
from blobfields.links import ReferenceMap
from blobfields.record import UNSET, Record
from blobfields.records import FileRecordStore, InMemoryRecordStore, RecordStore
from blobfields.sync import BlobSynchronizer


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("blobfields")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

__all__ = [
    "UNSET",
    "BlobEntry",
    "BlobIntegrityError",
    "BlobNotFoundError",
    "BlobReference",
    "BlobStore",
    "BlobStoreError",
    "BlobSynchronizer",
    "BlobfieldsError",
    "ExternalizeConfig",
    "FieldSyncError",
    "FileBlobStore",
    "FileRecordStore",
    "InMemoryBlobStore",
    "InMemoryRecordStore",
    "PersistenceError",
    "Record",
    "RecordCollection",
    "RecordNotFoundError",
    "RecordStore",
    "ReferenceMap",
    "SerializationError",
]
