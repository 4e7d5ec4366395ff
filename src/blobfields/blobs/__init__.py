"""BlobStore and BlobReference: binary blob storage for blobfields."""

from blobfields.blobs._file import FileBlobStore
from blobfields.blobs._memory import InMemoryBlobStore
from blobfields.blobs._reference import BlobReference
from blobfields.blobs._store import DEFAULT_BUCKET, BlobEntry, BlobStore

__all__ = [
    "DEFAULT_BUCKET",
    "BlobEntry",
    "BlobReference",
    "BlobStore",
    "FileBlobStore",
    "InMemoryBlobStore",
]
