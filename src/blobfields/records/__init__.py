"""RecordStore: primary record storage for blobfields."""

from blobfields.records._file import FileRecordStore
from blobfields.records._memory import InMemoryRecordStore
from blobfields.records._store import RecordStore

__all__ = [
    "FileRecordStore",
    "InMemoryRecordStore",
    "RecordStore",
]
