"""InMemoryRecordStore: dict-based record storage for development and testing."""

from __future__ import annotations

import json
import threading
from typing import TYPE_CHECKING

from blobfields.errors import PersistenceError, RecordNotFoundError

if TYPE_CHECKING:
    from collections.abc import Mapping


class InMemoryRecordStore:
    """In-memory record store for development and testing.

    Payloads are kept as JSON text, so stored state never aliases caller objects
    and anything that would not survive a real store is rejected on write.
    """

    def __init__(self) -> None:
        """Initialize an empty in-memory store."""
        self._records: dict[str, str] = {}
        self._lock = threading.Lock()

    def put_record(self, record_id: str, data: Mapping[str, object]) -> None:
        """Store a JSON-compatible payload."""
        try:
            encoded = json.dumps(dict(data), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(record_id, str(exc)) from exc
        with self._lock:
            self._records[record_id] = encoded

    def get_record(self, record_id: str) -> dict[str, object]:
        """Return a fresh copy of the stored payload."""
        with self._lock:
            encoded = self._records.get(record_id)
        if encoded is None:
            raise RecordNotFoundError(record_id)
        return json.loads(encoded)

    def has_record(self, record_id: str) -> bool:
        """Check whether a record exists."""
        with self._lock:
            return record_id in self._records

    def delete_record(self, record_id: str) -> bool:
        """Delete a record by ID."""
        with self._lock:
            return self._records.pop(record_id, None) is not None

    def list_record_ids(self) -> tuple[str, ...]:
        """Return all stored record IDs in sorted order."""
        with self._lock:
            return tuple(sorted(self._records))
