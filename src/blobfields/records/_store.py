"""RecordStore: protocol for the primary record store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


@runtime_checkable
class RecordStore(Protocol):
    """Primary record storage protocol.

    Records are stored as plain JSON-compatible dictionaries keyed by record ID.
    Externalized field values never reach this store; only the reference map does.
    """

    def put_record(self, record_id: str, data: Mapping[str, object]) -> None:
        """Create or replace the stored payload for ``record_id``."""
        ...

    def get_record(self, record_id: str) -> dict[str, object]:
        """Return a copy of the stored payload for ``record_id``."""
        ...

    def has_record(self, record_id: str) -> bool:
        """Check whether a record exists."""
        ...

    def delete_record(self, record_id: str) -> bool:
        """Delete a record. Return ``True`` when deleted."""
        ...

    def list_record_ids(self) -> tuple[str, ...]:
        """Return all stored record IDs in sorted order."""
        ...
