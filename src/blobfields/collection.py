"""RecordCollection: record lifecycle with externalized fields wired into save and remove."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from blobfields.record import Record
from blobfields.sync import BlobSynchronizer

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from blobfields.blobs import BlobStore
    from blobfields.config import ExternalizeConfig
    from blobfields.records import RecordStore

logger = logging.getLogger(__name__)


class RecordCollection:
    """Create, load, save and remove records of one kind.

    `save` runs `BlobSynchronizer.save` before persisting the record, and
    `remove` runs `BlobSynchronizer.unlink` before deleting it. `retrieve` and
    `unlink` stay available for explicit use.
    """

    def __init__(
        self,
        config: ExternalizeConfig,
        blob_store: BlobStore,
        record_store: RecordStore,
    ) -> None:
        """Initialize with configuration and both stores."""
        self._config = config
        self._record_store = record_store
        self._sync = BlobSynchronizer(config, blob_store, record_store)

    @property
    def config(self) -> ExternalizeConfig:
        """Return the configuration."""
        return self._config

    @property
    def synchronizer(self) -> BlobSynchronizer:
        """Return the synchronizer used by the lifecycle hooks."""
        return self._sync

    @property
    def record_store(self) -> RecordStore:
        """Return the record store."""
        return self._record_store

    def new(self, fields: Mapping[str, object] | None = None, **values: object) -> Record:
        """Return a new, unsaved record with a fresh ID."""
        record = Record(uuid.uuid4().hex, field_names=self._config.field_names, fields=fields)
        for name, value in values.items():
            record[name] = value
        return record

    def save(self, record: Record) -> Record:
        """Write externalized fields to the blob store, then persist the record.

        Superseded blobs are deleted only once the record store holds the new
        links. If persisting fails, the record's links are restored and the
        blobs just written are deleted instead.
        """
        previous = record.links.copy()
        superseded = self._sync.stage(record)
        try:
            self._record_store.put_record(record.id, record.to_dict())
        except Exception:
            written = [(name, ref) for name, ref in record.links.items() if previous.get(name) != ref]
            record.links = previous
            self._sync.discard(record.id, written, reason="unpersisted")
            raise
        self._sync.discard(record.id, superseded, reason="superseded")
        logger.debug("Persisted record %s", record.id)
        return record

    def load(self, record_id: str, *, hydrate: bool = False) -> Record:
        """Load a stored record; with ``hydrate=True`` also retrieve its externalized fields."""
        data = self._record_store.get_record(record_id)
        record = Record.from_dict(data, field_names=self._config.field_names)
        if hydrate:
            self._sync.retrieve(record)
        return record

    def retrieve(self, record: Record) -> Record:
        """Load externalized fields into the record."""
        return self._sync.retrieve(record)

    def unlink(self, record: Record) -> Record:
        """Delete the record's blobs and persist its cleared links."""
        return self._sync.unlink(record)

    def remove(self, record: Record) -> bool:
        """Delete the record's blobs, then the record itself. Return whether a stored record was deleted."""
        self._sync.unlink(record)
        deleted = self._record_store.delete_record(record.id)
        logger.debug("Removed record %s (stored=%s)", record.id, deleted)
        return deleted

    def close(self) -> None:
        """Wait for background cleanup and release worker threads."""
        self._sync.close()

    def __enter__(self) -> RecordCollection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
