"""BlobSynchronizer: save, retrieve and unlink a record's externalized fields.

Every whole-record operation fans out one unit of work per configured field
onto a thread pool and joins them into a single result or a single error.
The reference map is only ever written by the calling thread, after the join.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Final, TypeVar

from blobfields.blobs import BlobReference, BlobStore
from blobfields.errors import FieldSyncError, PersistenceError, SerializationError
from blobfields.record import UNSET
from blobfields.serde import JSON_MEDIA_TYPE, decode_value, encode_value

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from types import TracebackType

    from blobfields.config import ExternalizeConfig
    from blobfields.record import Record
    from blobfields.records import RecordStore

logger = logging.getLogger(__name__)

FIELD_BLOB_KIND: Final = "field"

ResultT = TypeVar("ResultT")


class _PendingCleanups:
    """Count best-effort deletes that are still running so `flush` can wait for them."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = 0

    def begin(self) -> None:
        with self._cond:
            self._pending += 1

    def end(self) -> None:
        with self._cond:
            self._pending -= 1
            if self._pending == 0:
                self._cond.notify_all()

    def wait(self, timeout: float | None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout)


class BlobSynchronizer:
    """Keep a record's reference map and the blob store in step.

    - `save`: write every set externalized field as a new blob, then repoint links
    - `retrieve`: load every linked field back into the record
    - `unlink`: delete every linked blob, clear links and persist the record

    Lifecycle operations on the same record must be serialized by the caller.
    """

    def __init__(
        self,
        config: ExternalizeConfig,
        blob_store: BlobStore,
        record_store: RecordStore | None = None,
    ) -> None:
        """Initialize with configuration, the blob store and an optional record store for unlink."""
        if not isinstance(blob_store, BlobStore):
            msg = f"blob_store must implement BlobStore; got {type(blob_store).__name__}."
            raise TypeError(msg)
        if blob_store.bucket != config.bucket:
            msg = f"blob_store bucket {blob_store.bucket!r} does not match configured bucket {config.bucket!r}."
            raise ValueError(msg)
        self._config = config
        self._blob_store = blob_store
        self._record_store = record_store
        self._executor = ThreadPoolExecutor(max_workers=config.worker_count, thread_name_prefix="blobfields")
        self._cleanups = _PendingCleanups()
        self._closed = False

    @property
    def config(self) -> ExternalizeConfig:
        """Return the configuration."""
        return self._config

    @property
    def blob_store(self) -> BlobStore:
        """Return the blob store."""
        return self._blob_store

    @property
    def record_store(self) -> RecordStore | None:
        """Return the record store used to persist after unlink, if any."""
        return self._record_store

    # ---- lifecycle ----

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for background best-effort deletes. Return ``False`` on timeout."""
        return self._cleanups.wait(timeout)

    def close(self) -> None:
        """Wait for background work and release the thread pool."""
        if self._closed:
            return
        self.flush()
        self._closed = True
        self._executor.shutdown(wait=True)

    def __enter__(self) -> BlobSynchronizer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ---- operations ----

    def save(self, record: Record) -> Record:
        """Write every set externalized field to a fresh blob and repoint the record's links.

        Unset fields are skipped and keep their links. On the first failure no
        link is changed, blobs written by sibling fields are deleted
        best-effort, and `FieldSyncError` is raised. Superseded blobs are
        deleted in the background only after every write succeeded.

        Callers that persist the record afterwards should use `stage` and
        `discard` instead, so superseded blobs outlive a failed persist.
        """
        self.discard(record.id, self.stage(record), reason="superseded")
        return record

    def stage(self, record: Record) -> tuple[tuple[str, BlobReference], ...]:
        """Like `save`, but return the superseded ``(field, reference)`` pairs instead of deleting them."""
        self._check_record(record)

        payloads: dict[str, bytes] = {}
        for name in self._config.field_names:
            value = record.value(name)
            if value is UNSET:
                continue
            try:
                payloads[name] = encode_value(value, field_name=name)
            except SerializationError as exc:
                raise FieldSyncError("save", record.id, name, exc) from exc

        futures = {
            name: self._submit(self._put_field, record.id, name, payload) for name, payload in payloads.items()
        }
        results, failure = self._join(futures)
        if failure is not None:
            self._discard_writes(record.id, futures, results)
            name, exc = failure
            raise FieldSyncError("save", record.id, name, exc) from exc

        superseded: list[tuple[str, BlobReference]] = []
        for name, ref in results.items():
            previous = record.links.get(name)
            record.links.set(name, ref)
            if previous is not None and previous.id != ref.id:
                superseded.append((name, previous))

        logger.debug("Saved %d field(s) of record %s", len(results), record.id)
        return tuple(superseded)

    def discard(self, record_id: str, refs: Iterable[tuple[str, BlobReference]], *, reason: str) -> None:
        """Delete blobs no longer linked from the record, best-effort and in the background."""
        for name, ref in refs:
            self._delete_in_background(record_id, name, ref, reason=reason)

    def retrieve(self, record: Record) -> Record:
        """Load every linked field from the blob store into the record.

        Fields without a link are left as they are in memory. Values are
        assigned only when every fetch succeeded. Links are never modified.
        """
        self._check_record(record)

        futures = {name: self._submit(self._get_field, record.id, name, ref) for name, ref in record.links.items()}
        results, failure = self._join(futures)
        if failure is not None:
            name, exc = failure
            raise FieldSyncError("retrieve", record.id, name, exc) from exc

        for name, value in results.items():
            record[name] = value

        logger.debug("Retrieved %d field(s) of record %s", len(results), record.id)
        return record

    def unlink(self, record: Record) -> Record:
        """Delete every linked blob, clear the links and persist the record.

        A blob that is already gone counts as deleted, so a failed unlink can be
        retried. On the first failure, links whose blobs were deleted are
        cleared and that progress is persisted before `FieldSyncError` is raised.
        """
        self._check_record(record)

        futures = {
            name: self._submit(self._delete_field, record.id, name, ref) for name, ref in record.links.items()
        }
        results, failure = self._join(futures)
        for name in results:
            record.links.clear(name)
            record.unset(name)

        if failure is not None:
            if results:
                try:
                    self._persist(record)
                except PersistenceError:
                    logger.warning("Could not persist partial unlink of record %s", record.id, exc_info=True)
            name, exc = failure
            raise FieldSyncError("unlink", record.id, name, exc) from exc

        if results:
            self._persist(record)
        logger.debug("Unlinked %d field(s) of record %s", len(results), record.id)
        return record

    # ---- units of work ----

    def _put_field(self, record_id: str, field_name: str, payload: bytes) -> BlobReference:
        ref = self._blob_store.put_blob(
            payload,
            media_type=JSON_MEDIA_TYPE,
            kind=FIELD_BLOB_KIND,
            metadata={"record_id": record_id, "field_name": field_name},
        )
        logger.debug("Stored field %r of record %s as blob %s", field_name, record_id, ref.id)
        return ref

    def _get_field(self, record_id: str, field_name: str, ref: BlobReference) -> object:
        data = self._blob_store.get_blob(ref)
        logger.debug("Fetched blob %s for field %r of record %s", ref.id, field_name, record_id)
        return decode_value(data, field_name=field_name)

    def _delete_field(self, record_id: str, field_name: str, ref: BlobReference) -> bool:
        deleted = self._blob_store.delete_blob(ref)
        if not deleted:
            logger.debug("Blob %s for field %r of record %s was already gone", ref.id, field_name, record_id)
        return deleted

    # ---- fan-out / fan-in ----

    def _check_record(self, record: Record) -> None:
        if record.field_names != self._config.field_names:
            msg = (
                f"record {record.id} externalizes {record.field_names!r}, "
                f"but this synchronizer is configured for {self._config.field_names!r}."
            )
            raise ValueError(msg)

    def _submit(self, fn: Callable[..., ResultT], record_id: str, field_name: str, arg: object) -> Future[ResultT]:
        if self._closed:
            msg = "BlobSynchronizer is closed."
            raise RuntimeError(msg)
        return self._executor.submit(fn, record_id, field_name, arg)

    def _join(
        self,
        futures: dict[str, Future[ResultT]],
    ) -> tuple[dict[str, ResultT], tuple[str, BaseException] | None]:
        """Wait until every unit finished or one failed.

        Return results of the units that succeeded so far, and the first
        failure in configured field order among those that finished.
        """
        if not futures:
            return {}, None
        done, _ = wait(futures.values(), return_when=FIRST_EXCEPTION)

        results: dict[str, ResultT] = {}
        failure: tuple[str, BaseException] | None = None
        for name, future in futures.items():
            if future not in done:
                continue
            exc = future.exception()
            if exc is None:
                results[name] = future.result()
            elif failure is None:
                failure = (name, exc)
        return results, failure

    # ---- best-effort cleanup ----

    def _discard_writes(
        self,
        record_id: str,
        futures: dict[str, Future[BlobReference]],
        written: dict[str, BlobReference],
    ) -> None:
        """Delete blobs written by a save that failed, including writes that finish later."""
        for name, future in futures.items():
            ref = written.get(name)
            if ref is not None:
                self._delete_in_background(record_id, name, ref, reason="discarded")
            else:
                # Runs immediately when the future is already done.
                self._cleanups.begin()
                future.add_done_callback(self._late_write_callback(record_id, name))

    def _late_write_callback(self, record_id: str, field_name: str) -> Callable[[Future[BlobReference]], None]:
        def _on_done(future: Future[BlobReference]) -> None:
            try:
                if not future.cancelled() and future.exception() is None:
                    self._delete_now(record_id, field_name, future.result(), reason="late")
            finally:
                self._cleanups.end()

        return _on_done

    def _delete_in_background(self, record_id: str, field_name: str, ref: BlobReference, *, reason: str) -> None:
        self._cleanups.begin()
        try:
            self._executor.submit(self._delete_tracked, record_id, field_name, ref, reason)
        except RuntimeError:
            # Pool already shut down; do it here instead.
            self._delete_tracked(record_id, field_name, ref, reason)

    def _delete_tracked(self, record_id: str, field_name: str, ref: BlobReference, reason: str) -> None:
        try:
            self._delete_now(record_id, field_name, ref, reason=reason)
        finally:
            self._cleanups.end()

    def _delete_now(self, record_id: str, field_name: str, ref: BlobReference, *, reason: str) -> None:
        try:
            self._blob_store.delete_blob(ref)
        except Exception:
            logger.warning(
                "Could not delete %s blob %s (record %s, field %r)",
                reason,
                ref.id,
                record_id,
                field_name,
                exc_info=True,
            )
        else:
            logger.debug("Deleted %s blob %s (record %s, field %r)", reason, ref.id, record_id, field_name)

    def _persist(self, record: Record) -> None:
        if self._record_store is None:
            return
        self._record_store.put_record(record.id, record.to_dict())
