"""Blob store backends and direct use of BlobSynchronizer."""

import logging
import tempfile
from pathlib import Path

from blobfields import (
    BlobSynchronizer,
    ExternalizeConfig,
    FieldSyncError,
    FileBlobStore,
    FileRecordStore,
    InMemoryBlobStore,
    Record,
)

logging.basicConfig(level=logging.DEBUG, format="%(threadName)s %(name)s: %(message)s")

# ---- InMemoryBlobStore ----
# Best for development, testing, and short-lived processes.

memory_store = InMemoryBlobStore()
ref = memory_store.put_blob(b'"hello world"', media_type="application/json", kind="field")
print(f"[InMemory] bucket={memory_store.bucket}, id={ref.id[:8]}..., sha256={ref.sha256[:16]}...")
print(f"  get_blob() = {memory_store.get_blob(ref)!r}")
print(f"  delete_blob() = {memory_store.delete_blob(ref)}, again = {memory_store.delete_blob(ref)}")

# ---- FileBlobStore + FileRecordStore ----
# Blobs live under <root>/<bucket>/, records as <id>.json files.

with tempfile.TemporaryDirectory() as tmpdir:
    config = ExternalizeConfig.from_dict({"field_names": ["body"], "bucket": "articles", "max_workers": 2})
    blob_store = FileBlobStore(Path(tmpdir) / "blobs", bucket=config.bucket)
    record_store = FileRecordStore(Path(tmpdir) / "records")

    with BlobSynchronizer(config, blob_store, record_store) as sync:
        article = Record("article-1", field_names=config.field_names, fields={"title": "Hello"})
        article["body"] = "A long body that should not live in the record store."
        sync.save(article)
        record_store.put_record(article.id, article.to_dict())
        print(f"\n[File] blob directory = {blob_store.directory}")
        print(f"  links = {article.links}")

        # Persist before deleting what the stored record still points at.
        article["body"] = "A revised body."
        superseded = sync.stage(article)
        record_store.put_record(article.id, article.to_dict())
        sync.discard(article.id, superseded, reason="superseded")
        sync.flush()
        print(f"  blobs after re-save = {len(blob_store.list_blobs())}")

        stored = Record.from_dict(record_store.get_record(article.id), field_names=config.field_names)
        try:
            sync.retrieve(stored)
        except FieldSyncError as exc:
            print(f"  retrieve failed: {exc.cause}")
        else:
            print(f"  stored body = {stored['body']!r}")

        sync.unlink(article)
        print(f"  persisted links after unlink = {record_store.get_record(article.id)['links']}")
