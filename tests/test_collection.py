"""Tests for RecordCollection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from blobfields import (
    ExternalizeConfig,
    FieldSyncError,
    FileBlobStore,
    FileRecordStore,
    InMemoryBlobStore,
    InMemoryRecordStore,
    PersistenceError,
    RecordCollection,
    RecordNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from pathlib import Path

FIELDS = ("content", "complement")


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def collection(blob_store: InMemoryBlobStore, record_store: InMemoryRecordStore) -> Iterator[RecordCollection]:
    with RecordCollection(ExternalizeConfig(field_names=FIELDS), blob_store, record_store) as records:
        yield records


def test_new_assigns_fresh_ids_and_routes_values(collection: RecordCollection) -> None:
    first = collection.new({"name": "huge.txt"}, content="anyFetch is cool")
    second = collection.new()
    assert first.id != second.id
    assert first.fields == {"name": "huge.txt"}
    assert first["content"] == "anyFetch is cool"
    assert first.field_names == FIELDS


def test_save_persists_links_but_not_values(
    collection: RecordCollection,
    record_store: InMemoryRecordStore,
) -> None:
    record = collection.save(collection.new({"name": "huge.txt"}, content="anyFetch is cool"))

    stored = record_store.get_record(record.id)
    assert stored["fields"] == {"name": "huge.txt"}
    assert set(stored["links"]) == {"content"}  # type: ignore[arg-type]
    assert "anyFetch is cool" not in str(stored)


def test_load_without_and_with_hydration(collection: RecordCollection) -> None:
    record = collection.save(collection.new(content="anyFetch is cool", complement={"a": [1, 2]}))

    shallow = collection.load(record.id)
    assert shallow.is_set("content") is False
    assert shallow.links == record.links

    hydrated = collection.load(record.id, hydrate=True)
    assert hydrated["content"] == "anyFetch is cool"
    assert hydrated["complement"] == {"a": [1, 2]}


def test_load_missing_record(collection: RecordCollection) -> None:
    with pytest.raises(RecordNotFoundError):
        collection.load("missing")


def test_explicit_retrieve_and_unlink(
    collection: RecordCollection,
    blob_store: InMemoryBlobStore,
    record_store: InMemoryRecordStore,
) -> None:
    record = collection.save(collection.new(content="x", complement="y"))
    loaded = collection.retrieve(collection.load(record.id))
    assert loaded["complement"] == "y"

    collection.unlink(loaded)
    assert blob_store.list_blobs() == ()
    assert record_store.get_record(record.id)["links"] == {}


def test_remove_deletes_blobs_and_record(
    collection: RecordCollection,
    blob_store: InMemoryBlobStore,
    record_store: InMemoryRecordStore,
) -> None:
    record = collection.save(collection.new(content="x", complement="y"))
    assert collection.remove(record) is True
    assert blob_store.list_blobs() == ()
    assert record_store.has_record(record.id) is False


def test_remove_unsaved_record(collection: RecordCollection) -> None:
    assert collection.remove(collection.new(content="x")) is False


def test_failed_save_does_not_persist_record(
    collection: RecordCollection,
    record_store: InMemoryRecordStore,
) -> None:
    record = collection.new(content=object())
    with pytest.raises(FieldSyncError):
        collection.save(record)
    assert record_store.has_record(record.id) is False


def test_exposes_collaborators(collection: RecordCollection, record_store: InMemoryRecordStore) -> None:
    assert collection.config.field_names == FIELDS
    assert collection.record_store is record_store
    assert collection.synchronizer.record_store is record_store


def test_file_backed_round_trip_across_instances(tmp_path: Path) -> None:
    config = ExternalizeConfig(field_names=FIELDS, bucket="files")

    with RecordCollection(config, FileBlobStore(tmp_path / "blobs", bucket="files"), FileRecordStore(tmp_path)) as c:
        record_id = c.save(c.new({"name": "huge.txt"}, content="persisted")).id

    assert list((tmp_path / "blobs" / "files").glob("*.blob"))

    blob_store = FileBlobStore(tmp_path / "blobs", bucket="files")
    with RecordCollection(config, blob_store, FileRecordStore(tmp_path)) as reopened:
        record = reopened.load(record_id, hydrate=True)
        assert record["name"] == "huge.txt"
        assert record["content"] == "persisted"
        assert reopened.remove(record) is True

    assert blob_store.list_blobs() == ()


class SwitchableRecordStore(InMemoryRecordStore):
    def __init__(self) -> None:
        super().__init__()
        self.offline = False

    def put_record(self, record_id: str, data: Mapping[str, object]) -> None:
        if self.offline:
            msg = "database offline"
            raise PersistenceError(record_id, msg)
        super().put_record(record_id, data)


def test_failed_persist_keeps_blobs_the_stored_record_points_at(blob_store: InMemoryBlobStore) -> None:
    record_store = SwitchableRecordStore()
    with RecordCollection(ExternalizeConfig(field_names=FIELDS), blob_store, record_store) as records:
        record = records.save(records.new(content="v1"))
        persisted_links = record.links.copy()

        record_store.offline = True
        record["content"] = "v2"
        with pytest.raises(PersistenceError):
            records.save(record)
        assert records.synchronizer.flush(timeout=5) is True

        assert record.links == persisted_links
        assert {entry.ref for entry in blob_store.list_blobs()} == {ref for _, ref in persisted_links.items()}
        assert records.load(record.id, hydrate=True)["content"] == "v1"

        record_store.offline = False
        records.save(record)
        assert records.synchronizer.flush(timeout=5) is True
        assert records.load(record.id, hydrate=True)["content"] == "v2"

    assert len(blob_store.list_blobs()) == 1
