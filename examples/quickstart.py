"""Minimal blobfields workflow: save, load, retrieve, remove."""

from blobfields import ExternalizeConfig, InMemoryBlobStore, InMemoryRecordStore, RecordCollection

config = ExternalizeConfig(field_names=("content", "complement"))

with RecordCollection(config, InMemoryBlobStore(), InMemoryRecordStore()) as documents:
    doc = documents.new(
        {"name": "huge.txt"},
        content="anyFetch is cool",
        complement={"some": {"complicated": {"stuff": True}}},
    )
    documents.save(doc)

    # The record store only holds plain fields and blob references.
    print(documents.record_store.get_record(doc.id))

    loaded = documents.load(doc.id)
    print(f"before retrieve: content set = {loaded.is_set('content')}")
    documents.retrieve(loaded)
    print(f"after retrieve: content = {loaded['content']!r}")
    print(f"complement.some.complicated.stuff = {loaded['complement']['some']['complicated']['stuff']}")

    print(f"removed = {documents.remove(loaded)}")
