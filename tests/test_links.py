"""Tests for ReferenceMap."""

import logging

import pytest

from blobfields.blobs import BlobReference
from blobfields.links import ReferenceMap

FIELDS = ("content", "complement")


def _ref(blob_id: str) -> BlobReference:
    return BlobReference(id=blob_id, sha256="h" + blob_id, media_type="application/json", kind="field", size=1)


def test_starts_empty() -> None:
    links = ReferenceMap(FIELDS)
    assert len(links) == 0
    assert links.get("content") is None
    assert "content" not in links
    assert links.items() == ()


def test_set_get_and_clear() -> None:
    links = ReferenceMap(FIELDS)
    links.set("content", _ref("b1"))
    assert links.get("content") == _ref("b1")
    assert "content" in links

    assert links.clear("content") == _ref("b1")
    assert links.get("content") is None
    assert links.clear("content") is None


def test_set_none_clears_entry() -> None:
    links = ReferenceMap(FIELDS, {"content": _ref("b1")})
    links.set("content", None)
    assert len(links) == 0


def test_repointing_a_field_replaces_its_entry() -> None:
    links = ReferenceMap(FIELDS, {"content": _ref("b1")})
    links.set("content", _ref("b2"))
    assert links.items() == (("content", _ref("b2")),)


def test_items_follow_configured_order() -> None:
    links = ReferenceMap(FIELDS)
    links.set("complement", _ref("b2"))
    links.set("content", _ref("b1"))
    assert [name for name, _ in links.items()] == ["content", "complement"]
    assert list(links) == ["content", "complement"]


def test_rejects_unconfigured_field() -> None:
    links = ReferenceMap(FIELDS)
    with pytest.raises(ValueError, match="'title' is not an externalized field"):
        links.set("title", _ref("b1"))
    with pytest.raises(ValueError, match="not an externalized field"):
        links.get("title")


def test_rejects_shared_blob_between_fields() -> None:
    links = ReferenceMap(FIELDS, {"content": _ref("b1")})
    with pytest.raises(ValueError, match="already linked from field 'content'"):
        links.set("complement", _ref("b1"))


def test_rejects_non_reference_values() -> None:
    links = ReferenceMap(FIELDS)
    with pytest.raises(TypeError, match="must be a BlobReference"):
        links.set("content", "b1")  # type: ignore[arg-type]


def test_copy_is_independent() -> None:
    links = ReferenceMap(FIELDS, {"content": _ref("b1")})
    copied = links.copy()
    copied.clear("content")
    assert links.get("content") == _ref("b1")
    assert copied != links


def test_dict_round_trip_omits_absent_fields() -> None:
    links = ReferenceMap(FIELDS, {"complement": _ref("b2")})
    payload = links.to_dict()
    assert payload == {"complement": _ref("b2").to_dict()}
    assert ReferenceMap.from_dict(payload, field_names=FIELDS) == links


def test_from_dict_skips_null_entries() -> None:
    links = ReferenceMap.from_dict({"content": None}, field_names=FIELDS)
    assert len(links) == 0


def test_from_dict_drops_unconfigured_fields(caplog: pytest.LogCaptureFixture) -> None:
    payload = {"content": _ref("b1").to_dict(), "retired": _ref("b9").to_dict()}
    with caplog.at_level(logging.WARNING, logger="blobfields.links"):
        links = ReferenceMap.from_dict(payload, field_names=FIELDS)

    assert links.items() == (("content", _ref("b1")),)
    assert "retired" in caplog.text


def test_from_dict_rejects_malformed_reference() -> None:
    with pytest.raises(TypeError, match=r"ReferenceMap\.content\.sha256"):
        ReferenceMap.from_dict({"content": {"id": "b1", "kind": "field", "size": 1}}, field_names=FIELDS)
