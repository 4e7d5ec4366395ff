"""Record: an application entity whose selected fields live in the blob store."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Final

from blobfields.links import ReferenceMap
from blobfields.serde import as_str_object_dict, require_string

_ID_KEY: Final = "id"


class _Unset:
    """Marker type for an externalized field that holds no value."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()


class Record:
    """A structured record with plain fields and externalized fields.

    Plain fields are persisted inline. Externalized field values are held in
    memory only: `BlobSynchronizer.save` writes them to the blob store and
    records the resulting references in `links`, the part that is persisted.

    Access by name works the same for both kinds::

        record["name"] = "huge.txt"        # plain
        record["content"] = "lots of text"  # externalized
    """

    __slots__ = ("_externals", "fields", "id", "links")

    def __init__(
        self,
        record_id: str,
        *,
        field_names: Iterable[str],
        fields: Mapping[str, object] | None = None,
        links: ReferenceMap | None = None,
    ) -> None:
        """Initialize a record with its ID, externalized field names and plain fields."""
        self.id = require_string(record_id, field_name="Record.id")
        names = tuple(field_names)
        if _ID_KEY in names:
            msg = f"{_ID_KEY!r} cannot be an externalized field."
            raise ValueError(msg)
        if links is None:
            links = ReferenceMap(names)
        elif links.field_names != names:
            msg = "links must be configured with the same field names as the record."
            raise ValueError(msg)
        self.links = links
        self.fields: dict[str, object] = {}
        self._externals: dict[str, object] = {}
        for name, value in (fields or {}).items():
            self[name] = value

    @property
    def field_names(self) -> tuple[str, ...]:
        """Return the externalized field names."""
        return self.links.field_names

    def is_externalized(self, name: str) -> bool:
        """Return whether ``name`` is stored in the blob store."""
        return name in self.links.field_names

    def value(self, name: str) -> object:
        """Return an externalized field's in-memory value, or `UNSET`."""
        if not self.is_externalized(name):
            msg = f"{name!r} is not an externalized field."
            raise KeyError(msg)
        return self._externals.get(name, UNSET)

    def is_set(self, name: str) -> bool:
        """Return whether a field currently holds a value in memory."""
        if self.is_externalized(name):
            return name in self._externals
        return name in self.fields

    def unset(self, name: str) -> None:
        """Forget a field's in-memory value, if any. Links are not touched."""
        if self.is_externalized(name):
            self._externals.pop(name, None)
        else:
            self.fields.pop(name, None)

    def get(self, name: str, default: object = None) -> object:
        """Return a field's value, or ``default`` when unset."""
        if self.is_externalized(name):
            return self._externals.get(name, default)
        return self.fields.get(name, default)

    def __getitem__(self, name: str) -> object:
        if self.is_externalized(name):
            return self._externals[name]
        return self.fields[name]

    def __setitem__(self, name: str, value: object) -> None:
        if name == _ID_KEY:
            msg = "record id cannot be reassigned through item access."
            raise KeyError(msg)
        if isinstance(value, _Unset):
            self.unset(name)
        elif self.is_externalized(name):
            self._externals[name] = value
        else:
            self.fields[name] = value

    def __delitem__(self, name: str) -> None:
        if not self.is_set(name):
            raise KeyError(name)
        self.unset(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_set(name)

    def __repr__(self) -> str:
        externals = ", ".join(sorted(self._externals))
        return f"Record(id={self.id!r}, fields={self.fields!r}, externals=[{externals}], links={self.links!r})"

    def to_dict(self) -> dict[str, object]:
        """Serialize the persisted part of the record: ID, plain fields and links."""
        return {
            _ID_KEY: self.id,
            "fields": dict(self.fields),
            "links": self.links.to_dict(),
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object], *, field_names: Iterable[str]) -> Record:
        """Rebuild a record from its persisted form. Externalized values start unset."""
        data = as_str_object_dict(value, field_name="Record")
        names = tuple(field_names)
        record_id = require_string(data.get(_ID_KEY), field_name="Record.id")
        fields = as_str_object_dict(data.get("fields") or {}, field_name="Record.fields")
        links = ReferenceMap.from_dict(data.get("links") or {}, field_names=names)
        stray = sorted(name for name in fields if name in names)
        if stray:
            msg = f"Record.fields must not contain externalized fields: {', '.join(stray)}."
            raise ValueError(msg)
        return cls(record_id, field_names=names, fields=fields, links=links)
