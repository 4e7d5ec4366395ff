"""ReferenceMap: per-record mapping from externalized field name to its current blob."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping

from blobfields.blobs import BlobReference
from blobfields.serde import as_str_object_dict

logger = logging.getLogger(__name__)


class ReferenceMap:
    """Typed view of a record's links into the blob store.

    Only configured field names may hold an entry, and no two entries may point
    at the same blob. An absent entry means no blob is stored for that field.
    """

    __slots__ = ("_entries", "_field_names")

    def __init__(
        self,
        field_names: Iterable[str],
        entries: Mapping[str, BlobReference] | None = None,
    ) -> None:
        """Initialize with the configured field names and optional existing entries."""
        self._field_names = tuple(field_names)
        self._entries: dict[str, BlobReference] = {}
        for name, ref in (entries or {}).items():
            self.set(name, ref)

    @property
    def field_names(self) -> tuple[str, ...]:
        """Return the configured field names."""
        return self._field_names

    def _check_name(self, name: str) -> None:
        if name not in self._field_names:
            msg = f"{name!r} is not an externalized field; expected one of {', '.join(self._field_names)}."
            raise ValueError(msg)

    def get(self, name: str) -> BlobReference | None:
        """Return the blob currently holding ``name``, or ``None``."""
        self._check_name(name)
        return self._entries.get(name)

    def set(self, name: str, ref: BlobReference | None) -> None:
        """Point ``name`` at ``ref``; ``None`` clears the entry."""
        self._check_name(name)
        if ref is None:
            self._entries.pop(name, None)
            return
        if not isinstance(ref, BlobReference):
            msg = f"reference for {name!r} must be a BlobReference; got {type(ref).__name__}."
            raise TypeError(msg)
        for other, existing in self._entries.items():
            if other != name and existing.id == ref.id:
                msg = f"blob {ref.id} is already linked from field {other!r}."
                raise ValueError(msg)
        self._entries[name] = ref

    def clear(self, name: str) -> BlobReference | None:
        """Remove the entry for ``name`` and return the reference it held."""
        self._check_name(name)
        return self._entries.pop(name, None)

    def items(self) -> tuple[tuple[str, BlobReference], ...]:
        """Return present entries in configured field order."""
        return tuple((name, self._entries[name]) for name in self._field_names if name in self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self) -> Iterator[str]:
        return (name for name, _ in self.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReferenceMap):
            return NotImplemented
        return self._field_names == other._field_names and self._entries == other._entries

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={ref.id}" for name, ref in self.items())
        return f"ReferenceMap({inner})"

    def copy(self) -> ReferenceMap:
        """Return an independent copy."""
        return ReferenceMap(self._field_names, dict(self._entries))

    def to_dict(self) -> dict[str, object]:
        """Serialize present entries to a plain dictionary."""
        return {name: ref.to_dict() for name, ref in self.items()}

    @classmethod
    def from_dict(cls, value: Mapping[str, object], *, field_names: Iterable[str]) -> ReferenceMap:
        """Deserialize a ReferenceMap, dropping entries for fields that are no longer configured."""
        data = as_str_object_dict(value, field_name="ReferenceMap")
        links = cls(field_names)
        for name, raw in data.items():
            if raw is None:
                continue
            if name not in links.field_names:
                logger.warning("Ignoring link for unconfigured field %r", name)
                continue
            ref = BlobReference.from_dict(
                as_str_object_dict(raw, field_name=f"ReferenceMap.{name}"),
                field_name=f"ReferenceMap.{name}",
            )
            links.set(name, ref)
        return links
