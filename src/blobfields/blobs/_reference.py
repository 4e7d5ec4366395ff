"""BlobReference: immutable handle to stored binary data."""

from collections.abc import Mapping
from dataclasses import dataclass

from blobfields.serde import as_str_object_dict, optional_string, require_int, require_string


@dataclass(frozen=True, slots=True)
class BlobReference:
    """Immutable reference to a blob stored in a BlobStore."""

    id: str
    sha256: str
    media_type: str | None
    kind: str
    size: int

    def to_dict(self) -> dict[str, object]:
        """Serialize BlobReference to a plain dictionary."""
        return {
            "id": self.id,
            "sha256": self.sha256,
            "media_type": self.media_type,
            "kind": self.kind,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object], *, field_name: str = "BlobReference") -> "BlobReference":
        """Deserialize BlobReference from a plain dictionary."""
        data = as_str_object_dict(value, field_name=field_name)
        return cls(
            id=require_string(data.get("id"), field_name=f"{field_name}.id"),
            sha256=require_string(data.get("sha256"), field_name=f"{field_name}.sha256"),
            media_type=optional_string(data.get("media_type"), field_name=f"{field_name}.media_type"),
            kind=require_string(data.get("kind"), field_name=f"{field_name}.kind"),
            size=require_int(data.get("size"), field_name=f"{field_name}.size"),
        )
