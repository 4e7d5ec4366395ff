"""ExternalizeConfig: which record fields live in the blob store, and where."""

from collections.abc import Mapping
from dataclasses import dataclass

from blobfields.blobs._store import DEFAULT_BUCKET, validate_bucket
from blobfields.serde import as_str_object_dict, optional_int, string_tuple


@dataclass(frozen=True, slots=True)
class ExternalizeConfig:
    """Setup-time configuration shared by the synchronizer and the record collection.

    - `field_names`: record fields stored out-of-line, in the order they are fanned out
    - `bucket`: logical namespace inside the blob store
    - `max_workers`: thread pool size for per-field work (default: one per field)
    """

    field_names: tuple[str, ...]
    bucket: str = DEFAULT_BUCKET
    max_workers: int | None = None

    def __post_init__(self) -> None:
        """Normalize and validate the field set."""
        if isinstance(self.field_names, str):
            msg = "field_names must be a sequence of field names, not a single string."
            raise TypeError(msg)
        names = tuple(self.field_names)
        if not names:
            msg = "field_names must name at least one field."
            raise ValueError(msg)
        for index, name in enumerate(names):
            if not isinstance(name, str) or not name:
                msg = f"field_names[{index}] must be a non-empty string."
                raise TypeError(msg)
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            msg = f"field_names contains duplicates: {', '.join(duplicates)}."
            raise ValueError(msg)
        object.__setattr__(self, "field_names", names)

        validate_bucket(self.bucket)

        if self.max_workers is not None and (
            not isinstance(self.max_workers, int) or isinstance(self.max_workers, bool) or self.max_workers < 1
        ):
            msg = "max_workers must be a positive int or None."
            raise ValueError(msg)

    @property
    def worker_count(self) -> int:
        """Return the effective thread pool size."""
        if self.max_workers is not None:
            return self.max_workers
        return len(self.field_names)

    def to_dict(self) -> dict[str, object]:
        """Serialize ExternalizeConfig to a plain dictionary."""
        return {
            "field_names": list(self.field_names),
            "bucket": self.bucket,
            "max_workers": self.max_workers,
        }

    @classmethod
    def from_dict(cls, value: Mapping[str, object]) -> "ExternalizeConfig":
        """Deserialize ExternalizeConfig from a plain dictionary (e.g. parsed JSON or TOML)."""
        data = as_str_object_dict(value, field_name="ExternalizeConfig")
        field_names = string_tuple(data.get("field_names"), field_name="ExternalizeConfig.field_names")
        bucket = data.get("bucket", DEFAULT_BUCKET)
        if not isinstance(bucket, str):
            msg = "ExternalizeConfig.bucket must be a string."
            raise TypeError(msg)
        max_workers = optional_int(data.get("max_workers"), field_name="ExternalizeConfig.max_workers")
        return cls(field_names=field_names, bucket=bucket, max_workers=max_workers)
