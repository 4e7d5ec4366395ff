"""FileRecordStore: file-system-based record storage."""

import json
import os
from collections.abc import Mapping
from pathlib import Path

from blobfields.errors import PersistenceError, RecordNotFoundError

_RECORD_SUFFIX = ".json"


class FileRecordStore:
    """File-system-based record store.

    Store each record as ``<id>.json`` under a root directory. Writes go through
    a temporary file and ``os.replace`` so a crashed write never leaves a
    truncated record behind.
    """

    def __init__(self, root: str | Path) -> None:
        """Initialize with a root directory, creating it if needed."""
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        """Return the root directory path."""
        return self._root

    def _record_path(self, record_id: str) -> Path | None:
        """Resolve record path and ensure it stays under the store root."""
        root = self._root.resolve()
        candidate = (self._root / f"{record_id}{_RECORD_SUFFIX}").resolve()
        try:
            candidate.relative_to(root)
        except ValueError:
            return None
        return candidate

    def put_record(self, record_id: str, data: Mapping[str, object]) -> None:
        """Write a record payload as JSON."""
        path = self._record_path(record_id)
        if path is None:
            msg = "record ID resolves outside store root."
            raise PersistenceError(record_id, msg)
        try:
            encoded = json.dumps(dict(data), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(record_id, str(exc)) from exc

        tmp_path = path.with_name(f"{path.name}.tmp")
        try:
            tmp_path.write_text(encoded, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise PersistenceError(record_id, str(exc)) from exc

    def get_record(self, record_id: str) -> dict[str, object]:
        """Read a record payload."""
        path = self._record_path(record_id)
        if path is None or not path.exists():
            raise RecordNotFoundError(record_id)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise RecordNotFoundError(record_id) from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(record_id, str(exc)) from exc
        if not isinstance(raw, dict):
            msg = "stored payload is not a JSON object."
            raise PersistenceError(record_id, msg)
        return raw

    def has_record(self, record_id: str) -> bool:
        """Check whether a record file exists."""
        path = self._record_path(record_id)
        return path is not None and path.exists()

    def delete_record(self, record_id: str) -> bool:
        """Delete a record file."""
        path = self._record_path(record_id)
        if path is None or not path.exists():
            return False
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(record_id, str(exc)) from exc
        return True

    def list_record_ids(self) -> tuple[str, ...]:
        """Return all stored record IDs in sorted order."""
        return tuple(sorted(path.name[: -len(_RECORD_SUFFIX)] for path in self._root.glob(f"*{_RECORD_SUFFIX}")))
