"""Typed errors for blobfields."""


class BlobfieldsError(Exception):
    """Base exception for all blobfields errors."""


class BlobNotFoundError(BlobfieldsError):
    """Raised when a BlobReference cannot be resolved in a BlobStore."""

    def __init__(self, blob_id: str) -> None:
        """Initialize with the missing blob's ID."""
        self.blob_id = blob_id
        super().__init__(f"Blob not found: {blob_id}")


class BlobIntegrityError(BlobfieldsError):
    """Raised when blob data does not match its expected SHA-256 digest."""

    def __init__(self, blob_id: str, expected: str, actual: str) -> None:
        """Initialize with the blob ID and mismatched digests."""
        self.blob_id = blob_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"Blob integrity check failed for {blob_id}: expected sha256={expected}, got {actual}")


class BlobStoreError(BlobfieldsError):
    """Raised when the blob store cannot complete a request (unavailable, I/O, transport)."""

    def __init__(self, message: str, *, blob_id: str | None = None) -> None:
        """Initialize with a description and the blob ID involved, if any."""
        self.blob_id = blob_id
        super().__init__(message)


class SerializationError(BlobfieldsError):
    """Raised when a field value cannot be encoded to, or decoded from, blob bytes."""

    def __init__(self, field_name: str, message: str) -> None:
        """Initialize with the field name and failure description."""
        self.field_name = field_name
        super().__init__(f"Cannot serialize field {field_name!r}: {message}")


class PersistenceError(BlobfieldsError):
    """Raised when the record store fails to save or delete a record."""

    def __init__(self, record_id: str, message: str) -> None:
        """Initialize with the record ID and failure description."""
        self.record_id = record_id
        super().__init__(f"Cannot persist record {record_id}: {message}")


class RecordNotFoundError(BlobfieldsError):
    """Raised when a record ID is unknown to a RecordStore."""

    def __init__(self, record_id: str) -> None:
        """Initialize with the missing record's ID."""
        self.record_id = record_id
        super().__init__(f"Record not found: {record_id}")


class FieldSyncError(BlobfieldsError):
    """Raised when one field's unit of work fails during save, retrieve or unlink.

    The underlying failure is chained as ``__cause__`` and exposed as ``cause``.
    """

    def __init__(self, operation: str, record_id: str, field_name: str, cause: BaseException) -> None:
        """Initialize with the failed operation, record, field and underlying error."""
        self.operation = operation
        self.record_id = record_id
        self.field_name = field_name
        self.cause = cause
        super().__init__(f"{operation} failed for record {record_id} field {field_name!r}: {cause}")
