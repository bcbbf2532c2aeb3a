"""Infrastructure exceptions for storage operations.

Storage errors extend ShareGateException so presentation can map them
to HTTP responses consistently. All of them become a generic 500: the
detail is logged server-side, never returned to the client.
"""

from sharegate.domain.exceptions import ShareGateException


class StorageException(ShareGateException):
    """Base exception for storage operations."""


class StorageBackendError(StorageException):
    """Metadata backend failed (connectivity, query or commit)."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            f"Storage backend failed during {operation}",
            "STORAGE_BACKEND_ERROR",
            {"operation": operation, "reason": reason},
        )


class DuplicateIdentifierError(StorageException):
    """Backend rejected an insert because the identifier is taken.

    Raised by backends from a single insert attempt; the allocation loop
    catches it and retries with a fresh identifier.
    """

    def __init__(self, entry_id: str) -> None:
        super().__init__(
            f"Identifier already reserved: {entry_id}",
            "STORAGE_DUPLICATE_ID",
            {"entry_id": entry_id},
        )


class IdentifierAllocationError(StorageException):
    """No collision-free identifier was found within the attempt budget."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Could not allocate a unique identifier after {attempts} attempts",
            "STORAGE_ID_EXHAUSTED",
            {"attempts": attempts},
        )


class EntryStateError(StorageException):
    """Entry operation called out of lifecycle order (e.g. write before save)."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(
            f"Invalid entry state for {operation}: {reason}",
            "STORAGE_ENTRY_STATE",
            {"operation": operation, "reason": reason},
        )


class StorageWriteError(StorageException):
    """Blob write failed."""

    def __init__(self, entry_id: str, reason: str) -> None:
        super().__init__(
            f"Failed to write blob: {entry_id}",
            "STORAGE_WRITE_ERROR",
            {"entry_id": entry_id, "reason": reason},
        )


class StorageReadError(StorageException):
    """Blob read failed (missing blob for a published entry, I/O error)."""

    def __init__(self, entry_id: str, reason: str) -> None:
        super().__init__(
            f"Failed to read blob: {entry_id}",
            "STORAGE_READ_ERROR",
            {"entry_id": entry_id, "reason": reason},
        )


class StorageDeleteError(StorageException):
    """Blob or row deletion failed."""

    def __init__(self, entry_id: str, reason: str) -> None:
        super().__init__(
            f"Failed to delete entry: {entry_id}",
            "STORAGE_DELETE_ERROR",
            {"entry_id": entry_id, "reason": reason},
        )


class StoragePermissionError(StorageException):
    """Resolved blob path escapes the storage root."""

    def __init__(self, entry_id: str, operation: str) -> None:
        super().__init__(
            f"Permission denied for {operation} on {entry_id}",
            "STORAGE_PERMISSION_ERROR",
            {"entry_id": entry_id, "operation": operation},
        )
