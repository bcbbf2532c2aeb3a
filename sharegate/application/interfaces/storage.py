"""Storage ports (DIP). Implementations: SqlStorage, MemoryStorage over LocalBlobStore.

The pipelines depend only on these protocols, so any backend that provides
the capability set {create_entry, load, save, update, delete, open_reader,
open_writer} plugs in without touching them.
"""

from __future__ import annotations

from datetime import datetime
from types import TracebackType
from typing import Protocol


class IBlobWriter(Protocol):
    """Write capability for one entry's blob. Use as an async context manager.

    Leaving the context normally publishes the blob (close); leaving it with
    an exception discards it (abort). Either way the handle is released.
    """

    bytes_written: int

    async def write(self, data: bytes) -> None:
        """Append data to the blob."""
        ...

    async def close(self) -> None:
        """Flush and publish the blob under the entry id."""
        ...

    async def abort(self) -> None:
        """Discard everything written so far. Idempotent."""
        ...

    async def __aenter__(self) -> IBlobWriter: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...


class IBlobReader(Protocol):
    """Seekable read capability for one entry's blob."""

    size: int

    async def read(self, size: int) -> bytes:
        """Read up to size bytes; b'' at end of blob."""
        ...

    async def seek(self, offset: int) -> None:
        """Move the read position to offset from the start."""
        ...

    async def aclose(self) -> None:
        """Release the handle. Idempotent."""
        ...


class IBlobStore(Protocol):
    """Byte store addressed by entry id, separate from metadata."""

    async def open_writer(self, entry_id: str) -> IBlobWriter: ...

    async def open_reader(self, entry_id: str) -> IBlobReader: ...

    async def delete(self, entry_id: str) -> bool:
        """Delete blob. Returns True if deleted, False if not found."""
        ...


class IEntry(Protocol):
    """One stored object: metadata plus blob read/write capability."""

    id: str | None
    author: str | None
    filename: str
    content_type: str
    size: int
    etag: str | None
    last_modified: datetime
    upload_date: datetime

    @property
    def media_type(self) -> str: ...

    async def save(self) -> None:
        """Reserve a backend-unique id and insert the (unpublished) row."""
        ...

    async def open_writer(self) -> IBlobWriter: ...

    async def open_reader(self) -> IBlobReader: ...

    async def update(self) -> None:
        """Persist metadata and publish the entry. Call after the writer closed.

        Size and ETag are taken from the last writer that closed cleanly.
        """
        ...

    async def delete(self) -> None: ...


class IStorage(Protocol):
    """Factory and lookup for entries. Owns identifier uniqueness."""

    def create_entry(self) -> IEntry:
        """Return a new, unsaved entry with default timestamps."""
        ...

    async def load(self, entry_id: str) -> IEntry | None:
        """Return the published entry, or None (miss, unpublished, invalid id)."""
        ...

    async def purge_pending(self, older_than: datetime) -> int:
        """Delete unpublished entries reserved before older_than. Returns count."""
        ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...
