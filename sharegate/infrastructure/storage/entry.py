"""Storage entry and the backend-independent half of the storage contract.

BaseStorage owns the identifier allocation loop and the entry lifecycle;
subclasses supply four row primitives (_insert_row, _update_row,
_delete_row, _fetch_row) plus identifier validation. Every insert attempt
is a single check-and-reserve step in the backend, which reports a taken
identifier with DuplicateIdentifierError instead of being pre-checked.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

import anyio

from sharegate.application.interfaces.storage import IBlobReader, IBlobStore, IBlobWriter
from sharegate.domain.entities.entry import EntryRecord
from sharegate.infrastructure.exceptions import (
    DuplicateIdentifierError,
    EntryStateError,
    IdentifierAllocationError,
    StorageWriteError,
)
from sharegate.shared.utils.datetime import utc_now
from sharegate.shared.utils.generators import generate_cuid, is_valid_cuid

logger = logging.getLogger(__name__)


class StorageEntry:
    """Entry bound to the storage that created or loaded it.

    Attribute changes stay local until save() or update() persists them.
    A writer that closes cleanly leaves its size and digest pending; the
    next update() turns them into the stored size and ETag, so rewriting a
    published entry changes its validators.
    """

    def __init__(self, storage: BaseStorage, record: EntryRecord) -> None:
        self._storage = storage
        self._record = record
        self._writer_open = False
        self._pending_content: tuple[int, str] | None = None

    # ---- Metadata ----

    @property
    def id(self) -> str | None:
        return self._record.id

    @property
    def author(self) -> str | None:
        return self._record.author

    @author.setter
    def author(self, value: str | None) -> None:
        self._record.author = value

    @property
    def filename(self) -> str:
        return self._record.filename

    @filename.setter
    def filename(self, value: str) -> None:
        self._record.filename = value

    @property
    def content_type(self) -> str:
        return self._record.content_type

    @content_type.setter
    def content_type(self, value: str) -> None:
        self._record.content_type = value

    @property
    def size(self) -> int:
        return self._record.size

    @size.setter
    def size(self, value: int) -> None:
        self._record.size = value

    @property
    def etag(self) -> str | None:
        return self._record.etag

    @etag.setter
    def etag(self, value: str | None) -> None:
        self._record.etag = value

    @property
    def last_modified(self) -> datetime:
        return self._record.last_modified

    @last_modified.setter
    def last_modified(self, value: datetime) -> None:
        self._record.last_modified = value

    @property
    def upload_date(self) -> datetime:
        return self._record.upload_date

    @property
    def published(self) -> bool:
        return self._record.published

    @property
    def media_type(self) -> str:
        return self._record.media_type

    def snapshot(self) -> EntryRecord:
        """Detached copy of the current metadata."""
        return self._record.copy()

    # ---- Lifecycle ----

    async def save(self) -> None:
        if self._record.id is not None:
            raise EntryStateError("save", "entry already saved")
        await self._storage._reserve(self._record)

    async def open_writer(self) -> IBlobWriter:
        entry_id = self._require_id("open_writer")
        if self._writer_open:
            raise StorageWriteError(entry_id, "a writer is already open for this entry")
        writer = await self._storage.blobs.open_writer(entry_id)
        self._writer_open = True
        return _TrackedWriter(writer, self)

    async def open_reader(self) -> IBlobReader:
        entry_id = self._require_id("open_reader")
        return await self._storage.blobs.open_reader(entry_id)

    async def update(self) -> None:
        self._require_id("update")
        if self._writer_open:
            raise EntryStateError("update", "blob writer still open")
        previous = self._record.copy()
        if self._pending_content is not None:
            self._record.size, digest = self._pending_content
            self._record.etag = f'"{digest}"'
        self._record.last_modified = utc_now()
        self._record.published = True
        try:
            await self._storage._update_row(self._record.copy())
        except BaseException:
            self._record = previous
            raise
        self._pending_content = None

    async def delete(self) -> None:
        entry_id = self._require_id("delete")
        await self._storage._delete_row(entry_id)
        await self._storage.blobs.delete(entry_id)

    def _require_id(self, operation: str) -> str:
        if self._record.id is None:
            raise EntryStateError(operation, "entry not saved")
        return self._record.id

    def _writer_released(self, content: tuple[int, str] | None = None) -> None:
        self._writer_open = False
        if content is not None:
            self._pending_content = content


class _TrackedWriter:
    """Delegating writer that hashes what it writes and reports back to its entry.

    A clean close hands (size, sha256) to the entry for the next update();
    an abort only releases the write capability.
    """

    def __init__(self, inner: IBlobWriter, entry: StorageEntry) -> None:
        self._inner = inner
        self._entry = entry
        self._sha256 = hashlib.sha256()

    @property
    def bytes_written(self) -> int:
        return self._inner.bytes_written

    async def write(self, data: bytes) -> None:
        await self._inner.write(data)
        self._sha256.update(data)

    async def close(self) -> None:
        try:
            await self._inner.close()
        except BaseException:
            self._entry._writer_released()
            raise
        self._entry._writer_released((self._inner.bytes_written, self._sha256.hexdigest()))

    async def abort(self) -> None:
        try:
            with anyio.CancelScope(shield=True):
                await self._inner.abort()
        finally:
            self._entry._writer_released()

    async def __aenter__(self) -> _TrackedWriter:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.close()
        else:
            await self.abort()


class BaseStorage(ABC):
    """Shared entry lifecycle over backend row primitives and a blob store."""

    def __init__(
        self,
        blob_store: IBlobStore,
        *,
        id_factory: Callable[[], str] = generate_cuid,
        max_id_attempts: int = 8,
    ) -> None:
        self.blobs = blob_store
        self._id_factory = id_factory
        self._max_id_attempts = max_id_attempts

    def create_entry(self) -> StorageEntry:
        now = utc_now()
        return StorageEntry(self, EntryRecord(id=None, last_modified=now, upload_date=now))

    async def load(self, entry_id: str) -> StorageEntry | None:
        if not self.is_valid_identifier(entry_id):
            return None
        record = await self._fetch_row(entry_id)
        if record is None or not record.published:
            return None
        return StorageEntry(self, record)

    def is_valid_identifier(self, entry_id: str) -> bool:
        """Syntactic check; ids that fail it can never resolve."""
        return is_valid_cuid(entry_id)

    async def purge_pending(self, older_than: datetime) -> int:
        purged = 0
        for entry_id in await self._list_pending(older_than):
            await self._delete_row(entry_id)
            await self.blobs.delete(entry_id)
            purged += 1
        if purged:
            logger.info("Purged %d pending entries reserved before %s", purged, older_than)
        return purged

    async def connect(self) -> None:
        """Open backend resources. Default: nothing to do."""

    async def close(self) -> None:
        """Release backend resources. Default: nothing to do."""

    async def _reserve(self, record: EntryRecord) -> None:
        """Assign a fresh id and insert the row, retrying on collisions."""
        for attempt in range(1, self._max_id_attempts + 1):
            candidate = self._id_factory()
            row = record.copy()
            row.id = candidate
            row.published = False
            try:
                await self._insert_row(row)
            except DuplicateIdentifierError:
                logger.warning(
                    "Identifier collision on attempt %d/%d; regenerating",
                    attempt,
                    self._max_id_attempts,
                )
                continue
            record.id = candidate
            record.published = False
            return
        raise IdentifierAllocationError(self._max_id_attempts)

    @abstractmethod
    async def _insert_row(self, record: EntryRecord) -> None:
        """Insert record atomically. Raise DuplicateIdentifierError if the id is taken."""

    @abstractmethod
    async def _update_row(self, record: EntryRecord) -> None:
        """Replace the stored metadata of record.id."""

    @abstractmethod
    async def _delete_row(self, entry_id: str) -> None:
        """Remove the row for entry_id (no-op if absent)."""

    @abstractmethod
    async def _fetch_row(self, entry_id: str) -> EntryRecord | None:
        """Return a detached copy of the row, published or not."""

    @abstractmethod
    async def _list_pending(self, older_than: datetime) -> list[str]:
        """Ids of unpublished rows whose upload_date is before older_than."""
