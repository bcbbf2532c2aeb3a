"""Process-local metadata backend.

Rows live in a dict owned by the storage instance; blobs still go to the
configured blob store. Suitable for development, tests and single-process
deployments that do not need metadata to survive a restart.
"""

from __future__ import annotations

from datetime import datetime

from sharegate.domain.entities.entry import EntryRecord
from sharegate.infrastructure.exceptions import DuplicateIdentifierError, StorageBackendError
from sharegate.infrastructure.storage.entry import BaseStorage


class MemoryStorage(BaseStorage):
    """Dict-backed rows.

    There is no await between the membership test and the assignment in
    _insert_row, so each reservation attempt is atomic on the event loop.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._rows: dict[str, EntryRecord] = {}

    async def _insert_row(self, record: EntryRecord) -> None:
        assert record.id is not None
        if record.id in self._rows:
            raise DuplicateIdentifierError(record.id)
        self._rows[record.id] = record.copy()

    async def _update_row(self, record: EntryRecord) -> None:
        assert record.id is not None
        if record.id not in self._rows:
            raise StorageBackendError("update", f"no row for {record.id}")
        self._rows[record.id] = record.copy()

    async def _delete_row(self, entry_id: str) -> None:
        self._rows.pop(entry_id, None)

    async def _fetch_row(self, entry_id: str) -> EntryRecord | None:
        row = self._rows.get(entry_id)
        return row.copy() if row is not None else None

    async def _list_pending(self, older_than: datetime) -> list[str]:
        return [
            entry_id
            for entry_id, row in self._rows.items()
            if not row.published and row.upload_date < older_than
        ]

    def __len__(self) -> int:
        return len(self._rows)
