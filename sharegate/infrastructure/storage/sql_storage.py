"""SQLAlchemy metadata backend (Postgres via asyncpg in production).

One short transaction per row operation. The primary key on upload_entry.id
turns a concurrent reservation of the same identifier into a unique
violation on insert, which is reported as DuplicateIdentifierError. Any
other integrity failure is a backend error and is not retried.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from sharegate.domain.entities.entry import EntryRecord
from sharegate.infrastructure.exceptions import DuplicateIdentifierError, StorageBackendError
from sharegate.infrastructure.persistence.database import create_schema, create_session_factory
from sharegate.infrastructure.persistence.models import UploadEntry
from sharegate.infrastructure.storage.entry import BaseStorage

logger = logging.getLogger(__name__)

# SQLSTATE for unique_violation; asyncpg and psycopg expose it on the driver error.
UNIQUE_VIOLATION = "23505"


def is_duplicate_key(error: IntegrityError) -> bool:
    """True when error is a unique violation (the primary key is the only unique key)."""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    # Drivers without SQLSTATE (sqlite) only describe the constraint in the message.
    message = str(orig).lower()
    return "unique" in message or "primary key" in message


class SqlStorage(BaseStorage):
    """Rows in the upload_entry table; blobs in the configured blob store."""

    def __init__(
        self,
        engine: AsyncEngine,
        *args,
        create_schema_on_connect: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.engine = engine
        self._session_factory: async_sessionmaker[AsyncSession] = create_session_factory(engine)
        self._create_schema_on_connect = create_schema_on_connect

    async def connect(self) -> None:
        if self._create_schema_on_connect:
            await create_schema(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Session in a transaction; SQLAlchemy failures become StorageBackendError."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError:
            raise
        except (SQLAlchemyError, OSError) as e:
            logger.error("Metadata %s failed: %s", operation, e)
            raise StorageBackendError(operation, str(e)) from e

    async def _insert_row(self, record: EntryRecord) -> None:
        assert record.id is not None
        try:
            async with self._transaction("insert") as session:
                session.add(UploadEntry.from_record(record))
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise DuplicateIdentifierError(record.id) from e
            logger.error("Metadata insert of %s violated a constraint: %s", record.id, e.orig)
            raise StorageBackendError("insert", str(e.orig)) from e

    async def _update_row(self, record: EntryRecord) -> None:
        async with self._transaction("update") as session:
            result = await session.execute(
                update(UploadEntry)
                .where(UploadEntry.id == record.id)
                .values(
                    author=record.author,
                    filename=record.filename,
                    content_type=record.content_type,
                    size=record.size,
                    etag=record.etag,
                    last_modified=record.last_modified,
                    published=record.published,
                )
            )
            if result.rowcount == 0:
                raise StorageBackendError("update", f"row {record.id} no longer exists")

    async def _delete_row(self, entry_id: str) -> None:
        async with self._transaction("delete") as session:
            await session.execute(delete(UploadEntry).where(UploadEntry.id == entry_id))

    async def _fetch_row(self, entry_id: str) -> EntryRecord | None:
        async with self._transaction("load") as session:
            result = await session.execute(select(UploadEntry).where(UploadEntry.id == entry_id))
            row = result.scalar_one_or_none()
            return row.to_record() if row is not None else None

    async def _list_pending(self, older_than: datetime) -> list[str]:
        async with self._transaction("list_pending") as session:
            result = await session.execute(
                select(UploadEntry.id).where(
                    UploadEntry.published.is_(False),
                    UploadEntry.upload_date < older_than,
                )
            )
            return list(result.scalars().all())
