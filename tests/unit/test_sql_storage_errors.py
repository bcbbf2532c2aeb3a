"""Tests for how SqlStorage classifies insert failures (no database needed)."""

from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine

from sharegate.infrastructure.exceptions import (
    DuplicateIdentifierError,
    IdentifierAllocationError,
    StorageBackendError,
)
from sharegate.infrastructure.storage.blob_store import LocalBlobStore
from sharegate.infrastructure.storage.sql_storage import SqlStorage, is_duplicate_key


class _DriverError(Exception):
    """Stand-in for a DBAPI error carrying a SQLSTATE."""

    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def _integrity_error(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT INTO upload_entry ...", {}, orig)


@pytest.fixture
async def sql_storage(tmp_path: Path):
    # The engine is never connected; _transaction is replaced per test.
    engine = create_async_engine("postgresql+asyncpg://sharegate@localhost:1/sharegate")
    storage = SqlStorage(engine, LocalBlobStore(str(tmp_path / "blobs")), max_id_attempts=3)
    yield storage
    await engine.dispose()


def _failing_transaction(orig: Exception, calls: list[str]):
    @asynccontextmanager
    async def transaction(operation: str):
        calls.append(operation)
        raise _integrity_error(orig)
        yield  # pragma: no cover

    return transaction


@pytest.mark.parametrize(
    ("orig", "expected"),
    [
        (_DriverError("duplicate key value", sqlstate="23505"), True),
        (_DriverError('null value in column "content_type"', sqlstate="23502"), False),
        (_DriverError("violates check constraint", sqlstate="23514"), False),
        (_DriverError("UNIQUE constraint failed: upload_entry.id"), True),
        (_DriverError("NOT NULL constraint failed: upload_entry.content_type"), False),
    ],
)
def test_is_duplicate_key(orig: Exception, expected: bool) -> None:
    assert is_duplicate_key(_integrity_error(orig)) is expected


async def test_unique_violation_is_retried_then_exhausted(
    sql_storage: SqlStorage, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []
    orig = _DriverError("duplicate key value", sqlstate="23505")
    monkeypatch.setattr(sql_storage, "_transaction", _failing_transaction(orig, calls))
    entry = sql_storage.create_entry()
    with pytest.raises(IdentifierAllocationError):
        await entry.save()
    assert calls == ["insert"] * 3


async def test_other_constraint_failure_is_not_retried(
    sql_storage: SqlStorage, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list[str] = []
    orig = _DriverError('null value in column "content_type"', sqlstate="23502")
    monkeypatch.setattr(sql_storage, "_transaction", _failing_transaction(orig, calls))
    entry = sql_storage.create_entry()
    with pytest.raises(StorageBackendError) as exc_info:
        await entry.save()
    assert not isinstance(exc_info.value, DuplicateIdentifierError)
    assert exc_info.value.details["operation"] == "insert"
    assert calls == ["insert"]
    assert entry.id is None
