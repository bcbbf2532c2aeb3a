"""Local filesystem blob store with path validation and atomic publication."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Any

import aiofiles
import aiofiles.os
import anyio

from sharegate.infrastructure.exceptions import (
    StorageDeleteError,
    StoragePermissionError,
    StorageReadError,
    StorageWriteError,
)


class LocalBlobWriter:
    """Streams bytes into a temp file next to the target; close() renames it into place.

    Readers never see a partially written blob: the target path only exists
    once close() has flushed and renamed the temp file.
    """

    def __init__(self, entry_id: str, handle: Any, temp_path: Path, target_path: Path) -> None:
        self.entry_id = entry_id
        self.bytes_written = 0
        self._handle = handle
        self._temp_path = temp_path
        self._target_path = target_path
        self._finished = False

    async def write(self, data: bytes) -> None:
        if self._finished:
            raise StorageWriteError(self.entry_id, "writer already closed")
        try:
            await self._handle.write(data)
        except OSError as e:
            raise StorageWriteError(self.entry_id, str(e)) from e
        self.bytes_written += len(data)

    async def close(self) -> None:
        if self._finished:
            return
        self._finished = True
        try:
            await self._handle.flush()
            await self._handle.close()
            os.chmod(self._temp_path, 0o640)
            await aiofiles.os.replace(self._temp_path, self._target_path)
        except OSError as e:
            await self._release_temp()
            raise StorageWriteError(self.entry_id, str(e)) from e
        except BaseException:
            await self._release_temp()
            raise

    async def abort(self) -> None:
        if self._finished:
            return
        self._finished = True
        await self._release_temp()

    async def _release_temp(self) -> None:
        # Runs on cancellation too; the temp file must not outlive the writer.
        with anyio.CancelScope(shield=True):
            try:
                await self._handle.close()
            finally:
                await self._discard_temp()

    async def _discard_temp(self) -> None:
        try:
            await aiofiles.os.remove(self._temp_path)
        except FileNotFoundError:
            pass

    async def __aenter__(self) -> LocalBlobWriter:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            await self.close()
        else:
            await self.abort()


class LocalBlobReader:
    """Seekable async reader over a published blob."""

    def __init__(self, entry_id: str, handle: Any, size: int) -> None:
        self.entry_id = entry_id
        self.size = size
        self._handle = handle
        self._closed = False

    async def read(self, size: int) -> bytes:
        try:
            return await self._handle.read(size)
        except (OSError, ValueError) as e:
            raise StorageReadError(self.entry_id, str(e)) from e

    async def seek(self, offset: int) -> None:
        try:
            await self._handle.seek(offset)
        except (OSError, ValueError) as e:
            raise StorageReadError(self.entry_id, str(e)) from e

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._handle.close()


class LocalBlobStore:
    """Blobs as files under root, sharded by the first two characters of the id.

    Paths are validated against root. Writes use temp file + rename.
    """

    def __init__(self, root: str) -> None:
        """Initialize local blob storage.

        Args:
            root: Base directory for all blobs; created if missing.
        """
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _get_full_path(self, entry_id: str) -> Path:
        """Resolve and validate path under root. Raises StoragePermissionError if traversal."""
        if not entry_id or "/" in entry_id or "\\" in entry_id or entry_id in (".", ".."):
            raise StoragePermissionError(entry_id, "path_validation")
        full_path = (self.root / entry_id[:2] / entry_id).resolve()
        try:
            full_path.relative_to(self.root)
        except ValueError as e:
            raise StoragePermissionError(entry_id, "path_validation") from e
        return full_path

    async def open_writer(self, entry_id: str) -> LocalBlobWriter:
        target_path = self._get_full_path(entry_id)
        try:
            await aiofiles.os.makedirs(target_path.parent, mode=0o750, exist_ok=True)
            temp_fd, temp_name = tempfile.mkstemp(
                dir=target_path.parent,
                prefix=".tmp_",
            )
            os.close(temp_fd)
            handle = await aiofiles.open(temp_name, "wb")
        except OSError as e:
            raise StorageWriteError(entry_id, str(e)) from e
        return LocalBlobWriter(entry_id, handle, Path(temp_name), target_path)

    async def open_reader(self, entry_id: str) -> LocalBlobReader:
        file_path = self._get_full_path(entry_id)
        try:
            stat = await aiofiles.os.stat(file_path)
            handle = await aiofiles.open(file_path, "rb")
        except FileNotFoundError as e:
            raise StorageReadError(entry_id, "blob missing") from e
        except OSError as e:
            raise StorageReadError(entry_id, str(e)) from e
        return LocalBlobReader(entry_id, handle, stat.st_size)

    async def delete(self, entry_id: str) -> bool:
        """Delete blob. Returns True if deleted, False if not found."""
        file_path = self._get_full_path(entry_id)
        try:
            await aiofiles.os.remove(file_path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageDeleteError(entry_id, str(e)) from e
        try:
            file_path.parent.rmdir()
        except OSError:
            pass  # shard directory still in use
        return True
