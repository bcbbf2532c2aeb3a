"""Upload ingestion: multipart request body -> durable, published entry."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anyio
from python_multipart.exceptions import FormParserError
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser
from starlette.requests import ClientDisconnect, Request

from sharegate.application.interfaces.storage import IEntry, IStorage
from sharegate.application.services.content_sniffer import SNIFF_LENGTH, sniff_content_type
from sharegate.domain.exceptions import MalformedUploadException
from sharegate.domain.value_objects.core import file_extension, sanitize_filename
from sharegate.shared.telemetry.logging import request_id_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    """Identifier and delivered extension of a finished upload."""

    entry_id: str
    extension: str
    size: int
    content_type: str


class UploadService:
    """Single responsibility: stream one uploaded file part into a new entry.

    Parts larger than memory_threshold are spooled to a temporary file by
    the multipart parser, and the copy into the blob store runs in
    chunk_size pieces, so memory use is bounded regardless of upload size.
    """

    def __init__(
        self,
        storage: IStorage,
        *,
        field_name: str | None = None,
        chunk_size: int = 64 * 1024,
        memory_threshold: int = 1024 * 1024,
        max_files: int = 16,
        max_fields: int = 64,
    ) -> None:
        self.storage = storage
        self.field_name = field_name
        self.chunk_size = chunk_size
        self.memory_threshold = memory_threshold
        self.max_files = max_files
        self.max_fields = max_fields

    async def ingest(self, request: Request) -> UploadResult:
        """Parse the request, store its upload part and return the new identifier.

        Raises:
            MalformedUploadException: Body is not multipart or has no file part.
            StorageException: Reservation, write or metadata update failed.
        """
        request_id = request_id_of(request)
        form = await self._parse_form(request)
        try:
            upload = self._select_upload(form)
            declared = (upload.content_type or "").strip()
            content_type = declared or await self._sniff(upload)
            filename = sanitize_filename(upload.filename)

            entry = self.storage.create_entry()
            entry.author = getattr(request.state, "author", None)
            await entry.save()
            assert entry.id is not None
            logger.info("[%s] Reserved entry %s for upload %r", request_id, entry.id, filename)

            try:
                await self._copy(upload, entry)
                entry.content_type = content_type
                entry.filename = filename
                await entry.update()
            except BaseException:
                await self._discard(entry, request_id)
                raise
        finally:
            await form.close()

        logger.info(
            "[%s] Stored entry %s (%d bytes, %s)",
            request_id,
            entry.id,
            entry.size,
            content_type,
        )
        return UploadResult(
            entry_id=entry.id,
            extension=file_extension(filename),
            size=entry.size,
            content_type=content_type,
        )

    async def _parse_form(self, request: Request) -> FormData:
        """Parse multipart/form-data; anything else is a client error."""
        raw_type = request.headers.get("content-type", "")
        media_type = raw_type.split(";", 1)[0].strip().lower()
        if media_type != "multipart/form-data":
            raise MalformedUploadException(
                f"expected multipart/form-data, got {media_type or 'no content type'}"
            )
        parser = MultiPartParser(
            request.headers,
            request.stream(),
            max_files=self.max_files,
            max_fields=self.max_fields,
        )
        parser.spool_max_size = self.memory_threshold
        try:
            return await parser.parse()
        except (MultiPartException, FormParserError) as e:
            raise MalformedUploadException(str(e)) from e
        except ClientDisconnect as e:
            logger.warning("Client disconnected while sending upload body")
            raise MalformedUploadException("client disconnected") from e

    def _select_upload(self, form: FormData) -> UploadFile:
        """Return the configured field's file, or the first file part.

        Other parts were drained by the parser and are ignored.
        """
        if self.field_name:
            for value in form.getlist(self.field_name):
                if isinstance(value, UploadFile):
                    return value
            raise MalformedUploadException(f"no file in field {self.field_name!r}")
        for _, value in form.multi_items():
            if isinstance(value, UploadFile):
                return value
        raise MalformedUploadException("no file part in upload")

    async def _sniff(self, upload: UploadFile) -> str:
        """Detect a type from the first bytes, then rewind so nothing is lost."""
        head = await upload.read(SNIFF_LENGTH)
        await upload.seek(0)
        return sniff_content_type(head)

    async def _copy(self, upload: UploadFile, entry: IEntry) -> None:
        """Copy the part into the entry blob in fixed-size chunks.

        The entry writer records size and digest; update() stores them.
        """
        async with await entry.open_writer() as writer:
            while chunk := await upload.read(self.chunk_size):
                await writer.write(chunk)

    async def _discard(self, entry: IEntry, request_id: str) -> None:
        """Best-effort removal of a reserved entry whose upload did not complete.

        Runs shielded from cancellation.
        """
        with anyio.CancelScope(shield=True):
            try:
                await entry.delete()
            except Exception:
                logger.exception(
                    "[%s] Failed to discard incomplete entry %s", request_id, entry.id
                )
                return
        logger.warning("[%s] Discarded incomplete entry %s", request_id, entry.id)
