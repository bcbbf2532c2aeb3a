"""Entry delivery: identifier path segment -> cached, range-aware streamed response."""

from __future__ import annotations

import logging
import secrets
from collections.abc import AsyncIterator, Sequence

from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import Response, StreamingResponse

from sharegate.application.interfaces.storage import IBlobReader, IEntry, IStorage
from sharegate.application.services.conditional import (
    ByteRange,
    PreconditionOutcome,
    evaluate_preconditions,
    if_range_allows,
    parse_range_header,
)
from sharegate.application.services.disposition import DispositionPolicy
from sharegate.domain.exceptions import EntryNotFoundException
from sharegate.domain.value_objects.core import EntryPath
from sharegate.infrastructure.exceptions import StorageException, StorageReadError
from sharegate.shared.telemetry.logging import request_id_of
from sharegate.shared.utils.datetime import to_http_date

logger = logging.getLogger(__name__)

# A body segment is either literal bytes (multipart framing) or a blob range.
_Segment = bytes | ByteRange


class DeliveryService:
    """Single responsibility: resolve an entry and stream it with caching headers."""

    def __init__(
        self,
        storage: IStorage,
        disposition: DispositionPolicy,
        *,
        buffer_size: int = 32 * 1024,
        require_extension: bool = False,
        cache_control: str | None = None,
    ) -> None:
        self.storage = storage
        self.disposition = disposition
        self.buffer_size = buffer_size
        self.require_extension = require_extension
        self.cache_control = cache_control

    async def deliver(self, request: Request, segment: str) -> Response:
        """Serve the entry named by segment ('<id>' or '<id>.<ext>').

        Raises:
            EntryNotFoundException: No published entry (or lookup failed).
            PreconditionFailedException: If-Match / If-Unmodified-Since failed.
            RangeNotSatisfiableException: No requested range overlaps the blob.
            StorageReadError: Blob could not be opened.
        """
        entry = await self._resolve(segment, request_id_of(request))
        headers = self._entity_headers(entry)

        outcome = evaluate_preconditions(
            request.headers,
            etag=entry.etag,
            last_modified=entry.last_modified,
            method=request.method,
        )
        if outcome is PreconditionOutcome.NOT_MODIFIED:
            return Response(status_code=304, headers=headers)

        reader = await entry.open_reader()
        try:
            return self._build_response(request, entry, reader, headers)
        except BaseException:
            await reader.aclose()
            raise

    async def _resolve(self, segment: str, request_id: str) -> IEntry:
        path = EntryPath.parse(segment)
        if self.require_extension and not path.has_extension:
            raise EntryNotFoundException(path.entry_id)
        try:
            entry = await self.storage.load(path.entry_id)
        except StorageException as e:
            # Lookup failures are reported as misses; the cause stays server-side.
            logger.error(
                "[%s] Lookup of %s failed: %s (%s)",
                request_id,
                path.entry_id,
                e.message,
                e.details,
            )
            raise EntryNotFoundException(path.entry_id) from e
        if entry is None:
            raise EntryNotFoundException(path.entry_id)
        return entry

    def _entity_headers(self, entry: IEntry) -> dict[str, str]:
        headers = {"last-modified": to_http_date(entry.last_modified)}
        if entry.etag:
            headers["etag"] = entry.etag
        if self.cache_control:
            headers["cache-control"] = self.cache_control
        return headers

    def _build_response(
        self,
        request: Request,
        entry: IEntry,
        reader: IBlobReader,
        headers: dict[str, str],
    ) -> Response:
        size = reader.size
        headers["accept-ranges"] = "bytes"
        headers["content-disposition"] = self.disposition.header_value(
            entry.content_type, entry.filename
        )

        ranges: list[ByteRange] | None = None
        if request.method.upper() == "GET" and if_range_allows(
            request.headers, etag=entry.etag, last_modified=entry.last_modified
        ):
            ranges = parse_range_header(request.headers.get("range"), size)

        status_code = 200
        segments: list[_Segment]
        if not ranges:
            segments = [ByteRange(0, size)] if size else []
            headers["content-type"] = entry.content_type
            headers["content-length"] = str(size)
        elif len(ranges) == 1:
            status_code = 206
            segments = [ranges[0]]
            headers["content-type"] = entry.content_type
            headers["content-range"] = ranges[0].content_range(size)
            headers["content-length"] = str(ranges[0].length)
        else:
            status_code = 206
            boundary = secrets.token_hex(16)
            segments = _multipart_segments(ranges, boundary, entry.content_type, size)
            headers["content-type"] = f"multipart/byteranges; boundary={boundary}"
            headers["content-length"] = str(
                sum(len(s) if isinstance(s, bytes) else s.length for s in segments)
            )

        return StreamingResponse(
            self._stream(entry, reader, segments),
            status_code=status_code,
            headers=headers,
            background=BackgroundTask(reader.aclose),
        )

    async def _stream(
        self,
        entry: IEntry,
        reader: IBlobReader,
        segments: Sequence[_Segment],
    ) -> AsyncIterator[bytes]:
        """Yield the body in buffer_size chunks; always releases the reader.

        Headers are already on the wire when this runs, so a read failure
        cannot become an error status: it is logged as an aborted transfer
        and re-raised so the server drops the connection.
        """
        try:
            for segment in segments:
                if isinstance(segment, bytes):
                    yield segment
                    continue
                await reader.seek(segment.start)
                remaining = segment.length
                while remaining > 0:
                    chunk = await reader.read(min(self.buffer_size, remaining))
                    if not chunk:
                        raise StorageReadError(entry.id or "", "blob shorter than expected")
                    remaining -= len(chunk)
                    yield chunk
        except StorageException as e:
            logger.error(
                "Aborted transfer of entry %s: %s (%s)", entry.id, e.message, e.details
            )
            raise
        finally:
            await reader.aclose()


def _multipart_segments(
    ranges: Sequence[ByteRange],
    boundary: str,
    content_type: str,
    size: int,
) -> list[_Segment]:
    """multipart/byteranges framing around each range."""
    segments: list[_Segment] = []
    for index, byte_range in enumerate(ranges):
        prefix = "\r\n" if index else ""
        part_header = (
            f"{prefix}--{boundary}\r\n"
            f"Content-Type: {content_type}\r\n"
            f"Content-Range: {byte_range.content_range(size)}\r\n\r\n"
        )
        segments.append(part_header.encode("latin-1"))
        segments.append(byte_range)
    segments.append(f"\r\n--{boundary}--\r\n".encode("latin-1"))
    return segments
