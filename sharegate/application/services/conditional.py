"""HTTP conditional request and byte-range evaluation for entry delivery.

Follows RFC 9110 evaluation order the way static file servers do it:
If-Match / If-Unmodified-Since can fail the request (412); If-None-Match /
If-Modified-Since can short-circuit it (304); If-Range decides whether a
Range header is honoured. Everything here works from metadata only, so the
blob is not opened for 304 and 412 outcomes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sharegate.domain.exceptions import (
    PreconditionFailedException,
    RangeNotSatisfiableException,
)
from sharegate.shared.utils.datetime import ensure_utc, from_http_date

MAX_RANGES = 100


class PreconditionOutcome(str, Enum):
    """Result of precondition evaluation that does not fail the request."""

    PROCEED = "proceed"
    NOT_MODIFIED = "not_modified"


@dataclass(frozen=True)
class ByteRange:
    """Inclusive-start byte range of a blob."""

    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length - 1

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.end}/{size}"


def _parse_etags(header: str) -> list[tuple[str, bool]]:
    """Split an entity-tag list into (opaque_tag, is_weak) pairs; malformed items dropped."""
    tags: list[tuple[str, bool]] = []
    for raw in header.split(","):
        item = raw.strip()
        weak = False
        if item.startswith("W/"):
            weak = True
            item = item[2:]
        if len(item) >= 2 and item.startswith('"') and item.endswith('"'):
            tags.append((item, weak))
    return tags


def _split_etag(etag: str) -> tuple[str, bool]:
    if etag.startswith("W/"):
        return etag[2:], True
    return etag, False


def etag_matches(header: str, etag: str | None, *, weak: bool) -> bool:
    """Return True if etag is listed in header ('*' matches any existing etag).

    Strong comparison (weak=False) requires both tags to be strong.
    """
    if etag is None:
        return False
    if header.strip() == "*":
        return True
    current, current_weak = _split_etag(etag)
    for candidate, candidate_weak in _parse_etags(header):
        if candidate != current:
            continue
        if weak or not (candidate_weak or current_weak):
            return True
    return False


def _truncate(dt: datetime) -> datetime:
    utc = ensure_utc(dt)
    assert utc is not None
    return utc.replace(microsecond=0)


def evaluate_preconditions(
    headers: Mapping[str, str],
    *,
    etag: str | None,
    last_modified: datetime | None,
    method: str = "GET",
) -> PreconditionOutcome:
    """Evaluate conditional headers against entry metadata.

    Returns NOT_MODIFIED when the client copy is current, PROCEED otherwise.

    Raises:
        PreconditionFailedException: If-Match or If-Unmodified-Since fails,
            or If-None-Match matches on a non-GET/HEAD request.
    """
    safe_method = method.upper() in ("GET", "HEAD")

    if_match = headers.get("if-match")
    if if_match is not None:
        if not etag_matches(if_match, etag, weak=False):
            raise PreconditionFailedException("If-Match")
    else:
        since = from_http_date(headers.get("if-unmodified-since"))
        if since is not None and last_modified is not None:
            if _truncate(last_modified) > since:
                raise PreconditionFailedException("If-Unmodified-Since")

    if_none_match = headers.get("if-none-match")
    if if_none_match is not None:
        if etag_matches(if_none_match, etag, weak=True):
            if safe_method:
                return PreconditionOutcome.NOT_MODIFIED
            raise PreconditionFailedException("If-None-Match")
        return PreconditionOutcome.PROCEED

    if safe_method and last_modified is not None:
        since = from_http_date(headers.get("if-modified-since"))
        if since is not None and _truncate(last_modified) <= since:
            return PreconditionOutcome.NOT_MODIFIED
    return PreconditionOutcome.PROCEED


def if_range_allows(
    headers: Mapping[str, str],
    *,
    etag: str | None,
    last_modified: datetime | None,
) -> bool:
    """Return True if a Range header may be honoured (no If-Range, or it still matches)."""
    if_range = headers.get("if-range")
    if if_range is None:
        return True
    value = if_range.strip()
    if value.startswith('"') or value.startswith("W/"):
        return etag_matches(value, etag, weak=False)
    since = from_http_date(value)
    if since is None or last_modified is None:
        return False
    return _truncate(last_modified) == since


def parse_range_header(header: str | None, size: int) -> list[ByteRange] | None:
    """Parse a 'bytes=' Range header against a blob of size bytes.

    Returns None when the whole blob should be served: no header, another
    unit, a malformed range set, too many ranges, or ranges that together exceed
    the blob (cheaper to send it whole).

    Raises:
        RangeNotSatisfiableException: every well-formed range lies outside the blob.
    """
    if not header:
        return None
    unit, _, range_set = header.strip().partition("=")
    if unit.strip().lower() != "bytes" or not range_set.strip():
        return None
    parts = [p.strip() for p in range_set.split(",") if p.strip()]
    if not parts or len(parts) > MAX_RANGES:
        return None

    ranges: list[ByteRange] = []
    for part in parts:
        first, sep, last = part.partition("-")
        if not sep:
            return None
        first, last = first.strip(), last.strip()
        try:
            if not first:
                # Suffix range: the final N bytes.
                if not last:
                    return None
                suffix = int(last)
                if suffix < 0:
                    return None
                suffix = min(suffix, size)
                if suffix == 0:
                    continue
                ranges.append(ByteRange(start=size - suffix, length=suffix))
                continue
            start = int(first)
            end = int(last) if last else None
        except ValueError:
            return None
        if start < 0 or (end is not None and end < start):
            return None
        if start >= size:
            continue
        end = size - 1 if end is None else min(end, size - 1)
        ranges.append(ByteRange(start=start, length=end - start + 1))

    if not ranges:
        raise RangeNotSatisfiableException(size)
    if sum(r.length for r in ranges) > size:
        return None
    return ranges
