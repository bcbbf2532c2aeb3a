"""
UTC datetime utilities for consistent timezone handling.

All datetime values in the system should be timezone-aware UTC.
Use these helpers instead of datetime.now() or datetime.utcnow().
"""

from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Use at repository/persistence boundaries to normalize datetimes.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume it's UTC and attach timezone
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def to_http_date(dt: datetime) -> str:
    """Format a datetime as an IMF-fixdate (e.g. 'Sun, 06 Nov 1994 08:49:37 GMT')."""
    utc = ensure_utc(dt)
    assert utc is not None
    return format_datetime(utc.replace(microsecond=0), usegmt=True)


def from_http_date(value: str | None) -> datetime | None:
    """Parse an HTTP date header. Returns None when missing or unparsable."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return ensure_utc(parsed)
