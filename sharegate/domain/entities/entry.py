"""Upload entry domain entity.

Represents the stored metadata of one uploaded object, independent of
persistence. Backends persist and return EntryRecord snapshots; the blob
bytes live in a separate store keyed by id.
"""

from dataclasses import dataclass, replace
from datetime import datetime

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class EntryRecord:
    """Metadata row for one upload.

    published is False from reservation until the blob is written and the
    final metadata committed; lookups must treat unpublished rows as absent.
    """

    id: str | None
    last_modified: datetime
    upload_date: datetime
    author: str | None = None
    filename: str = ""
    content_type: str = DEFAULT_CONTENT_TYPE
    size: int = 0
    etag: str | None = None
    published: bool = False

    def copy(self) -> "EntryRecord":
        """Return a detached copy (backends never share a live record with callers)."""
        return replace(self)

    @property
    def media_type(self) -> str:
        """Content type essence: lowercased, parameters removed."""
        return self.content_type.split(";", 1)[0].strip().lower()
