"""Domain entities."""

from sharegate.domain.entities.entry import DEFAULT_CONTENT_TYPE, EntryRecord

__all__ = ["DEFAULT_CONTENT_TYPE", "EntryRecord"]
