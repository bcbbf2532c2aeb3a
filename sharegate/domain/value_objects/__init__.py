"""Domain value objects."""

from sharegate.domain.value_objects.core import (
    EntryPath,
    file_extension,
    sanitize_filename,
)

__all__ = ["EntryPath", "file_extension", "sanitize_filename"]
