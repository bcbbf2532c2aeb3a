"""Content-Disposition policy: inline for whitelisted media types, attachment otherwise."""

from collections.abc import Iterable
from urllib.parse import quote


class DispositionPolicy:
    """Decide inline vs attachment by case-insensitive media type essence."""

    def __init__(self, inline_types: Iterable[str]) -> None:
        self.inline_types = frozenset(t.strip().lower() for t in inline_types if t.strip())

    def is_inline(self, content_type: str) -> bool:
        essence = content_type.split(";", 1)[0].strip().lower()
        return essence in self.inline_types

    def header_value(self, content_type: str, filename: str) -> str:
        """Build the Content-Disposition header for a delivered entry."""
        disposition = "inline" if self.is_inline(content_type) else "attachment"
        if not filename:
            return disposition
        quoted = quote(filename)
        if quoted != filename:
            return f"{disposition}; filename*=utf-8''{quoted}"
        return f'{disposition}; filename="{filename}"'
