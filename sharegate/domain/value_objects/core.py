"""Domain value objects for uploaded entries.

Filename and path-segment rules shared by the ingestion and delivery
pipelines. Filenames are client-supplied and only ever used for the
delivered extension and Content-Disposition; they never reach a path.
"""

from dataclasses import dataclass


def sanitize_filename(filename: str | None) -> str:
    """Reduce a client filename to its basename (either separator), without NULs.

    Returns an empty string when nothing usable is left.
    """
    if not filename:
        return ""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    return name.replace("\x00", "").strip()


def file_extension(filename: str) -> str:
    """Return filename from its last '.' to the end, or '' if there is no dot.

    >>> file_extension("photo.PNG")
    '.PNG'
    >>> file_extension("archive.tar.gz")
    '.gz'
    """
    index = filename.rfind(".")
    if index == -1:
        return ""
    return filename[index:]


@dataclass(frozen=True)
class EntryPath:
    """Value object for the {id} path segment of a get request.

    The segment is '<id>' or '<id><extension>'; the extension is cosmetic
    and discarded. has_extension records whether a dot was present so the
    caller can apply its policy for bare identifiers.
    """

    entry_id: str
    extension: str

    @property
    def has_extension(self) -> bool:
        return bool(self.extension)

    @classmethod
    def parse(cls, segment: str) -> "EntryPath":
        """Split segment at its last '.'; without a dot the whole segment is the id."""
        index = segment.rfind(".")
        if index == -1:
            return cls(entry_id=segment, extension="")
        return cls(entry_id=segment[:index], extension=segment[index:])
