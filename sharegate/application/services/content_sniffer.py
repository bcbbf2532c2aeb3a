"""MIME type sniffing from the leading bytes of a payload (python-magic)."""

from sharegate.domain.entities.entry import DEFAULT_CONTENT_TYPE

SNIFF_LENGTH = 512

# libmagic answers for input it cannot classify as a concrete type.
_UNINFORMATIVE = {"application/x-empty", "inode/x-empty"}


def sniff_content_type(head: bytes) -> str:
    """Return the MIME type libmagic infers for head (at most SNIFF_LENGTH bytes used).

    Empty or unclassifiable input yields application/octet-stream.
    """
    if not head:
        return DEFAULT_CONTENT_TYPE
    # Imported lazily: libmagic is a system library only needed when a part
    # arrives without a declared type.
    import magic

    detected = magic.from_buffer(head[:SNIFF_LENGTH], mime=True)
    if not detected or detected in _UNINFORMATIVE:
        return DEFAULT_CONTENT_TYPE
    return detected
