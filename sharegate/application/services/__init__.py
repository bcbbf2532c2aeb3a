"""Application services: sniffing, disposition, HTTP conditional requests."""

from sharegate.application.services.conditional import (
    ByteRange,
    PreconditionOutcome,
    evaluate_preconditions,
    parse_range_header,
)
from sharegate.application.services.content_sniffer import (
    SNIFF_LENGTH,
    sniff_content_type,
)
from sharegate.application.services.disposition import DispositionPolicy

__all__ = [
    "ByteRange",
    "DispositionPolicy",
    "PreconditionOutcome",
    "SNIFF_LENGTH",
    "evaluate_preconditions",
    "parse_range_header",
    "sniff_content_type",
]
