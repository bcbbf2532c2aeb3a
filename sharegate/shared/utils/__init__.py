"""Shared utilities: datetime, generators."""

from sharegate.shared.utils.datetime import (
    ensure_utc,
    from_http_date,
    to_http_date,
    utc_now,
)
from sharegate.shared.utils.generators import generate_cuid, is_valid_cuid

__all__ = [
    "generate_cuid",
    "is_valid_cuid",
    "utc_now",
    "ensure_utc",
    "to_http_date",
    "from_http_date",
]
