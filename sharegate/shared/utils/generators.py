"""ID generators (CUID2) and identifier format checks."""

import re

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()

# cuid2 output: lowercase letter followed by lowercase alphanumerics.
_CUID_RE = re.compile(r"^[a-z][a-z0-9]{1,31}$")


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2).

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def is_valid_cuid(value: str | None) -> bool:
    """Return True if value has the shape of a CUID2 identifier."""
    if not value:
        return False
    return bool(_CUID_RE.fullmatch(value))
