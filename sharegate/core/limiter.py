"""Rate limiter for SlowAPI.

One Limiter per app (create_limiter), stored on app.state.limiter and
handed to the gateway, so route limits never leak between app instances.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address


def create_limiter(enabled: bool = True) -> Limiter:
    """Return a Limiter keyed on the client address."""
    return Limiter(key_func=get_remote_address, enabled=enabled)
