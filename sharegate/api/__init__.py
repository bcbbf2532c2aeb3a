"""HTTP surface: the ShareX gateway, its pre-request hooks and auxiliary endpoints."""

from sharegate.api.gateway import GatewayConfig, PreRequestHook, ShareXGateway
from sharegate.api.hooks import author_header_hook, chain_hooks, security_headers_hook

__all__ = [
    "GatewayConfig",
    "PreRequestHook",
    "ShareXGateway",
    "author_header_hook",
    "chain_hooks",
    "security_headers_hook",
]
