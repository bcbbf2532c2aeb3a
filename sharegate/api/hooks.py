"""Pre-request hooks for the ShareX gateway.

A hook receives the request and a placeholder response before either
pipeline runs; headers it sets are merged into whatever the pipeline
answers, error responses included.
"""

from collections.abc import Mapping

from fastapi import Request, Response

from sharegate.api.gateway import PreRequestHook

# Uploaded content is served from our origin, so scripts in it must not run there.
DEFAULT_SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'none'; img-src 'self'; media-src 'self'; style-src 'unsafe-inline'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}

AUTHOR_MAX_LENGTH = 255


def security_headers_hook(headers: Mapping[str, str] | None = None) -> PreRequestHook:
    """Return a hook setting headers (default DEFAULT_SECURITY_HEADERS) on every response."""
    resolved = dict(headers if headers is not None else DEFAULT_SECURITY_HEADERS)

    def hook(request: Request, response: Response) -> None:
        for name, value in resolved.items():
            response.headers[name] = value

    return hook


def author_header_hook(header_name: str) -> PreRequestHook:
    """Return a hook recording header_name as the uploader of the request."""

    def hook(request: Request, response: Response) -> None:
        value = (request.headers.get(header_name) or "").strip()
        request.state.author = value[:AUTHOR_MAX_LENGTH] or None

    return hook


def chain_hooks(*hooks: PreRequestHook | None) -> PreRequestHook | None:
    """Combine hooks into one that runs them in order; None entries are skipped."""
    active = [h for h in hooks if h is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]

    async def hook(request: Request, response: Response) -> None:
        for each in active:
            result = each(request, response)
            if result is not None:
                await result

    return hook
