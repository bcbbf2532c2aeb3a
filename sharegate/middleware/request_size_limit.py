"""Request body size limit middleware.

Rejects requests whose body exceeds max_bytes. A declared Content-Length
above the limit is refused before the app runs; otherwise (chunked or
understated bodies) bytes are counted as the app receives them and the
request is cut off once the count passes the limit. Nothing is buffered,
so uploads keep streaming into the multipart parser.
"""

import json
import logging
from typing import Any, Callable

from sharegate.middleware._headers import get_header

logger = logging.getLogger(__name__)


class _PayloadTooLarge(Exception):
    """Raised from receive() once the streamed body passes the limit."""

    def __init__(self, received: int) -> None:
        super().__init__(f"request body exceeded limit after {received} bytes")
        self.received = received


async def _send_413(send: Callable, max_bytes: int, actual: int | None = None) -> None:
    """Send 413 Payload Too Large response."""
    details: dict[str, Any] = {"max_bytes": max_bytes}
    if actual is not None:
        details["content_length"] = actual
    body = json.dumps(
        {
            "error": "PAYLOAD_TOO_LARGE",
            "message": f"Request body must be at most {max_bytes} bytes",
            "details": details,
        }
    ).encode()
    await send({
        "type": "http.response.start",
        "status": 413,
        "headers": [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode()),
            (b"connection", b"close"),
        ],
    })
    await send({
        "type": "http.response.body",
        "body": body,
        "more_body": False,
    })


def RequestSizeLimitMiddleware(app: Callable, max_bytes: int) -> Callable:
    """Reject requests whose body exceeds max_bytes (declared or streamed). Raw ASGI."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        content_length = get_header(scope, "content-length")
        if content_length:
            try:
                length = int(content_length)
            except ValueError:
                length = None
            if length is not None and length > max_bytes:
                await _send_413(send, max_bytes, length)
                return

        received = 0
        response_started = False

        async def counting_receive() -> dict:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > max_bytes:
                    raise _PayloadTooLarge(received)
            return message

        async def send_wrapper(message: dict) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await app(scope, counting_receive, send_wrapper)
        except _PayloadTooLarge as e:
            logger.warning(
                "Request body over limit (%d > %d bytes) on %s",
                e.received,
                max_bytes,
                scope.get("path"),
            )
            if response_started:
                raise
            await _send_413(send, max_bytes, e.received)

    return asgi_app
