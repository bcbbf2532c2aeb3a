"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain, storage and
framework exceptions to HTTP responses. Storage failures are logged with
their detail and answered with a generic 500 body.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sharegate.core.config import get_settings
from sharegate.domain.exceptions import RangeNotSatisfiableException, ShareGateException
from sharegate.infrastructure.exceptions import StorageException

logger = logging.getLogger(__name__)

# Map domain error_code to HTTP status when applicable
_ERROR_CODE_STATUS: dict[str, int] = {
    "MALFORMED_UPLOAD": 400,
    "VALIDATION_ERROR": 400,
    "ENTRY_NOT_FOUND": 404,
    "PRECONDITION_FAILED": 412,
    "RANGE_NOT_SATISFIABLE": 416,
}


def exception_response(exc: ShareGateException) -> JSONResponse:
    """Render a ShareGateException (also used by the gateway to keep hook headers)."""
    if isinstance(exc, StorageException):
        logger.error(
            "Storage failure %s: %s %s", exc.error_code, exc.message, exc.details
        )
        return JSONResponse(
            status_code=500,
            content={"error": "INTERNAL_ERROR", "message": "An internal error occurred"},
        )
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    headers: dict[str, str] = {}
    if isinstance(exc, RangeNotSatisfiableException):
        headers["content-range"] = f"bytes */{exc.size}"
    return JSONResponse(status_code=status, content=exc.to_dict(), headers=headers)


def _sharegate_exception_handler(
    request: Request, exc: ShareGateException
) -> JSONResponse:
    """Return JSON from ShareGateException.to_dict() with appropriate status code."""
    return exception_response(exc)


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 422 with validation error details."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": exc.errors(),
        },
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    debug = getattr(request.app.state, "debug", None)
    if debug is None:
        debug = get_settings().debug
    detail: Any = str(exc) if debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Call once after creating the app. Handlers: ShareGateException (and
    subclasses), RequestValidationError, StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(ShareGateException, _sharegate_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
