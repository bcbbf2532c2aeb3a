"""Logging configuration for the application."""

import logging
import sys

from starlette.requests import Request

from sharegate.core.config import Settings, get_settings


def setup_logging(settings: Settings | None = None) -> None:
    """Configure application-wide logging.

    Level is DEBUG when settings.debug is True, otherwise INFO.
    Output goes to stdout.
    """
    settings = settings if settings is not None else get_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name.

    Args:
        name: Usually __name__ of the calling module.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)


def request_id_of(request: Request) -> str:
    """Id set by RequestIDMiddleware, or "-" outside it (direct pipeline calls)."""
    return getattr(request.state, "request_id", None) or "-"
