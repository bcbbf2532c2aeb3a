"""Run the server: python -m sharegate."""

import uvicorn

from sharegate.core.config import get_settings
from sharegate.shared.telemetry.logging import setup_logging


def main() -> None:
    """Configure logging and serve create_app() with uvicorn."""
    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(
        "sharegate.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
