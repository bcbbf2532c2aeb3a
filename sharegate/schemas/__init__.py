"""API response schemas."""

from sharegate.schemas.health import HealthResponse

__all__ = ["HealthResponse"]
