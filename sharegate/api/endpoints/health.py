"""Health check endpoint. No storage access; used for liveness probes."""

from fastapi import APIRouter, Request

from sharegate.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check(request: Request) -> HealthResponse:
    """Return ok status and the running version."""
    return HealthResponse(version=request.app.version)
