"""FastAPI application factory.

Wiring only: storage, lifespan, exception handlers, middleware, gateway.
No business logic here. See sharegate.api.gateway for the ShareX routes.

Settings are resolved inside create_app() so tests can pass their own
Settings (or set env and clear the get_settings cache) before building an
app. There is no module-level app: the default sql backend needs
DATABASE_URL, so run with `uvicorn sharegate.main:create_app --factory`
or `python -m sharegate`.
"""

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from sharegate.api.endpoints import health
from sharegate.api.gateway import GatewayConfig, PreRequestHook, ShareXGateway
from sharegate.api.hooks import author_header_hook, chain_hooks, security_headers_hook
from sharegate.application.interfaces.storage import IStorage
from sharegate.core.config import Settings, get_settings
from sharegate.core.exception_handlers import register_exception_handlers
from sharegate.core.lifespan import create_lifespan
from sharegate.core.limiter import create_limiter
from sharegate.infrastructure.storage.factory import StorageFactory
from sharegate.middleware import RequestIDMiddleware, RequestSizeLimitMiddleware


def create_app(
    settings: Settings | None = None,
    storage: IStorage | None = None,
    pre_request_hook: PreRequestHook | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        settings: Defaults to get_settings().
        storage: Defaults to the backend named by settings.metadata_backend.
        pre_request_hook: Runs after the built-in hooks (security headers,
            author header) on every ShareX request.
    """
    settings = settings if settings is not None else get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )
    app.state.debug = settings.debug
    app.state.storage = (
        storage if storage is not None else StorageFactory.create_storage(settings)
    )

    limiter = create_limiter(enabled=bool(settings.upload_rate_limit))
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Middleware: last added = outermost. Order: size limit -> request ID -> app.
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_upload_size)

    hook = chain_hooks(
        security_headers_hook() if settings.security_headers_enabled else None,
        author_header_hook(settings.author_header) if settings.author_header else None,
        pre_request_hook,
    )
    gateway = ShareXGateway(
        app.state.storage,
        GatewayConfig.from_settings(settings),
        pre_request_hook=hook,
        limiter=limiter,
    )
    gateway.bind(app)
    app.state.gateway = gateway

    app.include_router(health.router, prefix="/health", tags=["health"])

    return app
