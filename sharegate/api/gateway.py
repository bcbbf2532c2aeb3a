"""ShareX gateway: binds the upload and get pipelines under one mount path.

Composition root for the HTTP surface. Holds the storage, the two
pipelines and the optional pre-request hook; no business logic beyond
dispatch. Domain errors are rendered here (not by the app handlers) so
headers set by the hook also reach error responses.
"""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import quote

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from sharegate.application.interfaces.storage import IStorage
from sharegate.application.services.disposition import DispositionPolicy
from sharegate.application.use_cases.delivery import DeliveryService
from sharegate.application.use_cases.ingestion import UploadResult, UploadService
from sharegate.core.config import DEFAULT_INLINE_CONTENT_TYPES
from sharegate.core.exception_handlers import exception_response
from sharegate.domain.exceptions import ShareGateException, ValidationException

if TYPE_CHECKING:
    from slowapi import Limiter

    from sharegate.core.config import Settings

PreRequestHook = Callable[[Request, Response], Awaitable[None] | None]

UPLOAD_ROUTE_NAME = "sharex_upload"
GET_ROUTE_NAME = "sharex_get"


@dataclass(frozen=True)
class GatewayConfig:
    """Routing, buffer and display settings for one gateway instance."""

    mount_path: str = "/sharex"
    upload_path: str = "/upload"
    get_path: str = "/get/{id}"
    protocol_host: str | None = None
    upload_field_name: str | None = None
    upload_chunk_size: int = 64 * 1024
    upload_memory_threshold: int = 1024 * 1024
    upload_max_files: int = 16
    upload_max_fields: int = 64
    upload_rate_limit: str | None = None
    buffer_size: int = 32 * 1024
    inline_content_types: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_INLINE_CONTENT_TYPES.split(","))
    )
    require_extension: bool = False
    cache_control: str | None = None

    def __post_init__(self) -> None:
        for name in ("mount_path", "upload_path", "get_path"):
            if not getattr(self, name).startswith("/"):
                raise ValidationException(f"{name} must start with '/'", field=name)
        if "{id}" not in self.get_path:
            raise ValidationException("get_path must contain {id}", field="get_path")
        if self.buffer_size < 1:
            raise ValidationException("buffer_size must be positive", field="buffer_size")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "GatewayConfig":
        return cls(
            mount_path=settings.mount_path,
            upload_path=settings.upload_path,
            get_path=settings.get_path,
            protocol_host=settings.protocol_host,
            upload_field_name=settings.upload_field_name,
            upload_chunk_size=settings.upload_chunk_size,
            upload_memory_threshold=settings.upload_memory_threshold,
            upload_max_files=settings.upload_max_files,
            upload_max_fields=settings.upload_max_fields,
            upload_rate_limit=settings.upload_rate_limit,
            buffer_size=settings.buffer_size,
            inline_content_types=settings.inline_content_type_set,
            require_extension=settings.require_extension,
            cache_control=settings.cache_control,
        )


class ShareXGateway:
    """Upload (POST) and get (GET) routes under config.mount_path."""

    def __init__(
        self,
        storage: IStorage,
        config: GatewayConfig | None = None,
        *,
        pre_request_hook: PreRequestHook | None = None,
        limiter: "Limiter | None" = None,
    ) -> None:
        self.storage = storage
        self.config = config if config is not None else GatewayConfig()
        self.pre_request_hook = pre_request_hook
        self.ingestion = UploadService(
            storage,
            field_name=self.config.upload_field_name,
            chunk_size=self.config.upload_chunk_size,
            memory_threshold=self.config.upload_memory_threshold,
            max_files=self.config.upload_max_files,
            max_fields=self.config.upload_max_fields,
        )
        self.delivery = DeliveryService(
            storage,
            DispositionPolicy(self.config.inline_content_types),
            buffer_size=self.config.buffer_size,
            require_extension=self.config.require_extension,
            cache_control=self.config.cache_control,
        )
        self._limiter = limiter
        self.router = self._build_router()

    def _build_router(self) -> APIRouter:
        router = APIRouter(prefix=self.config.mount_path.rstrip("/"))
        upload_endpoint = self.handle_upload
        if self._limiter is not None and self.config.upload_rate_limit:
            upload_endpoint = self._limiter.limit(self.config.upload_rate_limit)(
                upload_endpoint
            )
        router.add_api_route(
            self.config.upload_path,
            upload_endpoint,
            methods=["POST"],
            name=UPLOAD_ROUTE_NAME,
            response_class=PlainTextResponse,
        )
        router.add_api_route(
            self.config.get_path,
            self.handle_get,
            methods=["GET"],
            name=GET_ROUTE_NAME,
        )
        return router

    def bind(self, app: FastAPI) -> None:
        """Include this gateway's routes in app."""
        app.include_router(self.router, tags=["sharex"])

    async def handle_upload(self, request: Request) -> Response:
        """Store the uploaded file and answer with its public URL as plain text."""
        hook_response = await self._run_hook(request)
        try:
            result = await self.ingestion.ingest(request)
            response: Response = PlainTextResponse(self._public_url(request, result))
        except ShareGateException as exc:
            response = exception_response(exc)
        return _merge_hook_headers(response, hook_response)

    async def handle_get(self, request: Request, id: str) -> Response:
        """Serve the entry named by the {id} segment (extension optional)."""
        hook_response = await self._run_hook(request)
        try:
            response = await self.delivery.deliver(request, id)
        except ShareGateException as exc:
            response = exception_response(exc)
        return _merge_hook_headers(response, hook_response)

    async def _run_hook(self, request: Request) -> Response:
        """Call the pre-request hook with a placeholder response collecting its headers."""
        placeholder = Response()
        if self.pre_request_hook is not None:
            result = self.pre_request_hook(request, placeholder)
            if inspect.isawaitable(result):
                await result
        return placeholder

    def _public_url(self, request: Request, result: UploadResult) -> str:
        """protocol_host + id + extension, or the get route URL when no host is configured."""
        suffix = result.entry_id + quote(result.extension, safe="")
        if self.config.protocol_host is not None:
            return f"{self.config.protocol_host}{suffix}"
        return str(request.url_for(GET_ROUTE_NAME, id=suffix))


def _merge_hook_headers(response: Response, hook_response: Response) -> Response:
    """Copy hook headers onto response without overriding headers the pipeline set."""
    present = {key.lower() for key, _ in response.raw_headers}
    for key, value in hook_response.raw_headers:
        lowered = key.lower()
        if lowered == b"content-length":
            continue
        if lowered in present and lowered != b"set-cookie":
            continue
        response.raw_headers.append((key, value))
    return response
