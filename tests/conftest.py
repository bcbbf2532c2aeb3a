"""Pytest configuration and fixtures for sharegate.

HTTP tests build an app per test with create_app() over the memory
backend and a temporary blob root, so they need no database. SQL tests
are marked requires_db and skip unless DATABASE_URL is set.
"""

import secrets
from collections.abc import Callable
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from sharegate.core.config import Settings
from sharegate.infrastructure.storage.blob_store import LocalBlobStore
from sharegate.infrastructure.storage.memory_storage import MemoryStorage
from sharegate.main import create_app

PNG_HEADER = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR"
    b"\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
    b"\x1f\x15\xc4\x89"
)


def build_multipart(
    parts: list[tuple[str, str | None, bytes, str | None]],
) -> tuple[bytes, dict[str, str]]:
    """Encode (field, filename, content, content_type) parts as multipart/form-data.

    A None content_type omits the part's Content-Type header, which httpx's
    own encoder never does for file parts.
    """
    boundary = secrets.token_hex(12)
    body = bytearray()
    for field, filename, content, content_type in parts:
        body += f"--{boundary}\r\n".encode()
        disposition = f'Content-Disposition: form-data; name="{field}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        body += disposition.encode() + b"\r\n"
        if content_type is not None:
            body += f"Content-Type: {content_type}\r\n".encode()
        body += b"\r\n" + content + b"\r\n"
    body += f"--{boundary}--\r\n".encode()
    return bytes(body), {"content-type": f"multipart/form-data; boundary={boundary}"}


@pytest.fixture
def settings_factory(tmp_path: Path) -> Callable[..., Settings]:
    """Build Settings for the memory backend rooted in tmp_path; kwargs override."""

    def factory(**overrides) -> Settings:
        values = {
            "metadata_backend": "memory",
            "blob_root": str(tmp_path / "blobs"),
            "upload_rate_limit": None,
            "database_url": "",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture
def settings(settings_factory: Callable[..., Settings]) -> Settings:
    """Default test settings."""
    return settings_factory()


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """FastAPI app over a fresh MemoryStorage."""
    return create_app(settings)


@pytest.fixture
def storage(app: FastAPI) -> MemoryStorage:
    """The storage behind the app fixture."""
    return app.state.storage


@pytest.fixture
async def client(app: FastAPI) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def memory_storage(tmp_path: Path) -> MemoryStorage:
    """MemoryStorage over a LocalBlobStore in tmp_path, for unit tests."""
    return MemoryStorage(LocalBlobStore(str(tmp_path / "unit-blobs")))


@pytest.fixture
def upload(client: AsyncClient):
    """POST one file part to the upload route; returns the response."""

    async def do_upload(
        content: bytes,
        filename: str | None = "file.bin",
        content_type: str | None = "application/octet-stream",
        field: str = "file",
        headers: dict[str, str] | None = None,
    ):
        body, multipart_headers = build_multipart([(field, filename, content, content_type)])
        return await client.post(
            "/sharex/upload",
            content=body,
            headers={**multipart_headers, **(headers or {})},
        )

    return do_upload


@pytest.fixture
def multipart() -> Callable[..., tuple[bytes, dict[str, str]]]:
    """build_multipart, for tests that need several parts or odd part headers."""
    return build_multipart


@pytest.fixture
def png_bytes() -> bytes:
    """A PNG signature and IHDR chunk followed by filler."""
    return PNG_HEADER + b"\x00" * 64
