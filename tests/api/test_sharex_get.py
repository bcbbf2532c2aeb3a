"""API tests for the get route: lookup, caching headers, disposition, ranges."""

import hashlib
import logging
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from sharegate.infrastructure.exceptions import StorageBackendError
from sharegate.main import create_app

PAYLOAD = bytes(range(256)) * 4


@pytest.fixture
async def stored_url(upload) -> str:
    """URL of a 1024-byte application/octet-stream entry named data.bin."""
    response = await upload(PAYLOAD, filename="data.bin", content_type="application/octet-stream")
    assert response.status_code == 200
    return response.text


async def test_unknown_identifier_is_404(client: AsyncClient) -> None:
    response = await client.get("/sharex/get/doesnotexist1.png")
    assert response.status_code == 404
    assert response.json() == {
        "error": "ENTRY_NOT_FOUND",
        "message": "Entry not found",
        "details": {"entry_id": "doesnotexist1"},
    }


async def test_malformed_identifier_is_404(client: AsyncClient) -> None:
    response = await client.get("/sharex/get/..png")
    assert response.status_code == 404


async def test_extension_is_cosmetic(client: AsyncClient, stored_url: str) -> None:
    base = stored_url.rsplit(".", 1)[0]
    for url in (stored_url, base, base + ".jpg"):
        response = await client.get(url)
        assert response.status_code == 200
        assert response.content == PAYLOAD


async def test_entity_headers(client: AsyncClient, stored_url: str) -> None:
    response = await client.get(stored_url)
    assert response.headers["etag"].startswith('"')
    assert response.headers["last-modified"].endswith("GMT")
    assert response.headers["accept-ranges"] == "bytes"
    assert response.headers["cache-control"] == "public, max-age=0, must-revalidate"
    assert response.headers["content-disposition"] == 'attachment; filename="data.bin"'


async def test_if_none_match_returns_304(client: AsyncClient, stored_url: str) -> None:
    first = await client.get(stored_url)
    response = await client.get(stored_url, headers={"if-none-match": first.headers["etag"]})
    assert response.status_code == 304
    assert response.content == b""
    assert response.headers["etag"] == first.headers["etag"]


async def test_if_modified_since_returns_304(client: AsyncClient, stored_url: str) -> None:
    first = await client.get(stored_url)
    response = await client.get(
        stored_url, headers={"if-modified-since": first.headers["last-modified"]}
    )
    assert response.status_code == 304


async def test_if_match_mismatch_returns_412(client: AsyncClient, stored_url: str) -> None:
    response = await client.get(stored_url, headers={"if-match": '"stale"'})
    assert response.status_code == 412
    assert response.json()["error"] == "PRECONDITION_FAILED"


async def test_whitelisted_type_is_inline(client: AsyncClient, upload, png_bytes: bytes) -> None:
    response = await upload(png_bytes, filename="shot.png", content_type="IMAGE/PNG")
    got = await client.get(response.text)
    assert got.headers["content-disposition"] == 'inline; filename="shot.png"'
    assert got.headers["content-type"] == "IMAGE/PNG"


async def test_html_is_served_as_attachment(client: AsyncClient, upload) -> None:
    response = await upload(b"<script>alert(1)</script>", filename="x.html", content_type="text/html")
    got = await client.get(response.text)
    assert got.headers["content-disposition"].startswith("attachment")


async def test_single_range(client: AsyncClient, stored_url: str) -> None:
    response = await client.get(stored_url, headers={"range": "bytes=10-19"})
    assert response.status_code == 206
    assert response.headers["content-range"] == "bytes 10-19/1024"
    assert response.headers["content-length"] == "10"
    assert response.content == PAYLOAD[10:20]


async def test_suffix_range(client: AsyncClient, stored_url: str) -> None:
    response = await client.get(stored_url, headers={"range": "bytes=-4"})
    assert response.status_code == 206
    assert response.content == PAYLOAD[-4:]


async def test_multiple_ranges(client: AsyncClient, stored_url: str) -> None:
    response = await client.get(stored_url, headers={"range": "bytes=0-1, 100-102"})
    assert response.status_code == 206
    content_type = response.headers["content-type"]
    assert content_type.startswith("multipart/byteranges; boundary=")
    boundary = content_type.split("boundary=", 1)[1]
    assert response.headers["content-length"] == str(len(response.content))
    body = response.content
    assert body.count(f"--{boundary}".encode()) == 3
    assert b"Content-Range: bytes 0-1/1024\r\n\r\n" + PAYLOAD[0:2] in body
    assert b"Content-Range: bytes 100-102/1024\r\n\r\n" + PAYLOAD[100:103] in body
    assert body.endswith(f"--{boundary}--\r\n".encode())


@pytest.mark.parametrize("range_header", ["bytes=1024-", "bytes=5000-", "bytes=2000-2100"])
async def test_unsatisfiable_range_is_416(
    client: AsyncClient, stored_url: str, range_header: str
) -> None:
    response = await client.get(stored_url, headers={"range": range_header})
    assert response.status_code == 416
    assert response.headers["content-range"] == "bytes */1024"


async def test_malformed_range_serves_everything(client: AsyncClient, stored_url: str) -> None:
    response = await client.get(stored_url, headers={"range": "bytes=oops"})
    assert response.status_code == 200
    assert response.content == PAYLOAD


async def test_stale_if_range_serves_everything(client: AsyncClient, stored_url: str) -> None:
    response = await client.get(
        stored_url, headers={"range": "bytes=0-9", "if-range": '"stale"'}
    )
    assert response.status_code == 200
    assert response.content == PAYLOAD


async def test_missing_blob_is_generic_500(
    client: AsyncClient, stored_url: str, storage
) -> None:
    entry_id = stored_url.rsplit("/", 1)[-1].split(".", 1)[0]
    await storage.blobs.delete(entry_id)
    response = await client.get(stored_url)
    assert response.status_code == 500
    assert response.json() == {
        "error": "INTERNAL_ERROR",
        "message": "An internal error occurred",
    }


async def test_require_extension(settings_factory, multipart) -> None:
    app = create_app(settings_factory(require_extension=True))
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        body, headers = multipart([("file", "a.txt", b"abc", "text/plain")])
        url = (await client.post("/sharex/upload", content=body, headers=headers)).text
        assert (await client.get(url)).status_code == 200
        assert (await client.get(url.rsplit(".", 1)[0])).status_code == 404


async def test_backend_lookup_failure_is_404_without_detail(
    client: AsyncClient,
    stored_url: str,
    storage,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    async def unreachable(entry_id: str):
        raise StorageBackendError("load", "connection refused to 10.0.0.5")

    monkeypatch.setattr(storage, "_fetch_row", unreachable)
    with caplog.at_level(logging.ERROR, logger="sharegate.application.use_cases.delivery"):
        response = await client.get(stored_url, headers={"X-Request-ID": "lookup-7"})
    assert response.status_code == 404
    assert response.json()["error"] == "ENTRY_NOT_FOUND"
    assert "10.0.0.5" not in response.text
    assert response.headers["x-request-id"] == "lookup-7"
    messages = [r.getMessage() for r in caplog.records]
    assert any("[lookup-7]" in m and "10.0.0.5" in m for m in messages)


async def test_rewritten_entry_gets_new_validators(
    client: AsyncClient, stored_url: str, storage, monkeypatch: pytest.MonkeyPatch
) -> None:
    first = await client.get(stored_url)
    entry_id = stored_url.rsplit("/", 1)[-1].split(".", 1)[0]
    entry = await storage.load(entry_id)
    later = entry.last_modified + timedelta(hours=1)
    monkeypatch.setattr("sharegate.infrastructure.storage.entry.utc_now", lambda: later)

    async with await entry.open_writer() as writer:
        await writer.write(b"version two")
    await entry.update()

    second = await client.get(stored_url)
    assert second.status_code == 200
    assert second.content == b"version two"
    assert second.headers["content-length"] == str(len(b"version two"))
    assert second.headers["etag"] == f'"{hashlib.sha256(b"version two").hexdigest()}"'
    assert second.headers["etag"] != first.headers["etag"]
    assert second.headers["last-modified"] != first.headers["last-modified"]

    stale = await client.get(stored_url, headers={"if-none-match": first.headers["etag"]})
    assert stale.status_code == 200
