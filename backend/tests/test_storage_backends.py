"""
RepairDesk Backend — Storage Backend Unit Tests
================================================

What:  LocalStorageBackend against a temp directory and
       SupabaseStorageBackend against an httpx.MockTransport.

What we test:
    ✅ Objects are written under <root>/<bucket>/<key> and never overwritten
    ✅ Missing bucket and path traversal are reported, not hidden
    ✅ Supabase request shape (path, headers, x-upsert)
    ✅ Supabase error bodies are carried into StorageBackendError
"""

import json

import httpx
import pytest

from repairdesk.exceptions import StorageBackendError
from repairdesk.services.local_storage import LocalStorageBackend
from repairdesk.services.supabase_storage import SupabaseStorageBackend


class TestLocalStorageBackend:

    @pytest.mark.asyncio
    async def test_upload_writes_file(self, local_backend, temp_storage):
        await local_backend.upload("photos/1700000000000-abc123.jpg", b"jpeg", "image/jpeg")

        path = local_backend.bucket_root / "photos" / "1700000000000-abc123.jpg"
        assert path.read_bytes() == b"jpeg"

    @pytest.mark.asyncio
    async def test_existing_key_is_duplicate(self, local_backend):
        await local_backend.upload("photos/a.jpg", b"one", "image/jpeg")

        with pytest.raises(StorageBackendError) as exc_info:
            await local_backend.upload("photos/a.jpg", b"two", "image/jpeg")

        assert exc_info.value.status_code == 409
        assert exc_info.value.error_code == "Duplicate"
        assert (local_backend.bucket_root / "photos" / "a.jpg").read_bytes() == b"one"

    @pytest.mark.asyncio
    async def test_missing_bucket(self, temp_storage):
        backend = LocalStorageBackend(storage_root=temp_storage, bucket="absent", create_bucket=False)

        with pytest.raises(StorageBackendError, match="Bucket not found") as exc_info:
            await backend.upload("photos/a.jpg", b"x", "image/jpeg")
        assert exc_info.value.status_code == 404

    def test_resolve_rejects_traversal(self, local_backend):
        with pytest.raises(StorageBackendError, match="Invalid object key"):
            local_backend.resolve("../../etc/passwd")

    def test_public_url(self, local_backend):
        url = local_backend.public_url("voice-recordings/1-abc123.webm")
        assert url == "http://test/storage/repair-requests/voice-recordings/1-abc123.webm"


class TestSupabaseStorageBackend:

    def _backend(self, handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return SupabaseStorageBackend(
            supabase_url="https://project.supabase.co/",
            service_key="service-key",
            bucket="repair-requests",
            client=client,
        )

    @pytest.mark.asyncio
    async def test_upload_request_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json={"Key": "repair-requests/photos/a.jpg"})

        await self._backend(handler).upload("photos/a.jpg", b"jpeg", "image/jpeg")

        request = seen["request"]
        assert request.method == "POST"
        assert request.url.path == "/storage/v1/object/repair-requests/photos/a.jpg"
        assert request.headers["authorization"] == "Bearer service-key"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["content-type"] == "image/jpeg"
        assert request.headers["x-upsert"] == "false"
        assert request.content == b"jpeg"

    @pytest.mark.asyncio
    async def test_error_body_is_carried(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = {"statusCode": "409", "error": "Duplicate", "message": "The resource already exists"}
            return httpx.Response(400, content=json.dumps(body), headers={"content-type": "application/json"})

        with pytest.raises(StorageBackendError) as exc_info:
            await self._backend(handler).upload("photos/a.jpg", b"jpeg", "image/jpeg")

        assert exc_info.value.status_code == 409
        assert exc_info.value.error_code == "Duplicate"
        assert exc_info.value.message == "The resource already exists"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_storage_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(StorageBackendError, match="connection refused"):
            await self._backend(handler).upload("photos/a.jpg", b"jpeg", "image/jpeg")

    def test_public_url(self):
        backend = SupabaseStorageBackend(supabase_url="https://project.supabase.co", service_key="k", bucket="b")
        assert backend.public_url("photos/a.jpg") == (
            "https://project.supabase.co/storage/v1/object/public/b/photos/a.jpg"
        )
