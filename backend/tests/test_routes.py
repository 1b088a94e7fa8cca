"""
RepairDesk Backend — API Endpoint Tests
========================================

What:  HTTP behaviour of every route, through the real app.
How:   test_client (conftest) routes requests into the ASGI app with local
       storage in a temp dir, an in-memory record store and a notifier
       double. The confirmation endpoint gets a MockTransport Resend.
"""

import httpx
import pytest

from repairdesk.exceptions import PersistError, RepairDeskError, UploadError, ValidationError
from repairdesk.routes.repair_requests import raise_for_outcome
from repairdesk.schemas.repair_request import SubmissionOutcome
from repairdesk.services.email_service import EmailService, get_email_service
from repairdesk.services.upload_service import UploadService, get_upload_service

FORM = {
    "fullName": "Jane Doe",
    "email": "jane@example.com",
    "phoneModel": "iphone-15",
    "issueDescription": "Cracked screen",
    "urgency": "high",
}


class TestSubmitRepairRequest:

    @pytest.mark.asyncio
    async def test_text_only_submission(self, test_client, record_store, notifier):
        response = await test_client.post("/api/repair-requests", data=FORM)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Request submitted successfully"
        assert body["request"]["full_name"] == "Jane Doe"
        assert body["request"]["status"] == "pending"
        assert body["request"]["voice_recording_url"] is None
        assert body["summary"]["device_label"] == "iPhone 15"
        assert body["summary"]["urgency_label"] == "High Priority"
        assert body["summary"]["turnaround"] == "24-48 hours"
        assert len(record_store.inserted) == 1
        notifier.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_voice_and_photo_are_stored(self, test_client, local_backend, sample_image_bytes):
        files = {
            "voiceRecording": ("blob", b"webm-bytes", "audio/ogg"),
            "photo": ("screen.PNG", sample_image_bytes, "image/png"),
        }
        response = await test_client.post(
            "/api/repair-requests", data={**FORM, "issueDescription": ""}, files=files
        )

        assert response.status_code == 201
        record = response.json()["request"]
        assert record["voice_recording_url"].startswith("http://test/storage/repair-requests/voice-recordings/")
        assert record["voice_recording_url"].endswith(".webm")
        assert record["photo_url"].endswith(".png")
        assert record["issue_description"] is None

        stored = sorted(p.name for p in local_backend.bucket_root.rglob("*") if p.is_file())
        assert len(stored) == 2

    @pytest.mark.asyncio
    async def test_empty_voice_part_counts_as_absent(self, test_client):
        files = {"voiceRecording": ("", b"", "application/octet-stream")}
        response = await test_client.post(
            "/api/repair-requests", data={**FORM, "issueDescription": ""}, files=files
        )

        assert response.status_code == 400
        assert response.json()["details"]["fields"] == {
            "issueDescription": "Please describe the issue or record a voice message"
        }

    @pytest.mark.asyncio
    async def test_non_image_photo_is_ignored(self, test_client):
        files = {"photo": ("notes.pdf", b"%PDF-1.4", "application/pdf")}
        response = await test_client.post("/api/repair-requests", data=FORM, files=files)

        assert response.status_code == 201
        assert response.json()["request"]["photo_url"] is None

    @pytest.mark.asyncio
    async def test_validation_error(self, test_client, record_store, notifier):
        response = await test_client.post("/api/repair-requests", data={**FORM, "phoneModel": ""})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["fields"] == {"phoneModel": "Please select your phone model"}
        assert body["request_id"]
        assert record_store.inserted == []
        notifier.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_bucket_is_503(self, test_client, local_backend, sample_image_bytes):
        local_backend.bucket_root.rmdir()
        files = {"photo": ("a.jpg", sample_image_bytes, "image/jpeg")}

        response = await test_client.post("/api/repair-requests", data=FORM, files=files)

        assert response.status_code == 503
        assert response.json()["error"] == "storage_not_configured"
        assert response.json()["message"] == (
            "Failed to upload photo: Storage not configured. Please contact support."
        )

    @pytest.mark.asyncio
    async def test_persist_failure_is_500(self, test_client, record_store):
        record_store.fail_with = PersistError()

        response = await test_client.post("/api/repair-requests", data=FORM)

        assert response.status_code == 500
        assert response.json()["error"] == "persist_failed"
        assert response.json()["message"] == "Failed to save request. Please try again."

    @pytest.mark.asyncio
    async def test_notifier_failure_still_201(self, test_client, notifier):
        notifier.notify.side_effect = RuntimeError("email down")

        response = await test_client.post("/api/repair-requests", data=FORM)

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_unknown_phone_model_is_400(self, test_client, record_store):
        response = await test_client.post(
            "/api/repair-requests", data={**FORM, "phoneModel": "not-a-phone"}
        )

        assert response.status_code == 400
        assert response.json()["details"]["fields"] == {"phoneModel": "Please select your phone model"}
        assert record_store.inserted == []

    @pytest.mark.asyncio
    async def test_oversize_photo_is_413_before_upload(
        self, test_client, local_backend, record_store, sample_image_bytes
    ):
        from repairdesk.main import app
        app.dependency_overrides[get_upload_service] = lambda: UploadService(
            local_backend, max_upload_size=16, enforce_limit=True
        )
        files = {"photo": ("a.jpg", sample_image_bytes, "image/jpeg")}

        response = await test_client.post("/api/repair-requests", data=FORM, files=files)

        assert response.status_code == 413
        body = response.json()
        assert body["error"] == "size_exceeded"
        assert body["message"] == "Failed to upload photo: File too large. Maximum size is 1MB."
        assert body["request_id"]
        assert record_store.inserted == []
        assert not any(p.is_file() for p in local_backend.bucket_root.rglob("*"))

    @pytest.mark.asyncio
    async def test_oversize_voice_recording_is_413(self, test_client, local_backend, record_store):
        from repairdesk.main import app
        app.dependency_overrides[get_upload_service] = lambda: UploadService(
            local_backend, max_upload_size=16, enforce_limit=True
        )
        files = {"voiceRecording": ("blob", b"v" * 200_000, "audio/webm")}

        response = await test_client.post("/api/repair-requests", data=FORM, files=files)

        assert response.status_code == 413
        assert response.json()["message"].startswith("Failed to upload voice recording: File too large.")
        assert record_store.inserted == []

    @pytest.mark.asyncio
    async def test_size_limit_off_accepts_large_photo(self, test_client, local_backend, sample_image_bytes):
        from repairdesk.main import app
        app.dependency_overrides[get_upload_service] = lambda: UploadService(
            local_backend, max_upload_size=16, enforce_limit=False
        )
        files = {"photo": ("a.jpg", sample_image_bytes, "image/jpeg")}

        response = await test_client.post("/api/repair-requests", data=FORM, files=files)

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.post(
            "/api/repair-requests", data=FORM, headers={"X-Request-ID": "abc12345"}
        )
        assert response.headers["X-Request-ID"] == "abc12345"


class TestRaiseForOutcome:

    @pytest.mark.parametrize("code", ["upload_failed", "storage_not_configured", "size_exceeded", "unsupported_type"])
    def test_upload_codes_raise_upload_error(self, code):
        with pytest.raises(UploadError) as exc_info:
            raise_for_outcome(SubmissionOutcome.failed("Failed to upload photo: x", code))

        assert exc_info.value.code == code
        assert exc_info.value.reason == "Failed to upload photo: x"

    def test_validation_outcome_keeps_field_errors(self):
        outcome = SubmissionOutcome.failed(
            "Please correct the highlighted fields", "validation_error", {"email": "Email is required"}
        )
        with pytest.raises(ValidationError) as exc_info:
            raise_for_outcome(outcome)

        assert exc_info.value.field_errors == {"email": "Email is required"}

    def test_persist_outcome(self):
        with pytest.raises(PersistError, match="Failed to save request"):
            raise_for_outcome(SubmissionOutcome.failed("Failed to save request. Please try again.", "persist_failed"))

    def test_other_codes_raise_base_error(self):
        with pytest.raises(RepairDeskError) as exc_info:
            raise_for_outcome(SubmissionOutcome.failed("A submission is already in progress", "submission_in_progress"))

        assert type(exc_info.value) is RepairDeskError
        assert exc_info.value.context == {"error_code": "submission_in_progress"}


class TestCatalog:

    @pytest.mark.asyncio
    async def test_phone_models(self, test_client):
        response = await test_client.get("/api/catalog/phone-models")

        assert response.status_code == 200
        values = [m["value"] for m in response.json()["phone_models"]]
        assert "iphone-15" in values
        assert values[-1] == "other"

    @pytest.mark.asyncio
    async def test_urgency_levels(self, test_client):
        response = await test_client.get("/api/catalog/urgency-levels")

        body = response.json()
        assert body["default"] == "medium"
        assert [u["value"] for u in body["urgency_levels"]] == ["low", "medium", "high"]


class TestStoredObjects:

    @pytest.mark.asyncio
    async def test_serves_uploaded_file(self, test_client, local_backend, monkeypatch):
        from repairdesk.config import settings
        monkeypatch.setattr(settings, "storage_root", str(local_backend.storage_root))
        await local_backend.upload("photos/1-abc123.jpg", b"jpeg-bytes", "image/jpeg")

        response = await test_client.get("/storage/repair-requests/photos/1-abc123.jpg")

        assert response.status_code == 200
        assert response.content == b"jpeg-bytes"

    @pytest.mark.asyncio
    async def test_unknown_object_is_404(self, test_client):
        response = await test_client.get("/storage/repair-requests/photos/missing.jpg")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_other_bucket_is_404(self, test_client):
        response = await test_client.get("/storage/private/secrets.txt")
        assert response.status_code == 404


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["storage_backend"] == "local"


class TestSendConfirmationEmail:

    @pytest.fixture
    def resend_calls(self):
        from repairdesk.main import app

        calls = []
        status = {"code": 200, "body": {"id": "email_123"}}

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(status["code"], json=status["body"])

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_email_service] = lambda: EmailService(
            api_key="re_test", api_url="https://resend.test/emails", client=client
        )
        yield calls, status
        app.dependency_overrides.pop(get_email_service, None)

    def _body(self, **overrides):
        body = {
            "email": "jane@example.com",
            "name": "Jane Doe",
            "requestId": "3f2a9c4e-1b7d-4e8a-9c0f-5d6e7f8a9b0c",
            "phoneModel": "iphone-15",
            "urgency": "high",
        }
        body.update(overrides)
        return body

    @pytest.mark.asyncio
    async def test_preflight(self, test_client):
        response = await test_client.options("/send-confirmation-email")

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "x-client-info" in response.headers["access-control-allow-headers"]

    @pytest.mark.asyncio
    async def test_browser_preflight_reaches_route(self, test_client):
        response = await test_client.options(
            "/send-confirmation-email",
            headers={
                "Origin": "https://shop.example",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type, x-client-info",
            },
        )

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"

    @pytest.mark.asyncio
    async def test_cross_origin_post_keeps_wildcard_origin(self, test_client, resend_calls):
        response = await test_client.post(
            "/send-confirmation-email",
            json=self._body(),
            headers={"Origin": "https://shop.example"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_preflight_ignores_restricted_cors_origins(self, monkeypatch):
        from repairdesk.config import settings
        from repairdesk.main import create_app

        monkeypatch.setattr(settings, "cors_origins", "https://admin.example")
        preflight = {"Origin": "https://shop.example", "Access-Control-Request-Method": "POST"}

        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=create_app()), base_url="http://test"
        ) as client:
            exempt = await client.options("/send-confirmation-email", headers=preflight)
            guarded = await client.options("/api/repair-requests", headers=preflight)

        assert exempt.status_code == 200
        assert exempt.content == b""
        assert exempt.headers["access-control-allow-origin"] == "*"
        assert guarded.status_code == 400

    @pytest.mark.asyncio
    async def test_success(self, test_client, resend_calls):
        calls, _ = resend_calls
        response = await test_client.post("/send-confirmation-email", json=self._body())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["emailId"] == "email_123"
        assert body["subject"] == "Repair Request Confirmed - iPhone 15 (ID: 7f8a9b0c)"
        assert response.headers["access-control-allow-origin"] == "*"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unknown_urgency_is_sent_as_medium(self, test_client, resend_calls):
        calls, _ = resend_calls
        response = await test_client.post("/send-confirmation-email", json=self._body(urgency="critical"))

        assert response.status_code == 200
        assert "#d97706" in calls[0].content.decode()

    @pytest.mark.asyncio
    async def test_missing_field_is_400(self, test_client, resend_calls):
        calls, _ = resend_calls
        body = self._body()
        del body["email"]

        response = await test_client.post("/send-confirmation-email", json=body)

        assert response.status_code == 400
        assert response.json()["missing"] == ["email"]
        assert "email" in response.json()["error"]
        assert calls == []

    @pytest.mark.asyncio
    async def test_non_json_is_415(self, test_client, resend_calls):
        response = await test_client.post(
            "/send-confirmation-email", content=b"email=jane", headers={"content-type": "text/plain"}
        )
        assert response.status_code == 415

    @pytest.mark.asyncio
    async def test_provider_rejection_is_502(self, test_client, resend_calls):
        _, status = resend_calls
        status["code"] = 403
        status["body"] = {"name": "validation_error", "message": "Domain not verified"}

        response = await test_client.post("/send-confirmation-email", json=self._body())

        assert response.status_code == 502
        body = response.json()
        assert body["success"] is False
        assert body["error"] == {"name": "validation_error", "message": "Domain not verified"}
        assert body["note"] == "Email service temporarily unavailable"

    @pytest.mark.asyncio
    async def test_missing_credential_is_500(self, test_client):
        from repairdesk.main import app
        app.dependency_overrides[get_email_service] = lambda: EmailService(api_key="")
        try:
            response = await test_client.post("/send-confirmation-email", json=self._body())
        finally:
            app.dependency_overrides.pop(get_email_service, None)

        assert response.status_code == 500
        assert response.json()["success"] is False
        assert "RESEND_API_KEY" in response.json()["error"]
