"""
RepairDesk Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   The environment is pointed at throwaway resources BEFORE any
       repairdesk import, so the settings singleton never sees a real
       database, bucket or email credential.

Fixture Hierarchy:
    Function-scoped:
    ├── temp_storage: Temporary storage root for the local backend
    ├── local_backend: LocalStorageBackend on temp_storage
    ├── mock_backend: StorageBackend double (AsyncMock upload)
    ├── record_store: In-memory RecordStore that records inserts
    ├── notifier: ConfirmationNotifier double
    ├── sample_*: Payloads and field values for a valid submission
    └── test_client: HTTPX AsyncClient against the app, with storage,
                     record store and notifier overridden
"""

import os
import tempfile
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

_test_dir = tempfile.mkdtemp(prefix="repairdesk_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_test_dir}/test.db"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_ROOT"] = os.path.join(_test_dir, "storage")
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["RESEND_API_KEY"] = "test-key-not-real"
os.environ["NOTIFIER_RETRY_ATTEMPTS"] = "1"
os.environ.pop("CONFIRMATION_FUNCTION_URL", None)
os.environ["LOG_LEVEL"] = "WARNING"

from repairdesk.exceptions import PersistError  # noqa: E402
from repairdesk.schemas.repair_request import RepairRequestRecord  # noqa: E402
from repairdesk.services.local_storage import LocalStorageBackend  # noqa: E402
from repairdesk.services.media_capture import MediaPayload  # noqa: E402
from repairdesk.services.notifier import ConfirmationNotifier  # noqa: E402
from repairdesk.services.record_store import RecordStore  # noqa: E402
from repairdesk.services.storage_base import StorageBackend  # noqa: E402
from repairdesk.services.upload_service import UploadService  # noqa: E402


class InMemoryRecordStore(RecordStore):
    """RecordStore double: assigns id/created_at like the real store."""

    def __init__(self):
        self.inserted: List[Dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None

    async def insert(self, table: str, record: Dict[str, Any]) -> RepairRequestRecord:
        if self.fail_with is not None:
            raise self.fail_with
        self.inserted.append({"table": table, **record})
        return RepairRequestRecord(
            id=uuid.uuid4(),
            created_at=datetime.now(timezone.utc),
            **record,
        )


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def local_backend(temp_storage):
    return LocalStorageBackend(
        storage_root=temp_storage,
        bucket="repair-requests",
        public_base_url="http://test",
    )


@pytest.fixture
def mock_backend():
    """
    StorageBackend double. upload() succeeds unless a test sets a
    side_effect; public_url() maps a key onto a fake CDN.
    """
    backend = MagicMock(spec=StorageBackend)
    backend.name = "mock"
    backend.upload = AsyncMock(return_value=None)
    backend.public_url = MagicMock(side_effect=lambda key: f"https://cdn.test/repair-requests/{key}")
    return backend


@pytest.fixture
def upload_service(mock_backend):
    return UploadService(mock_backend, max_upload_size=10_485_760, enforce_limit=True, clock=lambda: 1700000000000)


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def failing_record_store():
    store = InMemoryRecordStore()
    store.fail_with = PersistError(context={"error_type": "IntegrityError"})
    return store


@pytest.fixture
def notifier():
    double = MagicMock(spec=ConfirmationNotifier)
    double.notify = AsyncMock(return_value=None)
    return double


@pytest.fixture
def sample_audio():
    return MediaPayload(content=b"\x1aE\xdf\xa3fake-webm", content_type="audio/ogg", filename="blob")


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: SOI + JFIF header + EOI. Not a real photograph."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def sample_photo(sample_image_bytes):
    return MediaPayload(content=sample_image_bytes, content_type="image/jpeg", filename="screen.JPG")


@pytest.fixture
def valid_fields():
    return {
        "full_name": "Jane Doe",
        "email": "jane@example.com",
        "phone_model": "iphone-15",
        "issue_description": "Cracked screen",
        "urgency": "high",
    }


@pytest_asyncio.fixture
async def test_client(local_backend, record_store, notifier):
    """
    HTTPX AsyncClient routed straight into the app (no server, no lifespan).

    Storage goes to a per-test directory, records to InMemoryRecordStore
    and confirmations to the notifier double.
    """
    from repairdesk.main import app
    from repairdesk.routes.repair_requests import get_notifier, get_record_store
    from repairdesk.services.upload_service import get_upload_service

    app.dependency_overrides[get_upload_service] = lambda: UploadService(local_backend)
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
