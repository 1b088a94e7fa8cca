"""
RepairDesk Backend — Upload Client
===================================

What:  Stores one media payload in object storage and returns its public URL.
Who:   Called by the SubmissionOrchestrator for the voice memo and the photo.

Contract:
    upload(payload, folder, extension) -> public URL
    raises UploadError (or ConfigurationError / SizeExceededError /
    UnsupportedTypeError)

Algorithm:
    1. Key = <folder>/<epoch-millis>-<random token>.<extension>
    2. Audio payloads are always sent as audio/webm, whatever the
       recorder claimed
    3. Payloads above the configured ceiling are refused before transfer
       (unless enforce_upload_limit is off)
    4. Transfer; on failure classify the backend error:
         missing bucket   → ConfigurationError      (no retry)
         size limit       → SizeExceededError       (no retry)
         unsupported type → UnsupportedTypeError    (no retry)
         key collision    → ONE retry with a fresh key; a second failure
                            becomes UploadError("Upload failed: <retry msg>")
         anything else    → UploadError("Upload failed: <msg>")
    5. Resolve the stored key to its public URL

No backoff and no retry on transient failures: the customer can always
press submit again.
"""

import logging
import secrets
import string
import time
from functools import lru_cache
from typing import Callable, Optional

from repairdesk.config import settings
from repairdesk.exceptions import (
    ConfigurationError,
    SizeExceededError,
    StorageBackendError,
    UnsupportedTypeError,
    UploadError,
)
from repairdesk.services.media_capture import AUDIO_MIME_TYPE, MediaPayload
from repairdesk.services.storage_base import StorageBackend

logger = logging.getLogger(__name__)

VOICE_RECORDINGS_FOLDER = "voice-recordings"
PHOTOS_FOLDER = "photos"

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits
_TOKEN_LENGTH = 6

# ── Error classification ─────────────────────────────────────────────────
CONFIGURATION = "configuration"
SIZE_EXCEEDED = "size_exceeded"
UNSUPPORTED_TYPE = "unsupported_type"
DUPLICATE = "duplicate"

# Structured error codes reported by the backends (compared lowercase)
ERROR_CODE_TABLE = {
    "bucket not found": CONFIGURATION,
    "nosuchbucket": CONFIGURATION,
    "payload too large": SIZE_EXCEEDED,
    "entitytoolarge": SIZE_EXCEEDED,
    "invalid_mime_type": UNSUPPORTED_TYPE,
    "invalidmimetype": UNSUPPORTED_TYPE,
    "duplicate": DUPLICATE,
    "resourcealreadyexists": DUPLICATE,
}

STATUS_CODE_TABLE = {
    409: DUPLICATE,
    413: SIZE_EXCEEDED,
    415: UNSUPPORTED_TYPE,
}

# Message fallback, checked in order; first match wins
MESSAGE_PATTERNS = (
    ("bucket not found", CONFIGURATION),
    ("size", SIZE_EXCEEDED),
    ("mime", UNSUPPORTED_TYPE),
    ("type", UNSUPPORTED_TYPE),
    ("duplicate", DUPLICATE),
    ("already exists", DUPLICATE),
)


def classify_storage_error(error: StorageBackendError) -> Optional[str]:
    """Map a backend failure to a classification, or None for "generic"."""
    if error.error_code:
        kind = ERROR_CODE_TABLE.get(error.error_code.strip().lower())
        if kind:
            return kind
    if error.status_code in STATUS_CODE_TABLE:
        return STATUS_CODE_TABLE[error.status_code]
    message = (error.message or "").lower()
    for pattern, kind in MESSAGE_PATTERNS:
        if pattern in message:
            return kind
    return None


class UploadService:
    """
    Upload client over a StorageBackend.

    Args:
        backend: Where bytes go
        max_upload_size: Ceiling in bytes (settings.max_upload_size)
        enforce_limit: Refuse oversize payloads before transfer
        clock: Epoch-milliseconds source (patched in tests)
    """

    def __init__(
        self,
        backend: StorageBackend,
        max_upload_size: Optional[int] = None,
        enforce_limit: Optional[bool] = None,
        clock: Callable[[], int] = lambda: time.time_ns() // 1_000_000,
    ):
        self.backend = backend
        self.max_upload_size = max_upload_size or settings.max_upload_size
        self.enforce_limit = settings.enforce_upload_limit if enforce_limit is None else enforce_limit
        self._clock = clock

    @property
    def max_upload_size_mb(self) -> int:
        return max(1, self.max_upload_size // (1024 * 1024))

    def generate_key(self, folder: str, extension: str) -> str:
        token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(_TOKEN_LENGTH))
        return f"{folder}/{self._clock()}-{token}.{extension.lstrip('.')}"

    async def upload(self, payload: MediaPayload, folder: str, extension: str) -> str:
        """
        Store `payload` under `folder` and return its public URL.

        Raises:
            ConfigurationError, SizeExceededError, UnsupportedTypeError,
            UploadError
        """
        is_audio = folder == VOICE_RECORDINGS_FOLDER or payload.content_type.startswith("audio/")
        content_type = AUDIO_MIME_TYPE if is_audio else payload.content_type

        if self.enforce_limit and payload.size > self.max_upload_size:
            logger.warning(
                "Refusing %s upload of %d bytes (limit %d)", folder, payload.size, self.max_upload_size
            )
            raise SizeExceededError(
                max_size_mb=self.max_upload_size_mb,
                context={"size": payload.size, "limit": self.max_upload_size},
            )

        key = self.generate_key(folder, extension)
        logger.info("Uploading %s (%d bytes, %s)", key, payload.size, content_type)

        try:
            await self._transfer(key, payload.content, content_type)
        except StorageBackendError as error:
            kind = classify_storage_error(error)
            logger.warning("Upload of %s failed (%s): %s", key, kind or "generic", error.message)

            if kind == CONFIGURATION:
                raise ConfigurationError(context=error.context) from error
            if kind == SIZE_EXCEEDED:
                raise SizeExceededError(max_size_mb=self.max_upload_size_mb, context=error.context) from error
            if kind == UNSUPPORTED_TYPE:
                raise UnsupportedTypeError(context=error.context) from error
            if kind != DUPLICATE:
                raise UploadError(reason=f"Upload failed: {error.message}", context=error.context) from error

            key = self.generate_key(folder, extension)
            logger.info("Key collision, retrying once as %s", key)
            try:
                await self._transfer(key, payload.content, content_type)
            except StorageBackendError as retry_error:
                raise UploadError(
                    reason=f"Upload failed: {retry_error.message}",
                    context={**retry_error.context, "retried": True},
                ) from retry_error

        url = self.backend.public_url(key)
        logger.info("Upload complete: %s", url)
        return url

    async def _transfer(self, key: str, content: bytes, content_type: str) -> None:
        try:
            await self.backend.upload(key, content, content_type)
        except StorageBackendError:
            raise
        except Exception as e:
            raise StorageBackendError(
                message=str(e) or type(e).__name__,
                context={"key": key, "error_type": type(e).__name__},
            ) from e


def build_storage_backend() -> StorageBackend:
    """Backend selected by settings.storage_backend."""
    if settings.storage_backend == "supabase":
        from repairdesk.services.supabase_storage import SupabaseStorageBackend
        return SupabaseStorageBackend()
    from repairdesk.services.local_storage import LocalStorageBackend
    return LocalStorageBackend()


@lru_cache
def get_upload_service() -> UploadService:
    """FastAPI dependency; one UploadService per process."""
    return UploadService(build_storage_backend())
