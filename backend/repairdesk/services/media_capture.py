"""
RepairDesk Backend — Media Capture
===================================

What:  Turns the customer's optional voice memo and device photo into
       in-memory payloads ready for upload.
How:   VoiceRecorder drives an AudioSource (acquire → read chunks → release)
       and concatenates the chunks into a single audio payload. PhotoPicker
       holds at most one image and the preview handle that goes with it.
Who:   Used by the repair-request route to assemble a submission.

Resource discipline:
    An acquired audio source is exclusive. It is released on stop, on
    close() (teardown), and when a new recording replaces it; stop()
    releases it even if concatenation fails. A photo's preview handle is
    revoked when the selection is cleared, replaced, or the picker closes.

Size ceiling:
    Both capture classes take an optional max_size in bytes. Input past it
    raises SizeExceededError while reading, so an oversized part is never
    buffered whole.
"""

import logging
import secrets
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Set

from fastapi import UploadFile
from pydantic import BaseModel

from repairdesk.exceptions import PermissionDeniedError, SizeExceededError

logger = logging.getLogger(__name__)

# Every recording is tagged with this type regardless of the input's own
AUDIO_MIME_TYPE = "audio/webm"
AUDIO_EXTENSION = "webm"

DEFAULT_CHUNK_SIZE = 64 * 1024


class MediaPayload(BaseModel):
    """A captured binary payload (voice memo or photo)."""

    content: bytes
    content_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


# ══════════════════════════════════════════════════════════════════════════
# Audio
# ══════════════════════════════════════════════════════════════════════════


class AudioSource(ABC):
    """
    Contract for an exclusive audio input.

    acquire() raises PermissionDeniedError when the input is declined or
    absent; read_chunk() returns b"" once the input is exhausted;
    release() must be safe to call more than once.
    """

    @abstractmethod
    async def acquire(self) -> None:
        ...

    @abstractmethod
    async def read_chunk(self) -> bytes:
        ...

    @abstractmethod
    async def release(self) -> None:
        ...


class UploadedAudioSource(AudioSource):
    """
    Audio input backed by the multipart `voiceRecording` part.

    An absent or empty part counts as "no device": the browser never
    produced a recording.
    """

    def __init__(self, upload: Optional[UploadFile], chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._upload = upload
        self._chunk_size = chunk_size
        self._released = False

    async def acquire(self) -> None:
        if self._upload is None:
            raise PermissionDeniedError(
                message="No voice recording was provided.",
                context={"reason": "missing_part"},
            )
        if self._upload.size == 0:
            raise PermissionDeniedError(
                message="The voice recording is empty.",
                context={"reason": "empty_part"},
            )

    async def read_chunk(self) -> bytes:
        if self._upload is None or self._released:
            return b""
        return await self._upload.read(self._chunk_size)

    async def release(self) -> None:
        if self._released or self._upload is None:
            return
        self._released = True
        await self._upload.close()


class VoiceRecorder:
    """
    Records one bounded audio clip from an AudioSource.

    State:
        idle → recording (start) → idle (stop / close)

    The elapsed counter is cosmetic: whole seconds since start, frozen on
    stop, read from a monotonic clock. With max_size set, a chunk that takes
    the clip past it raises SizeExceededError.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        max_size: Optional[int] = None,
    ):
        self._clock = clock
        self.max_size = max_size
        self._source: Optional[AudioSource] = None
        self._chunks: List[bytes] = []
        self._size = 0
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    @property
    def is_recording(self) -> bool:
        return self._source is not None

    @property
    def elapsed_seconds(self) -> int:
        if self._started_at is None:
            return 0
        end = self._stopped_at if self._stopped_at is not None else self._clock()
        return int(end - self._started_at)

    async def start(self, source: AudioSource) -> None:
        """
        Acquire `source` and begin accumulating chunks.

        Raises PermissionDeniedError (recording not started) when the source
        cannot be acquired. A source still held from an earlier recording is
        released first.
        """
        if self._source is not None:
            logger.debug("Replacing active audio source")
            await self._release_source()

        await source.acquire()

        self._source = source
        self._chunks = []
        self._size = 0
        self._started_at = self._clock()
        self._stopped_at = None

    def add_chunk(self, data: bytes) -> None:
        if self._source is None:
            raise RuntimeError("Recorder is not running")
        if not data:
            return
        self._size += len(data)
        if self.max_size is not None and self._size > self.max_size:
            logger.warning("Voice recording exceeds %d bytes, stopping", self.max_size)
            raise SizeExceededError.for_limit(self.max_size, context={"limit": self.max_size})
        self._chunks.append(data)

    async def pump(self) -> None:
        """Read the active source until it is exhausted."""
        if self._source is None:
            raise RuntimeError("Recorder is not running")
        while True:
            chunk = await self._source.read_chunk()
            if not chunk:
                break
            self.add_chunk(chunk)

    async def stop(self) -> MediaPayload:
        """Freeze the counter, release the source, and emit the clip."""
        if self._source is None:
            raise RuntimeError("Recorder is not running")
        self._stopped_at = self._clock()
        try:
            content = b"".join(self._chunks)
        finally:
            self._chunks = []
            self._size = 0
            await self._release_source()

        logger.info("Voice recording captured: %d bytes, %ds", len(content), self.elapsed_seconds)
        return MediaPayload(
            content=content,
            content_type=AUDIO_MIME_TYPE,
            filename=f"recording.{AUDIO_EXTENSION}",
        )

    async def record(self, source: AudioSource) -> MediaPayload:
        """start → pump → stop, releasing the source on every path."""
        await self.start(source)
        try:
            await self.pump()
        except Exception:
            await self.close()
            raise
        return await self.stop()

    async def close(self) -> None:
        """Teardown: drop buffered audio and release any held source."""
        if self._source is not None and self._stopped_at is None:
            self._stopped_at = self._clock()
        self._chunks = []
        self._size = 0
        await self._release_source()

    async def _release_source(self) -> None:
        source, self._source = self._source, None
        if source is not None:
            await source.release()

    async def __aenter__(self) -> "VoiceRecorder":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


# ══════════════════════════════════════════════════════════════════════════
# Photo
# ══════════════════════════════════════════════════════════════════════════


class PreviewRegistry:
    """Issues and revokes local preview handles (the object-URL analogue)."""

    def __init__(self):
        self._live: Set[str] = set()

    def create(self) -> str:
        handle = f"preview://{secrets.token_hex(8)}"
        self._live.add(handle)
        return handle

    def revoke(self, handle: str) -> None:
        self._live.discard(handle)

    @property
    def live_handles(self) -> Set[str]:
        return set(self._live)


class PhotoPicker:
    """
    Holds at most one selected image.

    Non-image selections are ignored (the previous selection stays), like
    a file input restricted to image/*. With max_size set, select_upload()
    refuses a part whose declared size is over it and never reads more than
    max_size + 1 bytes.
    """

    def __init__(
        self,
        registry: Optional[PreviewRegistry] = None,
        max_size: Optional[int] = None,
    ):
        self.registry = registry or PreviewRegistry()
        self.max_size = max_size
        self._photo: Optional[MediaPayload] = None
        self._preview: Optional[str] = None

    @property
    def photo(self) -> Optional[MediaPayload]:
        return self._photo

    @property
    def preview_url(self) -> Optional[str]:
        return self._preview

    def select(self, payload: MediaPayload) -> bool:
        if not payload.content_type.startswith("image/"):
            logger.warning(
                "Ignoring non-image photo selection: %s (%s)",
                payload.filename,
                payload.content_type,
            )
            return False
        self._revoke_preview()
        self._photo = payload
        self._preview = self.registry.create()
        return True

    async def select_upload(self, upload: Optional[UploadFile]) -> bool:
        """Read a multipart part into the picker; an empty part selects nothing."""
        if upload is None:
            return False
        try:
            content = await self._read_bounded(upload)
        finally:
            await upload.close()
        if not content:
            return False
        return self.select(MediaPayload(
            content=content,
            content_type=upload.content_type or "application/octet-stream",
            filename=upload.filename,
        ))

    async def _read_bounded(self, upload: UploadFile) -> bytes:
        if self.max_size is None:
            return await upload.read()
        # Declared size first, before reading the part
        if upload.size is not None and upload.size > self.max_size:
            raise self._too_large(upload.size)
        content = await upload.read(self.max_size + 1)
        if len(content) > self.max_size:
            raise self._too_large(len(content))
        return content

    def _too_large(self, size: int) -> SizeExceededError:
        logger.warning("Refusing photo of %d bytes (limit %d)", size, self.max_size)
        return SizeExceededError.for_limit(self.max_size, context={"size": size, "limit": self.max_size})

    def clear(self) -> None:
        self._revoke_preview()
        self._photo = None

    def close(self) -> None:
        self._revoke_preview()

    def _revoke_preview(self) -> None:
        if self._preview is not None:
            self.registry.revoke(self._preview)
            self._preview = None

    def __enter__(self) -> "PhotoPicker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
