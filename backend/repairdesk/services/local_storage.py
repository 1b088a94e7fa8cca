"""
RepairDesk Backend — Local Disk Storage Backend
================================================

What:  Object storage on the local file system, for development and
       single-host deployments.
How:   Objects live at <storage_root>/<bucket>/<key>. Writes are async
       (aiofiles) and refuse to overwrite, so a key collision surfaces the
       same way it does on the hosted store. Stored objects are served by
       GET /storage/{bucket}/{key}.

Directory Structure:
    storage/
    └── repair-requests/
        ├── voice-recordings/
        │   └── 1700000000000-k3j9x2.webm
        └── photos/
            └── 1700000000000-p0q8z1.jpg
"""

import logging
from pathlib import Path
from typing import Optional

import aiofiles

from repairdesk.config import settings
from repairdesk.exceptions import StorageBackendError
from repairdesk.services.storage_base import StorageBackend

logger = logging.getLogger(__name__)


class LocalStorageBackend(StorageBackend):
    """
    Disk-backed StorageBackend.

    Args:
        storage_root: Override settings.storage_root (used in tests)
        bucket: Override settings.storage_bucket
        public_base_url: Override settings.public_base_url
        create_bucket: Create the bucket directory on init. When False a
            missing directory is reported as "Bucket not found".
    """

    name = "local"

    def __init__(
        self,
        storage_root: Optional[str] = None,
        bucket: Optional[str] = None,
        public_base_url: Optional[str] = None,
        create_bucket: bool = True,
    ):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.bucket = bucket or settings.storage_bucket
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")
        if create_bucket:
            self.bucket_root.mkdir(parents=True, exist_ok=True)
        logger.debug("LocalStorageBackend initialized at %s", self.bucket_root)

    @property
    def bucket_root(self) -> Path:
        return self.storage_root / self.bucket

    def resolve(self, key: str) -> Path:
        """Absolute path of `key`; keys escaping the bucket are rejected."""
        path = (self.bucket_root / key).resolve()
        if self.bucket_root.resolve() not in path.parents:
            raise StorageBackendError(
                message=f"Invalid object key: {key}",
                status_code=400,
                error_code="InvalidKey",
            )
        return path

    async def upload(self, key: str, content: bytes, content_type: str) -> None:
        if not self.bucket_root.is_dir():
            raise StorageBackendError(
                message="Bucket not found",
                status_code=404,
                error_code="Bucket not found",
                context={"bucket": self.bucket},
            )

        path = self.resolve(key)
        if path.exists():
            raise StorageBackendError(
                message="The resource already exists",
                status_code=409,
                error_code="Duplicate",
                context={"key": key},
            )

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "xb": exclusive create, so a racing writer cannot be overwritten
            async with aiofiles.open(path, "xb") as f:
                await f.write(content)
        except FileExistsError:
            raise StorageBackendError(
                message="The resource already exists",
                status_code=409,
                error_code="Duplicate",
                context={"key": key},
            )
        except OSError as e:
            logger.error("Failed to store object %s: %s", key, str(e))
            raise StorageBackendError(
                message=f"Could not write object: {e.strerror or e}",
                context={"key": key},
            )

        logger.info("Object stored: %s/%s (%d bytes, %s)", self.bucket, key, len(content), content_type)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/storage/{self.bucket}/{key}"
