"""
RepairDesk Backend — Stored Object Route
=========================================

What:  GET /storage/{bucket}/{key} serves objects written by the local
       storage backend, so their public URLs resolve in development.
How:   Only active with STORAGE_BACKEND=local; the supabase backend hands out
       its own public URLs and this route answers 404.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from repairdesk.config import settings
from repairdesk.exceptions import NotFoundError, StorageBackendError
from repairdesk.services.local_storage import LocalStorageBackend

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Storage"])


@router.get(
    "/storage/{bucket}/{key:path}",
    response_class=FileResponse,
    summary="Download a stored attachment",
)
async def get_stored_object(bucket: str, key: str) -> FileResponse:
    if settings.storage_backend != "local" or bucket != settings.storage_bucket:
        raise NotFoundError(resource="bucket", resource_id=bucket)

    backend = LocalStorageBackend(create_bucket=False)
    try:
        path = backend.resolve(key)
    except StorageBackendError:
        logger.warning("Rejected object key: %s", key)
        raise NotFoundError(resource="object", resource_id=key)

    if not path.is_file():
        raise NotFoundError(resource="object", resource_id=key)

    # Keys are timestamped and never overwritten
    return FileResponse(path, headers={"Cache-Control": "public, max-age=3600, immutable"})
