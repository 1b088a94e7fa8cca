"""
RepairDesk Backend — Supabase Storage Backend
==============================================

What:  StorageBackend speaking the Supabase Storage REST API over httpx.
How:   POST {supabase_url}/storage/v1/object/{bucket}/{key} with the raw
       bytes, `x-upsert: false` (collisions are reported, never
       overwritten) and a one-hour cache-control. Error bodies look like
       {"statusCode": "409", "error": "Duplicate", "message": "..."} and are
       passed on as StorageBackendError without interpretation.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from repairdesk.config import settings
from repairdesk.exceptions import StorageBackendError
from repairdesk.services.storage_base import StorageBackend

logger = logging.getLogger(__name__)


class SupabaseStorageBackend(StorageBackend):

    name = "supabase"

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        service_key: Optional[str] = None,
        bucket: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.supabase_url = (supabase_url or settings.supabase_url).rstrip("/")
        self.service_key = service_key or settings.supabase_service_key
        self.bucket = bucket or settings.storage_bucket
        self._client = client

    def _headers(self, content_type: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": content_type,
            "cache-control": "max-age=3600",
            "x-upsert": "false",
        }

    async def upload(self, key: str, content: bytes, content_type: str) -> None:
        url = f"{self.supabase_url}/storage/v1/object/{self.bucket}/{key}"
        try:
            if self._client is not None:
                response = await self._client.post(url, content=content, headers=self._headers(content_type))
            else:
                async with httpx.AsyncClient(timeout=settings.storage_timeout) as client:
                    response = await client.post(url, content=content, headers=self._headers(content_type))
        except httpx.HTTPError as e:
            logger.warning("Storage request for %s failed: %s", key, str(e))
            raise StorageBackendError(
                message=str(e) or type(e).__name__,
                context={"key": key, "error_type": type(e).__name__},
            )

        if response.is_success:
            logger.info("Object stored: %s/%s (%d bytes, %s)", self.bucket, key, len(content), content_type)
            return

        body = self._error_body(response)
        raise StorageBackendError(
            message=str(body.get("message") or body.get("error") or response.reason_phrase),
            status_code=self._status(body, response),
            error_code=body.get("error"),
            context={"key": key},
        )

    def public_url(self, key: str) -> str:
        return f"{self.supabase_url}/storage/v1/object/public/{self.bucket}/{key}"

    @staticmethod
    def _error_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {"message": response.text}
        return body if isinstance(body, dict) else {"message": str(body)}

    @staticmethod
    def _status(body: Dict[str, Any], response: httpx.Response) -> int:
        # Supabase reports the logical status as a string inside the body
        try:
            return int(body.get("statusCode", response.status_code))
        except (TypeError, ValueError):
            return response.status_code
