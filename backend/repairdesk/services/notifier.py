"""
RepairDesk Backend — Confirmation Notifier Clients
===================================================

What:  How the submission orchestrator reaches the confirmation function.
How:   LocalConfirmationNotifier calls EmailService in-process;
       HttpConfirmationNotifier POSTs the same JSON body to a deployed
       /send-confirmation-email endpoint. Both raise NotificationError on
       failure; the orchestrator logs it and moves on.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from repairdesk.config import settings
from repairdesk.exceptions import NotificationError
from repairdesk.schemas.notification import ConfirmationEmailRequest
from repairdesk.services.email_service import EmailService

logger = logging.getLogger(__name__)


class ConfirmationNotifier(ABC):

    @abstractmethod
    async def notify(self, request: ConfirmationEmailRequest) -> None:
        """Send one confirmation. Raises NotificationError on failure."""
        ...


class LocalConfirmationNotifier(ConfirmationNotifier):

    def __init__(self, email_service: Optional[EmailService] = None):
        self.email_service = email_service or EmailService()

    async def notify(self, request: ConfirmationEmailRequest) -> None:
        await self.email_service.send_confirmation(request)


class HttpConfirmationNotifier(ConfirmationNotifier):

    def __init__(self, url: str, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self._client = client

    async def notify(self, request: ConfirmationEmailRequest) -> None:
        body = request.model_dump(by_alias=True, exclude_none=True)
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=body)
            else:
                async with httpx.AsyncClient(timeout=settings.email_timeout) as client:
                    response = await client.post(self.url, json=body)
        except httpx.HTTPError as e:
            raise NotificationError(
                message=f"Confirmation function unreachable: {type(e).__name__}",
                context={"url": self.url},
            ) from e

        if not response.is_success:
            raise NotificationError(
                message=f"Confirmation function returned {response.status_code}",
                context={"url": self.url, "body": response.text[:500]},
            )


def build_notifier() -> ConfirmationNotifier:
    """HTTP client when confirmation_function_url is configured, else in-process."""
    if settings.confirmation_function_url:
        return HttpConfirmationNotifier(settings.confirmation_function_url)
    return LocalConfirmationNotifier()
