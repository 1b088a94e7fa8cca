"""
RepairDesk Backend — Confirmation Email Service
================================================

What:  Composes and sends the post-submission confirmation email.
How:   Maps urgency to label / colour / turnaround (unknown values fall back
       to the medium tier), renders a fixed HTML template, and posts it to
       the Resend API with the server-held credential.
Who:   Called by POST /send-confirmation-email and, in-process, by the
       submission orchestrator's LocalConfirmationNotifier.

Retry policy:
    Only transport failures (connection refused, timeout) are retried, a
    bounded number of times with jittered backoff. A provider *answer*,
    even a rejection, is final and surfaces as EmailProviderError.
"""

import html
import logging
from string import Template
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from repairdesk.catalog import UrgencyLevel, phone_model_label, urgency_or_default
from repairdesk.config import settings
from repairdesk.exceptions import EmailProviderError, NotificationError
from repairdesk.schemas.notification import ConfirmationEmailRequest, ConfirmationEmailResult

logger = logging.getLogger(__name__)


EMAIL_TEMPLATE = Template("""\
<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Repair Request Confirmation</title>
  </head>
  <body style="font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #374151; margin: 0; padding: 0; background-color: #f9fafb;">
    <div style="max-width: 600px; margin: 0 auto; background-color: #ffffff;">
      <div style="background: #2563eb; padding: 30px 20px; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 24px;">$business</h1>
        <p style="color: rgba(255,255,255,0.9); margin: 5px 0 0 0;">Professional Mobile Repair Service</p>
      </div>
      <div style="padding: 40px 30px;">
        <h2 style="color: #059669; margin: 0 0 20px 0;">Request Confirmed!</h2>
        <p>Dear $name,</p>
        <p>Thank you for choosing $business! We've received your repair request and our technicians are ready to help.</p>
        <div style="background-color: #f8fafc; border: 1px solid #e2e8f0; border-radius: 12px; padding: 25px; margin: 30px 0;">
          <h3 style="margin: 0 0 20px 0; color: #1f2937;">Request Details</h3>
          <p><strong>Request ID:</strong> <code>$request_id</code></p>
          <p><strong>Device:</strong> $device</p>
          <p><strong>Priority Level:</strong> <span style="color: $urgency_color; font-weight: 600;">$urgency_label</span></p>
          <p><strong>Expected Turnaround:</strong> <span style="color: #059669; font-weight: 600;">$turnaround</span></p>
        </div>
        <div style="background: #fef3c7; border: 1px solid #f59e0b; border-radius: 12px; padding: 25px; margin: 30px 0;">
          <h4 style="margin: 0 0 15px 0; color: #92400e;">What happens next?</h4>
          <ul style="margin: 0; padding-left: 20px; color: #78350f;">
            <li>Our technical team will review your request within <strong>2 hours</strong></li>
            <li>We'll contact you to discuss repair options and scheduling</li>
            <li>You'll receive a detailed quote before any work begins</li>
            <li>Track your repair status using your Request ID</li>
          </ul>
        </div>
        <div style="background-color: #eff6ff; border: 1px solid #bfdbfe; border-radius: 12px; padding: 25px; margin: 30px 0;">
          <h4 style="margin: 0 0 15px 0; color: #1e40af;">Need immediate assistance?</h4>
          <p><strong>WhatsApp:</strong> <a href="https://wa.me/$whatsapp_number" style="color: #059669;">$whatsapp_display</a></p>
          <p style="font-size: 14px;">Please reference your Request ID: <strong>$request_id</strong></p>
        </div>
      </div>
      <div style="background-color: #1f2937; padding: 30px; text-align: center;">
        <p style="color: #6b7280; margin: 0; font-size: 12px;">This is an automated confirmation email. Please do not reply directly to this message.</p>
      </div>
    </div>
  </body>
</html>
""")


class ComposedEmail(BaseModel):
    subject: str
    html: str
    urgency: UrgencyLevel
    turnaround: str


class EmailService:
    """
    Resend-backed confirmation sender.

    Args:
        api_key: Override settings.resend_api_key (empty → sending fails
            with NotificationError)
        client: Shared httpx.AsyncClient (tests inject a MockTransport one)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = settings.resend_api_key if api_key is None else api_key
        self.api_url = api_url or settings.resend_api_url
        self._client = client

    def compose(self, request: ConfirmationEmailRequest) -> ComposedEmail:
        """Render subject and HTML body. Caller values are HTML-escaped."""
        urgency = urgency_or_default(request.urgency)
        turnaround = request.turnaround or urgency.turnaround
        device = phone_model_label(request.phone_model or "")
        request_id = request.request_id or ""

        subject = f"Repair Request Confirmed - {device} (ID: {request_id[-8:]})"
        body = EMAIL_TEMPLATE.substitute(
            business=html.escape(settings.business_name),
            name=html.escape(request.name or ""),
            request_id=html.escape(request_id),
            device=html.escape(device),
            urgency_color=urgency.email_color,
            urgency_label=html.escape(urgency.label),
            turnaround=html.escape(turnaround),
            whatsapp_number=html.escape(settings.support_whatsapp_number),
            whatsapp_display=html.escape(settings.support_whatsapp_display),
        )
        return ComposedEmail(subject=subject, html=body, urgency=urgency, turnaround=turnaround)

    async def send_confirmation(self, request: ConfirmationEmailRequest) -> ConfirmationEmailResult:
        """
        Compose and send one confirmation.

        Raises:
            EmailProviderError: Resend answered with a non-2xx status
            NotificationError: No credential, or the provider was unreachable
        """
        if not self.api_key:
            raise NotificationError(message="Missing RESEND_API_KEY in environment variables")

        email = self.compose(request)
        payload = {
            "from": settings.email_from,
            "to": [request.email],
            "subject": email.subject,
            "html": email.html,
            "reply_to": settings.email_reply_to,
        }

        logger.info("Sending confirmation for request %s via Resend", request.request_id)
        try:
            response = await self._post(payload)
        except httpx.HTTPError as e:
            logger.error("Resend unreachable for request %s: %s", request.request_id, str(e))
            raise NotificationError(
                message=f"Email provider unreachable: {type(e).__name__}",
                context={"request_id": request.request_id},
            ) from e

        body = self._json_or_text(response)
        if not response.is_success:
            logger.error("Resend rejected request %s: %s", request.request_id, body)
            raise EmailProviderError(payload=body, status_code=response.status_code)

        email_id = body.get("id") if isinstance(body, dict) else None
        logger.info("Confirmation sent for request %s (email id %s)", request.request_id, email_id)
        return ConfirmationEmailResult(
            request_id=request.request_id,
            recipient=request.email,
            subject=email.subject,
            email_id=email_id,
        )

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(settings.notifier_retry_attempts),
        wait=wait_exponential_jitter(multiplier=0.5, max=4, jitter=0.5),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self._client is not None:
            return await self._client.post(self.api_url, json=payload, headers=headers)
        async with httpx.AsyncClient(timeout=settings.email_timeout) as client:
            return await client.post(self.api_url, json=payload, headers=headers)

    @staticmethod
    def _json_or_text(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}


def get_email_service() -> EmailService:
    """FastAPI dependency."""
    return EmailService()
