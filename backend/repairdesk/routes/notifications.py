"""
RepairDesk Backend — Confirmation Email Route
==============================================

What:  The confirmation function: POST /send-confirmation-email.
How:   Answers cross-origin preflights itself (the app-wide CORS
       middleware exempts this path), checks the JSON body for the five
       required fields, then composes and sends the email through
       EmailService. Every response carries the permissive CORS headers so
       it can be invoked from any browser origin.
Who:   Called by the submission orchestrator (HttpConfirmationNotifier) or
       directly by a browser client after a successful submission.

Responses:
    200  ConfirmationEmailResult (camelCase)
    400  {"error": "Missing required fields: ...", "missing": [...]}
    415  body is not a JSON object
    502  provider rejected the message; its payload is passed through
    500  anything else
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from repairdesk.exceptions import EmailProviderError, RepairDeskError
from repairdesk.schemas.notification import (
    ConfirmationEmailFailure,
    ConfirmationEmailRequest,
    ConfirmationEmailResult,
)
from repairdesk.services.email_service import EmailService, get_email_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])

CONFIRMATION_EMAIL_PATH = "/send-confirmation-email"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _json(status_code: int, content: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


@router.options(CONFIRMATION_EMAIL_PATH, include_in_schema=False)
async def confirmation_email_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    CONFIRMATION_EMAIL_PATH,
    response_model=ConfirmationEmailResult,
    response_model_by_alias=True,
    summary="Send a repair request confirmation email",
    description=(
        "JSON body with email, name, requestId, phoneModel, urgency and optional "
        "turnaround. Unknown urgency values are rendered as the medium tier."
    ),
)
async def send_confirmation_email(
    request: Request,
    email_service: EmailService = Depends(get_email_service),
) -> JSONResponse:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        return _json(415, {"error": "Content-Type must be application/json"})

    try:
        body = await request.json()
    except ValueError:
        return _json(415, {"error": "Request body must be valid JSON"})
    if not isinstance(body, dict):
        return _json(415, {"error": "Request body must be a JSON object"})

    try:
        payload = ConfirmationEmailRequest.model_validate(body)
    except PydanticValidationError as e:
        invalid = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        return _json(400, {"error": f"Invalid fields: {', '.join(invalid)}", "invalid": invalid})

    missing = payload.missing_fields()
    if missing:
        logger.warning("Confirmation request rejected, missing fields: %s", missing)
        return _json(400, {
            "error": f"Missing required fields: {', '.join(missing)}",
            "missing": missing,
        })

    try:
        result = await email_service.send_confirmation(payload)
    except EmailProviderError as e:
        failure = ConfirmationEmailFailure(
            error=e.payload,
            note="Email service temporarily unavailable",
        )
        return _json(502, failure.model_dump(mode="json"))
    except RepairDeskError as e:
        logger.error("Confirmation email for %s failed: %s", payload.request_id, e.message)
        failure = ConfirmationEmailFailure(error=e.message, note="Unexpected error occurred")
        return _json(500, failure.model_dump(mode="json"))
    except Exception as e:
        logger.error("Confirmation email for %s failed: %s", payload.request_id, str(e), exc_info=True)
        failure = ConfirmationEmailFailure(
            error="An unexpected error occurred",
            note="Unexpected error occurred",
        )
        return _json(500, failure.model_dump(mode="json"))

    return _json(200, result.model_dump(mode="json", by_alias=True))
