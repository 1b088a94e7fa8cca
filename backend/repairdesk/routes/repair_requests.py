"""
RepairDesk Backend — Repair Request Route Handler
==================================================

What:  Handles POST /api/repair-requests, the intake form submission.
How:   Builds the form state from the multipart fields, captures the voice
       recording and photo parts, and hands everything to the submission
       orchestrator. A failed outcome is raised as the matching exception;
       the global handlers in main.py turn it into the error response.
Who:   Called by the repair request form.

Request Flow:
    1. Client sends multipart/form-data (text fields + optional
       voiceRecording and photo parts)
    2. voiceRecording is drained through VoiceRecorder (always audio/webm)
    3. photo goes through PhotoPicker (non-image parts are ignored)
       Both stop reading at the upload limit (413 past it)
    4. SubmissionOrchestrator: validate → upload → persist → notify
    5. 201 with the stored record and display summary, or an error body

Outcome → Exception → Status:
    validation_error        → ValidationError   → 400 (details.fields)
    size_exceeded           → UploadError       → 413
    unsupported_type        → UploadError       → 415
    storage_not_configured  → UploadError       → 503
    upload_failed           → UploadError       → 502
    persist_failed          → PersistError      → 500
    anything else           → RepairDeskError   → 500
"""

import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from repairdesk.catalog import DEFAULT_URGENCY
from repairdesk.database import get_db_session
from repairdesk.exceptions import (
    PermissionDeniedError,
    PersistError,
    RepairDeskError,
    SizeExceededError,
    UploadError,
    ValidationError,
)
from repairdesk.schemas.repair_request import (
    ErrorResponse,
    RepairRequestSummary,
    SubmissionOutcome,
    SubmissionResponse,
)
from repairdesk.services.form_validation import RepairFormState
from repairdesk.services.media_capture import (
    MediaPayload,
    PhotoPicker,
    UploadedAudioSource,
    VoiceRecorder,
)
from repairdesk.services.notifier import ConfirmationNotifier, build_notifier
from repairdesk.services.record_store import RecordStore, SqlRecordStore
from repairdesk.services.submission_service import SubmissionOrchestrator
from repairdesk.services.upload_service import UploadService, get_upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Repair Requests"])

UPLOAD_OUTCOME_CODES = frozenset({
    "upload_failed",
    "storage_not_configured",
    "size_exceeded",
    "unsupported_type",
})


def get_record_store(db: AsyncSession = Depends(get_db_session)) -> RecordStore:
    return SqlRecordStore(db)


def get_notifier() -> ConfirmationNotifier:
    return build_notifier()


async def capture_voice_recording(
    upload: Optional[UploadFile],
    max_size: Optional[int] = None,
) -> Optional[MediaPayload]:
    """Drain the voiceRecording part; None when absent, empty or unreadable."""
    if upload is None:
        return None
    async with VoiceRecorder(max_size=max_size) as recorder:
        try:
            payload = await recorder.record(UploadedAudioSource(upload))
        except PermissionDeniedError as e:
            logger.info("No voice recording attached: %s", e.message)
            await upload.close()
            return None
    if payload.size == 0:
        return None
    return payload


def raise_for_outcome(outcome: SubmissionOutcome) -> NoReturn:
    """Raise the exception whose handler renders this failed outcome."""
    code = outcome.error_code or "unexpected_error"
    reason = outcome.reason or "An unexpected error occurred"
    if code == "validation_error":
        raise ValidationError(message=reason, field_errors=outcome.field_errors)
    if code in UPLOAD_OUTCOME_CODES:
        raise UploadError(reason=reason, code=code)
    if code == "persist_failed":
        raise PersistError(message=reason)
    raise RepairDeskError(message=reason, context={"error_code": code})


@router.post(
    "/repair-requests",
    status_code=201,
    response_model=SubmissionResponse,
    responses={
        201: {"description": "Repair request stored", "model": SubmissionResponse},
        400: {"description": "One or more fields are invalid", "model": ErrorResponse},
        413: {"description": "Attachment larger than the upload limit", "model": ErrorResponse},
        415: {"description": "Attachment type refused by storage", "model": ErrorResponse},
        500: {"description": "Request could not be saved", "model": ErrorResponse},
        502: {"description": "Attachment upload failed", "model": ErrorResponse},
        503: {"description": "Storage not configured", "model": ErrorResponse},
    },
    summary="Submit a repair request",
    description=(
        "Accepts the intake form as multipart/form-data. An issue description is "
        "required unless a voice recording is attached. Attachments are stored "
        "before the request is saved; a confirmation email is sent afterwards on "
        "a best-effort basis."
    ),
)
async def submit_repair_request(
    full_name: str = Form(default="", alias="fullName"),
    email: str = Form(default=""),
    phone_model: str = Form(default="", alias="phoneModel"),
    issue_description: str = Form(default="", alias="issueDescription"),
    urgency: str = Form(default=DEFAULT_URGENCY),
    voice_recording: Optional[UploadFile] = File(
        default=None,
        alias="voiceRecording",
        description="Recorded voice memo (stored as audio/webm)",
    ),
    photo: Optional[UploadFile] = File(default=None, description="Photo of the device (image/*)"),
    upload_service: UploadService = Depends(get_upload_service),
    record_store: RecordStore = Depends(get_record_store),
    notifier: ConfirmationNotifier = Depends(get_notifier),
):
    max_size = upload_service.max_upload_size if upload_service.enforce_limit else None

    try:
        voice_payload = await capture_voice_recording(voice_recording, max_size)
    except SizeExceededError as e:
        if photo is not None:
            await photo.close()
        raise_for_outcome(SubmissionOutcome.failed(f"Failed to upload voice recording: {e.reason}", e.code))

    with PhotoPicker(max_size=max_size) as picker:
        try:
            await picker.select_upload(photo)
        except SizeExceededError as e:
            raise_for_outcome(SubmissionOutcome.failed(f"Failed to upload photo: {e.reason}", e.code))

        form = RepairFormState(
            full_name=full_name,
            email=email,
            phone_model=phone_model,
            issue_description=issue_description,
            urgency=urgency,
            voice_recording=voice_payload,
            photo=picker.photo,
        )
        logger.info(
            "Received repair request: phone_model=%s, urgency=%s, voice=%s, photo=%s",
            phone_model or "-",
            form.urgency,
            voice_payload is not None,
            picker.photo is not None,
        )

        orchestrator = SubmissionOrchestrator(form, upload_service, record_store, notifier)
        outcome = await orchestrator.submit()

    if not outcome.success:
        raise_for_outcome(outcome)

    return SubmissionResponse(
        request=outcome.record,
        summary=RepairRequestSummary.from_record(outcome.record),
    )
