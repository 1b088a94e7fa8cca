"""
RepairDesk Backend — Submission Orchestrator
=============================================

What:  Runs one repair-request submission: validate → upload → persist →
       notify, and reports a single outcome.
Who:   Created per form instance by the repair-request route.

State Machine:
    IDLE ──submit──▶ SUBMITTING ──▶ SUCCESS   (terminal until new_request)
                          │
                          └──────▶ IDLE      (any failure; resubmit allowed)

    While SUBMITTING, further submit() calls are refused, so one form
    instance never has two submissions in flight.

Orchestration Flow:
    ┌──────────┐   ┌────────────┐   ┌──────────┐   ┌─────────┐   ┌────────┐
    │ Validate │──▶│ Upload     │──▶│ Upload   │──▶│ Persist │──▶│ Notify │
    │ (local)  │   │ voice memo │   │ photo    │   │ record  │   │ email  │
    └──────────┘   └────────────┘   └──────────┘   └─────────┘   └────────┘
    Steps run strictly in sequence.

    Validation failure  → IDLE, no network calls
    Upload failure      → IDLE, message includes the upload reason
    Persist failure     → IDLE, generic message, store error logged only
    Notify failure      → logged only; the outcome is still SUCCESS
    Anything unexpected → IDLE with the best available message

    Nothing is rolled back: a file uploaded before a persist failure stays
    in storage.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from repairdesk.catalog import urgency_or_default
from repairdesk.exceptions import PersistError, UploadError
from repairdesk.schemas.notification import ConfirmationEmailRequest
from repairdesk.schemas.repair_request import SubmissionOutcome
from repairdesk.services.form_validation import RepairFormState
from repairdesk.services.media_capture import AUDIO_EXTENSION
from repairdesk.services.notifier import ConfirmationNotifier
from repairdesk.services.record_store import REPAIR_REQUESTS_TABLE, RecordStore
from repairdesk.services.upload_service import (
    PHOTOS_FOLDER,
    VOICE_RECORDINGS_FOLDER,
    UploadService,
)

logger = logging.getLogger(__name__)

DEFAULT_PHOTO_EXTENSION = "jpg"
GENERIC_FAILURE_MESSAGE = "There was an error submitting your request. Please try again."


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"


def photo_extension(filename: Optional[str]) -> str:
    """Lowercase extension of the original filename, "jpg" when it has none."""
    suffix = Path(filename or "").suffix.lstrip(".").lower()
    return suffix or DEFAULT_PHOTO_EXTENSION


class SubmissionOrchestrator:
    """
    Drives one form instance through its submissions.

    Args:
        form: Field values and attached media
        upload_service: Upload client for the voice memo and photo
        record_store: Where the repair request is inserted
        notifier: Confirmation email sender (best effort)
    """

    def __init__(
        self,
        form: RepairFormState,
        upload_service: UploadService,
        record_store: RecordStore,
        notifier: ConfirmationNotifier,
    ):
        self.form = form
        self.upload_service = upload_service
        self.record_store = record_store
        self.notifier = notifier
        self._state = SubmissionState.IDLE
        self.last_outcome: Optional[SubmissionOutcome] = None

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def is_submitting(self) -> bool:
        """True while the submit control must stay disabled."""
        return self._state is SubmissionState.SUBMITTING

    async def submit(self) -> SubmissionOutcome:
        if self._state is SubmissionState.SUBMITTING:
            return SubmissionOutcome.failed(
                "A submission is already in progress.", "submission_in_progress"
            )
        if self._state is SubmissionState.SUCCESS:
            return SubmissionOutcome.failed(
                "This request has already been submitted. Start a new request.",
                "submission_complete",
            )

        self._state = SubmissionState.SUBMITTING
        try:
            outcome = await self._run()
        except Exception as e:
            logger.error("Unexpected error submitting repair request: %s", str(e), exc_info=True)
            outcome = SubmissionOutcome.failed(str(e) or GENERIC_FAILURE_MESSAGE, "unexpected_error")

        self._state = SubmissionState.SUCCESS if outcome.success else SubmissionState.IDLE
        self.last_outcome = outcome
        return outcome

    def new_request(self) -> None:
        """Leave the summary view: clear the form and return to IDLE."""
        if self._state is SubmissionState.SUBMITTING:
            raise RuntimeError("Cannot reset while a submission is in progress")
        self.form.reset()
        self.last_outcome = None
        self._state = SubmissionState.IDLE

    async def _run(self) -> SubmissionOutcome:
        form = self.form

        # ── Step 1: Validate ──────────────────────────────────────────────
        if not form.validate():
            logger.info("Submission blocked by validation: %s", sorted(form.errors))
            return SubmissionOutcome.failed(
                "Please correct the highlighted fields",
                "validation_error",
                field_errors=form.errors,
            )

        # ── Step 2: Voice recording ───────────────────────────────────────
        voice_recording_url: Optional[str] = None
        if form.voice_recording is not None:
            try:
                voice_recording_url = await self.upload_service.upload(
                    form.voice_recording, VOICE_RECORDINGS_FOLDER, AUDIO_EXTENSION
                )
            except UploadError as e:
                logger.error("Voice upload failed: %s", e.reason)
                return SubmissionOutcome.failed(f"Failed to upload voice recording: {e.reason}", e.code)

        # ── Step 3: Photo ─────────────────────────────────────────────────
        photo_url: Optional[str] = None
        if form.photo is not None:
            try:
                photo_url = await self.upload_service.upload(
                    form.photo, PHOTOS_FOLDER, photo_extension(form.photo.filename)
                )
            except UploadError as e:
                logger.error("Photo upload failed: %s", e.reason)
                return SubmissionOutcome.failed(f"Failed to upload photo: {e.reason}", e.code)

        # ── Step 4: Build the record ──────────────────────────────────────
        record = {
            "full_name": form.full_name.strip(),
            "email": form.email.strip(),
            "phone_model": form.phone_model,
            "issue_description": form.issue_description.strip() or None,
            "voice_recording_url": voice_recording_url,
            "photo_url": photo_url,
            "urgency": form.urgency,
            "status": "pending",
        }

        # ── Step 5: Persist ───────────────────────────────────────────────
        try:
            saved = await self.record_store.insert(REPAIR_REQUESTS_TABLE, record)
        except PersistError as e:
            logger.error("Repair request not saved: %s | Context: %s", e.message, e.context)
            return SubmissionOutcome.failed(e.message, "persist_failed")

        # ── Step 6: Notify (best effort) ──────────────────────────────────
        try:
            await self.notifier.notify(ConfirmationEmailRequest(
                email=saved.email,
                name=saved.full_name,
                request_id=str(saved.id),
                phone_model=saved.phone_model,
                urgency=saved.urgency,
                turnaround=urgency_or_default(saved.urgency).turnaround,
            ))
        except Exception as e:
            logger.warning("Confirmation email for %s not sent: %s", saved.id, str(e))

        # ── Step 7: Success ───────────────────────────────────────────────
        logger.info("Repair request %s submitted", saved.id)
        return SubmissionOutcome.succeeded(saved)
