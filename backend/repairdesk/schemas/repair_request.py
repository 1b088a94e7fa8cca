"""
RepairDesk Backend — Pydantic Request/Response Schemas
=======================================================

What:  API contract for the intake form, the success summary and the
       orchestrator's result value.
How:   FastAPI serializes these for responses and documents them in OpenAPI.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from repairdesk.catalog import PhoneModel, UrgencyLevel, phone_model_label, urgency_or_default


# ══════════════════════════════════════════════════════════════════════════
# Persisted record
# ══════════════════════════════════════════════════════════════════════════


class RepairRequestRecord(BaseModel):
    """
    What:  A repair request as the store returned it (id and created_at set).
    Who:   Carried by a successful SubmissionOutcome and returned to the client.
    """
    id: uuid.UUID = Field(description="Store-assigned identifier")
    full_name: str
    email: str
    phone_model: str = Field(description="Device key from the phone model catalog")
    issue_description: Optional[str] = None
    voice_recording_url: Optional[str] = None
    photo_url: Optional[str] = None
    urgency: str = Field(description="low, medium or high")
    status: str = Field(default="pending", description="pending, in_progress or completed")
    created_at: datetime = Field(description="Store-assigned creation time (UTC)")

    model_config = {"from_attributes": True}


class RepairRequestSummary(BaseModel):
    """
    What:  Display data for the success view.
    Why:   The client shows labels, not keys ("iPhone 15", "High Priority").
    """
    request_id: uuid.UUID
    customer_name: str
    device_label: str
    urgency_label: str
    turnaround: str
    has_voice_recording: bool
    has_photo: bool

    @classmethod
    def from_record(cls, record: RepairRequestRecord) -> "RepairRequestSummary":
        urgency = urgency_or_default(record.urgency)
        return cls(
            request_id=record.id,
            customer_name=record.full_name,
            device_label=phone_model_label(record.phone_model),
            urgency_label=urgency.label,
            turnaround=urgency.turnaround,
            has_voice_recording=record.voice_recording_url is not None,
            has_photo=record.photo_url is not None,
        )


class SubmissionResponse(BaseModel):
    """Returned by POST /api/repair-requests with HTTP 201."""
    message: str = Field(default="Request submitted successfully")
    request: RepairRequestRecord
    summary: RepairRequestSummary


# ══════════════════════════════════════════════════════════════════════════
# Orchestrator result
# ══════════════════════════════════════════════════════════════════════════


class SubmissionOutcome(BaseModel):
    """
    Result of one submission attempt: success-with-record or
    failure-with-reason.

    error_code values:
        validation_error, submission_in_progress, submission_complete,
        upload_failed, storage_not_configured, size_exceeded,
        unsupported_type, persist_failed, unexpected_error
    """
    success: bool
    record: Optional[RepairRequestRecord] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None
    field_errors: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def succeeded(cls, record: RepairRequestRecord) -> "SubmissionOutcome":
        return cls(success=True, record=record)

    @classmethod
    def failed(
        cls,
        reason: str,
        error_code: str,
        field_errors: Optional[Dict[str, str]] = None,
    ) -> "SubmissionOutcome":
        return cls(
            success=False,
            reason=reason,
            error_code=error_code,
            field_errors=dict(field_errors or {}),
        )


# ══════════════════════════════════════════════════════════════════════════
# Catalog, errors, health
# ══════════════════════════════════════════════════════════════════════════


class PhoneModelList(BaseModel):
    phone_models: List[PhoneModel]


class UrgencyLevelList(BaseModel):
    urgency_levels: List[UrgencyLevel]
    default: str


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Please correct the highlighted fields",
            "details": {"fields": {"fullName": "Full name is required"}},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    storage_backend: str = Field(description="Configured object storage backend")
    uptime_seconds: float
