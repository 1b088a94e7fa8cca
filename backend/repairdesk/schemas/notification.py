"""
RepairDesk Backend — Confirmation Email Schemas
================================================

What:  Wire format of the confirmation function (camelCase JSON in and out).
How:   Every request field is optional at the schema level so that the
       endpoint itself can report *which* fields are missing with a 400,
       instead of FastAPI's generic 422.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

REQUIRED_FIELDS = ("email", "name", "request_id", "phone_model", "urgency")


class ConfirmationEmailRequest(BaseModel):
    """Body of POST /send-confirmation-email."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: Optional[str] = None
    name: Optional[str] = None
    request_id: Optional[str] = None
    phone_model: Optional[str] = None
    urgency: Optional[str] = None
    turnaround: Optional[str] = None

    def missing_fields(self) -> List[str]:
        """Wire names (camelCase) of required fields that are absent or blank."""
        missing = []
        for name in REQUIRED_FIELDS:
            value = getattr(self, name)
            if value is None or not str(value).strip():
                missing.append(to_camel(name))
        return missing


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ConfirmationEmailResult(BaseModel):
    """Success envelope (HTTP 200)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: str = "Confirmation email sent successfully"
    request_id: str
    recipient: str
    subject: str
    method: str = "Resend"
    email_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)


class ConfirmationEmailFailure(BaseModel):
    """Failure envelope (HTTP 502 with provider payload, HTTP 500 otherwise)."""

    success: bool = False
    error: Any
    note: str
    timestamp: datetime = Field(default_factory=_utc_now)
