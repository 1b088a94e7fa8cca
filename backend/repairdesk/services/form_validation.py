"""
RepairDesk Backend — Form State & Validation
=============================================

What:  Holds the intake form's field values and attached media, and
       validates them on each submit attempt.
How:   validate() recomputes the whole error mapping from scratch; editing a
       field never clears its error until the next submit attempt.

Rules:
    fullName          required, non-blank
    email             required; loose "local@domain.tld" shape (not RFC 5322)
    phoneModel        required; must be a key of the phone-model catalog
    issueDescription  required unless a voice recording is attached
    urgency           always has a value (defaults to medium), never in error

Known gap: the "other" device does not require the description to name the
device. No rule is enforced for it.
"""

import logging
import re
from typing import Dict, Optional

from repairdesk.catalog import DEFAULT_URGENCY, find_phone_model, find_urgency
from repairdesk.services.media_capture import MediaPayload

logger = logging.getLogger(__name__)

# Anything@anything.anything with no whitespace in each part
EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

FIELD_FULL_NAME = "fullName"
FIELD_EMAIL = "email"
FIELD_PHONE_MODEL = "phoneModel"
FIELD_ISSUE_DESCRIPTION = "issueDescription"


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_fields(
    full_name: Optional[str],
    email: Optional[str],
    phone_model: Optional[str],
    issue_description: Optional[str],
    has_voice_recording: bool,
) -> Dict[str, str]:
    """Return field name → message for every rule that fails (empty when valid)."""
    errors: Dict[str, str] = {}

    if _blank(full_name):
        errors[FIELD_FULL_NAME] = "Full name is required"

    if _blank(email):
        errors[FIELD_EMAIL] = "Email is required"
    elif not EMAIL_PATTERN.search(email):
        errors[FIELD_EMAIL] = "Please enter a valid email address"

    if find_phone_model(phone_model) is None:
        errors[FIELD_PHONE_MODEL] = "Please select your phone model"

    if _blank(issue_description) and not has_voice_recording:
        errors[FIELD_ISSUE_DESCRIPTION] = "Please describe the issue or record a voice message"

    return errors


class RepairFormState:
    """
    Field values, attached media and the last computed errors of one form.

    Attributes mirror the form inputs; `errors` is only written by
    validate() and reset().
    """

    def __init__(
        self,
        full_name: str = "",
        email: str = "",
        phone_model: str = "",
        issue_description: str = "",
        urgency: str = DEFAULT_URGENCY,
        voice_recording: Optional[MediaPayload] = None,
        photo: Optional[MediaPayload] = None,
    ):
        self.full_name = full_name
        self.email = email
        self.phone_model = phone_model
        self.issue_description = issue_description
        self.urgency = urgency
        self.voice_recording = voice_recording
        self.photo = photo
        self.errors: Dict[str, str] = {}

    @property
    def urgency(self) -> str:
        return self._urgency

    @urgency.setter
    def urgency(self, value: Optional[str]) -> None:
        # The selector always holds one of the three tiers
        if find_urgency(value) is None:
            if value:
                logger.warning("Unknown urgency '%s', using %s", value, DEFAULT_URGENCY)
            value = DEFAULT_URGENCY
        self._urgency = value

    def update(self, **fields) -> None:
        """Set field values. Existing errors stay until the next validate()."""
        for name, value in fields.items():
            if not hasattr(self, name) or name == "errors":
                raise AttributeError(f"Unknown form field: {name}")
            setattr(self, name, value)

    def validate(self) -> bool:
        self.errors = validate_fields(
            full_name=self.full_name,
            email=self.email,
            phone_model=self.phone_model,
            issue_description=self.issue_description,
            has_voice_recording=self.voice_recording is not None,
        )
        return not self.errors

    def reset(self) -> None:
        """Clear every field, attachment and error (the "new request" action)."""
        self.full_name = ""
        self.email = ""
        self.phone_model = ""
        self.issue_description = ""
        self.urgency = DEFAULT_URGENCY
        self.voice_recording = None
        self.photo = None
        self.errors = {}
