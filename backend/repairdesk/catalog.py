"""
RepairDesk Backend — Reference Data
====================================

What:  Static device and urgency tables used by the form, the success summary
       and the confirmation email. Never mutated at runtime.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel


class PhoneModel(BaseModel):
    value: str
    label: str

    model_config = {"frozen": True}


class UrgencyLevel(BaseModel):
    """
    One urgency tier.

    `color` / `bg_color` are display attributes for the form; `email_color`
    is the hex colour used by the confirmation email.
    """

    value: str
    label: str
    description: str
    turnaround: str
    color: str
    bg_color: str
    email_color: str

    model_config = {"frozen": True}


OTHER_PHONE_MODEL = "other"

PHONE_MODELS: List[PhoneModel] = [
    PhoneModel(value="iphone-15-pro-max", label="iPhone 15 Pro Max"),
    PhoneModel(value="iphone-15-pro", label="iPhone 15 Pro"),
    PhoneModel(value="iphone-15", label="iPhone 15"),
    PhoneModel(value="iphone-14-pro-max", label="iPhone 14 Pro Max"),
    PhoneModel(value="iphone-14-pro", label="iPhone 14 Pro"),
    PhoneModel(value="iphone-14", label="iPhone 14"),
    PhoneModel(value="iphone-13", label="iPhone 13"),
    PhoneModel(value="iphone-12", label="iPhone 12"),
    PhoneModel(value="iphone-11", label="iPhone 11"),
    PhoneModel(value="samsung-galaxy-s24-ultra", label="Samsung Galaxy S24 Ultra"),
    PhoneModel(value="samsung-galaxy-s24", label="Samsung Galaxy S24"),
    PhoneModel(value="samsung-galaxy-s23", label="Samsung Galaxy S23"),
    PhoneModel(value="samsung-galaxy-a54", label="Samsung Galaxy A54"),
    PhoneModel(value="google-pixel-8-pro", label="Google Pixel 8 Pro"),
    PhoneModel(value="google-pixel-8", label="Google Pixel 8"),
    PhoneModel(value="google-pixel-7", label="Google Pixel 7"),
    PhoneModel(value="oneplus-12", label="OnePlus 12"),
    PhoneModel(value="oneplus-11", label="OnePlus 11"),
    PhoneModel(value="xiaomi-14", label="Xiaomi 14"),
    PhoneModel(value="huawei-p60", label="Huawei P60"),
    # Catch-all; the description is expected to name the device
    PhoneModel(value=OTHER_PHONE_MODEL, label="Other (please specify in description)"),
]

URGENCY_LEVELS: List[UrgencyLevel] = [
    UrgencyLevel(
        value="low",
        label="Low Priority",
        description="Device works, minor issues",
        turnaround="5-7 business days",
        color="text-green-600",
        bg_color="bg-green-50 border-green-200",
        email_color="#059669",
    ),
    UrgencyLevel(
        value="medium",
        label="Medium Priority",
        description="Device partially functional",
        turnaround="2-3 business days",
        color="text-yellow-600",
        bg_color="bg-yellow-50 border-yellow-200",
        email_color="#d97706",
    ),
    UrgencyLevel(
        value="high",
        label="High Priority",
        description="Device not working/urgent",
        turnaround="24-48 hours",
        color="text-red-600",
        bg_color="bg-red-50 border-red-200",
        email_color="#dc2626",
    ),
]

DEFAULT_URGENCY = "medium"

_PHONE_MODELS_BY_VALUE: Dict[str, PhoneModel] = {m.value: m for m in PHONE_MODELS}
_URGENCY_BY_VALUE: Dict[str, UrgencyLevel] = {u.value: u for u in URGENCY_LEVELS}


def find_phone_model(value: Optional[str]) -> Optional[PhoneModel]:
    if not value:
        return None
    return _PHONE_MODELS_BY_VALUE.get(value)


def phone_model_label(value: str) -> str:
    """Display label for a device key; unknown keys are shown as given."""
    model = find_phone_model(value)
    return model.label if model else value


def find_urgency(value: Optional[str]) -> Optional[UrgencyLevel]:
    if not value:
        return None
    return _URGENCY_BY_VALUE.get(value)


def urgency_or_default(value: Optional[str]) -> UrgencyLevel:
    """Urgency row for `value`, falling back to the medium tier."""
    return find_urgency(value) or _URGENCY_BY_VALUE[DEFAULT_URGENCY]
