"""
RepairDesk Backend — Catalog Routes
====================================

What:  Read-only reference data for the intake form: the device list and
       the urgency tiers.
How:   Served straight from repairdesk.catalog. The tables never change at
       runtime, so responses are cacheable.
"""

from fastapi import APIRouter, Response

from repairdesk.catalog import DEFAULT_URGENCY, PHONE_MODELS, URGENCY_LEVELS
from repairdesk.schemas.repair_request import PhoneModelList, UrgencyLevelList

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])

CACHE_CONTROL = "public, max-age=3600"


@router.get(
    "/phone-models",
    response_model=PhoneModelList,
    summary="Selectable phone models",
)
async def list_phone_models(response: Response) -> PhoneModelList:
    response.headers["Cache-Control"] = CACHE_CONTROL
    return PhoneModelList(phone_models=PHONE_MODELS)


@router.get(
    "/urgency-levels",
    response_model=UrgencyLevelList,
    summary="Urgency tiers with turnaround times",
)
async def list_urgency_levels(response: Response) -> UrgencyLevelList:
    response.headers["Cache-Control"] = CACHE_CONTROL
    return UrgencyLevelList(urgency_levels=URGENCY_LEVELS, default=DEFAULT_URGENCY)
