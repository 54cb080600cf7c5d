"""
Catalog endpoints – the slot templates and extras on offer.
"""

from fastapi import APIRouter

from studio_booking import db
from studio_booking.models import ExtraListResponse, TimeSlotListResponse

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get(
    "/time-slots",
    response_model=TimeSlotListResponse,
    operation_id="listTimeSlots",
    summary="List active time slots",
)
async def list_time_slots() -> TimeSlotListResponse:
    return TimeSlotListResponse(items=await db.list_time_slots())


@router.get(
    "/extras",
    response_model=ExtraListResponse,
    operation_id="listExtras",
    summary="List active extras",
)
async def list_extras() -> ExtraListResponse:
    return ExtraListResponse(items=await db.list_extras())
