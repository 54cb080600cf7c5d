"""
Availability endpoints – what can be booked on a day or across a month,
by slot or by the hour.
"""

import calendar
from datetime import date, time

from fastapi import APIRouter, HTTPException, Path, Query, status

from studio_booking import db
from studio_booking.models import (
    AvailabilityResult,
    DayAvailability,
    HourlyAvailability,
    MonthAvailabilityResponse,
)
from studio_booking.services.booking import load_calculator

router = APIRouter(prefix="/api/availability", tags=["availability"])


@router.get(
    "/days/{day}",
    response_model=DayAvailability,
    operation_id="getDayAvailability",
    summary="Bookable slots on one day",
)
async def get_day_availability(day: date) -> DayAvailability:
    calc = await load_calculator(day, day)
    return calc.get_day_availability(day)


@router.get(
    "/months/{year}/{month}",
    response_model=MonthAvailabilityResponse,
    operation_id="getMonthAvailability",
    summary="Per-day availability for a calendar month",
)
async def get_month_availability(
    year: int = Path(..., ge=2000, le=2100),
    month: int = Path(..., ge=1, le=12),
) -> MonthAvailabilityResponse:
    _, last_day = calendar.monthrange(year, month)
    calc = await load_calculator(date(year, month, 1), date(year, month, last_day))
    return MonthAvailabilityResponse(
        year=year,
        month=month,
        days=calc.get_month_availability(year, month),
    )


@router.get(
    "/slots/{slot_id}",
    response_model=AvailabilityResult,
    operation_id="checkSlotAvailability",
    summary="Whether a slot can be booked on a given day",
)
async def check_slot_availability(
    slot_id: str,
    day: date = Query(..., alias="date", description="Day to check (YYYY-MM-DD)"),
) -> AvailabilityResult:
    slot = await db.get_time_slot(slot_id)
    if slot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Time slot {slot_id} not found",
        )
    calc = await load_calculator(day, day)
    return calc.check_slot_availability(day, slot)


@router.get(
    "/hourly/{day}",
    response_model=HourlyAvailability,
    operation_id="getHourlyAvailability",
    summary="Start (and, given a start, end) times for an hourly booking",
)
async def get_hourly_availability(
    day: date,
    start: time | None = Query(None, description="Chosen start; fills end_times"),
) -> HourlyAvailability:
    calc = await load_calculator(day, day)
    return calc.get_hourly_availability(day, start)
