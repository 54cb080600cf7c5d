"""
Booking endpoints (authenticated) – create, list and cancel bookings.
"""

from fastapi import APIRouter, HTTPException, Request, status

from studio_booking import db
from studio_booking.dependencies import CurrentUser
from studio_booking.models import (
    Booking,
    BookingCreate,
    BookingListResponse,
    BookingResult,
    CancellationQuote,
    CancellationResult,
    CancelRequest,
)
from studio_booking.rate_limit import BOOKING, limiter
from studio_booking.services import booking as booking_service
from studio_booking.services.cancellation import check_cancellable

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=BookingResult,
    status_code=status.HTTP_201_CREATED,
    operation_id="createBooking",
    summary="Book a time slot on a date",
)
@limiter.limit(BOOKING)
async def create_booking(
    request: Request,
    body: BookingCreate,
    current_user: CurrentUser,
) -> BookingResult:
    result = await booking_service.create_booking(body, current_user.email)
    if not result.created:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.reason)
    return result


@router.get(
    "",
    response_model=BookingListResponse,
    operation_id="listBookings",
    summary="List the authenticated user's bookings",
)
async def list_bookings(current_user: CurrentUser) -> BookingListResponse:
    return BookingListResponse(items=await db.list_bookings_for_user(current_user.email))


@router.get(
    "/{booking_id}",
    response_model=Booking,
    operation_id="getBooking",
    summary="Get one of the user's bookings",
)
async def get_booking(booking_id: str, current_user: CurrentUser) -> Booking:
    return await booking_service.get_user_booking(booking_id, current_user.email)


@router.get(
    "/{booking_id}/cancellation",
    response_model=CancellationQuote,
    operation_id="getCancellationQuote",
    summary="What cancelling this booking now would cost",
)
async def get_cancellation_quote(booking_id: str, current_user: CurrentUser) -> CancellationQuote:
    booking = await booking_service.get_user_booking(booking_id, current_user.email)
    refusal = check_cancellable(booking)
    if refusal is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=refusal)
    return await booking_service.preview_cancellation(booking)


@router.post(
    "/{booking_id}/cancel",
    response_model=CancellationResult,
    operation_id="cancelBooking",
    summary="Cancel a booking, charging the applicable fee",
)
@limiter.limit(BOOKING)
async def cancel_booking(
    request: Request,
    booking_id: str,
    body: CancelRequest,
    current_user: CurrentUser,
) -> CancellationResult:
    result = await booking_service.cancel_booking(booking_id, current_user.email, body.reason)
    if not result.cancelled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.reason)
    return result
