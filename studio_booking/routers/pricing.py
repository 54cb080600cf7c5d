"""
Pricing and coupon endpoints.
"""

from fastapi import APIRouter, Request

from studio_booking.models import (
    CouponValidateRequest,
    CouponValidation,
    HourlyQuoteRequest,
    QuoteRequest,
    QuoteResponse,
)
from studio_booking.rate_limit import STRICT, limiter
from studio_booking.services import booking as booking_service

router = APIRouter(prefix="/api", tags=["pricing"])


@router.post(
    "/pricing/quote",
    response_model=QuoteResponse,
    operation_id="quoteBooking",
    summary="Price breakdown for a slot with extras and an optional coupon",
)
async def quote_booking(body: QuoteRequest) -> QuoteResponse:
    return await booking_service.quote(body)


@router.post(
    "/pricing/hourly-quote",
    response_model=QuoteResponse,
    operation_id="quoteHourlyBooking",
    summary="Price breakdown for an hourly booking: hours × hourly rate, extras, coupon",
)
async def quote_hourly_booking(body: HourlyQuoteRequest) -> QuoteResponse:
    return await booking_service.quote_hourly_booking(body)


@router.post(
    "/coupons/validate",
    response_model=CouponValidation,
    operation_id="validateCoupon",
    summary="Check a coupon code",
)
@limiter.limit(STRICT)
async def validate_coupon(request: Request, body: CouponValidateRequest) -> CouponValidation:
    """
    Always answers 200: an unusable code comes back with ``valid: false``
    and the reason to show the user.
    """
    return await booking_service.check_coupon(body.code)
