"""
Booking flow. Glues the facts store to the pure core.

Creating a booking follows the check-locally-then-insert-atomically
pattern: availability is re-evaluated against a freshly loaded snapshot,
then the store's conditional insert gives the authoritative answer. A
conflict at that point is reported like any other "slot unavailable"
result, not as a failure.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from uuid import uuid4

from studio_booking import db
from studio_booking.config import CURRENCY
from studio_booking.errors import (
    CouponExhaustedError,
    InvalidInputError,
    NotFoundError,
    SlotConflictError,
)
from studio_booking.models import (
    Booking,
    BookingCreate,
    BookingResult,
    BookingStatus,
    CancellationResult,
    CancellationQuote,
    CouponValidation,
    ExtraLine,
    HourlyQuoteRequest,
    QuoteRequest,
    QuoteResponse,
    SelectedExtra,
    TimeSlot,
)
from studio_booking.services.availability import AvailabilityCalculator
from studio_booking.services.cancellation import (
    DEFAULT_CANCELLATION_POLICY,
    REASON_NOT_CANCELLABLE,
    check_cancellable,
    quote_cancellation,
    studio_now,
)
from studio_booking.services.coupons import (
    REASON_USED_UP,
    normalize_code,
    validate_coupon,
)
from studio_booking.services.pricing import quote_booking, quote_hourly

logger = logging.getLogger(__name__)

REASON_SLOT_TAKEN = "This slot is no longer available"


# ── Lookups ────────────────────────────────────────────────────────────────


async def load_calculator(
    date_from: date,
    date_to: date,
    *,
    today: date | None = None,
) -> AvailabilityCalculator:
    """Calculator over a fresh snapshot of the given date range."""
    snapshot = await db.load_snapshot(date_from, date_to)
    return AvailabilityCalculator(snapshot, today=today)


async def _bookable_slot(slot_id: str) -> TimeSlot:
    slot = await db.get_time_slot(slot_id)
    if slot is None or not slot.is_active:
        raise NotFoundError(f"Time slot {slot_id} not found")
    return slot


async def _resolve_extras(lines: list[ExtraLine]) -> list[SelectedExtra]:
    ids = [line.extra_id for line in lines]
    if len(set(ids)) != len(ids):
        raise InvalidInputError("each extra may only be listed once")

    found = await db.get_extras(ids)
    missing = [extra_id for extra_id in ids if extra_id not in found]
    if missing:
        raise NotFoundError(f"Extras not found: {', '.join(missing)}")

    return [SelectedExtra(extra=found[line.extra_id], quantity=line.quantity) for line in lines]


async def check_coupon(code: str | None, now: datetime | None = None) -> CouponValidation:
    """Validate ``code`` against the stored coupon, as of ``now``."""
    code = normalize_code(code)
    coupon = await db.find_coupon(code) if code else None
    return validate_coupon(code, coupon, now or studio_now())


# ── Quotes ─────────────────────────────────────────────────────────────────


async def quote(request: QuoteRequest, now: datetime | None = None) -> QuoteResponse:
    """
    Price a prospective booking. An invalid coupon is reported next to the
    undiscounted price; it never changes the amount.
    """
    slot = await _bookable_slot(request.time_slot_id)
    extras = await _resolve_extras(request.extras)

    coupon = None
    if request.coupon_code is not None:
        coupon = await check_coupon(request.coupon_code, now)

    return QuoteResponse(
        price=quote_booking(slot, extras, coupon),
        coupon=coupon,
        currency=CURRENCY,
    )


def _whole_hours(start: time, end: time) -> int:
    minutes = (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)
    if minutes <= 0 or minutes % 60 or start.second or end.second:
        raise InvalidInputError(f"{start}-{end} is not a whole number of hours")
    return minutes // 60


async def quote_hourly_booking(
    request: HourlyQuoteRequest,
    now: datetime | None = None,
) -> QuoteResponse:
    """Price an hourly booking from its start and end; coupons behave as in ``quote``."""
    settings = await db.get_hourly_booking()
    if not settings.enabled:
        raise InvalidInputError("hourly booking is disabled")

    duration = _whole_hours(request.start_time, request.end_time)
    extras = await _resolve_extras(request.extras)

    coupon = None
    if request.coupon_code is not None:
        coupon = await check_coupon(request.coupon_code, now)

    return QuoteResponse(
        price=quote_hourly(duration, settings, extras, coupon),
        coupon=coupon,
        currency=CURRENCY,
    )


# ── Create ─────────────────────────────────────────────────────────────────


async def create_booking(
    request: BookingCreate,
    user_email: str,
    *,
    today: date | None = None,
    now: datetime | None = None,
) -> BookingResult:
    slot = await _bookable_slot(request.time_slot_id)
    extras = await _resolve_extras(request.extras)

    calc = await load_calculator(request.booking_date, request.booking_date, today=today)
    availability = calc.check_slot_availability(request.booking_date, slot)
    if not availability.available:
        return BookingResult(created=False, reason=availability.reason)

    coupon = None
    if request.coupon_code:
        coupon = await check_coupon(request.coupon_code, now)
        if not coupon.valid:
            return BookingResult(created=False, reason=coupon.reason)

    price = quote_booking(slot, extras, coupon)
    booking = Booking(
        id=str(uuid4()),
        booking_date=request.booking_date,
        time_slot_id=slot.id,
        status=BookingStatus.PENDING,
        base_price=price.base_price,
        extras_price=price.extras_price,
        discount_percent=coupon.discount_percent if coupon else 0,
        discount_amount=price.discount,
        total_price=price.total,
        coupon_id=coupon.coupon_id if coupon else None,
        coupon_code=coupon.code if coupon else None,
        user_email=user_email,
        user_notes=request.user_notes,
    )

    try:
        stored = await db.insert_booking(booking, extras)
    except SlotConflictError:
        return BookingResult(created=False, reason=REASON_SLOT_TAKEN)
    except CouponExhaustedError:
        return BookingResult(created=False, reason=REASON_USED_UP)

    logger.info(
        "Booking %s created: slot %s on %s for %s (total %d)",
        stored.id,
        slot.id,
        stored.booking_date,
        user_email,
        stored.total_price,
    )
    return BookingResult(created=True, booking=stored, price=price)


# ── Cancel ─────────────────────────────────────────────────────────────────


async def get_user_booking(booking_id: str, user_email: str) -> Booking:
    """The user's own booking; other users' bookings look non-existent."""
    booking = await db.get_booking(booking_id)
    if booking is None or booking.user_email != user_email:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


async def preview_cancellation(
    booking: Booking,
    now: datetime | None = None,
) -> CancellationQuote:
    policy = await db.get_cancellation_policy() or DEFAULT_CANCELLATION_POLICY
    return quote_cancellation(booking, policy, now or studio_now())


async def cancel_booking(
    booking_id: str,
    user_email: str,
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> CancellationResult:
    now = now or studio_now()
    booking = await get_user_booking(booking_id, user_email)

    refusal = check_cancellable(booking, now)
    if refusal is not None:
        return CancellationResult(cancelled=False, booking=booking, reason=refusal)

    cancellation = await preview_cancellation(booking, now)
    try:
        updated = await db.mark_booking_cancelled(
            booking.id,
            fee=cancellation.fee,
            reason=reason,
            cancelled_at=now,
        )
    except NotFoundError:
        # Someone else cancelled (or changed) it between our read and write.
        return CancellationResult(cancelled=False, booking=booking, reason=REASON_NOT_CANCELLABLE)

    return CancellationResult(cancelled=True, booking=updated, cancellation=cancellation)
