"""
Cancellation fee policy.

Tiers model "the earlier you cancel, the less you pay": the first tier
(by threshold, descending) whose ``days_before`` the booking still clears
sets the fee. Cancelling later than every tier costs the full price.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Iterable
from zoneinfo import ZoneInfo

from studio_booking.config import STUDIO_TIMEZONE
from studio_booking.errors import InvalidInputError
from studio_booking.models import (
    Booking,
    BookingStatus,
    CancellationFee,
    CancellationQuote,
    CancellationRule,
)
from studio_booking.services.pricing import percent_of

DEFAULT_CANCELLATION_POLICY: tuple[CancellationRule, ...] = (
    CancellationRule(days_before=7, fee_percent=0),
    CancellationRule(days_before=3, fee_percent=50),
    CancellationRule(days_before=2, fee_percent=70),
    CancellationRule(days_before=1, fee_percent=100),
)

# Applied when no tier matches. Not configurable.
FALLBACK_FEE_PERCENT = 100

CANCELLABLE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.PAID}
)

REASON_NOT_CANCELLABLE = "This booking cannot be cancelled"
REASON_PAST_BOOKING = "Bookings cannot be cancelled once their day has begun"


def studio_now() -> datetime:
    """Current naive local time in the studio's time zone."""
    return datetime.now(ZoneInfo(STUDIO_TIMEZONE)).replace(tzinfo=None)


def days_until(booking_date: date, now: datetime) -> int:
    """Whole days from ``now`` to the start of ``booking_date``, floored."""
    return (datetime.combine(booking_date, time.min) - now).days


def compute_fee(
    booking_date: date,
    total_price: int,
    policy: Iterable[CancellationRule],
    now: datetime | None = None,
) -> CancellationFee:
    if total_price < 0:
        raise InvalidInputError(f"total_price must not be negative, got {total_price}")

    now = now or studio_now()
    remaining = days_until(booking_date, now)

    fee_percent = FALLBACK_FEE_PERCENT
    for rule in sorted(policy, key=lambda r: r.days_before, reverse=True):
        if rule.days_before <= remaining:
            fee_percent = rule.fee_percent
            break

    return CancellationFee(
        fee=percent_of(total_price, fee_percent),
        fee_percent=fee_percent,
        days_until=remaining,
    )


def check_cancellable(booking: Booking, now: datetime | None = None) -> str | None:
    """Reason the booking can't be cancelled, or None if it can."""
    now = now or studio_now()
    if booking.status not in CANCELLABLE_STATUSES:
        return REASON_NOT_CANCELLABLE
    if datetime.combine(booking.booking_date, time.min) < now:
        return REASON_PAST_BOOKING
    return None


def quote_cancellation(
    booking: Booking,
    policy: Iterable[CancellationRule],
    now: datetime | None = None,
) -> CancellationQuote:
    """Fee owed for cancelling ``booking`` now, and what a paid booking gets back."""
    fee = compute_fee(booking.booking_date, booking.total_price, policy, now)
    refund = booking.total_price - fee.fee if booking.status == BookingStatus.PAID else 0
    return CancellationQuote(
        booking_id=booking.id,
        fee=fee.fee,
        fee_percent=fee.fee_percent,
        days_until=fee.days_until,
        refund_amount=refund,
    )
