"""
Coupon validation contract.

The store finds the coupon record for a normalized code; this module
decides whether it may be used right now. Usage counting itself happens
atomically in the store when the booking is written.
"""

from __future__ import annotations

from datetime import datetime

from studio_booking.models import Coupon, CouponValidation

REASON_EMPTY = "Please enter a coupon code"
REASON_UNKNOWN = "Invalid coupon code"
REASON_INACTIVE = "This coupon is no longer active"
REASON_NOT_YET_VALID = "This coupon is not valid yet"
REASON_EXPIRED = "This coupon has expired"
REASON_USED_UP = "This coupon has reached its usage limit"


def normalize_code(raw: str | None) -> str:
    return (raw or "").strip().upper()


def reject(reason: str) -> CouponValidation:
    return CouponValidation(valid=False, reason=reason)


def validate_coupon(code: str, coupon: Coupon | None, now: datetime) -> CouponValidation:
    """
    Check ``coupon`` (as found for ``code``) against its validity rules.

    Rejections carry a reason and a zero discount. ``now`` is naive local
    time, like the stored validity bounds.
    """
    code = normalize_code(code)
    if not code:
        return reject(REASON_EMPTY)
    if coupon is None or normalize_code(coupon.code) != code:
        return reject(REASON_UNKNOWN)
    if not coupon.is_active:
        return reject(REASON_INACTIVE)
    if coupon.valid_from is not None and now < coupon.valid_from:
        return reject(REASON_NOT_YET_VALID)
    if coupon.valid_until is not None and now > coupon.valid_until:
        return reject(REASON_EXPIRED)
    if coupon.max_uses is not None and coupon.current_uses >= coupon.max_uses:
        return reject(REASON_USED_UP)

    return CouponValidation(
        valid=True,
        coupon_id=coupon.id,
        code=code,
        discount_percent=coupon.discount_percent,
    )


def apply_coupon(
    applied: CouponValidation | None,
    result: CouponValidation,
) -> CouponValidation | None:
    """
    Session-level application of a validation result.

    A valid result replaces whatever was applied; re-applying the same code
    lands on the same discount. A rejection leaves the session untouched.
    """
    if result.valid:
        return result
    return applied


def effective_discount_percent(applied: CouponValidation | None) -> int:
    if applied is None or not applied.valid:
        return 0
    return applied.discount_percent
