"""Tests for coupon validation."""

from datetime import datetime

import pytest

from studio_booking.services.coupons import (
    REASON_EMPTY,
    REASON_EXPIRED,
    REASON_INACTIVE,
    REASON_NOT_YET_VALID,
    REASON_UNKNOWN,
    REASON_USED_UP,
    apply_coupon,
    effective_discount_percent,
    normalize_code,
    validate_coupon,
)
from tests.mocks.models import COUPON_SPRING

NOW = datetime(2026, 4, 10, 12, 0)


class TestNormalizeCode:
    @pytest.mark.parametrize("raw", ["spring10", "  Spring10 ", "SPRING10"])
    def test_trims_and_upper_cases(self, raw):
        assert normalize_code(raw) == "SPRING10"

    def test_none_is_empty(self):
        assert normalize_code(None) == ""


class TestValidateCoupon:
    def test_valid_coupon(self):
        result = validate_coupon("spring10", COUPON_SPRING, NOW)
        assert result.valid is True
        assert result.coupon_id == COUPON_SPRING.id
        assert result.code == "SPRING10"
        assert result.discount_percent == 10
        assert result.reason is None

    @pytest.mark.parametrize("code", ["", "   "])
    def test_empty_code(self, code):
        result = validate_coupon(code, COUPON_SPRING, NOW)
        assert result.valid is False
        assert result.reason == REASON_EMPTY

    def test_unknown_code(self):
        assert validate_coupon("NOPE", None, NOW).reason == REASON_UNKNOWN

    def test_record_for_another_code(self):
        assert validate_coupon("AUTUMN5", COUPON_SPRING, NOW).reason == REASON_UNKNOWN

    def test_inactive(self):
        coupon = COUPON_SPRING.model_copy(update={"is_active": False})
        assert validate_coupon("SPRING10", coupon, NOW).reason == REASON_INACTIVE

    def test_not_yet_valid(self):
        result = validate_coupon("SPRING10", COUPON_SPRING, datetime(2026, 2, 28, 23, 59))
        assert result.reason == REASON_NOT_YET_VALID

    def test_expired(self):
        result = validate_coupon("SPRING10", COUPON_SPRING, datetime(2026, 6, 1, 0, 0))
        assert result.reason == REASON_EXPIRED

    def test_bounds_are_inclusive(self):
        assert validate_coupon("SPRING10", COUPON_SPRING, COUPON_SPRING.valid_from).valid is True
        assert validate_coupon("SPRING10", COUPON_SPRING, COUPON_SPRING.valid_until).valid is True

    def test_usage_limit_reached(self):
        coupon = COUPON_SPRING.model_copy(update={"current_uses": 100})
        assert validate_coupon("SPRING10", coupon, NOW).reason == REASON_USED_UP

    def test_one_use_left(self):
        coupon = COUPON_SPRING.model_copy(update={"current_uses": 99})
        assert validate_coupon("SPRING10", coupon, NOW).valid is True

    def test_unbounded_coupon(self):
        coupon = COUPON_SPRING.model_copy(
            update={"valid_from": None, "valid_until": None, "max_uses": None, "current_uses": 5000}
        )
        assert validate_coupon("SPRING10", coupon, datetime(2030, 1, 1)).valid is True

    def test_inactive_checked_before_dates(self):
        coupon = COUPON_SPRING.model_copy(update={"is_active": False})
        result = validate_coupon("SPRING10", coupon, datetime(2027, 1, 1))
        assert result.reason == REASON_INACTIVE

    def test_rejection_carries_no_discount(self):
        result = validate_coupon("SPRING10", COUPON_SPRING, datetime(2027, 1, 1))
        assert result.discount_percent == 0
        assert result.coupon_id is None


class TestApplyCoupon:
    def test_valid_result_is_applied(self):
        result = validate_coupon("SPRING10", COUPON_SPRING, NOW)
        applied = apply_coupon(None, result)
        assert effective_discount_percent(applied) == 10

    def test_applying_twice_is_idempotent(self):
        result = validate_coupon("SPRING10", COUPON_SPRING, NOW)
        once = apply_coupon(None, result)
        twice = apply_coupon(once, result)
        assert twice == once
        assert effective_discount_percent(twice) == 10

    def test_rejection_keeps_previous_coupon(self):
        applied = apply_coupon(None, validate_coupon("SPRING10", COUPON_SPRING, NOW))
        rejected = validate_coupon("NOPE", None, NOW)
        assert apply_coupon(applied, rejected) == applied

    def test_rejection_on_empty_session(self):
        assert apply_coupon(None, validate_coupon("NOPE", None, NOW)) is None
        assert effective_discount_percent(None) == 0
