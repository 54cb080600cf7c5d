"""Tests for model invariants."""

from datetime import time

import pytest
from pydantic import ValidationError

from studio_booking.models import BookingType, HourlyBookingSettings
from tests.mocks.models import TODAY, make_booking, make_hourly_booking, make_snapshot


class TestBooking:
    def test_is_immutable(self):
        booking = make_booking()
        with pytest.raises(ValidationError):
            booking.time_slot_id = "slot-afternoon"

    def test_snapshot_bookings_cannot_be_edited(self):
        snapshot = make_snapshot(bookings=(make_booking(booking_date=TODAY),))
        with pytest.raises(ValidationError):
            snapshot.bookings[0].booking_date = TODAY.replace(day=3)

    def test_updates_go_through_copies(self):
        booking = make_booking()
        paid = booking.model_copy(update={"total_price": 0})
        assert paid.total_price == 0
        assert booking.total_price == 20000

    def test_package_booking_needs_a_slot(self):
        with pytest.raises(ValidationError):
            make_booking(time_slot_id=None)

    def test_hourly_booking_needs_a_range(self):
        with pytest.raises(ValidationError):
            make_booking(booking_type=BookingType.HOURLY, time_slot_id=None)

    def test_hourly_range_must_be_forward(self):
        with pytest.raises(ValidationError):
            make_hourly_booking(TODAY, time(14, 0), time(14, 0))


class TestHourlyBookingSettings:
    def test_defaults(self):
        settings = HourlyBookingSettings()
        assert (settings.hourly_rate, settings.min_hours, settings.max_hours) == (10000, 2, 9)
        assert settings.enabled is True

    def test_max_below_min(self):
        with pytest.raises(ValidationError):
            HourlyBookingSettings(min_hours=4, max_hours=3)
