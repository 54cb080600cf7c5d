"""Tests for the /api/availability endpoints."""

from datetime import time, timedelta

from studio_booking import db
from studio_booking.models import SpecialDateType
from studio_booking.services.availability import (
    REASON_BLOCKED,
    REASON_CLOSED_DAY,
    REASON_INACTIVE,
    REASON_OUTSIDE_HOURS,
    REASON_OUTSIDE_WINDOW,
    studio_today,
    weekday_index,
)
from tests.mocks.models import (
    SLOT_AFTERNOON,
    SLOT_EVENING,
    SLOT_MORNING,
    SLOT_RETIRED,
    bookable_day,
    make_block,
    make_special_date,
)


def _next_sunday():
    day = studio_today() + timedelta(days=1)
    while weekday_index(day) != 0:
        day += timedelta(days=1)
    return day


class TestDayAvailability:
    def test_open_day(self, seeded_client):
        day = bookable_day()
        resp = seeded_client.get(f"/api/availability/days/{day.isoformat()}")
        assert resp.status_code == 200

        data = resp.json()
        assert data["date"] == day.isoformat()
        assert data["is_open"] is True
        assert data["is_holiday"] is False
        assert [s["id"] for s in data["available_slots"]] == [SLOT_MORNING.id, SLOT_AFTERNOON.id]

    def test_holiday(self, seeded_client):
        day = bookable_day()
        seeded_client.portal.call(
            db.add_special_date,
            make_special_date(day, SpecialDateType.HOLIDAY, name="Studio Anniversary"),
        )

        data = seeded_client.get(f"/api/availability/days/{day.isoformat()}").json()
        assert data["is_open"] is False
        assert data["is_holiday"] is True
        assert data["holiday_name"] == "Studio Anniversary"
        assert data["available_slots"] == []

    def test_closed_sunday(self, seeded_client):
        data = seeded_client.get(f"/api/availability/days/{_next_sunday().isoformat()}").json()
        assert data["is_open"] is False
        assert data["is_holiday"] is False

    def test_invalid_date(self, seeded_client):
        resp = seeded_client.get("/api/availability/days/not-a-date")
        assert resp.status_code == 422


class TestMonthAvailability:
    def test_february(self, seeded_client):
        resp = seeded_client.get("/api/availability/months/2027/2")
        assert resp.status_code == 200

        data = resp.json()
        assert data["year"] == 2027
        assert data["month"] == 2
        assert len(data["days"]) == 28
        assert data["days"][0]["date"] == "2027-02-01"

    def test_month_out_of_range(self, seeded_client):
        resp = seeded_client.get("/api/availability/months/2027/13")
        assert resp.status_code == 422


class TestSlotAvailability:
    def test_available(self, seeded_client):
        resp = seeded_client.get(
            f"/api/availability/slots/{SLOT_MORNING.id}",
            params={"date": bookable_day().isoformat()},
        )
        assert resp.status_code == 200
        assert resp.json() == {"available": True, "reason": None}

    def test_outside_opening_hours(self, seeded_client):
        data = seeded_client.get(
            f"/api/availability/slots/{SLOT_EVENING.id}",
            params={"date": bookable_day().isoformat()},
        ).json()
        assert data["available"] is False
        assert data["reason"] == REASON_OUTSIDE_HOURS

    def test_blocked(self, seeded_client):
        day = bookable_day()
        seeded_client.portal.call(
            db.add_internal_block, make_block(day, time(10, 0), time(10, 30))
        )

        data = seeded_client.get(
            f"/api/availability/slots/{SLOT_MORNING.id}", params={"date": day.isoformat()}
        ).json()
        assert data == {"available": False, "reason": REASON_BLOCKED}

    def test_closed_day(self, seeded_client):
        data = seeded_client.get(
            f"/api/availability/slots/{SLOT_MORNING.id}",
            params={"date": _next_sunday().isoformat()},
        ).json()
        assert data["reason"] == REASON_CLOSED_DAY

    def test_today_is_outside_window(self, seeded_client):
        data = seeded_client.get(
            f"/api/availability/slots/{SLOT_MORNING.id}",
            params={"date": studio_today().isoformat()},
        ).json()
        assert data["reason"] == REASON_OUTSIDE_WINDOW

    def test_retired_slot_is_not_bookable(self, seeded_client):
        resp = seeded_client.get(
            f"/api/availability/slots/{SLOT_RETIRED.id}",
            params={"date": bookable_day().isoformat()},
        )
        assert resp.status_code == 200
        assert resp.json() == {"available": False, "reason": REASON_INACTIVE}

    def test_block_touching_slot_start(self, seeded_client):
        day = bookable_day()
        seeded_client.portal.call(db.add_internal_block, make_block(day, time(8, 0), time(9, 0)))

        data = seeded_client.get(
            f"/api/availability/slots/{SLOT_MORNING.id}", params={"date": day.isoformat()}
        ).json()
        assert data == {"available": False, "reason": REASON_BLOCKED}

    def test_unknown_slot(self, seeded_client):
        resp = seeded_client.get(
            "/api/availability/slots/missing", params={"date": bookable_day().isoformat()}
        )
        assert resp.status_code == 404

    def test_date_required(self, seeded_client):
        resp = seeded_client.get(f"/api/availability/slots/{SLOT_MORNING.id}")
        assert resp.status_code == 422


class TestHourlyAvailability:
    def test_free_day(self, seeded_client):
        day = bookable_day()
        resp = seeded_client.get(f"/api/availability/hourly/{day.isoformat()}")
        assert resp.status_code == 200

        data = resp.json()
        assert data["enabled"] is True
        assert data["hourly_rate"] == 10000
        assert data["open_time"] == "09:00:00"
        assert data["start_times"][0] == "09:00:00"
        assert data["start_times"][-1] == "16:00:00"
        assert data["end_times"] == []

    def test_end_times_for_start(self, seeded_client):
        day = bookable_day()
        data = seeded_client.get(
            f"/api/availability/hourly/{day.isoformat()}", params={"start": "09:00"}
        ).json()
        assert data["end_times"][0] == "11:00:00"
        assert data["end_times"][-1] == "18:00:00"

    def test_booked_slot_is_taken(self, seeded_client):
        day = bookable_day()
        resp = seeded_client.post(
            "/api/bookings",
            json={"booking_date": day.isoformat(), "time_slot_id": SLOT_MORNING.id},
        )
        assert resp.status_code == 201

        data = seeded_client.get(f"/api/availability/hourly/{day.isoformat()}").json()
        assert data["booked_ranges"] == [{"start": "09:00:00", "end": "12:00:00"}]
        assert data["start_times"][0] == "12:00:00"

    def test_disabled_by_setting(self, seeded_client):
        seeded_client.portal.call(
            db.set_setting,
            "hourly_booking",
            {"enabled": False, "hourly_rate": 10000, "min_hours": 2, "max_hours": 9},
        )
        data = seeded_client.get(f"/api/availability/hourly/{bookable_day().isoformat()}").json()
        assert data["enabled"] is False
        assert data["start_times"] == []

    def test_closed_sunday(self, seeded_client):
        data = seeded_client.get(f"/api/availability/hourly/{_next_sunday().isoformat()}").json()
        assert data["open_time"] is None
        assert data["start_times"] == []
