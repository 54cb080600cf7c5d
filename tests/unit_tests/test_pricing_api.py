"""Tests for the catalog, pricing and coupon endpoints."""

import pytest

from studio_booking import db
from studio_booking.config import CURRENCY
from studio_booking.services.coupons import REASON_EMPTY, REASON_UNKNOWN
from tests.mocks.models import (
    EXTRA_ASSISTANT,
    EXTRA_BACKDROP,
    MOCK_EXTRAS,
    SLOT_AFTERNOON,
    SLOT_EVENING,
    SLOT_MORNING,
)


class TestCatalog:
    def test_list_time_slots(self, seeded_client):
        resp = seeded_client.get("/api/time-slots")
        assert resp.status_code == 200
        ids = [s["id"] for s in resp.json()["items"]]
        assert ids == [SLOT_MORNING.id, SLOT_AFTERNOON.id, SLOT_EVENING.id]

    def test_list_extras(self, seeded_client):
        resp = seeded_client.get("/api/extras")
        assert resp.status_code == 200
        assert len(resp.json()["items"]) == len(MOCK_EXTRAS)

    def test_empty_catalog(self, client):
        assert client.get("/api/time-slots").json() == {"items": []}


class TestQuote:
    def test_quote(self, seeded_client):
        resp = seeded_client.post(
            "/api/pricing/quote",
            json={
                "time_slot_id": SLOT_AFTERNOON.id,
                "extras": [
                    {"extra_id": EXTRA_BACKDROP.id, "quantity": 1},
                    {"extra_id": EXTRA_ASSISTANT.id, "quantity": 4},
                ],
            },
        )
        assert resp.status_code == 200

        data = resp.json()
        assert data["coupon"] is None
        assert data["currency"] == CURRENCY
        assert data["price"]["extras_price"] == 5000 + 4 * 4000
        assert data["price"]["total"] == 25000 + 21000

    def test_quote_with_coupon(self, seeded_client):
        data = seeded_client.post(
            "/api/pricing/quote",
            json={"time_slot_id": SLOT_MORNING.id, "coupon_code": "WELCOME15"},
        ).json()
        assert data["coupon"]["valid"] is True
        assert data["price"]["discount"] == 3000
        assert data["price"]["total"] == 17000

    def test_quote_unknown_extra(self, seeded_client):
        resp = seeded_client.post(
            "/api/pricing/quote",
            json={"time_slot_id": SLOT_MORNING.id, "extras": [{"extra_id": "x", "quantity": 1}]},
        )
        assert resp.status_code == 404

    def test_quote_unknown_slot(self, seeded_client):
        resp = seeded_client.post("/api/pricing/quote", json={"time_slot_id": "missing"})
        assert resp.status_code == 404


class TestHourlyQuote:
    def test_hours_times_rate(self, seeded_client):
        resp = seeded_client.post(
            "/api/pricing/hourly-quote",
            json={
                "start_time": "10:00",
                "end_time": "13:00",
                "extras": [{"extra_id": EXTRA_BACKDROP.id, "quantity": 1}],
            },
        )
        assert resp.status_code == 200

        data = resp.json()
        assert data["currency"] == CURRENCY
        assert data["price"]["base_price"] == 3 * 10000
        assert data["price"]["total"] == 30000 + 5000

    def test_with_coupon(self, seeded_client):
        data = seeded_client.post(
            "/api/pricing/hourly-quote",
            json={"start_time": "10:00", "end_time": "12:00", "coupon_code": "WELCOME15"},
        ).json()
        assert data["coupon"]["valid"] is True
        assert data["price"]["discount"] == 3000
        assert data["price"]["total"] == 17000

    @pytest.mark.parametrize(
        "start, end",
        [("10:00", "11:00"), ("10:00", "12:30"), ("12:00", "10:00"), ("08:00", "18:00")],
    )
    def test_length_not_allowed(self, seeded_client, start, end):
        resp = seeded_client.post(
            "/api/pricing/hourly-quote", json={"start_time": start, "end_time": end}
        )
        assert resp.status_code == 422

    def test_disabled(self, seeded_client):
        seeded_client.portal.call(
            db.set_setting,
            "hourly_booking",
            {"enabled": False, "hourly_rate": 10000, "min_hours": 2, "max_hours": 9},
        )
        resp = seeded_client.post(
            "/api/pricing/hourly-quote", json={"start_time": "10:00", "end_time": "12:00"}
        )
        assert resp.status_code == 422

class TestValidateCoupon:
    def test_valid_code(self, seeded_client):
        resp = seeded_client.post("/api/coupons/validate", json={"code": " welcome15"})
        assert resp.status_code == 200

        data = resp.json()
        assert data["valid"] is True
        assert data["code"] == "WELCOME15"
        assert data["discount_percent"] == 15

    def test_unknown_code(self, seeded_client):
        data = seeded_client.post("/api/coupons/validate", json={"code": "NOPE"}).json()
        assert data["valid"] is False
        assert data["reason"] == REASON_UNKNOWN
        assert data["discount_percent"] == 0

    def test_empty_code(self, seeded_client):
        data = seeded_client.post("/api/coupons/validate", json={"code": "  "}).json()
        assert data["reason"] == REASON_EMPTY
