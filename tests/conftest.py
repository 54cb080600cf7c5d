"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a temporary SQLite database (via app lifespan)
  • an authenticated mock user
  • rate limiting switched off

The `client` fixture runs the full lifespan (DB init / shutdown). Seed the
store through `client.portal.call(...)` so writes run on the app's own
event loop.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from studio_booking import db
from studio_booking.dependencies import get_current_user
from studio_booking.main import app
from tests.mocks.models import (
    COUPON_WELCOME,
    MOCK_EXTRAS,
    MOCK_TIME_SLOTS,
    MOCK_USER,
    OPENING_HOURS_WEEK,
)


# ── Helpers ────────────────────────────────────────────────────────────────


async def seed_studio() -> None:
    """Opening hours, slot catalog, extras and an open-ended coupon."""
    for hours in OPENING_HOURS_WEEK:
        await db.upsert_opening_hours(hours)
    for slot in MOCK_TIME_SLOTS:
        await db.add_time_slot(slot)
    for extra in MOCK_EXTRAS:
        await db.add_extra(extra)
    await db.add_coupon(COUPON_WELCOME)


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """
    Internal fixture that points the store at a temp database and turns
    rate limiting off, so the app lifespan runs cleanly.
    """
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "test.db"))

    from studio_booking.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
def client(_test_env) -> TestClient:
    """
    FastAPI TestClient with a temp DB and auth bypassed.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    async def _mock_current_user():
        return MOCK_USER

    app.dependency_overrides[get_current_user] = _mock_current_user

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


@pytest.fixture()
def seeded_client(client: TestClient) -> TestClient:
    """`client` with the mock studio catalog already stored."""
    client.portal.call(seed_studio)
    return client


@pytest.fixture()
def unauthed_client(_test_env) -> TestClient:
    """
    TestClient without auth overrides: requests are rejected unless
    a session cookie is provided.
    """
    app.dependency_overrides.clear()

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


@pytest.fixture()
async def store(tmp_path, monkeypatch):
    """Initialized store on a temp database, without the HTTP layer."""
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "store.db"))
    await db.init_db()
    yield db
    await db.close_db()


@pytest.fixture()
async def seeded_store(store):
    await seed_studio()
    return store
