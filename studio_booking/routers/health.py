"""
Health check endpoint.
"""

import logging
from datetime import datetime, timezone

import aiosqlite
from fastapi import APIRouter

from studio_booking import db
from studio_booking.config import APP_VERSION
from studio_booking.models import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check, including the booking store",
)
async def get_health() -> HealthResponse:
    try:
        store_ok = await db.ping()
    except aiosqlite.Error:
        logger.exception("Booking store health check failed")
        store_ok = False

    return HealthResponse(
        status="ok" if store_ok else "degraded",
        version=APP_VERSION,
        database="ok" if store_ok else "unavailable",
        timestamp=datetime.now(timezone.utc),
    )
