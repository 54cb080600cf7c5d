#!/usr/bin/env python3
"""
Entry point for the Studio Booking API.

Server settings come from studio_booking.config (environment or .env).
"""

import logging

import uvicorn

from studio_booking.config import API_HOST, API_PORT, API_RELOAD, ENVIRONMENT, LOG_LEVEL

logger = logging.getLogger("studio_booking")


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting Studio Booking (%s) on %s:%d", ENVIRONMENT, API_HOST, API_PORT)
    uvicorn.run(
        "studio_booking.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_RELOAD,
        log_level=LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
