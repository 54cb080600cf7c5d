"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
APP_VERSION = "0.1.0"

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "studio_booking.db"))

# ── Studio ────────────────────────────────────────────────────────────────

# "Today" for the booking window is the start of the day in this zone.
STUDIO_TIMEZONE: str = os.getenv("STUDIO_TIMEZONE", "Europe/Budapest")

CURRENCY: str = os.getenv("CURRENCY", "HUF")

# ── Booking window ────────────────────────────────────────────────────────

# Fallbacks used until an admin stores a `booking_window` setting.
MIN_DAYS_AHEAD: int = int(os.getenv("MIN_DAYS_AHEAD", "1"))
MAX_DAYS_AHEAD: int = int(os.getenv("MAX_DAYS_AHEAD", "90"))

# ── Hourly booking ────────────────────────────────────────────────────────

# Fallbacks used until an admin stores an `hourly_booking` setting.
HOURLY_BOOKING_ENABLED: bool = os.getenv("HOURLY_BOOKING_ENABLED", "true").lower() == "true"
HOURLY_RATE: int = int(os.getenv("HOURLY_RATE", "10000"))
HOURLY_MIN_HOURS: int = int(os.getenv("HOURLY_MIN_HOURS", "2"))
HOURLY_MAX_HOURS: int = int(os.getenv("HOURLY_MAX_HOURS", "9"))

# ── JWT ───────────────────────────────────────────────────────────────────

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRY_DAYS: int = int(os.getenv("JWT_EXPIRY_DAYS", "7"))

# ── Server ────────────────────────────────────────────────────────────────

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
API_RELOAD: bool = os.getenv("API_RELOAD", "false").lower() == "true"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "info").lower()
