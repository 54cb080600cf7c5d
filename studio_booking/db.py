"""
SQLite database layer using aiosqlite.

Holds the studio's calendar facts (opening hours, special dates, slot
catalog, extras, internal blocks, coupons, settings) and the bookings.
Tables are created automatically on first connect.

The availability check done before a booking is advisory only. The
partial unique index on ``bookings(booking_date, time_slot_id)`` is what
guarantees at most one live booking per slot and day; a violation surfaces
as ``SlotConflictError``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

import aiosqlite

from studio_booking.config import (
    DB_PATH,
    HOURLY_BOOKING_ENABLED,
    HOURLY_MAX_HOURS,
    HOURLY_MIN_HOURS,
    HOURLY_RATE,
    MAX_DAYS_AHEAD,
    MIN_DAYS_AHEAD,
)
from studio_booking.errors import CouponExhaustedError, NotFoundError, SlotConflictError
from studio_booking.models import (
    Booking,
    BookingStatus,
    BookingWindowSettings,
    CalendarSnapshot,
    CancellationPolicy,
    CancellationRule,
    Coupon,
    Extra,
    HourlyBookingSettings,
    InternalBlock,
    OpeningHours,
    SelectedExtra,
    SpecialDate,
    TimeSlot,
)

logger = logging.getLogger(__name__)

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None

# One connection is shared, so multi-statement writes must not interleave.
# Recreated by init_db so it belongs to the running event loop.
_write_lock = asyncio.Lock()


async def init_db() -> None:
    """Open the database and create tables if they don't exist."""
    global _db, _write_lock
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _write_lock = asyncio.Lock()
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")

    await _db.executescript(_SCHEMA)
    await _db.commit()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await _db.close()
        _db = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    assert _db is not None, "Database not initialized; call init_db() first"
    return _db


async def ping() -> bool:
    """True when the connection is open and answers a trivial query."""
    if _db is None:
        return False
    async with _db.execute("SELECT 1") as cur:
        return await cur.fetchone() is not None


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS opening_hours (
    day_of_week     INTEGER PRIMARY KEY,  -- 0 = Sunday
    open_time       TEXT NOT NULL,
    close_time      TEXT NOT NULL,
    is_closed       INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS special_dates (
    date            TEXT PRIMARY KEY,
    type            TEXT NOT NULL,        -- holiday | closed | custom_hours
    name            TEXT,
    open_time       TEXT,
    close_time      TEXT
);

CREATE TABLE IF NOT EXISTS time_slots (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    start_time      TEXT NOT NULL,
    end_time        TEXT NOT NULL,
    duration_hours  INTEGER NOT NULL,
    base_price      INTEGER NOT NULL,
    is_active       INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS extras (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    price           INTEGER NOT NULL,
    price_type      TEXT NOT NULL,        -- fixed | per_hour | per_person
    description     TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS internal_blocks (
    id              TEXT PRIMARY KEY,
    title           TEXT,
    start_datetime  TEXT NOT NULL,
    end_datetime    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_blocks_range ON internal_blocks(start_datetime, end_datetime);

CREATE TABLE IF NOT EXISTS coupons (
    id              TEXT PRIMARY KEY,
    code            TEXT NOT NULL UNIQUE, -- stored upper-case
    discount_percent INTEGER NOT NULL,
    is_active       INTEGER NOT NULL DEFAULT 1,
    valid_from      TEXT,
    valid_until     TEXT,
    max_uses        INTEGER,
    current_uses    INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS bookings (
    id              TEXT PRIMARY KEY,
    booking_date    TEXT NOT NULL,
    booking_type    TEXT NOT NULL DEFAULT 'package',  -- package | hourly
    time_slot_id    TEXT,                 -- package bookings
    start_time      TEXT,                 -- hourly bookings
    end_time        TEXT,
    status          TEXT NOT NULL,
    base_price      INTEGER NOT NULL,
    extras_price    INTEGER NOT NULL DEFAULT 0,
    discount_percent INTEGER NOT NULL DEFAULT 0,
    discount_amount INTEGER NOT NULL DEFAULT 0,
    total_price     INTEGER NOT NULL,
    coupon_id       TEXT,
    coupon_code     TEXT,
    user_email      TEXT NOT NULL,
    user_notes      TEXT,
    cancellation_fee INTEGER,
    cancellation_reason TEXT,
    cancelled_at    TEXT,
    created_at      TEXT NOT NULL,
    FOREIGN KEY (time_slot_id) REFERENCES time_slots(id),
    FOREIGN KEY (coupon_id) REFERENCES coupons(id)
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_bookings_live_slot
    ON bookings(booking_date, time_slot_id)
    WHERE status NOT IN ('cancelled', 'no_show');
CREATE INDEX IF NOT EXISTS idx_bookings_user ON bookings(user_email);

CREATE TABLE IF NOT EXISTS booking_extras (
    booking_id      TEXT NOT NULL,
    extra_id        TEXT NOT NULL,
    quantity        INTEGER NOT NULL,
    unit_price      INTEGER NOT NULL,
    total_price     INTEGER NOT NULL,
    PRIMARY KEY (booking_id, extra_id),
    FOREIGN KEY (booking_id) REFERENCES bookings(id) ON DELETE CASCADE,
    FOREIGN KEY (extra_id) REFERENCES extras(id)
);

CREATE TABLE IF NOT EXISTS settings (
    key             TEXT PRIMARY KEY,
    value           TEXT NOT NULL         -- JSON
);
"""

_RELEASED = tuple(s.value for s in (BookingStatus.CANCELLED, BookingStatus.NO_SHOW))
_CANCELLABLE = tuple(
    s.value for s in (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.PAID)
)


# ── Helpers ───────────────────────────────────────────────────────────────


def _iso(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def _row_dict(row: aiosqlite.Row) -> dict:
    return {key: row[key] for key in row.keys()}


async def _fetch_all(sql: str, params: tuple | list = ()) -> list[aiosqlite.Row]:
    async with get_db().execute(sql, params) as cur:
        return list(await cur.fetchall())


async def _fetch_one(sql: str, params: tuple | list = ()) -> aiosqlite.Row | None:
    async with get_db().execute(sql, params) as cur:
        return await cur.fetchone()


# ══════════════════════════════════════════════════════════════════════════
#                    CALENDAR FACTS (read side)
# ══════════════════════════════════════════════════════════════════════════


async def list_opening_hours() -> list[OpeningHours]:
    rows = await _fetch_all("SELECT * FROM opening_hours ORDER BY day_of_week")
    return [OpeningHours.model_validate(_row_dict(r)) for r in rows]


async def list_special_dates(date_from: date, date_to: date) -> list[SpecialDate]:
    rows = await _fetch_all(
        "SELECT * FROM special_dates WHERE date BETWEEN ? AND ? ORDER BY date",
        (_iso(date_from), _iso(date_to)),
    )
    return [SpecialDate.model_validate(_row_dict(r)) for r in rows]


async def list_time_slots(*, active_only: bool = True) -> list[TimeSlot]:
    sql = "SELECT * FROM time_slots"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY start_time, name"
    rows = await _fetch_all(sql)
    return [TimeSlot.model_validate(_row_dict(r)) for r in rows]


async def get_time_slot(slot_id: str) -> TimeSlot | None:
    row = await _fetch_one("SELECT * FROM time_slots WHERE id = ?", (slot_id,))
    return TimeSlot.model_validate(_row_dict(row)) if row else None


async def list_extras(*, active_only: bool = True) -> list[Extra]:
    sql = "SELECT * FROM extras"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY name"
    rows = await _fetch_all(sql)
    return [Extra.model_validate(_row_dict(r)) for r in rows]


async def get_extras(extra_ids: list[str]) -> dict[str, Extra]:
    """Active extras by id. Unknown or inactive ids are simply missing."""
    if not extra_ids:
        return {}
    placeholders = ", ".join("?" for _ in extra_ids)
    rows = await _fetch_all(
        f"SELECT * FROM extras WHERE is_active = 1 AND id IN ({placeholders})",
        list(extra_ids),
    )
    return {r["id"]: Extra.model_validate(_row_dict(r)) for r in rows}


async def list_internal_blocks(date_from: date, date_to: date) -> list[InternalBlock]:
    """Blocks that overlap [date_from 00:00, date_to + 1 day 00:00)."""
    range_start = datetime.combine(date_from, datetime.min.time())
    range_end = datetime.combine(date_to + timedelta(days=1), datetime.min.time())
    rows = await _fetch_all(
        """
        SELECT * FROM internal_blocks
        WHERE start_datetime < ? AND end_datetime >= ?
        ORDER BY start_datetime
        """,
        (_iso(range_end), _iso(range_start)),
    )
    return [InternalBlock.model_validate(_row_dict(r)) for r in rows]


async def list_live_bookings(date_from: date, date_to: date) -> list[Booking]:
    """Bookings in the range that still hold their slot."""
    rows = await _fetch_all(
        """
        SELECT * FROM bookings
        WHERE booking_date BETWEEN ? AND ?
          AND status NOT IN (?, ?)
        ORDER BY booking_date
        """,
        (_iso(date_from), _iso(date_to), *_RELEASED),
    )
    return [Booking.model_validate(_row_dict(r)) for r in rows]


async def load_snapshot(date_from: date, date_to: date) -> CalendarSnapshot:
    """Read every calendar fact needed to answer availability for the range."""
    return CalendarSnapshot(
        opening_hours=tuple(await list_opening_hours()),
        special_dates=tuple(await list_special_dates(date_from, date_to)),
        time_slots=tuple(await list_time_slots()),
        internal_blocks=tuple(await list_internal_blocks(date_from, date_to)),
        bookings=tuple(await list_live_bookings(date_from, date_to)),
        settings=await get_booking_window(),
        hourly=await get_hourly_booking(),
    )


# ══════════════════════════════════════════════════════════════════════════
#                    SETTINGS
# ══════════════════════════════════════════════════════════════════════════


async def get_setting(key: str) -> dict | list | None:
    row = await _fetch_one("SELECT value FROM settings WHERE key = ?", (key,))
    return json.loads(row["value"]) if row else None


async def set_setting(key: str, value: dict | list) -> None:
    db = get_db()
    async with _write_lock:
        await db.execute(
            """
            INSERT INTO settings (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, json.dumps(value)),
        )
        await db.commit()


async def get_booking_window() -> BookingWindowSettings:
    value = await get_setting("booking_window")
    if value is None:
        return BookingWindowSettings(
            min_days_ahead=MIN_DAYS_AHEAD, max_days_ahead=MAX_DAYS_AHEAD
        )
    return BookingWindowSettings.model_validate(value)


async def get_hourly_booking() -> HourlyBookingSettings:
    value = await get_setting("hourly_booking")
    if value is None:
        return HourlyBookingSettings(
            enabled=HOURLY_BOOKING_ENABLED,
            hourly_rate=HOURLY_RATE,
            min_hours=HOURLY_MIN_HOURS,
            max_hours=HOURLY_MAX_HOURS,
        )
    return HourlyBookingSettings.model_validate(value)


async def get_cancellation_policy() -> tuple[CancellationRule, ...] | None:
    """Stored cancellation tiers, or None when the studio hasn't set any."""
    value = await get_setting("cancellation_policy")
    if value is None:
        return None
    return CancellationPolicy.model_validate(value).rules


# ══════════════════════════════════════════════════════════════════════════
#                    REFERENCE DATA (admin writes)
# ══════════════════════════════════════════════════════════════════════════


async def upsert_opening_hours(hours: OpeningHours) -> None:
    db = get_db()
    async with _write_lock:
        await db.execute(
            """
            INSERT INTO opening_hours (day_of_week, open_time, close_time, is_closed)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(day_of_week) DO UPDATE SET
                open_time = excluded.open_time,
                close_time = excluded.close_time,
                is_closed = excluded.is_closed
            """,
            (hours.day_of_week, _iso(hours.open_time), _iso(hours.close_time), int(hours.is_closed)),
        )
        await db.commit()


async def add_special_date(special: SpecialDate) -> None:
    db = get_db()
    async with _write_lock:
        await db.execute(
            "INSERT OR REPLACE INTO special_dates (date, type, name, open_time, close_time) VALUES (?, ?, ?, ?, ?)",
            (
                _iso(special.date),
                special.type.value,
                special.name,
                _iso(special.open_time),
                _iso(special.close_time),
            ),
        )
        await db.commit()


async def add_time_slot(slot: TimeSlot) -> None:
    db = get_db()
    async with _write_lock:
        await db.execute(
            """
            INSERT INTO time_slots (id, name, start_time, end_time, duration_hours, base_price, is_active)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                slot.id,
                slot.name,
                _iso(slot.start_time),
                _iso(slot.end_time),
                slot.duration_hours,
                slot.base_price,
                int(slot.is_active),
            ),
        )
        await db.commit()


async def add_extra(extra: Extra) -> None:
    db = get_db()
    async with _write_lock:
        await db.execute(
            """
            INSERT INTO extras (id, name, price, price_type, description, is_active)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                extra.id,
                extra.name,
                extra.price,
                extra.price_type.value,
                extra.description,
                int(extra.is_active),
            ),
        )
        await db.commit()


async def add_internal_block(block: InternalBlock) -> InternalBlock:
    block = block if block.id else block.model_copy(update={"id": str(uuid4())})
    db = get_db()
    async with _write_lock:
        await db.execute(
            "INSERT INTO internal_blocks (id, title, start_datetime, end_datetime) VALUES (?, ?, ?, ?)",
            (block.id, block.title, _iso(block.start_datetime), _iso(block.end_datetime)),
        )
        await db.commit()
    return block


async def add_coupon(coupon: Coupon) -> None:
    db = get_db()
    async with _write_lock:
        await db.execute(
            """
            INSERT INTO coupons (
                id, code, discount_percent, is_active,
                valid_from, valid_until, max_uses, current_uses
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                coupon.id,
                coupon.code.strip().upper(),
                coupon.discount_percent,
                int(coupon.is_active),
                _iso(coupon.valid_from),
                _iso(coupon.valid_until),
                coupon.max_uses,
                coupon.current_uses,
            ),
        )
        await db.commit()


async def find_coupon(code: str) -> Coupon | None:
    """Look up a coupon by its (already normalized) code."""
    row = await _fetch_one("SELECT * FROM coupons WHERE code = ?", (code,))
    return Coupon.model_validate(_row_dict(row)) if row else None


# ══════════════════════════════════════════════════════════════════════════
#                    BOOKING REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def get_booking(booking_id: str) -> Booking | None:
    row = await _fetch_one("SELECT * FROM bookings WHERE id = ?", (booking_id,))
    return Booking.model_validate(_row_dict(row)) if row else None


async def list_bookings_for_user(user_email: str) -> list[Booking]:
    rows = await _fetch_all(
        "SELECT * FROM bookings WHERE user_email = ? ORDER BY booking_date DESC, created_at DESC",
        (user_email,),
    )
    return [Booking.model_validate(_row_dict(r)) for r in rows]


async def insert_booking(booking: Booking, extras: list[SelectedExtra]) -> Booking:
    """
    Redeem the booking's coupon (if any) and insert the booking, atomically.

    Raises ``CouponExhaustedError`` when the coupon ran out in the meantime
    and ``SlotConflictError`` when another live booking holds the slot.
    On these or any other failure the transaction is rolled back, so
    nothing is written.
    """
    db = get_db()
    created_at = datetime.now(timezone.utc)

    async with _write_lock:
        try:
            if booking.coupon_id is not None:
                cur = await db.execute(
                    """
                    UPDATE coupons SET current_uses = current_uses + 1
                    WHERE id = ? AND is_active = 1
                      AND (max_uses IS NULL OR current_uses < max_uses)
                    """,
                    (booking.coupon_id,),
                )
                if cur.rowcount == 0:
                    raise CouponExhaustedError(f"Coupon {booking.coupon_code} can no longer be redeemed")

            await db.execute(
                """
                INSERT INTO bookings (
                    id, booking_date, booking_type, time_slot_id, start_time, end_time, status,
                    base_price, extras_price, discount_percent, discount_amount, total_price,
                    coupon_id, coupon_code, user_email, user_notes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    booking.id,
                    _iso(booking.booking_date),
                    booking.booking_type.value,
                    booking.time_slot_id,
                    _iso(booking.start_time),
                    _iso(booking.end_time),
                    booking.status.value,
                    booking.base_price,
                    booking.extras_price,
                    booking.discount_percent,
                    booking.discount_amount,
                    booking.total_price,
                    booking.coupon_id,
                    booking.coupon_code,
                    booking.user_email,
                    booking.user_notes,
                    _iso(created_at),
                ),
            )
            await db.executemany(
                """
                INSERT INTO booking_extras (booking_id, extra_id, quantity, unit_price, total_price)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (booking.id, line.extra.id, line.quantity, line.price, line.line_total)
                    for line in extras
                ],
            )
            await db.commit()
        except aiosqlite.IntegrityError:
            await db.rollback()
            logger.warning(
                "Slot %s on %s was taken before booking %s could be stored",
                booking.time_slot_id,
                booking.booking_date,
                booking.id,
            )
            raise SlotConflictError(
                f"Slot {booking.time_slot_id} on {booking.booking_date} is already booked"
            ) from None
        except BaseException:
            await db.rollback()
            raise

    return booking.model_copy(update={"created_at": created_at})


async def list_booking_extras(booking_id: str) -> list[dict]:
    rows = await _fetch_all(
        "SELECT * FROM booking_extras WHERE booking_id = ? ORDER BY extra_id",
        (booking_id,),
    )
    return [_row_dict(r) for r in rows]


async def mark_booking_cancelled(
    booking_id: str,
    *,
    fee: int,
    reason: str | None,
    cancelled_at: datetime,
) -> Booking:
    """
    Move a cancellable booking to ``cancelled``, recording the fee.

    The status guard in the UPDATE makes a second concurrent cancel a
    no-op; in that case ``NotFoundError`` is raised.
    """
    db = get_db()
    async with _write_lock:
        cur = await db.execute(
            f"""
            UPDATE bookings
            SET status = ?, cancellation_fee = ?, cancellation_reason = ?, cancelled_at = ?
            WHERE id = ? AND status IN ({", ".join("?" for _ in _CANCELLABLE)})
            """,
            (
                BookingStatus.CANCELLED.value,
                fee,
                reason,
                _iso(cancelled_at),
                booking_id,
                *_CANCELLABLE,
            ),
        )
        await db.commit()

    if cur.rowcount == 0:
        raise NotFoundError(f"No cancellable booking {booking_id}")
    logger.info("Booking %s cancelled (fee %d)", booking_id, fee)
    return await get_booking(booking_id)  # type: ignore[return-value]


async def update_booking_status(booking_id: str, status: BookingStatus) -> Booking:
    db = get_db()
    async with _write_lock:
        cur = await db.execute(
            "UPDATE bookings SET status = ? WHERE id = ?",
            (status.value, booking_id),
        )
        await db.commit()
    if cur.rowcount == 0:
        raise NotFoundError(f"Booking {booking_id} not found")
    return await get_booking(booking_id)  # type: ignore[return-value]
