"""
Availability calculator: decides which slots can be booked on which days.

Works purely on a ``CalendarSnapshot`` loaded by the caller; nothing in
here touches the database or the clock except for resolving "today" when
the caller does not pin it.

A slot is checked against an ordered list of rules. The first rule that
rejects the slot wins and its reason is what the user sees, so the order
is part of the contract:

1.  slot is active
2.  booking window
3.  already booked (by a slot booking or an overlapping hourly one)
4.  internal block
5.  weekday opening hours (missing or closed)
6.  special date (holiday / closed)
7.  slot fits inside the effective opening hours

Hourly bookings have no catalog slot. For them the calculator offers start
and end times on a one-hour grid inside the effective opening hours that
keep clear of everything already taken that day.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, NamedTuple
from zoneinfo import ZoneInfo

from studio_booking.config import STUDIO_TIMEZONE
from studio_booking.errors import InvalidInputError
from studio_booking.models import (
    AvailabilityResult,
    BookingType,
    CalendarSnapshot,
    DayAvailability,
    HourlyAvailability,
    OpeningHours,
    SpecialDate,
    SpecialDateType,
    TimeRange,
    TimeSlot,
)

logger = logging.getLogger(__name__)

REASON_INACTIVE = "This slot is not offered"
REASON_OUTSIDE_WINDOW = "The date is outside the bookable period"
REASON_ALREADY_BOOKED = "This slot is already booked"
REASON_BLOCKED = "This slot is not available"
REASON_CLOSED_DAY = "The studio is closed on this day"
REASON_CLOSED_SPECIAL = "Closed"
REASON_OUTSIDE_HOURS = "This slot is outside the opening hours"
REASON_HOURLY_DISABLED = "Hourly booking is not available"
REASON_HOURLY_LENGTH = "The booking length is not allowed"


def studio_today() -> date:
    """Current calendar day in the studio's time zone."""
    return datetime.now(ZoneInfo(STUDIO_TIMEZONE)).date()


def weekday_index(day: date) -> int:
    """Weekday as stored in opening hours: 0=Sunday … 6=Saturday."""
    return (day.weekday() + 1) % 7


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def _clock(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def _overlaps(ranges: Iterable[TimeRange], start: int, end: int) -> bool:
    """Whether minutes [start, end) meet any taken range. Touching edges don't count."""
    return any(start < _minutes(r.end) and end > _minutes(r.start) for r in ranges)


class SlotRule(NamedTuple):
    """One availability rule: `rejects` decides, `reason` explains."""
    name: str
    rejects: Callable[["AvailabilityCalculator", date, TimeSlot], bool]
    reason: Callable[["AvailabilityCalculator", date], str]


def _special_date_reason(calc: "AvailabilityCalculator", day: date) -> str:
    special = calc.get_special_date_info(day)
    if special is not None and special.name:
        return special.name
    return REASON_CLOSED_SPECIAL


def _closed_on_weekday(calc: "AvailabilityCalculator", day: date, slot: TimeSlot) -> bool:
    hours = calc.get_opening_hours_for_date(day)
    return hours is None or hours.is_closed


def _closed_by_special_date(calc: "AvailabilityCalculator", day: date, slot: TimeSlot) -> bool:
    special = calc.get_special_date_info(day)
    return special is not None and special.closes_day


def _outside_opening_hours(calc: "AvailabilityCalculator", day: date, slot: TimeSlot) -> bool:
    window = calc.effective_hours(day)
    if window is None:
        return True
    open_time, close_time = window
    return slot.start_time < open_time or slot.end_time > close_time


class AvailabilityCalculator:
    """
    Answers availability questions over one immutable snapshot.

    Build a fresh instance per query; ``today`` can be pinned for
    deterministic results (tests, batch jobs).
    """

    RULES: tuple[SlotRule, ...] = (
        SlotRule(
            "inactive_slot",
            lambda calc, day, slot: not slot.is_active,
            lambda calc, day: REASON_INACTIVE,
        ),
        SlotRule(
            "booking_window",
            lambda calc, day, slot: not calc.is_date_within_booking_window(day),
            lambda calc, day: REASON_OUTSIDE_WINDOW,
        ),
        SlotRule(
            "already_booked",
            lambda calc, day, slot: (
                calc.is_slot_booked_on_date(day, slot.id)
                or calc.is_slot_taken_by_hourly_booking(day, slot)
            ),
            lambda calc, day: REASON_ALREADY_BOOKED,
        ),
        SlotRule(
            "internal_block",
            lambda calc, day, slot: calc.is_slot_blocked_by_internal_block(day, slot),
            lambda calc, day: REASON_BLOCKED,
        ),
        SlotRule(
            "weekday_closed",
            _closed_on_weekday,
            lambda calc, day: REASON_CLOSED_DAY,
        ),
        SlotRule(
            "special_date_closed",
            _closed_by_special_date,
            _special_date_reason,
        ),
        SlotRule(
            "outside_opening_hours",
            _outside_opening_hours,
            lambda calc, day: REASON_OUTSIDE_HOURS,
        ),
    )

    RULE_ORDER: tuple[str, ...] = tuple(rule.name for rule in RULES)

    def __init__(self, snapshot: CalendarSnapshot, *, today: date | None = None) -> None:
        self._snapshot = snapshot
        self._today = today if today is not None else studio_today()

    @property
    def snapshot(self) -> CalendarSnapshot:
        return self._snapshot

    @property
    def today(self) -> date:
        return self._today

    # ── Lookups ────────────────────────────────────────────────────────

    def get_opening_hours_for_date(self, day: date) -> OpeningHours | None:
        index = weekday_index(day)
        for hours in self._snapshot.opening_hours:
            if hours.day_of_week == index:
                return hours
        return None

    def get_special_date_info(self, day: date) -> SpecialDate | None:
        for special in self._snapshot.special_dates:
            if special.date == day:
                return special
        return None

    def effective_hours(self, day: date) -> tuple[time, time] | None:
        """(open, close) for the day: special-date overrides first, then weekday."""
        hours = self.get_opening_hours_for_date(day)
        if hours is None:
            return None
        special = self.get_special_date_info(day)
        open_time = (special.open_time if special else None) or hours.open_time
        close_time = (special.close_time if special else None) or hours.close_time
        return open_time, close_time

    # ── Individual checks ─────────────────────────────────────────────

    def is_date_within_booking_window(self, day: date) -> bool:
        settings = self._snapshot.settings
        min_date = self._today + timedelta(days=settings.min_days_ahead)
        max_date = self._today + timedelta(days=settings.max_days_ahead)
        return min_date <= day <= max_date

    def is_slot_booked_on_date(self, day: date, slot_id: str) -> bool:
        return any(
            b.booking_date == day and b.time_slot_id == slot_id and b.occupies_slot
            for b in self._snapshot.bookings
        )

    def is_slot_taken_by_hourly_booking(self, day: date, slot: TimeSlot) -> bool:
        hourly = (
            TimeRange(start=b.start_time, end=b.end_time)
            for b in self._snapshot.bookings
            if b.booking_date == day and b.booking_type == BookingType.HOURLY and b.occupies_slot
        )
        return _overlaps(hourly, _minutes(slot.start_time), _minutes(slot.end_time))

    def is_slot_blocked_by_internal_block(self, day: date, slot: TimeSlot) -> bool:
        slot_start = datetime.combine(day, slot.start_time)
        slot_end = datetime.combine(day, slot.end_time)

        for block in self._snapshot.internal_blocks:
            start, end = block.start_datetime, block.end_datetime
            if (
                start <= slot_start <= end
                or start <= slot_end <= end
                or (slot_start <= start and slot_end >= end)
            ):
                return True
        return False

    # ── Aggregates ─────────────────────────────────────────────────────

    def check_slot_availability(self, day: date, slot: TimeSlot) -> AvailabilityResult:
        for rule in self.RULES:
            if rule.rejects(self, day, slot):
                logger.debug("Slot %s on %s rejected by %s", slot.id, day, rule.name)
                return AvailabilityResult(available=False, reason=rule.reason(self, day))
        return AvailabilityResult(available=True)

    def get_day_availability(self, day: date) -> DayAvailability:
        special = self.get_special_date_info(day)
        hours = self.get_opening_hours_for_date(day)

        is_holiday = special is not None and special.type == SpecialDateType.HOLIDAY
        is_closed = (special is not None and special.type == SpecialDateType.CLOSED) or (
            hours is not None and hours.is_closed
        )

        if is_holiday or is_closed:
            return DayAvailability(
                date=day,
                is_open=False,
                is_holiday=is_holiday,
                holiday_name=special.name if special else None,
                available_slots=(),
            )

        slots = tuple(
            slot
            for slot in self._snapshot.time_slots
            if self.check_slot_availability(day, slot).available
        )
        return DayAvailability(
            date=day,
            is_open=bool(slots),
            is_holiday=False,
            available_slots=slots,
        )

    def get_month_availability(self, year: int, month: int) -> list[DayAvailability]:
        """One entry per day of the month, in date order. ``month`` is 1–12."""
        if not 1 <= month <= 12:
            raise InvalidInputError(f"month must be between 1 and 12, got {month}")
        _, days_in_month = calendar.monthrange(year, month)
        return [
            self.get_day_availability(date(year, month, day))
            for day in range(1, days_in_month + 1)
        ]

    # ── Hourly bookings ────────────────────────────────────────────────

    def taken_ranges(self, day: date) -> list[TimeRange]:
        """
        Stretches of ``day`` an hourly booking has to keep clear of, ordered
        by start: live slot and hourly bookings, and internal blocks cut to
        the day.
        """
        slots = {slot.id: slot for slot in self._snapshot.time_slots}
        ranges: list[TimeRange] = []
        for booking in self._snapshot.bookings:
            if booking.booking_date != day or not booking.occupies_slot:
                continue
            if booking.booking_type == BookingType.HOURLY:
                ranges.append(TimeRange(start=booking.start_time, end=booking.end_time))
            elif booking.time_slot_id in slots:
                slot = slots[booking.time_slot_id]
                ranges.append(TimeRange(start=slot.start_time, end=slot.end_time))

        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)
        for block in self._snapshot.internal_blocks:
            if block.end_datetime <= day_start or block.start_datetime >= day_end:
                continue
            start = max(block.start_datetime, day_start).time()
            end = block.end_datetime.time() if block.end_datetime < day_end else time.max
            ranges.append(TimeRange(start=start, end=end))

        return sorted(ranges, key=lambda r: r.start)

    def hourly_hours(self, day: date) -> tuple[time, time] | None:
        """(open, close) for hourly bookings on ``day``; None when it takes none."""
        if not self._snapshot.hourly.enabled or not self.is_date_within_booking_window(day):
            return None
        hours = self.get_opening_hours_for_date(day)
        special = self.get_special_date_info(day)
        if hours is None or hours.is_closed or (special is not None and special.closes_day):
            return None
        return self.effective_hours(day)

    def get_hourly_start_times(self, day: date) -> list[time]:
        """Whole hours from opening time that leave ``min_hours`` free after them."""
        window = self.hourly_hours(day)
        if window is None:
            return []
        open_at, close_at = _minutes(window[0]), _minutes(window[1])
        shortest = self._snapshot.hourly.min_hours * 60
        taken = self.taken_ranges(day)
        return [
            _clock(start)
            for start in range(open_at, close_at - shortest + 1, 60)
            if not _overlaps(taken, start, start + shortest)
        ]

    def get_hourly_end_times(self, day: date, start: time) -> list[time]:
        """Possible ends for a booking starting at ``start``, up to the next taken range."""
        if start not in self.get_hourly_start_times(day):
            return []
        settings = self._snapshot.hourly
        _, close_time = self.hourly_hours(day)
        close_at = _minutes(close_time)
        begin = _minutes(start)
        taken = self.taken_ranges(day)

        next_taken = min(
            (_minutes(r.start) for r in taken if _minutes(r.start) > begin),
            default=close_at,
        )
        latest = min(begin + settings.max_hours * 60, close_at, next_taken)
        return [
            _clock(end)
            for end in range(begin + settings.min_hours * 60, latest + 1, 60)
            if not _overlaps(taken, begin, end)
        ]

    def check_hourly_availability(self, day: date, start: time, end: time) -> AvailabilityResult:
        settings = self._snapshot.hourly
        if not settings.enabled:
            return AvailabilityResult(available=False, reason=REASON_HOURLY_DISABLED)
        if not self.is_date_within_booking_window(day):
            return AvailabilityResult(available=False, reason=REASON_OUTSIDE_WINDOW)
        hours = self.get_opening_hours_for_date(day)
        if hours is None or hours.is_closed:
            return AvailabilityResult(available=False, reason=REASON_CLOSED_DAY)
        special = self.get_special_date_info(day)
        if special is not None and special.closes_day:
            return AvailabilityResult(available=False, reason=_special_date_reason(self, day))

        length = _minutes(end) - _minutes(start)
        if length <= 0 or length % 60 or not settings.min_hours <= length // 60 <= settings.max_hours:
            return AvailabilityResult(available=False, reason=REASON_HOURLY_LENGTH)

        open_time, close_time = self.effective_hours(day)
        if start < open_time or end > close_time:
            return AvailabilityResult(available=False, reason=REASON_OUTSIDE_HOURS)
        if _overlaps(self.taken_ranges(day), _minutes(start), _minutes(end)):
            return AvailabilityResult(available=False, reason=REASON_ALREADY_BOOKED)
        return AvailabilityResult(available=True)

    def get_hourly_availability(self, day: date, start: time | None = None) -> HourlyAvailability:
        settings = self._snapshot.hourly
        window = self.hourly_hours(day)
        return HourlyAvailability(
            date=day,
            enabled=settings.enabled,
            hourly_rate=settings.hourly_rate,
            min_hours=settings.min_hours,
            max_hours=settings.max_hours,
            open_time=window[0] if window else None,
            close_time=window[1] if window else None,
            booked_ranges=tuple(self.taken_ranges(day)),
            start_times=tuple(self.get_hourly_start_times(day)),
            end_times=tuple(self.get_hourly_end_times(day, start)) if start is not None else (),
        )
