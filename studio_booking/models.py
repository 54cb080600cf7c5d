"""Pydantic models for the Studio Booking core and API."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Bookings in these states no longer hold their (date, slot) pair.
RELEASED_STATUSES = frozenset({BookingStatus.CANCELLED, BookingStatus.NO_SHOW})


class SpecialDateType(str, Enum):
    HOLIDAY = "holiday"
    CLOSED = "closed"
    CUSTOM_HOURS = "custom_hours"


class PriceType(str, Enum):
    FIXED = "fixed"
    PER_HOUR = "per_hour"
    PER_PERSON = "per_person"


class BookingType(str, Enum):
    PACKAGE = "package"  # one catalog time slot
    HOURLY = "hourly"  # free start and end, billed per hour


# ── Reference data ─────────────────────────────────────────────────────────


class OpeningHours(BaseModel):
    """Default opening hours for one weekday."""
    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(..., ge=0, le=6, description="Day of week (0=Sunday, 6=Saturday)")
    open_time: dt.time = Field(..., description="Opening time")
    close_time: dt.time = Field(..., description="Closing time")
    is_closed: bool = Field(default=False, description="Closed all day")


class SpecialDate(BaseModel):
    """A calendar day that overrides the weekday opening hours."""
    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(..., description="The overridden day")
    type: SpecialDateType = Field(..., description="holiday, closed or custom_hours")
    name: Optional[str] = Field(None, description="Display name, e.g. the holiday")
    open_time: Optional[dt.time] = Field(None, description="Override opening time")
    close_time: Optional[dt.time] = Field(None, description="Override closing time")

    @property
    def closes_day(self) -> bool:
        return self.type in (SpecialDateType.HOLIDAY, SpecialDateType.CLOSED)


class TimeSlot(BaseModel):
    """A bookable window template, independent of any date."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique slot identifier")
    name: str = Field(..., description="Slot name, e.g. 'Morning'")
    start_time: dt.time = Field(..., description="Slot start (time of day)")
    end_time: dt.time = Field(..., description="Slot end (time of day)")
    duration_hours: int = Field(..., ge=1, description="Length of the slot in hours")
    base_price: int = Field(..., ge=0, description="Price of the slot alone")
    is_active: bool = Field(default=True, description="Inactive slots are never offered")

    @model_validator(mode="after")
    def _check_window(self) -> "TimeSlot":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class InternalBlock(BaseModel):
    """Admin blackout interval, e.g. maintenance."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = Field(None, description="Block identifier")
    title: Optional[str] = Field(None, description="Why the studio is blocked")
    start_datetime: dt.datetime = Field(..., description="Block start (local time)")
    end_datetime: dt.datetime = Field(..., description="Block end (local time)")

    @model_validator(mode="after")
    def _check_interval(self) -> "InternalBlock":
        if self.end_datetime < self.start_datetime:
            raise ValueError("end_datetime must not be before start_datetime")
        return self


class Extra(BaseModel):
    """An optional add-on service."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique extra identifier")
    name: str = Field(..., description="Extra name")
    price: int = Field(..., ge=0, description="Unit price")
    price_type: PriceType = Field(default=PriceType.FIXED, description="How the price scales")
    description: Optional[str] = Field(None, description="Longer description")
    is_active: bool = Field(default=True, description="Whether the extra is offered")


class SelectedExtra(BaseModel):
    """An extra paired with a chosen quantity."""
    model_config = ConfigDict(frozen=True)

    extra: Extra
    quantity: int = Field(..., ge=1, description="Chosen quantity")

    @property
    def price(self) -> int:
        return self.extra.price

    @property
    def line_total(self) -> int:
        return self.extra.price * self.quantity


class Coupon(BaseModel):
    """A discount code as stored by the studio."""
    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    discount_percent: int = Field(..., ge=0, le=100)
    is_active: bool = True
    valid_from: Optional[dt.datetime] = None
    valid_until: Optional[dt.datetime] = None
    max_uses: Optional[int] = Field(None, ge=0)
    current_uses: int = Field(default=0, ge=0)


class CancellationRule(BaseModel):
    """One tier: cancelling at least `days_before` days ahead costs `fee_percent`."""
    model_config = ConfigDict(frozen=True)

    days_before: int = Field(..., description="Threshold in whole days")
    fee_percent: int = Field(..., ge=0, le=100, description="Fee as a percentage of the total")


class CancellationPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    rules: tuple[CancellationRule, ...] = Field(default_factory=tuple)


class BookingWindowSettings(BaseModel):
    """How near and how far ahead a date may be booked."""
    model_config = ConfigDict(frozen=True)

    min_days_ahead: int = Field(default=1, ge=0)
    max_days_ahead: int = Field(default=90, ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "BookingWindowSettings":
        if self.max_days_ahead < self.min_days_ahead:
            raise ValueError("max_days_ahead must not be less than min_days_ahead")
        return self


class HourlyBookingSettings(BaseModel):
    """Free-length bookings: any whole number of hours within the limits."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Whether hourly bookings are offered")
    hourly_rate: int = Field(default=10000, ge=0, description="Price of one hour")
    min_hours: int = Field(default=2, ge=1, description="Shortest bookable length")
    max_hours: int = Field(default=9, ge=1, description="Longest bookable length")

    @model_validator(mode="after")
    def _check_limits(self) -> "HourlyBookingSettings":
        if self.max_hours < self.min_hours:
            raise ValueError("max_hours must not be less than min_hours")
        return self


# ── Bookings ───────────────────────────────────────────────────────────────


class Booking(BaseModel):
    """
    A booking on one date: either a catalog time slot (package) or a free
    start/end range (hourly).
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique booking identifier")
    booking_date: dt.date = Field(..., description="Booked day")
    booking_type: BookingType = Field(default=BookingType.PACKAGE)
    time_slot_id: Optional[str] = Field(None, description="Booked slot (package bookings)")
    start_time: Optional[dt.time] = Field(None, description="Start (hourly bookings)")
    end_time: Optional[dt.time] = Field(None, description="End (hourly bookings)")
    status: BookingStatus = Field(default=BookingStatus.PENDING)
    base_price: int = Field(default=0, ge=0)
    extras_price: int = Field(default=0, ge=0)
    discount_percent: int = Field(default=0, ge=0, le=100)
    discount_amount: int = Field(default=0, ge=0)
    total_price: int = Field(..., ge=0, description="Gross total charged")
    coupon_id: Optional[str] = None
    coupon_code: Optional[str] = None
    user_email: str = Field(..., description="Who made the booking")
    user_notes: Optional[str] = None
    cancellation_fee: Optional[int] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None

    @model_validator(mode="after")
    def _check_kind(self) -> "Booking":
        if self.booking_type == BookingType.PACKAGE and self.time_slot_id is None:
            raise ValueError("a package booking needs a time_slot_id")
        if self.booking_type == BookingType.HOURLY:
            if self.start_time is None or self.end_time is None:
                raise ValueError("an hourly booking needs start_time and end_time")
            if self.end_time <= self.start_time:
                raise ValueError("end_time must be after start_time")
        return self

    @property
    def occupies_slot(self) -> bool:
        return self.status not in RELEASED_STATUSES


class CalendarSnapshot(BaseModel):
    """Everything the availability calculator needs, read in one go."""
    model_config = ConfigDict(frozen=True)

    opening_hours: tuple[OpeningHours, ...] = ()
    special_dates: tuple[SpecialDate, ...] = ()
    time_slots: tuple[TimeSlot, ...] = ()
    internal_blocks: tuple[InternalBlock, ...] = ()
    bookings: tuple[Booking, ...] = ()
    settings: BookingWindowSettings = Field(default_factory=BookingWindowSettings)
    hourly: HourlyBookingSettings = Field(default_factory=HourlyBookingSettings)


# ── Results ────────────────────────────────────────────────────────────────


class AvailabilityResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    available: bool
    reason: Optional[str] = None


class TimeRange(BaseModel):
    """A taken stretch of one day, [start, end)."""
    model_config = ConfigDict(frozen=True)

    start: dt.time
    end: dt.time


class HourlyAvailability(BaseModel):
    """What an hourly booking could look like on one day."""
    model_config = ConfigDict(frozen=True)

    date: dt.date
    enabled: bool
    hourly_rate: int
    min_hours: int
    max_hours: int
    open_time: Optional[dt.time] = Field(None, description="None when the day takes no hourly bookings")
    close_time: Optional[dt.time] = None
    booked_ranges: tuple[TimeRange, ...] = ()
    start_times: tuple[dt.time, ...] = ()
    end_times: tuple[dt.time, ...] = Field((), description="Only filled when a start was given")


class DayAvailability(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    is_open: bool
    is_holiday: bool
    holiday_name: Optional[str] = None
    available_slots: tuple[TimeSlot, ...] = ()


class PriceBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_price: int
    extras_price: int
    subtotal: int
    discount: int
    total: int


class CouponValidation(BaseModel):
    """Outcome of checking a coupon code. Rejections never carry a discount."""
    model_config = ConfigDict(frozen=True)

    valid: bool
    coupon_id: Optional[str] = None
    code: Optional[str] = None
    discount_percent: int = 0
    reason: Optional[str] = None


class CancellationFee(BaseModel):
    model_config = ConfigDict(frozen=True)

    fee: int
    fee_percent: int
    days_until: int


class CancellationQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    booking_id: str
    fee: int
    fee_percent: int
    days_until: int
    refund_amount: int


# ── API requests / responses ───────────────────────────────────────────────


class ExtraLine(BaseModel):
    """An extra chosen in a request, by id."""
    extra_id: str
    quantity: int = Field(..., ge=1)


class QuoteRequest(BaseModel):
    time_slot_id: str
    extras: list[ExtraLine] = Field(default_factory=list)
    coupon_code: Optional[str] = None


class QuoteResponse(BaseModel):
    price: PriceBreakdown
    coupon: Optional[CouponValidation] = None
    currency: str = Field(..., description="Currency of all amounts, e.g. HUF")


class HourlyQuoteRequest(BaseModel):
    start_time: dt.time
    end_time: dt.time
    extras: list[ExtraLine] = Field(default_factory=list)
    coupon_code: Optional[str] = None


class CouponValidateRequest(BaseModel):
    code: str = Field(..., max_length=64)


class BookingCreate(BaseModel):
    booking_date: dt.date
    time_slot_id: str
    extras: list[ExtraLine] = Field(default_factory=list)
    coupon_code: Optional[str] = None
    user_notes: Optional[str] = Field(None, max_length=2000)


class BookingListResponse(BaseModel):
    items: list[Booking]


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class BookingResult(BaseModel):
    """Outcome of a booking attempt; a refusal carries the user-facing reason."""
    created: bool
    booking: Optional[Booking] = None
    price: Optional[PriceBreakdown] = None
    reason: Optional[str] = None


class CancellationResult(BaseModel):
    cancelled: bool
    booking: Optional[Booking] = None
    cancellation: Optional[CancellationQuote] = None
    reason: Optional[str] = None


class TimeSlotListResponse(BaseModel):
    items: list[TimeSlot]


class ExtraListResponse(BaseModel):
    items: list[Extra]


class MonthAvailabilityResponse(BaseModel):
    year: int
    month: int
    days: list[DayAvailability]


class UserInfo(BaseModel):
    email: str
    created_at: dt.datetime


class HealthResponse(BaseModel):
    status: str = Field(..., description="ok, or degraded when the store is unreachable")
    version: str
    database: str = Field(..., description="ok or unavailable")
    timestamp: dt.datetime
