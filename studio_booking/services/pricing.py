"""
Price calculation for a booking: base price + extras − coupon discount.
The base price is the slot's own price, or hours × hourly rate for an
hourly booking.

Amounts are integers in the studio currency. Percentages are rounded half
up (``round_half_up``), using Decimal so a .5 boundary is never lost to
binary floating point.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Iterator, Protocol, Union

from studio_booking.errors import InvalidInputError
from studio_booking.models import (
    CouponValidation,
    Extra,
    HourlyBookingSettings,
    PriceBreakdown,
    PriceType,
    SelectedExtra,
    TimeSlot,
)
from studio_booking.services.coupons import effective_discount_percent

logger = logging.getLogger(__name__)

Number = Union[int, float, Decimal]


class PricedLine(Protocol):
    price: int
    quantity: int


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, .5 going up."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, percent: Number) -> int:
    """``amount × percent / 100``, rounded half up."""
    return round_half_up(Decimal(amount) * Decimal(str(percent)) / Decimal(100))


def compute_total(
    base_price: int,
    extras: Iterable[PricedLine] = (),
    discount_percent: Number = 0,
) -> PriceBreakdown:
    """
    Price breakdown for a booking.

    ``extras`` are any objects with ``price`` and ``quantity`` (e.g.
    ``SelectedExtra``). Negative amounts or a discount outside 0–100 are
    caller errors and raise ``InvalidInputError``.
    """
    if base_price < 0:
        raise InvalidInputError(f"base_price must not be negative, got {base_price}")
    if not 0 <= discount_percent <= 100:
        raise InvalidInputError(f"discount_percent must be between 0 and 100, got {discount_percent}")

    extras_price = 0
    for line in extras:
        if line.price < 0:
            raise InvalidInputError(f"extra price must not be negative, got {line.price}")
        if line.quantity < 0:
            raise InvalidInputError(f"extra quantity must not be negative, got {line.quantity}")
        extras_price += line.price * line.quantity

    subtotal = base_price + extras_price
    discount = percent_of(subtotal, discount_percent)
    return PriceBreakdown(
        base_price=base_price,
        extras_price=extras_price,
        subtotal=subtotal,
        discount=discount,
        total=subtotal - discount,
    )


def default_quantity(extra: Extra, duration_hours: int) -> int:
    """Hourly extras start at the slot length; everything else at one."""
    if extra.price_type == PriceType.PER_HOUR:
        return duration_hours
    return 1


class ExtrasSelection:
    """
    The extras a customer has ticked for one slot, in selection order.

    Mirrors the booking form: ticking adds an extra with its default
    quantity, ticking again removes it, and lowering a quantity below one
    drops the line instead of keeping a zero-quantity entry.
    """

    def __init__(self, duration_hours: int = 1) -> None:
        if duration_hours < 1:
            raise InvalidInputError(f"duration_hours must be at least 1, got {duration_hours}")
        self._duration_hours = duration_hours
        self._lines: dict[str, SelectedExtra] = {}

    @classmethod
    def for_slot(cls, slot: TimeSlot) -> "ExtrasSelection":
        return cls(duration_hours=slot.duration_hours)

    def toggle(self, extra: Extra) -> bool:
        """Select or deselect ``extra``. Returns True when it ends up selected."""
        if extra.id in self._lines:
            del self._lines[extra.id]
            return False
        self._lines[extra.id] = SelectedExtra(
            extra=extra, quantity=default_quantity(extra, self._duration_hours)
        )
        return True

    def update_quantity(self, extra_id: str, quantity: int) -> bool:
        """
        Set the quantity of a selected extra.

        Returns False when the quantity was below one and the extra has
        been removed from the selection.
        """
        current = self._lines.get(extra_id)
        if current is None:
            raise InvalidInputError(f"extra {extra_id} is not selected")
        if quantity < 1:
            del self._lines[extra_id]
            logger.debug("Extra %s removed (quantity %d)", extra_id, quantity)
            return False
        self._lines[extra_id] = SelectedExtra(extra=current.extra, quantity=quantity)
        return True

    def quantity_of(self, extra_id: str) -> int | None:
        line = self._lines.get(extra_id)
        return line.quantity if line else None

    @property
    def lines(self) -> tuple[SelectedExtra, ...]:
        return tuple(self._lines.values())

    def __iter__(self) -> Iterator[SelectedExtra]:
        return iter(self.lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, extra_id: object) -> bool:
        return extra_id in self._lines


def quote_booking(
    slot: TimeSlot,
    extras: Iterable[PricedLine] = (),
    coupon: CouponValidation | None = None,
) -> PriceBreakdown:
    """Price of ``slot`` with the chosen extras and an applied coupon, if any."""
    return compute_total(slot.base_price, extras, effective_discount_percent(coupon))


def hourly_price(duration_hours: int, hourly_rate: int) -> int:
    """Base price of an hourly booking."""
    if duration_hours < 1:
        raise InvalidInputError(f"duration_hours must be at least 1, got {duration_hours}")
    if hourly_rate < 0:
        raise InvalidInputError(f"hourly_rate must not be negative, got {hourly_rate}")
    return duration_hours * hourly_rate


def quote_hourly(
    duration_hours: int,
    settings: HourlyBookingSettings,
    extras: Iterable[PricedLine] = (),
    coupon: CouponValidation | None = None,
) -> PriceBreakdown:
    """Price of an hourly booking; extras and coupon apply as for a slot."""
    if not settings.min_hours <= duration_hours <= settings.max_hours:
        raise InvalidInputError(
            f"duration_hours must be between {settings.min_hours} and {settings.max_hours}, "
            f"got {duration_hours}"
        )
    base = hourly_price(duration_hours, settings.hourly_rate)
    return compute_total(base, extras, effective_discount_percent(coupon))
