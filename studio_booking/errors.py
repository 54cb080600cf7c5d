"""
Error kinds raised by the booking core and the facts store.

Business rejections (slot taken, coupon expired, ...) are *not* errors;
they are returned as result values. Only caller mistakes and store-level
conflicts are raised.
"""


class StudioBookingError(Exception):
    """Base class for all studio booking errors."""


class InvalidInputError(StudioBookingError, ValueError):
    """A caller broke an input invariant (negative quantity, bad month, ...)."""


class NotFoundError(StudioBookingError):
    """A referenced record does not exist in the store."""


class SlotConflictError(StudioBookingError):
    """The store refused a booking because the (date, slot) pair is taken."""


class CouponExhaustedError(StudioBookingError):
    """Atomic redemption found the coupon's usage limit already reached."""
