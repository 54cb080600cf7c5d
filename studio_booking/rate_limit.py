"""
Rate limiting configuration using slowapi.

Three tiers:
  • strict  – 5/min  (coupon validation – stops code guessing)
  • booking – 10/min (booking creation and cancellation)
  • default – 60/min (everything else)

The limiter keys on client IP by default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Named rate strings for use in @limiter.limit() decorators
STRICT = "5/minute"      # coupon validation
BOOKING = "10/minute"    # create / cancel booking
DEFAULT = "60/minute"    # general API

limiter = Limiter(key_func=get_remote_address, default_limits=[DEFAULT])
