"""
Stay tier calculator.

A reservation may hold a limited number of non-cancelled event bookings,
depending on how long the stay is:

    stay_days < 3        -> 1 booking
    3 <= stay_days < 7   -> 2 bookings
    stay_days >= 7       -> 3 bookings

`stay_days` is the check-in/check-out span rounded up to whole days, and
never less than one (same-day stays count as one day).
"""

import math
from datetime import date, datetime
from typing import Union

SECONDS_PER_DAY = 24 * 60 * 60

# (minimum stay_days, tier), checked top-down
TIER_THRESHOLDS = (
    (7, 3),
    (3, 2),
)
BASE_TIER = 1


def stay_days(checkin: Union[date, datetime], checkout: Union[date, datetime]) -> int:
    delta = checkout - checkin
    return max(1, math.ceil(delta.total_seconds() / SECONDS_PER_DAY))


def booking_limit(checkin: Union[date, datetime], checkout: Union[date, datetime]) -> int:
    """Maximum number of non-cancelled bookings for a stay."""
    days = stay_days(checkin, checkout)
    for minimum, tier in TIER_THRESHOLDS:
        if days >= minimum:
            return tier
    return BASE_TIER
