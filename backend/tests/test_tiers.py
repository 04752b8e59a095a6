"""
Tests for the stay tier calculator.
"""

from datetime import date, datetime

import pytest

from booking_engine.services.tiers import booking_limit, stay_days


@pytest.mark.parametrize(
    "checkin, checkout, expected",
    [
        (date(2024, 1, 1), date(2024, 1, 1), 1),
        (date(2024, 1, 1), date(2024, 1, 2), 1),
        (date(2024, 1, 1), date(2024, 1, 3), 1),
        (date(2024, 1, 1), date(2024, 1, 4), 2),
        (date(2024, 1, 1), date(2024, 1, 7), 2),
        (date(2024, 1, 1), date(2024, 1, 8), 3),
        (date(2024, 1, 1), date(2024, 2, 1), 3),
    ],
)
def test_booking_limit_by_stay_length(checkin, checkout, expected):
    assert booking_limit(checkin, checkout) == expected


def test_same_day_stay_counts_as_one_day():
    assert stay_days(date(2024, 5, 1), date(2024, 5, 1)) == 1


def test_partial_days_round_up():
    """A stay of two days and one hour is three days long."""
    checkin = datetime(2024, 1, 1, 14, 0)
    checkout = datetime(2024, 1, 3, 15, 0)
    assert stay_days(checkin, checkout) == 3
    assert booking_limit(checkin, checkout) == 2


def test_inverted_stay_is_clamped():
    assert stay_days(date(2024, 1, 5), date(2024, 1, 1)) == 1
    assert booking_limit(date(2024, 1, 5), date(2024, 1, 1)) == 1
