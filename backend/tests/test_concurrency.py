"""
Concurrent admission tests.

Each simulated request runs in its own session (its own connection), so the
capacity and tier rules race exactly as they would between two workers.
Whatever the interleaving, the version claims must keep the invariants.
"""

import asyncio
import random
from datetime import date

import pytest
from sqlalchemy import func, select

from booking_engine.core.exceptions import BusinessRuleViolation, RuleCode
from booking_engine.models import Booking, BookingStatus
from booking_engine.services import booking_service


async def attempt(session_factory, event_id: int, reservation_id: int, quantity: int):
    async with session_factory() as session:
        try:
            booking = await booking_service.create_booking(session, event_id, reservation_id, quantity)
            return booking.quantity
        except BusinessRuleViolation as exc:
            return exc.rule


async def booked_quantity(session_factory, event_id: int) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.coalesce(func.sum(Booking.quantity), 0)).where(
                Booking.event_id == event_id,
                Booking.status != BookingStatus.CANCELLED.value,
            )
        )
        return int(result.scalar_one())


@pytest.fixture
def patient_retries(monkeypatch):
    """Every contender may lose the claim to every other one."""
    monkeypatch.setattr(booking_service.settings, "BOOKING_MAX_RETRIES", 50)


@pytest.mark.asyncio
async def test_concurrent_bookings_never_exceed_capacity(
    session_factory, make_venue, make_event, make_reservation, patient_retries
):
    venue = await make_venue(capacity=10)
    event = await make_event(venue)
    event_id = event.id
    rng = random.Random(20240310)
    requests = []
    for _ in range(12):
        reservation = await make_reservation(guest_count=3)
        requests.append((reservation.id, rng.randint(1, 3)))

    outcomes = await asyncio.gather(*[
        attempt(session_factory, event_id, reservation_id, quantity)
        for reservation_id, quantity in requests
    ])

    admitted = sum(o for o in outcomes if isinstance(o, int))
    rejected = [o for o in outcomes if not isinstance(o, int)]

    assert admitted <= 10
    assert await booked_quantity(session_factory, event_id) == admitted
    assert all(rule == RuleCode.CAPACITY_EXCEEDED for rule in rejected)
    # Total demand is at least 12, so the event ends up with no room for
    # at least the smallest rejected request
    if rejected:
        smallest_rejected = min(q for (_, q), o in zip(requests, outcomes) if not isinstance(o, int))
        assert 10 - admitted < smallest_rejected


@pytest.mark.asyncio
async def test_concurrent_last_place(session_factory, make_venue, make_event, make_reservation, patient_retries):
    """Eight guests race for a single free place; exactly one gets it."""
    venue = await make_venue(capacity=1)
    event = await make_event(venue)
    event_id = event.id
    reservation_ids = [(await make_reservation(guest_count=1)).id for _ in range(8)]

    outcomes = await asyncio.gather(*[
        attempt(session_factory, event_id, reservation_id, 1) for reservation_id in reservation_ids
    ])

    assert outcomes.count(1) == 1
    assert outcomes.count(RuleCode.CAPACITY_EXCEEDED) == 7
    assert await booked_quantity(session_factory, event_id) == 1


@pytest.mark.asyncio
async def test_concurrent_bookings_respect_tier_limit(
    session_factory, make_venue, make_event, make_reservation, patient_retries
):
    """A tier-1 stay racing into three events on different days keeps one booking."""
    venue = await make_venue(capacity=10)
    event_ids = [(await make_event(venue, on_date=date(2024, 1, day))).id for day in (1, 2, 3)]
    reservation = await make_reservation(checkin=date(2024, 1, 1), checkout=date(2024, 1, 2))
    reservation_id = reservation.id

    outcomes = await asyncio.gather(*[
        attempt(session_factory, event_id, reservation_id, 1) for event_id in event_ids
    ])

    assert outcomes.count(1) == 1
    assert outcomes.count(RuleCode.TIER_LIMIT_REACHED) == 2

    async with session_factory() as session:
        held = await booking_service.count_non_cancelled(session, reservation_id)
    assert held == 1
