"""
Tests for the capacity ledger.
"""

import pytest

from booking_engine.core.exceptions import NotFoundError
from booking_engine.models import Booking, BookingStatus
from booking_engine.services import ledger


@pytest.mark.asyncio
async def test_occupancy_ignores_cancelled(db_session, test_event, make_reservation):
    reservations = [await make_reservation() for _ in range(4)]
    statuses = [BookingStatus.ACTIVE, BookingStatus.COMPLETED, BookingStatus.NO_SHOW, BookingStatus.CANCELLED]
    for reservation, status in zip(reservations, statuses):
        db_session.add(Booking(
            event_id=test_event.id,
            reservation_id=reservation.id,
            quantity=2,
            status=status.value,
            voucher=f"VXLEDG{status.value[:2].upper()}",
        ))
    await db_session.commit()

    assert await ledger.occupancy(db_session, test_event.id) == 6
    assert await ledger.remaining(db_session, test_event.id) == 4


@pytest.mark.asyncio
async def test_occupancy_excluding_one_reservation(db_session, test_event, make_reservation):
    mine = await make_reservation()
    other = await make_reservation()
    db_session.add_all([
        Booking(event_id=test_event.id, reservation_id=mine.id, quantity=3,
                status=BookingStatus.ACTIVE.value, voucher="VXMINE01"),
        Booking(event_id=test_event.id, reservation_id=other.id, quantity=1,
                status=BookingStatus.ACTIVE.value, voucher="VXOTHR01"),
    ])
    await db_session.commit()

    assert await ledger.occupancy(db_session, test_event.id, exclude_reservation_id=mine.id) == 1
    assert await ledger.remaining(db_session, test_event.id, exclude_reservation_id=mine.id) == 9


@pytest.mark.asyncio
async def test_empty_event(db_session, test_event):
    assert await ledger.occupancy(db_session, test_event.id) == 0
    assert await ledger.capacity(db_session, test_event.id) == 10


@pytest.mark.asyncio
async def test_unknown_event(db_session):
    with pytest.raises(NotFoundError) as exc_info:
        await ledger.remaining(db_session, 12345)
    assert exc_info.value.code == "EVENT_NOT_FOUND"
