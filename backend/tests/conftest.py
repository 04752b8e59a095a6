"""
Pytest fixtures for test database, client, and booking data.

Every test gets a fresh SQLite file (via aiosqlite) with the schema created
from the models. Set TEST_DATABASE_URL to run against PostgreSQL instead.
Redis is disabled so the cache layer falls through to the database.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./booking_engine_dev.db")

from datetime import date, time
from typing import AsyncGenerator
from uuid import uuid4

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from booking_engine.main import app
from booking_engine.db.base import Base
from booking_engine.db.session import get_db
from booking_engine.models import Event, Reservation, Venue

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Fresh schema per test; dropped afterwards."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'booking_engine_test.db'}"
    connect_args = {"timeout": 30} if url.startswith("sqlite") else {}
    engine = create_async_engine(url, echo=False, connect_args=connect_args)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    """Factory for independent sessions, used to simulate concurrent requests."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_venue(db_session: AsyncSession):
    async def _make(capacity: int = 10, name: str = "Terrace Restaurant") -> Venue:
        venue = Venue(name=name, capacity=capacity)
        db_session.add(venue)
        await db_session.commit()
        await db_session.refresh(venue)
        return venue

    return _make


@pytest_asyncio.fixture
async def make_event(db_session: AsyncSession):
    async def _make(
        venue: Venue,
        on_date: date = date(2024, 3, 10),
        at_time: time = time(19, 0),
        name: str = "Wine Night",
    ) -> Event:
        event = Event(name=name, date=on_date, time=at_time, venue_id=venue.id)
        db_session.add(event)
        await db_session.commit()
        await db_session.refresh(event)
        return event

    return _make


@pytest_asyncio.fixture
async def make_reservation(db_session: AsyncSession):
    """Reservations get a distinct unit and guest name unless told otherwise."""

    async def _make(
        guest_name: str = None,
        guest_count: int = 4,
        checkin: date = date(2024, 3, 8),
        checkout: date = date(2024, 3, 12),
        unit_code: str = None,
    ) -> Reservation:
        suffix = uuid4().hex[:6]
        reservation = Reservation(
            reservation_number=f"R-{suffix}",
            unit_code=unit_code or f"U-{suffix}",
            guest_name=guest_name or f"Guest {suffix}",
            checkin=checkin,
            checkout=checkout,
            guest_count=guest_count,
        )
        db_session.add(reservation)
        await db_session.commit()
        await db_session.refresh(reservation)
        return reservation

    return _make


@pytest_asyncio.fixture
async def test_venue(make_venue) -> Venue:
    """A venue with 10 places."""
    return await make_venue(capacity=10)


@pytest_asyncio.fixture
async def test_event(make_event, test_venue) -> Event:
    """Wine Night on 2024-03-10 at 19:00."""
    return await make_event(test_venue)


@pytest_asyncio.fixture
async def test_reservation(make_reservation) -> Reservation:
    """Four guests staying 2024-03-08 to 2024-03-12 (tier 2)."""
    return await make_reservation(guest_name="Ana Silva")
