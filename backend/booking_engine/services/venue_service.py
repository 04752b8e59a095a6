"""
Venue service. Venues are read-only to the booking engine; this is the
small management surface used to set them up.
"""

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.exceptions import NotFoundError
from booking_engine.core.logging import get_logger
from booking_engine.models.venue import Venue
from booking_engine.schemas.venue import VenueCreate

logger = get_logger(__name__)


async def create_venue(db: AsyncSession, data: VenueCreate) -> Venue:
    venue = Venue(name=data.name, capacity=data.capacity)
    db.add(venue)
    await db.flush()
    await db.refresh(venue)
    await db.commit()

    logger.info("venue_created", venue_id=venue.id, name=venue.name, capacity=venue.capacity)
    return venue


async def get_venue(db: AsyncSession, venue_id: int) -> Venue:
    venue = await db.get(Venue, venue_id)
    if venue is None:
        raise NotFoundError.for_entity("venue", venue_id)
    return venue


async def list_venues(db: AsyncSession, page: int = 1, page_size: int = 20) -> tuple[list[Venue], int]:
    total = (await db.execute(select(func.count(Venue.id)))).scalar_one()
    result = await db.execute(
        select(Venue).order_by(Venue.id.asc()).offset((page - 1) * page_size).limit(page_size)
    )
    return list(result.scalars().all()), int(total)
