from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.db.session import get_db
from booking_engine.schemas.venue import VenueCreate, VenueResponse
from booking_engine.services import venue_service

router = APIRouter(prefix="/venues", tags=["Venues"])


@router.post("/", response_model=VenueResponse, status_code=status.HTTP_201_CREATED)
async def create_venue_endpoint(data: VenueCreate, db: AsyncSession = Depends(get_db)):
    return await venue_service.create_venue(db, data)


@router.get("/", response_model=list[VenueResponse])
async def list_venues_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    venues, _ = await venue_service.list_venues(db, page, page_size)
    return venues


@router.get("/{venue_id}", response_model=VenueResponse)
async def get_venue_endpoint(venue_id: int, db: AsyncSession = Depends(get_db)):
    return await venue_service.get_venue(db, venue_id)
