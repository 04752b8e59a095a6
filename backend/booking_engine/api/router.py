"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from booking_engine.api.routes import bookings, events, reservations, venues

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(venues.router)
api_router.include_router(events.router)
api_router.include_router(reservations.router)
api_router.include_router(bookings.router)
