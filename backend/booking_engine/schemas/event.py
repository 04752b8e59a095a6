"""
Pydantic schemas for event-related request/response validation.
"""

import datetime as dt
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    date: dt.date
    time: dt.time
    venue_id: int = Field(..., ge=1)


class EventBulkCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    time: dt.time
    venue_id: int = Field(..., ge=1)
    start_date: dt.date
    end_date: dt.date


class EventResponse(BaseModel):
    id: int
    name: str
    date: dt.date
    time: dt.time
    venue_id: int
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int


class EventBulkResponse(BaseModel):
    created: int
    events: list[EventResponse]


class EventAvailability(BaseModel):
    event_id: int
    capacity: int
    occupancy: int
    remaining: int


class AvailableEvent(BaseModel):
    id: int
    name: str
    time: dt.time
    venue: str
    remaining: int


class AvailableEventListResponse(BaseModel):
    date: dt.date
    events: list[AvailableEvent]
    cached: bool = False
