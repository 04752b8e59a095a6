"""
Tests for venue endpoints and application-level routes.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_and_get_venue(client: AsyncClient):
    response = await client.post("/api/v1/venues/", json={"name": "Terrace Restaurant", "capacity": 40})
    assert response.status_code == 201
    venue = response.json()
    assert venue["capacity"] == 40

    fetched = await client.get(f"/api/v1/venues/{venue['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Terrace Restaurant"


@pytest.mark.asyncio
@pytest.mark.parametrize("capacity", [-1, 0])
async def test_create_venue_rejects_non_positive_capacity(client: AsyncClient, capacity):
    response = await client.post("/api/v1/venues/", json={"name": "Broken", "capacity": capacity})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_venues(client: AsyncClient, make_venue):
    for name in ("Terrace", "Pool Bar", "Chef's Table"):
        await make_venue(name=name)

    response = await client.get("/api/v1/venues/", params={"page_size": 2})
    assert response.status_code == 200
    assert [v["name"] for v in response.json()] == ["Terrace", "Pool Bar"]


@pytest.mark.asyncio
async def test_get_venue_not_found(client: AsyncClient):
    response = await client.get("/api/v1/venues/55")
    assert response.status_code == 404
    assert response.json() == {"detail": "Venue 55 not found", "code": "VENUE_NOT_FOUND"}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_metrics_exposed(client: AsyncClient, test_event, test_reservation):
    await client.post(
        "/api/v1/bookings/",
        json={"event_id": test_event.id, "reservation_id": test_reservation.id, "quantity": 1},
    )

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "booking_attempts_total" in response.text
    assert "booking_latency_seconds" in response.text


@pytest.mark.asyncio
async def test_request_id_header(client: AsyncClient):
    response = await client.get("/", headers={"X-Request-ID": "abc123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Response-Time"].endswith("ms")
