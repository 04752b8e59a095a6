"""
Tests for reservation endpoints: unit overlap rules and current-stay lookup.
"""

from datetime import date

import pytest
from httpx import AsyncClient

from booking_engine.core.exceptions import ConflictError, NotFoundError
from booking_engine.services import reservation_service


def reservation_payload(**overrides) -> dict:
    payload = {
        "reservation_number": "R-1001",
        "unit_code": "101",
        "guest_name": "Ana Silva",
        "contact": "+351 912 345 678",
        "email": "ana@example.com",
        "checkin": "2024-03-08",
        "checkout": "2024-03-12",
        "guest_count": 2,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_reservation(client: AsyncClient):
    response = await client.post("/api/v1/reservations/", json=reservation_payload())
    assert response.status_code == 201
    data = response.json()
    assert data["unit_code"] == "101"
    assert data["guest_name"] == "Ana Silva"
    assert data["checkin"] == "2024-03-08"
    assert data["guest_count"] == 2


@pytest.mark.asyncio
async def test_create_reservation_invalid_email(client: AsyncClient):
    response = await client.post("/api/v1/reservations/", json=reservation_payload(email="not-an-email"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_reservation_checkout_before_checkin(client: AsyncClient):
    response = await client.post(
        "/api/v1/reservations/",
        json=reservation_payload(checkin="2024-03-12", checkout="2024-03-08"),
    )
    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_STAY"


@pytest.mark.asyncio
async def test_overlapping_stay_same_unit_rejected(client: AsyncClient):
    assert (await client.post("/api/v1/reservations/", json=reservation_payload())).status_code == 201

    response = await client.post(
        "/api/v1/reservations/",
        json=reservation_payload(reservation_number="R-1002", checkin="2024-03-10", checkout="2024-03-15"),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "RESERVATION_CONFLICT"


@pytest.mark.asyncio
async def test_back_to_back_stays_allowed(client: AsyncClient):
    """Checkout day of one stay may be the checkin day of the next."""
    assert (await client.post("/api/v1/reservations/", json=reservation_payload())).status_code == 201

    response = await client.post(
        "/api/v1/reservations/",
        json=reservation_payload(reservation_number="R-1002", checkin="2024-03-12", checkout="2024-03-14"),
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_same_period_other_unit_allowed(client: AsyncClient):
    assert (await client.post("/api/v1/reservations/", json=reservation_payload())).status_code == 201
    response = await client.post(
        "/api/v1/reservations/", json=reservation_payload(reservation_number="R-2001", unit_code="102")
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_update_reservation_excludes_itself_from_overlap(client: AsyncClient):
    created = (await client.post("/api/v1/reservations/", json=reservation_payload())).json()

    response = await client.put(
        f"/api/v1/reservations/{created['id']}", json={"checkout": "2024-03-13", "guest_count": 3}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["checkout"] == "2024-03-13"
    assert data["guest_count"] == 3
    assert data["guest_name"] == "Ana Silva"


@pytest.mark.asyncio
async def test_update_reservation_into_other_stay_rejected(client: AsyncClient):
    await client.post("/api/v1/reservations/", json=reservation_payload())
    later = (await client.post(
        "/api/v1/reservations/",
        json=reservation_payload(reservation_number="R-1002", checkin="2024-03-20", checkout="2024-03-25"),
    )).json()

    response = await client.put(f"/api/v1/reservations/{later['id']}", json={"checkin": "2024-03-10"})
    assert response.status_code == 409
    assert response.json()["code"] == "RESERVATION_CONFLICT"


@pytest.mark.asyncio
async def test_update_reservation_rejects_null_required_field(client: AsyncClient):
    created = (await client.post("/api/v1/reservations/", json=reservation_payload())).json()

    response = await client.put(f"/api/v1/reservations/{created['id']}", json={"checkin": None})
    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_FIELDS"

    empty = await client.put(f"/api/v1/reservations/{created['id']}", json={})
    assert empty.status_code == 422
    assert empty.json()["code"] == "NO_FIELDS_TO_UPDATE"


@pytest.mark.asyncio
async def test_get_reservation_not_found(client: AsyncClient):
    response = await client.get("/api/v1/reservations/777")
    assert response.status_code == 404
    assert response.json()["code"] == "RESERVATION_NOT_FOUND"


@pytest.mark.asyncio
async def test_current_reservation_lookup(client: AsyncClient):
    created = (await client.post("/api/v1/reservations/", json=reservation_payload())).json()

    response = await client.get("/api/v1/reservations/current", params={"unit_code": "101", "date": "2024-03-12"})
    assert response.status_code == 200
    assert response.json()["id"] == created["id"]

    missing = await client.get("/api/v1/reservations/current", params={"unit_code": "101", "date": "2024-04-01"})
    assert missing.status_code == 404
    assert missing.json()["code"] == "RESERVATION_NOT_FOUND"


@pytest.mark.asyncio
async def test_current_reservation_turnover_day_is_ambiguous(db_session, make_reservation):
    """Both the leaving and the arriving stay cover the turnover day."""
    await make_reservation(unit_code="305", checkin=date(2024, 3, 1), checkout=date(2024, 3, 5))
    await make_reservation(unit_code="305", checkin=date(2024, 3, 5), checkout=date(2024, 3, 9))

    with pytest.raises(ConflictError) as exc_info:
        await reservation_service.find_current_reservation(db_session, "305", date(2024, 3, 5))
    assert exc_info.value.code == "MULTIPLE_RESERVATIONS"

    current = await reservation_service.find_current_reservation(db_session, "305", date(2024, 3, 6))
    assert current.checkin == date(2024, 3, 5)


@pytest.mark.asyncio
async def test_reservation_bookings(client: AsyncClient, test_venue, make_event, test_reservation):
    first = await make_event(test_venue, on_date=date(2024, 3, 9))
    second = await make_event(test_venue, on_date=date(2024, 3, 10), name="Jazz Evening")
    for event in (second, first):
        response = await client.post(
            "/api/v1/bookings/",
            json={"event_id": event.id, "reservation_id": test_reservation.id, "quantity": 1},
        )
        assert response.status_code == 201

    response = await client.get(f"/api/v1/reservations/{test_reservation.id}/bookings")
    assert response.status_code == 200
    data = response.json()
    assert [b["event_name"] for b in data] == ["Wine Night", "Jazz Evening"]
    assert [b["event_date"] for b in data] == ["2024-03-09", "2024-03-10"]


@pytest.mark.asyncio
async def test_get_reservation_service_not_found(db_session):
    with pytest.raises(NotFoundError):
        await reservation_service.get_reservation(db_session, 404)
