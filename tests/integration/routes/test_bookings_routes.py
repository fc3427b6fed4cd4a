"""
Integration tests for /bookings endpoints.

The app's engine and locker are swapped for the per-test SQLite database via
``app.dependency_overrides``.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from cabin_bookings.dependencies import get_booking_locker, get_db_engine
from cabin_bookings.main import app

FAMILY = {"X-Member-Id": "member-family", "X-Membership-Tier": "family"}
SINGLE = {"X-Member-Id": "member-single", "X-Membership-Tier": "single"}


@pytest.fixture
def client(sqlite_engine, locker, tahoe) -> Generator[TestClient, None, None]:
    """FastAPI test client bound to the seeded SQLite database."""
    app.dependency_overrides[get_db_engine] = lambda: sqlite_engine
    app.dependency_overrides[get_booking_locker] = lambda: locker
    yield TestClient(app)
    app.dependency_overrides.clear()


def stay(stay_dates, **extra) -> dict:
    checkin, checkout = stay_dates
    return {"checkin": checkin.isoformat(), "checkout": checkout.isoformat(), **extra}


@pytest.mark.integration
def test_availability(client: TestClient, tahoe, stay_dates) -> None:
    checkin, checkout = stay_dates

    response = client.get(
        "/bookings/tahoe/availability",
        params={"checkin": checkin.isoformat(), "checkout": checkout.isoformat()},
    )

    assert response.status_code == 200
    assert response.json()["room_ids"] == [tahoe.room_a, tahoe.room_b, tahoe.bunk_room]


@pytest.mark.integration
def test_unknown_property_is_404(client: TestClient, stay_dates) -> None:
    response = client.post("/bookings/yosemite/quote", json=stay(stay_dates, room_ids=[1]))

    assert response.status_code == 404


@pytest.mark.integration
def test_availability_with_reversed_dates_is_422(client: TestClient, stay_dates) -> None:
    checkin, checkout = stay_dates

    response = client.get(
        "/bookings/tahoe/availability",
        params={"checkin": checkout.isoformat(), "checkout": checkin.isoformat()},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["reason"] == "invalid_parameters"


@pytest.mark.integration
@pytest.mark.parametrize("counts", [{"guests": 0}, {"children": -1}])
def test_quote_rejects_bad_guest_counts(client: TestClient, tahoe, stay_dates, counts) -> None:
    """Test that guest counts are bounded by the request schema."""
    response = client.post(
        "/bookings/tahoe/quote", json=stay(stay_dates, room_ids=[tahoe.room_a], **counts)
    )

    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"][-1] == next(iter(counts))


@pytest.mark.integration
def test_calendar(client: TestClient, stay_dates) -> None:
    checkin, _ = stay_dates

    response = client.get(
        "/bookings/tahoe/calendar",
        params={"start": checkin.isoformat(), "end": (checkin + timedelta(days=3)).isoformat()},
    )

    assert response.status_code == 200
    days = response.json()
    assert len(days) == 3
    assert all(day["available_for_buyout"] for day in days)
    assert all(day["selectable"] for day in days)


@pytest.mark.integration
def test_quote(client: TestClient, tahoe, stay_dates) -> None:
    """Test the quote body and a quote that cannot be priced."""
    response = client.post(
        "/bookings/tahoe/quote", json=stay(stay_dates, guests=1, room_ids=[tahoe.room_a])
    )

    assert response.status_code == 200
    assert response.json()["total"] == "200.00"
    assert response.json()["using_minimum_pricing"] is True

    unpriced = client.post("/bookings/clear_lake/quote", json=stay(stay_dates, mode="buyout", guests=4))
    assert unpriced.status_code == 422
    assert unpriced.json()["detail"]["reason"] == "pricing_unavailable"


@pytest.mark.integration
def test_validate(client: TestClient, tahoe, stay_dates) -> None:
    ok = client.post(
        "/bookings/tahoe/validate", json=stay(stay_dates, room_ids=[tahoe.room_b]), headers=SINGLE
    )
    too_many = client.post(
        "/bookings/tahoe/validate",
        json=stay(stay_dates, guests=3, room_ids=[tahoe.room_b]),
        headers=SINGLE,
    )

    assert ok.json() == {"valid": True, "violations": {}}
    assert too_many.status_code == 200
    assert too_many.json()["valid"] is False
    assert "capacity" in too_many.json()["violations"]


@pytest.mark.integration
def test_booking_requires_member_header(client: TestClient, tahoe, stay_dates) -> None:
    response = client.post("/bookings/tahoe", json=stay(stay_dates, room_ids=[tahoe.room_a]))

    assert response.status_code == 401


@pytest.mark.integration
def test_booking_lifecycle(client: TestClient, tahoe, stay_dates) -> None:
    """Test create -> conflict -> confirm -> cancel over HTTP."""
    created = client.post(
        "/bookings/tahoe", json=stay(stay_dates, guests=2, room_ids=[tahoe.room_a]), headers=FAMILY
    )
    assert created.status_code == 201
    booking = created.json()
    assert booking["status"] == "hold"
    assert booking["reference"].startswith("BK-")
    assert booking["replayed"] is False

    conflict = client.post(
        "/bookings/tahoe", json=stay(stay_dates, room_ids=[tahoe.room_a]), headers=SINGLE
    )
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["reason"] == "room_unavailable"

    confirmed = client.post(f"/bookings/id/{booking['id']}/confirm")
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "complete"

    cancelled = client.post(f"/bookings/id/{booking['id']}/cancel")
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = client.post(f"/bookings/id/{booking['id']}/cancel")
    assert again.status_code == 409
    assert again.json()["detail"]["reason"] == "invalid_status"

    missing = client.post("/bookings/id/unknown/confirm")
    assert missing.status_code == 404


@pytest.mark.integration
def test_idempotency_key_header_replays(client: TestClient, tahoe, stay_dates) -> None:
    """Test that a resubmitted request with the same Idempotency-Key returns the same booking."""
    headers = {**SINGLE, "Idempotency-Key": "checkout-form-1"}
    body = stay(stay_dates, guests=1, room_ids=[tahoe.room_b])

    first = client.post("/bookings/tahoe", json=body, headers=headers)
    second = client.post("/bookings/tahoe", json=body, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["replayed"] is True


@pytest.mark.integration
def test_quota_exceeded_is_403(client: TestClient, tahoe, stay_dates) -> None:
    first = client.post(
        "/bookings/tahoe", json=stay(stay_dates, room_ids=[tahoe.room_a]), headers=SINGLE
    )
    second = client.post(
        "/bookings/tahoe", json=stay(stay_dates, room_ids=[tahoe.room_b]), headers=SINGLE
    )

    assert first.status_code == 201
    assert second.status_code == 403
    assert second.json()["detail"]["reason"] == "quota_exceeded"
    assert "active_booking" in second.json()["detail"]["violations"]
