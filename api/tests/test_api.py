"""API tests: health, auth, quotes, booking validation and creation, lifecycle, contracts, stats, availability."""

import httpx
import pytest

from carbookers.core.config import settings
from conftest import AUTH, day


def _admin_body(**overrides) -> dict:
    body = {
        "customer_id": "C1",
        "vehicle_id": "V1",
        "pickup_date": day(5),
        "return_date": day(7),
        "pickup_time": "10:00",
        "return_time": "10:00",
        "pickup_location": "Tangier Airport",
        "return_location": "Tangier Port",
        "notes": "Child seat",
    }
    body.update(overrides)
    return body


def _website_body(**overrides) -> dict:
    body = {
        "first_name": "Sara",
        "last_name": "El Amrani",
        "phone": "0611223344",
        "email": "sara@example.com",
        "vehicle_id": "V1",
        "pickup_date": day(5),
        "return_date": day(7),
        "pickup_time": "10:00",
        "return_time": "10:00",
        "pickup_location": "Hotel Pickup",
        "return_location": "Tangier City Center",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# Auth passthrough
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_login(client):
    resp = await client.post("/api/v1/auth/login", json={"email": "admin@carbookers.ma", "password": "secret"})
    assert resp.status_code == 200
    assert resp.json()["token"] == "tok-123"


@pytest.mark.asyncio
async def test_login_bad_password(client):
    resp = await client.post("/api/v1/auth/login", json={"email": "admin@carbookers.ma", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_me(client, fake_backend):
    resp = await client.get("/api/v1/auth/me", headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"
    assert fake_backend.requests[-1].headers["authorization"] == "Bearer tok-123"


@pytest.mark.asyncio
async def test_me_unauthenticated(client):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_quote_with_late_return(client):
    resp = await client.post(
        "/api/v1/quotes",
        json={
            "daily_rate": 85,
            "pickup_date": "2024-06-01",
            "pickup_time": "08:00",
            "return_date": "2024-06-03",
            "return_time": "10:00",
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["billing"]["elapsed_minutes"] == 3000
    assert data["billing"]["billable_days"] == 3
    assert data["billing"]["lateness_fee_applied"] is True
    assert data["quote"]["total_amount"] == 255.0
    assert data["quote"]["base_amount"] == 170.0
    assert data["quote"]["lateness_surcharge"] == 85.0


@pytest.mark.asyncio
async def test_quote_backwards_window(client):
    resp = await client.post(
        "/api/v1/quotes",
        json={
            "daily_rate": 85,
            "pickup_date": "2024-06-03",
            "pickup_time": "10:00",
            "return_date": "2024-06-01",
            "return_time": "10:00",
        },
    )
    assert resp.status_code == 422
    assert resp.json()["detail"][0]["rule"] == "invalid_window"


@pytest.mark.asyncio
async def test_quote_negative_rate(client):
    resp = await client.post(
        "/api/v1/quotes",
        json={
            "daily_rate": -1,
            "pickup_date": "2024-06-01",
            "pickup_time": "10:00",
            "return_date": "2024-06-02",
            "return_time": "10:00",
        },
    )
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# Validation and creation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_validate_reports_all_field_errors(client):
    resp = await client.post(
        "/api/v1/bookings/validate",
        json=_admin_body(pickup_location="", pickup_time="25:99"),
        headers=AUTH,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_valid"] is False
    assert data["field_errors"] == {
        "pickup_location": "Pickup location is required",
        "pickup_time": "Invalid time format (use HH:MM)",
    }


@pytest.mark.asyncio
async def test_validate_overlap_is_a_warning(client):
    resp = await client.post(
        "/api/v1/bookings/validate",
        json=_admin_body(pickup_date=day(1), return_date=day(3)),
        headers=AUTH,
    )
    data = resp.json()
    assert data["is_valid"] is True
    assert len(data["warnings"]) == 1
    assert "B1" in data["warnings"][0]


@pytest.mark.asyncio
async def test_validate_uses_configured_fetch_limit(client, fake_backend, monkeypatch):
    monkeypatch.setattr(settings, "backend_fetch_limit", 250)
    resp = await client.post("/api/v1/bookings/validate", json=_admin_body(), headers=AUTH)
    assert resp.status_code == 200
    limits = {r.url.path: r.url.params.get("limit") for r in fake_backend.requests}
    assert limits == {"/api/users": "250", "/api/cars": "250", "/api/bookings": "250"}


@pytest.mark.asyncio
async def test_validate_unauthenticated(client):
    resp = await client.post("/api/v1/bookings/validate", json=_admin_body())
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_admin_booking(client, fake_backend):
    resp = await client.post("/api/v1/bookings", json=_admin_body(), headers=AUTH)
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "confirmed"
    assert data["vehicle_id"] == "V1"
    assert data["pickup_date"] == day(5)

    [payload] = fake_backend.posted("/bookings")
    assert payload["customerId"] == "C1"
    assert payload["pickupLocation"] == "Tangier Airport"
    assert payload["notes"] == "Child seat"


@pytest.mark.asyncio
async def test_create_admin_booking_rejected_locally(client, fake_backend):
    resp = await client.post("/api/v1/bookings", json=_admin_body(customer_id="C9"), headers=AUTH)
    assert resp.status_code == 422
    assert {"field": "customer_id", "rule": "unknown_customer", "message": "Selected customer not found"} in resp.json()[
        "detail"
    ]
    assert fake_backend.posted("/bookings") == []


@pytest.mark.asyncio
async def test_create_admin_booking_despite_overlap_warning(client, fake_backend):
    resp = await client.post(
        "/api/v1/bookings", json=_admin_body(pickup_date=day(1), return_date=day(3)), headers=AUTH
    )
    assert resp.status_code == 201
    assert len(fake_backend.posted("/bookings")) == 1


@pytest.mark.asyncio
async def test_create_admin_booking_backend_conflict(client, fake_backend):
    fake_backend.conflict_on_create = True
    resp = await client.post("/api/v1/bookings", json=_admin_body(), headers=AUTH)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Vehicle is not available for the selected dates"
    # Sent once, never retried
    assert len(fake_backend.posted("/bookings")) == 1


@pytest.mark.asyncio
async def test_create_website_booking(client, fake_backend):
    resp = await client.post("/api/v1/bookings/website", json=_website_body())
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending"
    assert data["source"] == "website"

    [payload] = fake_backend.posted("/bookings/website")
    assert payload["firstName"] == "Sara"
    assert payload["email"] == "sara@example.com"


@pytest.mark.asyncio
async def test_create_website_booking_too_short(client, fake_backend):
    resp = await client.post(
        "/api/v1/bookings/website",
        json=_website_body(return_date=day(5), pickup_time="09:00", return_time="12:00"),
    )
    assert resp.status_code == 422
    assert resp.json()["detail"][0]["rule"] == "min_duration"
    assert fake_backend.posted("/bookings/website") == []


# ---------------------------------------------------------------------------
# Listing and stats
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_bookings_by_status(client):
    resp = await client.get("/api/v1/bookings", params={"status": "pending"}, headers=AUTH)
    assert resp.status_code == 200
    data = resp.json()
    assert [b["id"] for b in data] == ["B2"]
    assert data[0]["booking_number"] == "BK-0002"


@pytest.mark.asyncio
async def test_stats_from_backend(client):
    resp = await client.get("/api/v1/bookings/stats", headers=AUTH)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_bookings"] == 42
    assert data["total_revenue"] == 12345.5


@pytest.mark.asyncio
async def test_stats_fallback_computed_from_bookings(client, fake_backend):
    fake_backend.stats_fail = True
    resp = await client.get("/api/v1/bookings/stats", headers=AUTH)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_bookings"] == 3
    assert data["confirmed_bookings"] == 1
    assert data["pending_bookings"] == 1
    assert data["completed_bookings"] == 1
    assert data["total_revenue"] == 170.0
    assert data["average_booking_value"] == 170.0


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_confirm_pending_booking(client):
    resp = await client.put("/api/v1/bookings/B2/confirm", headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["status"] == "confirmed"


@pytest.mark.asyncio
async def test_confirm_overlapping_pending_booking(client, fake_backend):
    fake_backend.add_booking("B9", "V1", day(1), day(3), "pending")
    resp = await client.put("/api/v1/bookings/B9/confirm", headers=AUTH)
    assert resp.status_code == 409
    assert resp.json()["detail"][0]["rule"] == "vehicle_conflict"
    assert fake_backend.bookings["B9"]["status"] == "pending"


@pytest.mark.asyncio
async def test_confirm_already_confirmed(client):
    resp = await client.put("/api/v1/bookings/B1/confirm", headers=AUTH)
    assert resp.status_code == 400
    assert resp.json()["detail"][0]["rule"] == "confirm_not_allowed"


@pytest.mark.asyncio
async def test_confirm_missing_booking(client):
    resp = await client.put("/api/v1/bookings/NOPE/confirm", headers=AUTH)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cancel_with_reason(client, fake_backend):
    resp = await client.put("/api/v1/bookings/B1/cancel", json={"reason": "Flight cancelled"}, headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    cancel = fake_backend.requests[-1]
    assert cancel.url.path.endswith("/bookings/B1/cancel")
    assert b"Flight cancelled" in cancel.content


@pytest.mark.asyncio
async def test_cancel_completed_booking(client):
    resp = await client.put("/api/v1/bookings/B3/cancel", headers=AUTH)
    assert resp.status_code == 400
    assert resp.json()["detail"][0]["rule"] == "cancel_not_allowed"


@pytest.mark.asyncio
async def test_pickup_then_return(client):
    resp = await client.put("/api/v1/bookings/B1/pickup", headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["status"] == "active"

    resp = await client.put("/api/v1/bookings/B1/return", headers=AUTH)
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"


@pytest.mark.asyncio
async def test_return_before_pickup(client):
    resp = await client.put("/api/v1/bookings/B1/return", headers=AUTH)
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_download_contract(client):
    resp = await client.get("/api/v1/bookings/B1/contract", headers=AUTH)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="Contract_BK-0001.pdf"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_download_contract_pending_booking(client):
    resp = await client.get("/api/v1/bookings/B2/contract", headers=AUTH)
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_vehicle_availability_conflict(client):
    resp = await client.get(
        "/api/v1/vehicles/V1/availability",
        params={"pickupDate": day(1), "pickupTime": "12:00", "returnDate": day(3), "returnTime": "12:00"},
    )
    assert resp.status_code == 200
    assert resp.json() == {"vehicle_id": "V1", "available": False, "conflicting_booking_ids": ["B1"]}


@pytest.mark.asyncio
async def test_vehicle_availability_back_to_back(client):
    resp = await client.get(
        "/api/v1/vehicles/V1/availability",
        params={"pickupDate": day(2), "pickupTime": "10:00", "returnDate": day(4), "returnTime": "10:00"},
    )
    assert resp.json()["available"] is True


@pytest.mark.asyncio
async def test_vehicle_availability_pending_does_not_block(client):
    resp = await client.get(
        "/api/v1/vehicles/V1/availability",
        params={"pickupDate": day(10), "returnDate": day(12)},
    )
    assert resp.json()["available"] is True


@pytest.mark.asyncio
async def test_vehicle_availability_excluding_itself(client):
    resp = await client.get(
        "/api/v1/vehicles/V1/availability",
        params={"pickupDate": day(0), "pickupTime": "10:00", "returnDate": day(2), "returnTime": "10:00",
                "excludeBookingId": "B1"},
    )
    assert resp.json()["available"] is True


@pytest.mark.asyncio
async def test_vehicle_availability_backwards_window(client):
    resp = await client.get(
        "/api/v1/vehicles/V1/availability",
        params={"pickupDate": day(3), "returnDate": day(1)},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_vehicle_calendar(client):
    resp = await client.get("/api/v1/vehicles/V1/calendar", params={"startDate": day(-1), "endDate": day(3)})
    assert resp.status_code == 200
    days = resp.json()["days"]
    assert [d["date"] for d in days] == [day(i) for i in range(-1, 4)]
    assert [d["is_available"] for d in days] == [True, False, False, False, True]


@pytest.mark.asyncio
async def test_vehicle_calendar_bad_ranges(client):
    resp = await client.get("/api/v1/vehicles/V1/calendar", params={"startDate": day(3), "endDate": day(1)})
    assert resp.status_code == 400
    resp = await client.get("/api/v1/vehicles/V1/calendar", params={"startDate": day(0), "endDate": day(120)})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_fleet_availability(client):
    resp = await client.get("/api/v1/vehicles/availability", params={"date": day(1)})
    assert resp.status_code == 200
    assert resp.json()["vehicles"] == {"V1": False, "V2": True}


@pytest.mark.asyncio
async def test_backend_unreachable(client, fake_backend):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    fake_backend.handle = refuse
    resp = await client.get("/api/v1/vehicles/V1/calendar", params={"startDate": day(0), "endDate": day(1)})
    assert resp.status_code == 502
