"""Shared test fixtures.

The external REST backend is replaced by FakeBackend, an in-memory stand-in
served through httpx.MockTransport, so the real BackendClient code runs on
every API test.
"""

import json
import re
from datetime import date, timedelta

import httpx
import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient

from carbookers.core.config import settings
from carbookers.core.dependencies import bearer_scheme, get_backend
from carbookers.main import app
from carbookers.services.backend import build_backend_client

AUTH = {"Authorization": "Bearer tok-123"}

# Far enough ahead that "today" in the rental timezone never catches up
BASE = date.today() + timedelta(days=30)


def day(offset: int) -> str:
    return (BASE + timedelta(days=offset)).isoformat()


def _ok(data, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"success": True, "data": data})


def _fail(status_code: int, message: str) -> httpx.Response:
    return httpx.Response(status_code, json={"success": False, "message": message})


_STATUS_AFTER = {"confirm": "confirmed", "cancel": "cancelled", "pickup": "active", "return": "completed"}


class FakeBackend:
    """Minimal in-memory version of the rental REST backend."""

    def __init__(self):
        self.cars = [
            {"id": "V1", "name": "Clio", "brand": "Renault", "price": 85, "available": True, "licensePlate": "A-1"},
            {"id": "V2", "name": "Duster", "brand": "Dacia", "price": 120, "available": False, "licensePlate": "B-2"},
        ]
        self.users = [
            {"id": "C1", "firstName": "Amina", "lastName": "Idrissi", "phone": "0600000001", "status": "active"},
            {"id": "C2", "firstName": "Omar", "lastName": "Benali", "phone": "0600000002", "status": "inactive"},
        ]
        self.bookings: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.stats_fail = False
        self.conflict_on_create = False

        self.add_booking("B1", "V1", day(0), day(2), "confirmed", bookingNumber="BK-0001")
        self.add_booking("B2", "V1", day(10), day(12), "pending", bookingNumber="BK-0002")
        past = (date.today() - timedelta(days=30)).isoformat()
        self.add_booking(
            "B3",
            "V1",
            past,
            past,
            "completed",
            returnTime="18:00",
            totalAmount=170,
            createdAt=f"{past}T09:00:00.000Z",
        )

    def add_booking(self, booking_id, vehicle_id, pickup, ret, status, pickup_time="10:00", return_time=None, **extra):
        record = {
            "id": booking_id,
            "vehicleId": vehicle_id,
            "customerId": "C1",
            "pickupDate": pickup,
            "returnDate": ret,
            "pickupTime": pickup_time,
            "returnTime": return_time or "10:00",
            "status": status,
            "source": "admin",
        }
        record.update(extra)
        self.bookings[booking_id] = record
        return record

    def posted(self, path: str) -> list[dict]:
        return [
            json.loads(r.content)
            for r in self.requests
            if r.method == "POST" and r.url.path.removeprefix("/api") == path
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api")
        method = request.method

        if path == "/auth/login" and method == "POST":
            body = json.loads(request.content)
            if body.get("password") != "secret":
                return _fail(401, "Invalid credentials")
            return _ok({"token": "tok-123", "user": {"id": "A1", "email": body["email"], "role": "admin"}})

        if path == "/auth/me":
            if "authorization" not in request.headers:
                return _fail(401, "Not authorized")
            return _ok({"id": "A1", "email": "admin@carbookers.ma", "role": "admin"})

        if path == "/cars":
            return _ok(self.cars)
        if path == "/users":
            return _ok(self.users)

        if path == "/bookings/stats":
            if self.stats_fail:
                return _fail(500, "Stats unavailable")
            return _ok({"totalBookings": 42, "pendingBookings": 5, "totalRevenue": 12345.5})

        if path == "/bookings" and method == "GET":
            vehicle_id = request.url.params.get("vehicleId")
            wanted = request.url.params.get("status")
            return _ok(
                [
                    b
                    for b in self.bookings.values()
                    if (not vehicle_id or b["vehicleId"] == vehicle_id) and (not wanted or b["status"] == wanted)
                ]
            )

        if path in ("/bookings", "/bookings/website") and method == "POST":
            if self.conflict_on_create:
                return _fail(409, "Vehicle is not available for the selected dates")
            body = json.loads(request.content)
            booking_id = f"B{len(self.bookings) + 1}"
            website = path.endswith("website")
            return _ok(
                self.add_booking(
                    booking_id,
                    body["vehicleId"],
                    body["pickupDate"],
                    body["returnDate"],
                    "pending" if website else "confirmed",
                    pickup_time=body["pickupTime"],
                    return_time=body["returnTime"],
                    source="website" if website else "admin",
                ),
                201,
            )

        if m := re.fullmatch(r"/bookings/([^/]+)/contract", path):
            if m.group(1) not in self.bookings:
                return _fail(404, "Booking not found")
            return httpx.Response(200, content=b"%PDF-1.4 contract", headers={"content-type": "application/pdf"})

        if (m := re.fullmatch(r"/bookings/([^/]+)/(confirm|cancel|pickup|return)", path)) and method == "PUT":
            booking = self.bookings.get(m.group(1))
            if booking is None:
                return _fail(404, "Booking not found")
            booking["status"] = _STATUS_AFTER[m.group(2)]
            return _ok(booking)

        if (m := re.fullmatch(r"/bookings/([^/]+)", path)) and method == "GET":
            booking = self.bookings.get(m.group(1))
            if booking is None:
                return _fail(404, "Booking not found")
            return _ok(booking)

        return _fail(404, f"No route for {method} {path}")


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
async def client(fake_backend):
    async def _backend(credentials=Depends(bearer_scheme)):
        backend = build_backend_client(
            settings,
            credentials.credentials if credentials else None,
            transport=httpx.MockTransport(fake_backend.handle),
        )
        try:
            yield backend
        finally:
            await backend.aclose()

    app.dependency_overrides[get_backend] = _backend
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
