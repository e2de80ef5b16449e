"""Client for the external car-rental REST backend.

The backend is the authoritative store for bookings, cars and users and the
final arbiter of booking conflicts. Responses use the envelope
{"success", "message", "data", "errors"} with camelCase fields.

The client is built per request with the caller's bearer token; nothing is
read from module-level state.
"""

import logging
from collections.abc import Awaitable, Callable

import httpx

from carbookers.core.config import Settings
from carbookers.models.booking import BookingForm, BookingInterval, WebsiteBookingForm
from carbookers.schemas import (
    BookingRecord,
    BookingStatsOut,
    CustomerRecord,
    TokenResponse,
    VehicleRecord,
)
from carbookers.services.duration import InvalidWindow

logger = logging.getLogger(__name__)

# (filename, content) -> None; supplied by whoever wants the file
SaveFile = Callable[[str, bytes], Awaitable[None] | None]


class BackendError(Exception):
    """Raised when the backend rejects a request or cannot be reached."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409


def build_backend_client(settings: Settings, token: str | None = None, **kwargs) -> "BackendClient":
    """Create a client for the configured backend, authenticated when a token is given."""
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    http = httpx.AsyncClient(
        base_url=settings.backend_url.rstrip("/") + "/",
        headers=headers,
        timeout=settings.backend_timeout_seconds,
        **kwargs,
    )
    return BackendClient(http)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        text = response.text[:200]
        return f"Server returned non-JSON response: {text}" if text else f"HTTP {response.status_code}"

    if not isinstance(body, dict):
        return f"HTTP {response.status_code}"

    message = body.get("message") or body.get("error") or f"HTTP {response.status_code}: {response.reason_phrase}"
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        details = ", ".join(
            str(e.get("msg") or e.get("message")) if isinstance(e, dict) else str(e) for e in errors
        )
        message = f"{message} - {details}"
    return message


def to_intervals(records: list[BookingRecord]) -> list[BookingInterval]:
    """Convert backend records for the availability rules, skipping unreadable ones."""
    intervals = []
    for record in records:
        try:
            intervals.append(record.to_interval())
        except InvalidWindow as exc:
            logger.warning("Ignoring booking %s with unreadable dates: %s", record.id, exc.message)
    return intervals


def admin_booking_payload(form: BookingForm) -> dict:
    return {
        "customerId": form.customer_id,
        "vehicleId": form.vehicle_id,
        "pickupDate": form.pickup_date,
        "returnDate": form.return_date,
        "pickupTime": form.pickup_time,
        "returnTime": form.return_time,
        "pickupLocation": form.pickup_location,
        "returnLocation": form.return_location,
        "notes": form.notes,
    }


def website_booking_payload(form: WebsiteBookingForm) -> dict:
    payload = {
        "firstName": form.first_name,
        "lastName": form.last_name,
        "phone": form.phone,
        "vehicleId": form.vehicle_id,
        "pickupDate": form.pickup_date,
        "returnDate": form.return_date,
        "pickupTime": form.pickup_time,
        "returnTime": form.return_time,
        "pickupLocation": form.pickup_location,
        "returnLocation": form.return_location,
    }
    if form.email:
        payload["email"] = form.email
    return payload


class BackendClient:
    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(method, path.lstrip("/"), **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Backend %s %s failed: %s", method, path, exc)
            raise BackendError(502, f"Backend unavailable: {exc}") from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning("Backend %s %s -> %s: %s", method, path, response.status_code, message)
            raise BackendError(response.status_code, message)
        return response

    async def _data(self, method: str, path: str, **kwargs):
        response = await self._send(method, path, **kwargs)
        try:
            body = response.json()
        except ValueError:
            raise BackendError(502, "Server returned non-JSON response") from None
        if isinstance(body, dict) and body.get("success") is False:
            raise BackendError(response.status_code, body.get("message") or "Request failed")
        return body.get("data") if isinstance(body, dict) else body

    # --- Auth ---

    async def login(self, email: str, password: str) -> TokenResponse:
        data = await self._data("POST", "/auth/login", json={"email": email, "password": password})
        return TokenResponse.model_validate(data)

    async def current_user(self) -> dict:
        return await self._data("GET", "/auth/me")

    # --- Reference data ---

    async def list_vehicles(self, limit: int = 1000) -> list[VehicleRecord]:
        data = await self._data("GET", "/cars", params={"limit": limit})
        return [VehicleRecord.model_validate(v) for v in data or []]

    async def list_customers(self, limit: int = 1000) -> list[CustomerRecord]:
        data = await self._data("GET", "/users", params={"limit": limit})
        return [CustomerRecord.model_validate(u) for u in data or []]

    # --- Bookings ---

    async def list_bookings(self, **filters) -> list[BookingRecord]:
        params = {k: v for k, v in filters.items() if v not in (None, "")}
        data = await self._data("GET", "/bookings", params=params)
        return [BookingRecord.model_validate(b) for b in data or []]

    async def vehicle_intervals(self, vehicle_id: str, limit: int = 1000) -> list[BookingInterval]:
        """Snapshot of one vehicle's bookings for the availability rules."""
        if not vehicle_id.strip():
            return []
        return to_intervals(await self.list_bookings(vehicleId=vehicle_id, limit=limit))

    async def get_booking(self, booking_id: str) -> BookingRecord:
        return BookingRecord.model_validate(await self._data("GET", f"/bookings/{booking_id}"))

    async def create_admin_booking(self, form: BookingForm) -> BookingRecord:
        data = await self._data("POST", "/bookings", json=admin_booking_payload(form))
        return BookingRecord.model_validate(data)

    async def create_website_booking(self, form: WebsiteBookingForm) -> BookingRecord:
        data = await self._data("POST", "/bookings/website", json=website_booking_payload(form))
        return BookingRecord.model_validate(data)

    async def confirm_booking(self, booking_id: str) -> BookingRecord:
        return BookingRecord.model_validate(await self._data("PUT", f"/bookings/{booking_id}/confirm"))

    async def cancel_booking(self, booking_id: str, reason: str | None = None) -> BookingRecord:
        data = await self._data("PUT", f"/bookings/{booking_id}/cancel", json={"cancellationReason": reason})
        return BookingRecord.model_validate(data)

    async def mark_picked_up(self, booking_id: str) -> BookingRecord:
        return BookingRecord.model_validate(await self._data("PUT", f"/bookings/{booking_id}/pickup"))

    async def complete_booking(self, booking_id: str) -> BookingRecord:
        return BookingRecord.model_validate(await self._data("PUT", f"/bookings/{booking_id}/return"))

    async def booking_stats(self) -> BookingStatsOut:
        return BookingStatsOut.model_validate(await self._data("GET", "/bookings/stats"))

    # --- Contracts ---

    async def download_contract(self, booking_id: str) -> bytes:
        response = await self._send("GET", f"/bookings/{booking_id}/contract")
        return response.content

    async def save_contract(self, booking_id: str, booking_number: str, save_file: SaveFile) -> str:
        """Download the contract PDF and hand it to save_file. Returns the filename."""
        content = await self.download_contract(booking_id)
        filename = f"Contract_{booking_number}.pdf"
        maybe_awaitable = save_file(filename, content)
        if maybe_awaitable is not None:
            await maybe_awaitable
        logger.info("Contract for booking %s saved as %s", booking_id, filename)
        return filename
