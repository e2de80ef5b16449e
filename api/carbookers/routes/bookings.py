"""Booking routes: validate, create, lifecycle actions, contracts and stats.

Every write is checked locally first for fast feedback, then forwarded to
the backend, whose answer is final. A backend conflict (another client took
the slot in the meantime) is returned to the caller as a 409, never retried.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from carbookers.core.config import settings
from carbookers.core.dependencies import backend_http_error, get_backend, require_staff
from carbookers.models.booking import BookingStatus
from carbookers.schemas import (
    BookingFormIn,
    BookingRecord,
    BookingStatsOut,
    CancelRequest,
    ValidationOut,
    ViolationOut,
    WebsiteBookingFormIn,
)
from carbookers.services.backend import BackendClient, BackendError
from carbookers.services.booking_rules import (
    BookingViolation,
    ValidationResult,
    check_availability,
    validate_booking,
    validate_website_booking,
)
from carbookers.services.booking_status import (
    ACTION_CANCEL,
    ACTION_CONFIRM,
    ACTION_PICKUP,
    ACTION_RETURN,
    can_download_contract,
    check_transition,
)
from carbookers.services.duration import InvalidWindow
from carbookers.services.stats import summarize_bookings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _validation_out(result: ValidationResult) -> ValidationOut:
    return ValidationOut(
        is_valid=result.is_valid,
        field_errors=result.field_errors,
        violations=[ViolationOut(**v.as_dict()) for v in result.violations],
        warnings=result.warnings,
    )


def _unprocessable(violations: list[BookingViolation]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=[v.as_dict() for v in violations],
    )


async def _validate_admin(body: BookingFormIn, backend: BackendClient) -> ValidationResult:
    customers = [c.to_customer() for c in await backend.list_customers(settings.backend_fetch_limit)]
    vehicles = [v.to_vehicle() for v in await backend.list_vehicles(settings.backend_fetch_limit)]
    bookings = await backend.vehicle_intervals(body.vehicle_id, settings.backend_fetch_limit)
    return validate_booking(
        body.to_form(),
        customers,
        vehicles,
        bookings,
        min_duration_minutes=settings.admin_min_duration_minutes,
        today=settings.rental_today(),
    )


# ---------------------------------------------------------------------------
# Listing and stats
# ---------------------------------------------------------------------------


@router.get("", response_model=list[BookingRecord])
async def list_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status"),
    vehicle_id: str | None = None,
    backend: BackendClient = Depends(require_staff),
):
    try:
        return await backend.list_bookings(
            status=status_filter.value if status_filter else None,
            vehicleId=vehicle_id,
        )
    except BackendError as exc:
        raise backend_http_error(exc) from None


@router.get("/stats", response_model=BookingStatsOut)
async def booking_stats(backend: BackendClient = Depends(require_staff)):
    try:
        return await backend.booking_stats()
    except BackendError as exc:
        logger.warning("Stats endpoint failed (%s), computing from bookings", exc.message)

    try:
        records = await backend.list_bookings(limit=settings.backend_fetch_limit)
    except BackendError as exc:
        raise backend_http_error(exc) from None
    return summarize_bookings(records, settings.rental_today())


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


@router.post("/validate", response_model=ValidationOut)
async def validate_admin_booking(body: BookingFormIn, backend: BackendClient = Depends(require_staff)):
    try:
        result = await _validate_admin(body, backend)
    except BackendError as exc:
        raise backend_http_error(exc) from None
    return _validation_out(result)


@router.post("", response_model=BookingRecord, status_code=status.HTTP_201_CREATED)
async def create_admin_booking(body: BookingFormIn, backend: BackendClient = Depends(require_staff)):
    try:
        result = await _validate_admin(body, backend)
        if not result.is_valid:
            raise _unprocessable(result.violations)
        for warning in result.warnings:
            logger.info("Creating booking despite warning: %s", warning)
        return await backend.create_admin_booking(body.to_form())
    except BackendError as exc:
        if exc.is_conflict:
            logger.info("Backend rejected booking for vehicle %s: %s", body.vehicle_id, exc.message)
        raise backend_http_error(exc) from None


@router.post("/website", response_model=BookingRecord, status_code=status.HTTP_201_CREATED)
async def create_website_booking(body: WebsiteBookingFormIn, backend: BackendClient = Depends(get_backend)):
    try:
        vehicles = [v.to_vehicle() for v in await backend.list_vehicles(settings.backend_fetch_limit)]
        bookings = await backend.vehicle_intervals(body.vehicle_id, settings.backend_fetch_limit)
        result = validate_website_booking(
            body.to_form(),
            vehicles,
            bookings,
            min_duration_minutes=settings.website_min_duration_minutes,
            today=settings.rental_today(),
        )
        if not result.is_valid:
            raise _unprocessable(result.violations)
        return await backend.create_website_booking(body.to_form())
    except BackendError as exc:
        raise backend_http_error(exc) from None


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def _guarded(backend: BackendClient, booking_id: str, action: str) -> BookingRecord:
    booking = await backend.get_booking(booking_id)
    violation = check_transition(booking.status, action)
    if violation:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=[violation.as_dict()])
    return booking


@router.put("/{booking_id}/confirm", response_model=BookingRecord)
async def confirm_booking(booking_id: str, backend: BackendClient = Depends(require_staff)):
    try:
        booking = await _guarded(backend, booking_id, ACTION_CONFIRM)
        vehicle_id = booking.resolved_vehicle_id or ""
        others = await backend.vehicle_intervals(vehicle_id, settings.backend_fetch_limit)
        # Re-check against everything except the booking itself
        conflict = check_availability(vehicle_id, booking.window, others, exclude_booking_id=booking.id)
        if conflict:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=[conflict.as_dict()])
        return await backend.confirm_booking(booking_id)
    except InvalidWindow as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"field": exc.field, "rule": "invalid_window", "message": exc.message}],
        ) from None
    except BackendError as exc:
        raise backend_http_error(exc) from None


@router.put("/{booking_id}/cancel", response_model=BookingRecord)
async def cancel_booking(
    booking_id: str,
    body: CancelRequest | None = None,
    backend: BackendClient = Depends(require_staff),
):
    try:
        await _guarded(backend, booking_id, ACTION_CANCEL)
        return await backend.cancel_booking(booking_id, body.reason if body else None)
    except BackendError as exc:
        raise backend_http_error(exc) from None


@router.put("/{booking_id}/pickup", response_model=BookingRecord)
async def pick_up_booking(booking_id: str, backend: BackendClient = Depends(require_staff)):
    try:
        await _guarded(backend, booking_id, ACTION_PICKUP)
        return await backend.mark_picked_up(booking_id)
    except BackendError as exc:
        raise backend_http_error(exc) from None


@router.put("/{booking_id}/return", response_model=BookingRecord)
async def return_booking(booking_id: str, backend: BackendClient = Depends(require_staff)):
    try:
        await _guarded(backend, booking_id, ACTION_RETURN)
        return await backend.complete_booking(booking_id)
    except BackendError as exc:
        raise backend_http_error(exc) from None


@router.get("/{booking_id}/contract")
async def download_contract(booking_id: str, backend: BackendClient = Depends(require_staff)):
    files: dict[str, bytes] = {}

    def keep(filename: str, content: bytes) -> None:
        files[filename] = content

    try:
        booking = await backend.get_booking(booking_id)
        if not can_download_contract(booking.status):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Contract can only be generated for confirmed bookings",
            )
        filename = await backend.save_contract(booking.id, booking.booking_number or booking.id, keep)
    except BackendError as exc:
        raise backend_http_error(exc) from None

    return Response(
        content=files[filename],
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
