"""Vehicle availability routes (advisory; the backend re-checks on write)."""

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status

from carbookers.core.config import settings
from carbookers.core.dependencies import backend_http_error, get_backend
from carbookers.models.booking import TimeWindow
from carbookers.schemas import AvailabilityOut, FleetAvailabilityOut, VehicleCalendarOut
from carbookers.services.availability import fleet_availability, find_conflicts, vehicle_calendar
from carbookers.services.backend import BackendClient, BackendError, to_intervals
from carbookers.services.duration import InvalidWindow

router = APIRouter(prefix="/vehicles", tags=["vehicles"])

MAX_CALENDAR_DAYS = 90


@router.get("/availability", response_model=FleetAvailabilityOut)
async def get_fleet_availability(
    on_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    backend: BackendClient = Depends(get_backend),
):
    try:
        vehicles = [v.to_vehicle() for v in await backend.list_vehicles(settings.backend_fetch_limit)]
        bookings = to_intervals(await backend.list_bookings(limit=settings.backend_fetch_limit))
    except BackendError as exc:
        raise backend_http_error(exc) from None
    return FleetAvailabilityOut(date=on_date, vehicles=fleet_availability(vehicles, bookings, on_date))


@router.get("/{vehicle_id}/availability", response_model=AvailabilityOut)
async def get_vehicle_availability(
    vehicle_id: str,
    pickup_date: str = Query(..., alias="pickupDate"),
    pickup_time: str = Query("00:00", alias="pickupTime"),
    return_date: str = Query(..., alias="returnDate"),
    return_time: str = Query("00:00", alias="returnTime"),
    exclude_booking_id: str | None = Query(None, alias="excludeBookingId"),
    backend: BackendClient = Depends(get_backend),
):
    window = TimeWindow(pickup_date, pickup_time, return_date, return_time)
    try:
        bookings = await backend.vehicle_intervals(vehicle_id, settings.backend_fetch_limit)
        conflicts = find_conflicts(vehicle_id, window, bookings, exclude_booking_id)
    except InvalidWindow as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[{"field": exc.field, "rule": "invalid_window", "message": exc.message}],
        ) from None
    except BackendError as exc:
        raise backend_http_error(exc) from None

    return AvailabilityOut(
        vehicle_id=vehicle_id,
        available=not conflicts,
        conflicting_booking_ids=[b.id for b in conflicts],
    )


@router.get("/{vehicle_id}/calendar", response_model=VehicleCalendarOut)
async def get_vehicle_calendar(
    vehicle_id: str,
    start_date: date = Query(..., alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    backend: BackendClient = Depends(get_backend),
):
    end_date = end_date or start_date + timedelta(days=MAX_CALENDAR_DAYS - 1)
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="endDate must not be before startDate")
    if (end_date - start_date).days >= MAX_CALENDAR_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Calendar range is limited to {MAX_CALENDAR_DAYS} days",
        )

    try:
        bookings = await backend.vehicle_intervals(vehicle_id, settings.backend_fetch_limit)
    except BackendError as exc:
        raise backend_http_error(exc) from None

    return VehicleCalendarOut(
        vehicle_id=vehicle_id,
        start_date=start_date,
        end_date=end_date,
        days=vehicle_calendar(vehicle_id, bookings, start_date, end_date),
    )
