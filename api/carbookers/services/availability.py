"""Vehicle availability against existing bookings.

Pure calculation module: works on a snapshot of bookings the caller already
fetched from the backend. Results are advisory; the backend re-checks at
write time and its answer wins.

Overlap is half-open: [a.start, a.end) and [b.start, b.end) conflict iff
a.start < b.end and b.start < a.end, so a return at 10:00 and a pickup at
10:00 on the same vehicle do not clash.
"""

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from carbookers.models.booking import BLOCKING_STATUSES, BookingInterval, TimeWindow
from carbookers.models.fleet import Vehicle
from carbookers.services.duration import window_bounds


def _overlaps(start: datetime, end: datetime, booking: BookingInterval) -> bool:
    return booking.start < end and start < booking.end


def _blocking(
    vehicle_id: str,
    bookings: Iterable[BookingInterval],
    exclude_booking_id: str | None = None,
) -> list[BookingInterval]:
    return [
        b
        for b in bookings
        if b.vehicle_id == vehicle_id
        and b.status in BLOCKING_STATUSES
        and (exclude_booking_id is None or b.id != exclude_booking_id)
    ]


def find_conflicts_between(
    vehicle_id: str,
    start: datetime,
    end: datetime,
    existing_bookings: Iterable[BookingInterval],
    exclude_booking_id: str | None = None,
) -> list[BookingInterval]:
    """Confirmed/active bookings of the vehicle overlapping [start, end), earliest first."""
    conflicts = [b for b in _blocking(vehicle_id, existing_bookings, exclude_booking_id) if _overlaps(start, end, b)]
    return sorted(conflicts, key=lambda b: b.start)


def find_conflicts(
    vehicle_id: str,
    candidate_window: TimeWindow,
    existing_bookings: Iterable[BookingInterval],
    exclude_booking_id: str | None = None,
) -> list[BookingInterval]:
    """Same as find_conflicts_between for a form window. Raises InvalidWindow."""
    start, end = window_bounds(candidate_window)
    return find_conflicts_between(vehicle_id, start, end, existing_bookings, exclude_booking_id)


def is_available(
    vehicle_id: str,
    candidate_window: TimeWindow,
    existing_bookings: Iterable[BookingInterval],
    exclude_booking_id: str | None = None,
) -> bool:
    """True when no confirmed or active booking of the vehicle overlaps the window.

    Pass exclude_booking_id when re-checking a booking that is itself in the list
    (e.g. confirming a pending booking).
    """
    return not find_conflicts(vehicle_id, candidate_window, existing_bookings, exclude_booking_id)


def vehicle_calendar(
    vehicle_id: str,
    bookings: Iterable[BookingInterval],
    start_date: date,
    end_date: date,
) -> list[dict]:
    """Per-day availability for a vehicle from start_date to end_date inclusive.

    Returns a list of dicts with keys: date, is_available. A day is unavailable
    when any confirmed/active booking overlaps [00:00, next day 00:00).
    """
    if end_date < start_date:
        raise ValueError("end_date must not be before start_date")

    blocking = _blocking(vehicle_id, bookings)
    days: list[dict] = []
    current = start_date
    while current <= end_date:
        day_start = datetime.combine(current, time.min)
        day_end = day_start + timedelta(days=1)
        days.append(
            {
                "date": current.isoformat(),
                "is_available": not any(_overlaps(day_start, day_end, b) for b in blocking),
            }
        )
        current += timedelta(days=1)
    return days


def fleet_availability(
    vehicles: Iterable[Vehicle],
    bookings: Iterable[BookingInterval],
    on_date: date,
) -> dict[str, bool]:
    """Map vehicle id -> free on on_date (no blocking booking touching that day)."""
    bookings = list(bookings)
    day_start = datetime.combine(on_date, time.min)
    day_end = day_start + timedelta(days=1)
    return {
        v.id: not find_conflicts_between(v.id, day_start, day_end, bookings)
        for v in vehicles
    }
