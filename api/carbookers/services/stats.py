"""Booking statistics computed from a list of bookings.

Used when the backend stats endpoint is unavailable. Revenue only counts
completed bookings.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from carbookers.models.booking import BookingStatus
from carbookers.schemas import BookingRecord, BookingStatsOut


def summarize_bookings(bookings: Iterable[BookingRecord], today: date) -> BookingStatsOut:
    counts = {s: 0 for s in BookingStatus}
    total_revenue = Decimal("0")
    monthly_revenue = Decimal("0")
    total = 0

    for booking in bookings:
        total += 1
        counts[booking.status] += 1
        if booking.status != BookingStatus.COMPLETED or not booking.total_amount:
            continue
        total_revenue += booking.total_amount
        created = booking.created_at
        if created and created.year == today.year and created.month == today.month:
            monthly_revenue += booking.total_amount

    completed = counts[BookingStatus.COMPLETED]
    average = (total_revenue / completed).quantize(Decimal("0.01")) if completed else Decimal("0")

    return BookingStatsOut(
        total_bookings=total,
        pending_bookings=counts[BookingStatus.PENDING],
        confirmed_bookings=counts[BookingStatus.CONFIRMED],
        active_bookings=counts[BookingStatus.ACTIVE],
        completed_bookings=completed,
        cancelled_bookings=counts[BookingStatus.CANCELLED],
        total_revenue=total_revenue,
        average_booking_value=average,
        monthly_revenue=monthly_revenue,
    )
