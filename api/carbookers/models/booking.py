"""Booking domain records.

A booking reserves a vehicle for a customer between a pickup and a return
instant. Records are built from backend payloads or form input on demand;
nothing here is persisted by this service.
"""

import enum
from dataclasses import dataclass
from datetime import date, datetime


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"          # Vehicle picked up
    COMPLETED = "completed"    # Vehicle returned
    CANCELLED = "cancelled"


# Statuses that hold the vehicle. Pending bookings do not block the slot.
BLOCKING_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.ACTIVE})


class BookingSource(str, enum.Enum):
    ADMIN = "admin"        # Created from the dashboard
    WEBSITE = "website"    # Public booking form


class PickupLocation(str, enum.Enum):
    TANGIER_AIRPORT = "Tangier Airport"
    TANGIER_CITY_CENTER = "Tangier City Center"
    TANGIER_PORT = "Tangier Port"
    HOTEL_PICKUP = "Hotel Pickup"
    CUSTOM_LOCATION = "Custom Location"


@dataclass(frozen=True)
class TimeWindow:
    """Pickup/return pair as entered: ISO dates and HH:MM wall-clock times."""

    pickup_date: date | str
    pickup_time: str
    return_date: date | str
    return_time: str


@dataclass(frozen=True)
class BookingInterval:
    id: str
    vehicle_id: str
    start: datetime
    end: datetime
    status: BookingStatus

    def __repr__(self) -> str:
        return f"<BookingInterval {self.id} vehicle={self.vehicle_id} {self.start:%Y-%m-%d %H:%M}-{self.end:%Y-%m-%d %H:%M}>"


@dataclass
class BookingForm:
    """Admin booking form: the customer already exists in the backend."""

    customer_id: str = ""
    vehicle_id: str = ""
    pickup_date: str = ""
    return_date: str = ""
    pickup_time: str = ""
    return_time: str = ""
    pickup_location: str = ""
    return_location: str = ""
    notes: str = ""

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.pickup_date, self.pickup_time, self.return_date, self.return_time)


@dataclass
class WebsiteBookingForm:
    """Public website booking form: the customer is described inline."""

    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""
    vehicle_id: str = ""
    pickup_date: str = ""
    return_date: str = ""
    pickup_time: str = ""
    return_time: str = ""
    pickup_location: str = ""
    return_location: str = ""

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.pickup_date, self.pickup_time, self.return_date, self.return_time)
