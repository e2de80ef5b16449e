"""Pydantic schemas for API serialisation and backend payloads.

Backend records arrive camelCase ("pickupDate"); this API speaks
snake_case. Backend-facing models therefore validate from camelCase aliases
but serialise by field name.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import (
    AliasGenerator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from carbookers.models.booking import (
    BookingForm,
    BookingInterval,
    BookingSource,
    BookingStatus,
    TimeWindow,
    WebsiteBookingForm,
)
from carbookers.models.fleet import Customer, CustomerStatus, Vehicle
from carbookers.services.duration import combine

# Amounts stay Decimal in Python and go out as plain JSON numbers
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

_backend_config = ConfigDict(
    alias_generator=AliasGenerator(validation_alias=to_camel),
    populate_by_name=True,
    coerce_numbers_to_str=True,
    extra="ignore",
)


# --- Auth ---


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    model_config = _backend_config

    token: str
    user: dict | None = None


# --- Backend records ---


class VehicleRef(BaseModel):
    model_config = _backend_config

    id: str
    name: str | None = None
    brand: str | None = None
    license_plate: str | None = None


class CustomerRef(BaseModel):
    model_config = _backend_config

    id: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class BookingRecord(BaseModel):
    """A booking as stored by the backend."""

    model_config = _backend_config

    id: str
    booking_number: str | None = None
    customer_id: str | None = None
    vehicle_id: str | None = None
    pickup_date: date
    return_date: date
    pickup_time: str = "00:00"
    return_time: str = "00:00"
    pickup_location: str | None = None
    return_location: str | None = None
    daily_rate: Amount | None = None
    total_days: int | None = None
    total_amount: Amount | None = None
    status: BookingStatus
    source: BookingSource | None = None
    created_at: datetime | None = None
    customer: CustomerRef | None = None
    vehicle: VehicleRef | None = None

    @field_validator("pickup_date", "return_date", mode="before")
    @classmethod
    def _date_part(cls, v):
        # Backend may send full ISO timestamps ("2024-06-01T00:00:00.000Z")
        if isinstance(v, str) and len(v) > 10:
            return v[:10]
        return v

    @field_validator("pickup_time", "return_time", mode="before")
    @classmethod
    def _default_time(cls, v):
        return v or "00:00"

    @property
    def resolved_vehicle_id(self) -> str | None:
        if self.vehicle_id:
            return self.vehicle_id
        return self.vehicle.id if self.vehicle else None

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.pickup_date, self.pickup_time, self.return_date, self.return_time)

    def to_interval(self) -> BookingInterval:
        return BookingInterval(
            id=self.id,
            vehicle_id=self.resolved_vehicle_id or "",
            start=combine(self.pickup_date, self.pickup_time, "pickup"),
            end=combine(self.return_date, self.return_time, "return"),
            status=self.status,
        )


class VehicleRecord(BaseModel):
    model_config = _backend_config

    id: str
    name: str = ""
    brand: str = ""
    daily_rate: Amount = Field(default=Decimal("0"), validation_alias="price")
    available: bool = True
    license_plate: str | None = None

    def to_vehicle(self) -> Vehicle:
        return Vehicle(
            id=self.id,
            name=self.name,
            brand=self.brand,
            daily_rate=self.daily_rate,
            available=self.available,
            license_plate=self.license_plate,
        )


class CustomerRecord(BaseModel):
    model_config = _backend_config

    id: str
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    status: CustomerStatus = CustomerStatus.ACTIVE

    def to_customer(self) -> Customer:
        return Customer(id=self.id, first_name=self.first_name, last_name=self.last_name, status=self.status)


class BookingStatsOut(BaseModel):
    model_config = _backend_config

    total_bookings: int = 0
    pending_bookings: int = 0
    confirmed_bookings: int = 0
    active_bookings: int = 0
    completed_bookings: int = 0
    cancelled_bookings: int = 0
    total_revenue: Amount = Decimal("0")
    average_booking_value: Amount = Decimal("0")
    monthly_revenue: Amount = Decimal("0")


# --- Booking forms ---


class BookingFormIn(BaseModel):
    # Every field defaults to "" so missing values reach the rules, not a 422
    customer_id: str = ""
    vehicle_id: str = ""
    pickup_date: str = ""
    return_date: str = ""
    pickup_time: str = ""
    return_time: str = ""
    pickup_location: str = ""
    return_location: str = ""
    notes: str = ""

    def to_form(self) -> BookingForm:
        return BookingForm(**self.model_dump())


class WebsiteBookingFormIn(BaseModel):
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

    def to_form(self) -> WebsiteBookingForm:
        return WebsiteBookingForm(**self.model_dump())


class CancelRequest(BaseModel):
    reason: str | None = None


class ViolationOut(BaseModel):
    field: str
    rule: str
    message: str


class ValidationOut(BaseModel):
    is_valid: bool
    field_errors: dict[str, str]
    violations: list[ViolationOut]
    warnings: list[str]


# --- Quotes ---


class QuoteRequest(BaseModel):
    daily_rate: Decimal = Field(ge=0)
    pickup_date: str
    pickup_time: str
    return_date: str
    return_time: str


class BillingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    elapsed_minutes: int
    full_day_blocks: int
    lateness_minutes: int
    lateness_fee_applied: bool
    billable_days: int


class PriceQuoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    daily_rate: Amount
    billable_days: int
    base_amount: Amount
    lateness_surcharge: Amount
    total_amount: Amount


class QuoteOut(BaseModel):
    billing: BillingOut
    quote: PriceQuoteOut


# --- Availability ---


class AvailabilityOut(BaseModel):
    vehicle_id: str
    available: bool
    conflicting_booking_ids: list[str]


class CalendarDayOut(BaseModel):
    date: date
    is_available: bool


class VehicleCalendarOut(BaseModel):
    vehicle_id: str
    start_date: date
    end_date: date
    days: list[CalendarDayOut]


class FleetAvailabilityOut(BaseModel):
    date: date
    vehicles: dict[str, bool]
