from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional
from datetime import date, time, datetime
from decimal import Decimal

from limo_booking.models.enums import ServiceType, BookingStatus, PaymentStatus
from limo_booking.utils.service_classifier import parse_duration_hours


class RideDetails(BaseModel):
    vehicle_id: int
    service_type: Optional[ServiceType] = None
    # Legacy free-text label ("One Way", "Round Trip"), used when service_type is missing
    service: Optional[str] = None
    pickup_location: str
    dropoff_location: Optional[str] = None
    start_time: Optional[time] = None
    duration_hours: Optional[Decimal] = None

    @field_validator("duration_hours", mode="before")
    @classmethod
    def parse_duration(cls, value):
        return parse_duration_hours(value)


class QuoteRequest(RideDetails):
    pass


class BookingCreate(RideDetails):
    customer_name: str
    customer_email: EmailStr
    customer_phone: str
    start_date: date
    start_time: time
    notes: Optional[str] = None


class QuoteOut(BaseModel):
    vehicle_id: int
    service_type: ServiceType
    base_price: float
    overage_hours: float
    overage_price: float
    subtotal: float
    tax: float
    midnight_surcharge: float
    total: float


class BookingOut(BaseModel):
    id: int
    vehicle_id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    service_type: ServiceType
    pickup_location: str
    dropoff_location: Optional[str] = None
    start_date: date
    start_time: time
    duration_hours: Optional[float] = None
    notes: Optional[str] = None
    total_amount: float
    status: BookingStatus
    payment_status: PaymentStatus
    reserved_until: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}
