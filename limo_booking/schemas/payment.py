from pydantic import BaseModel
from typing import Optional
from datetime import date, time, datetime

from limo_booking.models.enums import ServiceType, BookingStatus, PaymentStatus


class CheckoutRequest(BaseModel):
    booking_id: int


class CheckoutOut(BaseModel):
    booking_id: int
    session_id: str
    url: str
    amount: float
    currency: str
    expires_at: Optional[datetime] = None


class ConfirmRequest(BaseModel):
    booking_id: Optional[int] = None
    session_id: Optional[str] = None


class ConfirmOut(BaseModel):
    status: str
    booking_id: Optional[int] = None
    booking_status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None


class WebhookOut(BaseModel):
    received: bool = True
    result: str


class ReceiptOut(BaseModel):
    receipt_number: str
    transaction_id: Optional[str] = None
    booking_id: int
    customer_name: str
    customer_email: str
    vehicle_name: Optional[str] = None
    service_type: ServiceType
    pickup_location: str
    dropoff_location: Optional[str] = None
    start_date: date
    start_time: time
    duration_hours: Optional[float] = None
    breakdown: dict
    total_amount: float
    currency: str
    paid_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
