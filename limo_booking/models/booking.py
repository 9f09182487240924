from sqlalchemy import Column, Integer, String, Date, Time, Numeric, DateTime, ForeignKey, Enum, Text, JSON
from sqlalchemy.orm import relationship

from limo_booking.db.session import Base
from limo_booking.utils.timeutils import utcnow
from limo_booking.models.enums import ServiceType, BookingStatus, PaymentStatus


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    customer_phone = Column(String)

    service_type = Column(Enum(ServiceType, name="servicetype"), nullable=False)
    pickup_location = Column(String, nullable=False)
    dropoff_location = Column(String)

    # Local wall clock, no offset
    start_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    duration_hours = Column(Numeric(5, 2), nullable=True)  # RENTAL only

    notes = Column(Text)

    total_amount = Column(Numeric(10, 2), nullable=False)
    price_breakdown = Column(JSON, nullable=True)  # as charged, for receipts

    status = Column(
        Enum(BookingStatus, name="bookingstatus"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    payment_status = Column(
        Enum(PaymentStatus, name="paymentstatus"),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    # GATEWAY REFERENCES
    stripe_session_id = Column(String, nullable=True, index=True)
    stripe_payment_id = Column(String, nullable=True)

    # RESERVATION
    reserved_until = Column(DateTime, nullable=True)
    vehicle_release_due_at = Column(DateTime, nullable=True)
    vehicle_released_at = Column(DateTime, nullable=True)

    confirmed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    version = Column(Integer, nullable=False, default=1)

    vehicle = relationship("Vehicle", back_populates="bookings")
