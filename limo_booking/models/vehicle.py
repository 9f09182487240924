from sqlalchemy import Column, Integer, String, Numeric, DateTime, Enum
from sqlalchemy.orm import relationship

from limo_booking.db.session import Base
from limo_booking.utils.timeutils import utcnow
from limo_booking.models.enums import VehicleStatus


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    model = Column(String)
    plate_number = Column(String, unique=True)
    capacity = Column(Integer)

    # Price sheet (NULL → configured default)
    price_airport_transfer = Column(Numeric(10, 2), nullable=True)
    price_trip_base = Column(Numeric(10, 2), nullable=True)
    price_6_hours = Column(Numeric(10, 2), nullable=True)
    price_12_hours = Column(Numeric(10, 2), nullable=True)
    price_per_hour = Column(Numeric(10, 2), nullable=True)

    status = Column(
        Enum(VehicleStatus, name="vehiclestatus"),
        nullable=False,
        default=VehicleStatus.AVAILABLE,
    )

    # Bumped on every status transition
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    bookings = relationship("Booking", back_populates="vehicle")
