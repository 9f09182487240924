from pydantic import BaseModel
from typing import Optional

from limo_booking.models.enums import VehicleStatus


class VehicleOut(BaseModel):
    id: int
    name: str
    model: Optional[str] = None
    capacity: Optional[int] = None
    status: VehicleStatus

    # Resolved prices, defaults applied
    price_airport_transfer: float
    price_trip_base: float
    price_6_hours: float
    price_12_hours: float
    price_per_hour: float
