from fastapi import APIRouter, Depends

from limo_booking.core.dependencies import get_catalog, get_engine, get_lifecycle
from limo_booking.core.logging_config import get_logger
from limo_booking.schemas.booking import BookingCreate, BookingOut, QuoteOut, QuoteRequest
from limo_booking.services.booking_lifecycle import BookingLifecycleManager
from limo_booking.services.vehicle_catalog import VehicleCatalog
from limo_booking.utils.pricing import PricingEngine

router = APIRouter(prefix="/bookings", tags=["Bookings"])
logger = get_logger()


# ---------------------------------------------------------------------
# QUOTE
# ---------------------------------------------------------------------
@router.post("/quote", response_model=QuoteOut)
def quote(
    data: QuoteRequest,
    catalog: VehicleCatalog = Depends(get_catalog),
    engine: PricingEngine = Depends(get_engine),
):
    sheet = catalog.get_price_sheet(data.vehicle_id)
    breakdown = engine.price(
        sheet,
        data.service_type,
        data.pickup_location,
        data.dropoff_location,
        data.start_time,
        data.duration_hours,
        service_label=data.service,
    )
    return QuoteOut(
        vehicle_id=data.vehicle_id,
        service_type=breakdown.service_type,
        base_price=breakdown.base_price,
        overage_hours=breakdown.overage_hours,
        overage_price=breakdown.overage_price,
        subtotal=breakdown.subtotal,
        tax=breakdown.tax,
        midnight_surcharge=breakdown.midnight_surcharge,
        total=breakdown.total,
    )


# ---------------------------------------------------------------------
# CREATE BOOKING
# ---------------------------------------------------------------------
@router.post("/", response_model=BookingOut, status_code=201)
def create_booking(data: BookingCreate, lifecycle: BookingLifecycleManager = Depends(get_lifecycle)):
    return lifecycle.create(data)


# ---------------------------------------------------------------------
# BOOKING DETAILS
# ---------------------------------------------------------------------
@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, lifecycle: BookingLifecycleManager = Depends(get_lifecycle)):
    return lifecycle.get(booking_id)


# ---------------------------------------------------------------------
# CANCEL BOOKING
# ---------------------------------------------------------------------
@router.post("/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: int, lifecycle: BookingLifecycleManager = Depends(get_lifecycle)):
    return lifecycle.cancel(booking_id)
