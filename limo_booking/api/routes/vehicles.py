from fastapi import APIRouter, Depends

from limo_booking.core.dependencies import get_catalog
from limo_booking.schemas.vehicle import VehicleOut
from limo_booking.services.vehicle_catalog import VehicleCatalog
from limo_booking.utils.pricing import PriceSheet

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


def vehicle_out(vehicle, sheet: PriceSheet) -> VehicleOut:
    return VehicleOut(
        id=vehicle.id,
        name=vehicle.name,
        model=vehicle.model,
        capacity=vehicle.capacity,
        status=vehicle.status,
        price_airport_transfer=sheet.price_airport_transfer,
        price_trip_base=sheet.price_trip_base,
        price_6_hours=sheet.price_6_hours,
        price_12_hours=sheet.price_12_hours,
        price_per_hour=sheet.price_per_hour,
    )


# ---------------------------------------------------------------------
# LIST VEHICLES
# ---------------------------------------------------------------------
@router.get("/", response_model=list[VehicleOut])
def list_vehicles(available_only: bool = False, catalog: VehicleCatalog = Depends(get_catalog)):
    return [
        vehicle_out(v, PriceSheet.from_vehicle(v, catalog.pricing))
        for v in catalog.list_vehicles(available_only=available_only)
    ]


# ---------------------------------------------------------------------
# VEHICLE DETAILS
# ---------------------------------------------------------------------
@router.get("/{vehicle_id}", response_model=VehicleOut)
def get_vehicle(vehicle_id: int, catalog: VehicleCatalog = Depends(get_catalog)):
    vehicle = catalog.get_vehicle(vehicle_id)
    return vehicle_out(vehicle, PriceSheet.from_vehicle(vehicle, catalog.pricing))
