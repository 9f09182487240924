from limo_booking.core.exceptions import VehicleNotFound
from limo_booking.db.repository import BookingRepository
from limo_booking.models.enums import VehicleStatus
from limo_booking.utils.pricing import PriceSheet, PricingConfig


class VehicleCatalog:
    """Read-only view of vehicles and their resolved price sheets."""

    def __init__(self, repository: BookingRepository, pricing: PricingConfig | None = None):
        self.repository = repository
        self.pricing = pricing or PricingConfig()

    def get_vehicle(self, vehicle_id: int):
        vehicle = self.repository.get_vehicle(vehicle_id)
        if not vehicle:
            raise VehicleNotFound(f"Vehicle {vehicle_id} not found")
        return vehicle

    def get_price_sheet(self, vehicle_id: int) -> PriceSheet:
        return PriceSheet.from_vehicle(self.get_vehicle(vehicle_id), self.pricing)

    def list_vehicles(self, available_only: bool = False):
        return self.repository.list_vehicles(VehicleStatus.AVAILABLE if available_only else None)
