"""Booking price calculation.

Every quote, persisted total and checkout line item goes through
``PricingEngine.price`` so the rules cannot drift between entry points.

Rules:
- Airport transfer: full airport rate from an airport, ``AIRPORT_BOUND_DISCOUNT``
  off towards an airport, full rate when both or neither end is an airport.
- Trip: flat one-way rate, duration ignored.
- Rental: 6 hour package up to 6h, 6 hour package + hourly overage below 12h,
  12 hour package + hourly overage from 12h. Exactly 6 or 12 hours is a
  package price.
- Midnight surcharge for pickups from ``NIGHT_START_HOUR`` until ``NIGHT_END_HOUR``.
- Tax at ``TAX_RATE`` on the pre-surcharge subtotal.
"""
from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal, ROUND_HALF_UP

from limo_booking.core import config
from limo_booking.core.exceptions import InvalidBookingRequest
from limo_booking.models.enums import ServiceType, VehicleStatus
from limo_booking.utils.airport_detection import AirportDetector, default_detector
from limo_booking.utils.service_classifier import ServiceTypeClassifier, LegacyTextClassifier
from limo_booking.utils.timeutils import parse_wall_clock

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingConfig:
    default_airport_transfer: Decimal = config.DEFAULT_PRICE_AIRPORT_TRANSFER
    default_6_hours: Decimal = config.DEFAULT_PRICE_6_HOURS
    default_12_hours: Decimal = config.DEFAULT_PRICE_12_HOURS
    default_per_hour: Decimal = config.DEFAULT_PRICE_PER_HOUR
    airport_bound_discount: Decimal = config.AIRPORT_BOUND_DISCOUNT
    midnight_surcharge: Decimal = config.MIDNIGHT_SURCHARGE
    night_start_hour: int = config.NIGHT_START_HOUR
    night_end_hour: int = config.NIGHT_END_HOUR
    tax_rate: Decimal = config.TAX_RATE


@dataclass(frozen=True)
class PriceSheet:
    price_airport_transfer: Decimal
    price_trip_base: Decimal
    price_6_hours: Decimal
    price_12_hours: Decimal
    price_per_hour: Decimal
    status: VehicleStatus = VehicleStatus.AVAILABLE

    @classmethod
    def from_vehicle(cls, vehicle, pricing: PricingConfig | None = None) -> "PriceSheet":
        """Resolve a vehicle row to a full price sheet, applying defaults."""
        pricing = pricing or PricingConfig()

        def resolve(value, default):
            if value is None:
                return to_money(default)
            amount = to_money(value)
            if amount < ZERO:
                raise ValueError(f"Vehicle {vehicle.id} has a negative price: {amount}")
            return amount

        airport = resolve(vehicle.price_airport_transfer, pricing.default_airport_transfer)
        return cls(
            price_airport_transfer=airport,
            # One-way trips fall back to the airport rate
            price_trip_base=resolve(vehicle.price_trip_base, airport),
            price_6_hours=resolve(vehicle.price_6_hours, pricing.default_6_hours),
            price_12_hours=resolve(vehicle.price_12_hours, pricing.default_12_hours),
            price_per_hour=resolve(vehicle.price_per_hour, pricing.default_per_hour),
            status=VehicleStatus(vehicle.status) if vehicle.status else VehicleStatus.AVAILABLE,
        )


@dataclass(frozen=True)
class PriceBreakdown:
    service_type: ServiceType
    base_price: Decimal
    overage_hours: Decimal = ZERO
    overage_price: Decimal = ZERO
    tax: Decimal = ZERO
    midnight_surcharge: Decimal = ZERO
    subtotal: Decimal = field(init=False)
    total: Decimal = field(init=False)

    def __post_init__(self):
        subtotal = to_money(self.base_price + self.overage_price)
        object.__setattr__(self, "subtotal", subtotal)
        object.__setattr__(self, "total", to_money(subtotal + self.tax + self.midnight_surcharge))

    def as_dict(self) -> dict:
        """JSON-safe form, amounts as strings."""
        return {
            "service_type": self.service_type.value,
            "base_price": str(self.base_price),
            "overage_hours": str(self.overage_hours),
            "overage_price": str(self.overage_price),
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "midnight_surcharge": str(self.midnight_surcharge),
            "total": str(self.total),
        }


def is_night_pickup(start_time: time | str | None, pricing: PricingConfig | None = None) -> bool:
    pricing = pricing or PricingConfig()
    parsed = parse_wall_clock(start_time)
    if parsed is None:
        return False
    return parsed.hour >= pricing.night_start_hour or parsed.hour < pricing.night_end_hour


class PricingEngine:
    def __init__(
        self,
        pricing: PricingConfig | None = None,
        detector: AirportDetector | None = None,
        classifier: ServiceTypeClassifier | None = None,
    ):
        self.pricing = pricing or PricingConfig()
        self.detector = detector or default_detector
        self.classifier = classifier or LegacyTextClassifier(self.detector)

    def resolve_service_type(self, service_type, service_label, pickup_location, dropoff_location) -> ServiceType:
        if service_type:
            try:
                return ServiceType(service_type)
            except ValueError:
                raise InvalidBookingRequest(f"Unknown service type: {service_type}") from None
        if not service_label:
            raise InvalidBookingRequest("Either service_type or a service label is required")
        return self.classifier.classify(service_label, pickup_location, dropoff_location)

    def price(
        self,
        sheet: PriceSheet,
        service_type: ServiceType | str | None,
        pickup_location: str,
        dropoff_location: str | None = None,
        start_time: time | str | None = None,
        duration_hours=None,
        service_label: str | None = None,
    ) -> PriceBreakdown:
        service_type = self.resolve_service_type(service_type, service_label, pickup_location, dropoff_location)

        try:
            night = is_night_pickup(start_time, self.pricing)
        except ValueError as e:
            raise InvalidBookingRequest(str(e)) from None
        surcharge = to_money(self.pricing.midnight_surcharge) if night else ZERO

        overage_hours = ZERO
        overage_price = ZERO

        if service_type == ServiceType.AIRPORT_TRANSFER:
            base_price = self._airport_transfer_price(sheet, pickup_location, dropoff_location)
        elif service_type == ServiceType.TRIP:
            base_price = sheet.price_trip_base
        else:
            base_price, overage_hours, overage_price = self._rental_price(sheet, duration_hours)

        subtotal = base_price + overage_price
        tax = to_money(subtotal * self.pricing.tax_rate)

        return PriceBreakdown(
            service_type=service_type,
            base_price=to_money(base_price),
            overage_hours=to_money(overage_hours),
            overage_price=to_money(overage_price),
            tax=tax,
            midnight_surcharge=surcharge,
        )

    def _airport_transfer_price(self, sheet, pickup_location, dropoff_location) -> Decimal:
        rate = sheet.price_airport_transfer
        from_airport = self.detector.is_airport(pickup_location)
        to_airport = self.detector.is_airport(dropoff_location)

        if to_airport and not from_airport:
            return max(ZERO, rate - self.pricing.airport_bound_discount)
        return rate

    def _rental_price(self, sheet, duration_hours):
        hours = Decimal(str(duration_hours)) if duration_hours is not None else ZERO
        if hours < ZERO:
            raise InvalidBookingRequest("Rental duration cannot be negative")

        if hours <= 6:
            return sheet.price_6_hours, ZERO, ZERO
        if hours < 12:
            overage = hours - 6
            return sheet.price_6_hours, overage, overage * sheet.price_per_hour
        # Exactly 12 hours is the 12 hour package with no overage
        overage = hours - 12
        return sheet.price_12_hours, overage, overage * sheet.price_per_hour
