"""Service-type inference for callers that only send a free-text label.

New callers pass ``ServiceType`` explicitly. ``LegacyTextClassifier`` exists
for the old booking form ("One Way", "Round Trip", "Airport Transfer", ...)
and can be removed once those callers are migrated.
"""
import re
from decimal import Decimal
from typing import Protocol

from limo_booking.models.enums import ServiceType
from limo_booking.utils.airport_detection import AirportDetector, default_detector


class ServiceTypeClassifier(Protocol):
    def classify(
        self,
        service_label: str | None,
        pickup_location: str | None,
        dropoff_location: str | None,
    ) -> ServiceType:
        ...


class LegacyTextClassifier:
    ONE_WAY_MARKERS = ("one", "trip", "airport", "transfer")

    def __init__(self, detector: AirportDetector | None = None):
        self.detector = detector or default_detector

    def classify(self, service_label, pickup_location, dropoff_location) -> ServiceType:
        label = re.sub(r"[-_]+", " ", (service_label or "").strip().lower())

        # "round trip" is an hourly rental even though it mentions a trip
        if "round" in label:
            return ServiceType.RENTAL

        if any(marker in label for marker in self.ONE_WAY_MARKERS):
            if self.detector.is_airport(pickup_location) or self.detector.is_airport(dropoff_location):
                return ServiceType.AIRPORT_TRANSFER
            return ServiceType.TRIP

        return ServiceType.RENTAL


def parse_duration_hours(value, default: Decimal | None = None) -> Decimal | None:
    """Read legacy duration values such as ``"8 hours"`` or ``6``."""
    if value is None or value == "":
        return default
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    found = re.search(r"-?\d+(?:\.\d+)?", str(value))
    return Decimal(found.group(0)) if found else default
