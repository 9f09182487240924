from decimal import Decimal

import pytest

from limo_booking.models.enums import ServiceType
from limo_booking.utils.airport_detection import AirportDetector, is_airport_location
from limo_booking.utils.service_classifier import LegacyTextClassifier, parse_duration_hours


# =============================================================================
# Airport detection
# =============================================================================

@pytest.mark.parametrize("location", [
    "Changi Airport Terminal 1",
    "SIN T3",
    "Bandara Ngurah Rai",
    "departure hall, Soekarno-Hatta",
    "KLIA",
    "Suvarnabhumi",
])
def test_detects_airports(location):
    assert is_airport_location(location)


@pytest.mark.parametrize("location", [
    "Marina Bay Sands",
    "Singapore Zoo",
    "Super Mall Perth Street",
    "Orchard Road",
    "",
    None,
])
def test_ignores_non_airports(location):
    assert not is_airport_location(location)


def test_extra_terms_are_matched():
    detector = AirportDetector(["Seletar"])
    assert detector.is_airport("Seletar Aerospace Park")
    assert not AirportDetector().is_airport("Seletar Aerospace Park")


def test_match_reports_longest_term():
    assert AirportDetector().match("Hong Kong Airport arrivals") == "hong kong airport"


# =============================================================================
# Legacy label classifier
# =============================================================================

@pytest.mark.parametrize("label, pickup, dropoff, expected", [
    ("One Way", "Changi Airport", "Orchard Road", ServiceType.AIRPORT_TRANSFER),
    ("one-way", "Orchard Road", "Changi Airport", ServiceType.AIRPORT_TRANSFER),
    ("Airport Transfer", "Orchard Road", "Changi Airport", ServiceType.AIRPORT_TRANSFER),
    ("One Way", "Orchard Road", "Sentosa", ServiceType.TRIP),
    ("Trip", "Orchard Road", "Sentosa", ServiceType.TRIP),
    ("Round Trip", "Changi Airport", "Orchard Road", ServiceType.RENTAL),
    ("Hourly", "Orchard Road", None, ServiceType.RENTAL),
    ("", "Orchard Road", None, ServiceType.RENTAL),
])
def test_legacy_classifier(label, pickup, dropoff, expected):
    assert LegacyTextClassifier().classify(label, pickup, dropoff) == expected


@pytest.mark.parametrize("value, expected", [
    ("8 hours", Decimal("8")),
    ("6.5h", Decimal("6.5")),
    (12, Decimal("12")),
    ("-2 hours", Decimal("-2")),
    ("all day", None),
    (None, None),
])
def test_parse_duration_hours(value, expected):
    assert parse_duration_hours(value) == expected
