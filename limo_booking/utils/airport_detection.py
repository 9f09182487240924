"""Airport detection for free-text pickup/drop-off locations.

Terms are matched case-insensitively on word boundaries, so short IATA codes
such as ``sin`` or ``per`` only match as standalone words ("SIN T3") and not
inside ordinary words ("Singapore", "Super Mall").
"""
import re
from typing import Iterable

from limo_booking.core.config import AIRPORT_EXTRA_TERMS

# Generic airport keywords
AIRPORT_KEYWORDS = (
    "airport",
    "terminal",
    "bandara",      # Indonesian
    "arrival",
    "departure",
    "flight",
    "gate",
)

# Specific airport names and IATA codes
AIRPORT_NAMES = (
    # Bali, Indonesia
    "ngurah rai", "denpasar", "dps",
    # Singapore
    "changi", "singapore airport", "sin",
    # Jakarta, Indonesia
    "soekarno-hatta", "soekarno hatta", "soetta", "cengkareng", "cgk",
    # Surabaya, Indonesia
    "juanda", "surabaya airport", "sub",
    # Other Indonesia
    "halim", "halim perdanakusuma", "lombok airport", "praya", "lop",
    "yogyakarta airport", "adisucipto", "jog",
    # Malaysia
    "kuala lumpur airport", "klia", "kul", "penang airport", "pen",
    # Thailand
    "bangkok airport", "suvarnabhumi", "bkk", "don mueang", "dmk",
    "phuket airport", "hkt", "chiang mai airport", "cnx",
    # Hong Kong
    "hong kong airport", "hkg", "chek lap kok",
    # Philippines
    "manila airport", "ninoy aquino", "naia", "mnl",
    # Vietnam
    "ho chi minh airport", "tan son nhat", "sgn", "hanoi airport", "noi bai", "han",
    # Australia
    "sydney airport", "syd", "melbourne airport", "mel",
    "brisbane airport", "bne", "perth airport", "per",
    # Terminal references
    "international terminal", "domestic terminal",
    "t1", "t2", "t3", "t4",
)


class AirportDetector:
    def __init__(self, extra_terms: Iterable[str] = ()):
        terms = {t.strip().lower() for t in (*AIRPORT_KEYWORDS, *AIRPORT_NAMES, *extra_terms) if t.strip()}
        # Longest first so "singapore airport" wins over "airport" in match()
        ordered = sorted(terms, key=len, reverse=True)
        self.terms = tuple(ordered)
        self._pattern = re.compile(
            r"\b(?:" + "|".join(re.escape(t) for t in ordered) + r")\b",
            re.IGNORECASE,
        )

    def match(self, location: str | None) -> str | None:
        """Return the term that marked ``location`` as an airport, if any."""
        if not location:
            return None
        found = self._pattern.search(location.strip())
        return found.group(0).lower() if found else None

    def is_airport(self, location: str | None) -> bool:
        return self.match(location) is not None


default_detector = AirportDetector(AIRPORT_EXTRA_TERMS)


def is_airport_location(location: str | None) -> bool:
    return default_detector.is_airport(location)
