import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


# -------- DATABASE --------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./limo_booking.db")

# -------- LOGGING --------
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# -------- PAYMENT GATEWAY --------
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
# Only for local development: accept webhook bodies without a signature
PAYMENT_ALLOW_UNVERIFIED_WEBHOOKS = _env_bool("PAYMENT_ALLOW_UNVERIFIED_WEBHOOKS")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "usd")
APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")

# -------- NOTIFICATIONS --------
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
FROM_EMAIL = os.getenv("FROM_EMAIL", "bookings@limo-booking.example")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")

# -------- CACHE --------
REDIS_URL = os.getenv("REDIS_URL")
WEBHOOK_EVENT_TTL_SECONDS = int(os.getenv("WEBHOOK_EVENT_TTL_SECONDS", 86400))

# -------- PRICING --------
# Fallbacks used when a vehicle has no price for a tier
DEFAULT_PRICE_AIRPORT_TRANSFER = Decimal(os.getenv("DEFAULT_PRICE_AIRPORT_TRANSFER", "100"))
DEFAULT_PRICE_6_HOURS = Decimal(os.getenv("DEFAULT_PRICE_6_HOURS", "360"))
DEFAULT_PRICE_12_HOURS = Decimal(os.getenv("DEFAULT_PRICE_12_HOURS", "720"))
DEFAULT_PRICE_PER_HOUR = Decimal(os.getenv("DEFAULT_PRICE_PER_HOUR", "60"))

AIRPORT_BOUND_DISCOUNT = Decimal(os.getenv("AIRPORT_BOUND_DISCOUNT", "10"))
MIDNIGHT_SURCHARGE = Decimal(os.getenv("MIDNIGHT_SURCHARGE", "10"))
NIGHT_START_HOUR = int(os.getenv("NIGHT_START_HOUR", 23))
NIGHT_END_HOUR = int(os.getenv("NIGHT_END_HOUR", 7))

# Applied to the pre-surcharge subtotal. 0 keeps quotes tax-free.
TAX_RATE = Decimal(os.getenv("TAX_RATE", "0"))

AIRPORT_EXTRA_TERMS = _env_list("AIRPORT_EXTRA_TERMS")

# -------- RESERVATIONS --------
RESERVATION_TTL_MINUTES = int(os.getenv("RESERVATION_TTL_MINUTES", 30))
# 0 releases the vehicle as soon as an unpaid booking is cancelled
CANCEL_RELEASE_GRACE_MINUTES = int(os.getenv("CANCEL_RELEASE_GRACE_MINUTES", 0))
