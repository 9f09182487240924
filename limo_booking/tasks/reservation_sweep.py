"""Expire unpaid reservations and release held vehicles.

Run on a schedule (cron, systemd timer) as ``limo-sweep-reservations``.
"""
from limo_booking.core.logging_config import get_logger
from limo_booking.db.repository import BookingRepository
from limo_booking.db.session import SessionLocal
from limo_booking.services.booking_lifecycle import BookingLifecycleManager

logger = get_logger()


def run_sweep(session_factory=SessionLocal):
    db = session_factory()
    try:
        lifecycle = BookingLifecycleManager(BookingRepository(db))
        result = lifecycle.expire_stale_reservations()
    finally:
        db.close()

    logger.bind(log_type="booking").info(
        f"Reservation sweep | Expired={result.expired} | Released={result.released}"
    )
    return result


def main():
    run_sweep()


if __name__ == "__main__":
    main()
