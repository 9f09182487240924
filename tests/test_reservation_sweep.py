from datetime import timedelta

from conftest import booking_request
from limo_booking.models.enums import BookingStatus, VehicleStatus
from limo_booking.tasks import reservation_sweep
from limo_booking.utils.timeutils import utcnow


def test_run_sweep_expires_old_reservations(session_factory, lifecycle, vehicle, db, monkeypatch):
    booking = lifecycle.create(booking_request(vehicle.id))
    later = utcnow() + timedelta(hours=1)
    monkeypatch.setattr("limo_booking.services.booking_lifecycle.utcnow", lambda: later)

    result = reservation_sweep.run_sweep(session_factory)

    db.expire_all()
    assert result.expired == 1
    assert lifecycle.get(booking.id).status == BookingStatus.CANCELLED
    assert db.get(type(vehicle), vehicle.id).status == VehicleStatus.AVAILABLE


def test_run_sweep_with_nothing_to_do(session_factory):
    result = reservation_sweep.run_sweep(session_factory)
    assert (result.expired, result.released) == (0, 0)
