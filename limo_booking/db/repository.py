from sqlalchemy.orm import Session

from limo_booking.models.booking import Booking
from limo_booking.models.enums import BookingStatus, PaymentStatus, VehicleStatus
from limo_booking.models.vehicle import Vehicle
from limo_booking.utils.timeutils import utcnow


class BookingRepository:
    """Persistence for bookings and vehicle reservations.

    Status changes go through conditional UPDATEs ("... WHERE status = X") and
    report whether a row matched, so two racing requests cannot both believe
    they made the same transition. Callers own commit/rollback.
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------------- VEHICLES ----------------
    def get_vehicle(self, vehicle_id: int) -> Vehicle | None:
        return self.db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()

    def list_vehicles(self, status: VehicleStatus | None = None) -> list[Vehicle]:
        query = self.db.query(Vehicle)
        if status:
            query = query.filter(Vehicle.status == status)
        return query.order_by(Vehicle.id).all()

    def reserve_vehicle(self, vehicle_id: int) -> bool:
        return self._set_vehicle_status(vehicle_id, VehicleStatus.AVAILABLE, VehicleStatus.RESERVED)

    def release_vehicle(self, vehicle_id: int) -> bool:
        return self._set_vehicle_status(vehicle_id, VehicleStatus.RESERVED, VehicleStatus.AVAILABLE)

    def _set_vehicle_status(self, vehicle_id, expected, new) -> bool:
        updated = (
            self.db.query(Vehicle)
            .filter(Vehicle.id == vehicle_id, Vehicle.status == expected)
            .update(
                {
                    Vehicle.status: new,
                    Vehicle.version: Vehicle.version + 1,
                    Vehicle.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )
        return updated == 1

    # ---------------- BOOKINGS ----------------
    def get_booking(self, booking_id: int) -> Booking | None:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def add_booking(self, booking: Booking) -> Booking:
        self.db.add(booking)
        self.db.flush()
        return booking

    def transition_booking(self, booking_id: int, expected: dict, values: dict) -> bool:
        """Apply ``values`` only if every column in ``expected`` still matches.

        An ``expected`` value that is a list/tuple/set matches any of its items.
        """
        query = self.db.query(Booking).filter(Booking.id == booking_id)
        for column, value in expected.items():
            attr = getattr(Booking, column)
            if isinstance(value, (list, tuple, set)):
                query = query.filter(attr.in_(list(value)))
            else:
                query = query.filter(attr == value)

        changes = {getattr(Booking, column): value for column, value in values.items()}
        changes[Booking.version] = Booking.version + 1
        changes[Booking.updated_at] = utcnow()

        return query.update(changes, synchronize_session=False) == 1

    def stale_reservations(self, now) -> list[Booking]:
        return (
            self.db.query(Booking)
            .filter(
                Booking.status == BookingStatus.PENDING,
                Booking.payment_status != PaymentStatus.PAID,
                Booking.reserved_until.isnot(None),
                Booking.reserved_until < now,
            )
            .all()
        )

    def due_vehicle_releases(self, now) -> list[Booking]:
        return (
            self.db.query(Booking)
            .filter(
                Booking.status == BookingStatus.CANCELLED,
                Booking.vehicle_released_at.is_(None),
                Booking.vehicle_release_due_at.isnot(None),
                Booking.vehicle_release_due_at <= now,
            )
            .all()
        )

    # ---------------- TRANSACTIONS ----------------
    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def refresh(self, instance):
        self.db.refresh(instance)
        return instance
