from dataclasses import dataclass
from datetime import timedelta

from limo_booking.core.config import ADMIN_EMAIL, RESERVATION_TTL_MINUTES, CANCEL_RELEASE_GRACE_MINUTES
from limo_booking.core.exceptions import BookingNotFound, InvalidBookingState, VehicleUnavailable
from limo_booking.core.logging_config import get_logger
from limo_booking.db.repository import BookingRepository
from limo_booking.models.booking import Booking
from limo_booking.models.enums import BookingStatus, PaymentStatus, ServiceType, VehicleStatus
from limo_booking.services.notifier import Notifier
from limo_booking.services.vehicle_catalog import VehicleCatalog
from limo_booking.utils.pricing import PricingEngine
from limo_booking.utils.timeutils import utcnow

logger = get_logger()

UNPAID = (PaymentStatus.PENDING, PaymentStatus.FAILED)


@dataclass
class SweepResult:
    expired: int = 0
    released: int = 0


class BookingLifecycleManager:
    """Owns booking and vehicle-reservation state transitions.

    Booking.status:         PENDING -> CONFIRMED | CANCELLED (both terminal)
    Booking.payment_status: PENDING -> PAID (terminal) | FAILED -> PENDING (retry)
    """

    def __init__(
        self,
        repository: BookingRepository,
        engine: PricingEngine | None = None,
        notifier: Notifier | None = None,
        catalog: VehicleCatalog | None = None,
        reservation_ttl_minutes: int = RESERVATION_TTL_MINUTES,
        release_grace_minutes: int = CANCEL_RELEASE_GRACE_MINUTES,
        admin_email: str | None = ADMIN_EMAIL,
    ):
        self.repository = repository
        self.engine = engine or PricingEngine()
        self.catalog = catalog or VehicleCatalog(repository, self.engine.pricing)
        self.notifier = notifier
        self.reservation_ttl = timedelta(minutes=reservation_ttl_minutes)
        self.release_grace = timedelta(minutes=release_grace_minutes)
        self.admin_email = admin_email

    def get(self, booking_id: int) -> Booking:
        booking = self.repository.get_booking(booking_id)
        if not booking:
            raise BookingNotFound(f"Booking {booking_id} not found")
        return booking

    # ---------------------------------------------------------------------
    # CREATE
    # ---------------------------------------------------------------------
    def create(self, request) -> Booking:
        log = logger.bind(log_type="booking")

        sheet = self.catalog.get_price_sheet(request.vehicle_id)
        if sheet.status != VehicleStatus.AVAILABLE:
            raise VehicleUnavailable(f"Vehicle {request.vehicle_id} is not available for booking")

        breakdown = self.engine.price(
            sheet,
            request.service_type,
            request.pickup_location,
            request.dropoff_location,
            request.start_time,
            request.duration_hours,
            service_label=request.service,
        )

        now = utcnow()
        try:
            # Reserve and insert in one transaction
            if not self.repository.reserve_vehicle(request.vehicle_id):
                raise VehicleUnavailable(f"Vehicle {request.vehicle_id} is not available for booking")

            booking = self.repository.add_booking(Booking(
                vehicle_id=request.vehicle_id,
                customer_name=request.customer_name,
                customer_email=request.customer_email,
                customer_phone=request.customer_phone,
                service_type=breakdown.service_type,
                pickup_location=request.pickup_location,
                dropoff_location=request.dropoff_location,
                start_date=request.start_date,
                start_time=request.start_time,
                duration_hours=request.duration_hours if breakdown.service_type == ServiceType.RENTAL else None,
                notes=request.notes,
                total_amount=breakdown.total,
                price_breakdown=breakdown.as_dict(),
                status=BookingStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                reserved_until=now + self.reservation_ttl,
            ))
            self.repository.commit()
        except Exception:
            self.repository.rollback()
            raise

        self.repository.refresh(booking)
        log.info(
            f"Booking Created | Booking={booking.id} | Vehicle={booking.vehicle_id} | "
            f"Service={booking.service_type.value} | Total={booking.total_amount}"
        )
        return booking

    # ---------------------------------------------------------------------
    # PAYMENT
    # ---------------------------------------------------------------------
    def confirm_payment(self, booking_id: int, gateway_payment_id: str | None = None) -> Booking:
        """Mark a booking PAID/CONFIRMED. Safe to call any number of times.

        Only the call whose conditional update matched sends notifications.
        """
        log = logger.bind(log_type="payment")
        booking = self.get(booking_id)

        if booking.payment_status == PaymentStatus.PAID:
            log.info(f"Payment already confirmed | Booking={booking_id}")
            return booking
        if booking.status != BookingStatus.PENDING:
            raise InvalidBookingState(
                f"Booking {booking_id} is {booking.status.value}, payment cannot be confirmed"
            )

        values = {
            "status": BookingStatus.CONFIRMED,
            "payment_status": PaymentStatus.PAID,
            "confirmed_at": utcnow(),
            "reserved_until": None,
        }
        if gateway_payment_id:
            values["stripe_payment_id"] = gateway_payment_id

        claimed = self.repository.transition_booking(
            booking_id,
            expected={"status": BookingStatus.PENDING, "payment_status": UNPAID},
            values=values,
        )
        self.repository.commit()
        self.repository.refresh(booking)

        if not claimed:
            if booking.payment_status == PaymentStatus.PAID:
                log.info(f"Payment confirmed by a concurrent request | Booking={booking_id}")
                return booking
            raise InvalidBookingState(
                f"Booking {booking_id} is {booking.status.value}, payment cannot be confirmed"
            )

        log.info(f"Payment Confirmed | Booking={booking_id} | PaymentId={gateway_payment_id}")
        self._notify_confirmation(booking)
        return booking

    def mark_payment_failed(self, booking_id: int) -> Booking:
        log = logger.bind(log_type="payment")
        booking = self.get(booking_id)

        changed = self.repository.transition_booking(
            booking_id,
            expected={"status": BookingStatus.PENDING, "payment_status": PaymentStatus.PENDING},
            values={"payment_status": PaymentStatus.FAILED},
        )
        self.repository.commit()
        self.repository.refresh(booking)

        if changed:
            log.warning(f"Payment Failed | Booking={booking_id}")
        else:
            log.info(
                f"Ignored payment failure | Booking={booking_id} | "
                f"Status={booking.status.value} | Payment={booking.payment_status.value}"
            )
        return booking

    # ---------------------------------------------------------------------
    # CANCEL
    # ---------------------------------------------------------------------
    def cancel(self, booking_id: int) -> Booking:
        log = logger.bind(log_type="booking")
        booking = self.get(booking_id)

        if booking.status == BookingStatus.CANCELLED:
            return booking
        if booking.status != BookingStatus.PENDING or booking.payment_status == PaymentStatus.PAID:
            raise InvalidBookingState(f"Booking {booking_id} is {booking.status.value} and cannot be cancelled")

        now = utcnow()
        try:
            cancelled = self.repository.transition_booking(
                booking_id,
                expected={"status": BookingStatus.PENDING, "payment_status": UNPAID},
                values={
                    "status": BookingStatus.CANCELLED,
                    "cancelled_at": now,
                    "reserved_until": None,
                    "vehicle_release_due_at": now + self.release_grace,
                },
            )
            if not cancelled:
                raise InvalidBookingState(f"Booking {booking_id} changed state and cannot be cancelled")

            if not self.release_grace:
                self._release_vehicle(booking, now)
            self.repository.commit()
        except Exception:
            self.repository.rollback()
            raise

        self.repository.refresh(booking)
        log.info(f"Booking Cancelled | Booking={booking_id} | VehicleReleased={booking.vehicle_released_at is not None}")
        return booking

    # ---------------------------------------------------------------------
    # RESERVATION SWEEP
    # ---------------------------------------------------------------------
    def expire_stale_reservations(self, now=None) -> SweepResult:
        """Cancel unpaid bookings past ``reserved_until`` and release due vehicles."""
        log = logger.bind(log_type="booking")
        now = now or utcnow()
        result = SweepResult()

        for booking in self.repository.stale_reservations(now):
            expired = self.repository.transition_booking(
                booking.id,
                expected={
                    "status": BookingStatus.PENDING,
                    "payment_status": UNPAID,
                    "reserved_until": booking.reserved_until,
                },
                values={
                    "status": BookingStatus.CANCELLED,
                    "cancelled_at": now,
                    "reserved_until": None,
                    "vehicle_release_due_at": now,
                },
            )
            if expired:
                self._release_vehicle(booking, now)
                result.expired += 1
                log.info(f"Reservation Expired | Booking={booking.id} | Vehicle={booking.vehicle_id}")
            self.repository.commit()

        for booking in self.repository.due_vehicle_releases(now):
            if self._release_vehicle(booking, now):
                result.released += 1
            self.repository.commit()

        return result

    def _release_vehicle(self, booking: Booking, now) -> bool:
        marked = self.repository.transition_booking(
            booking.id,
            expected={"vehicle_released_at": None},
            values={"vehicle_released_at": now},
        )
        if not marked:
            return False
        if not self.repository.release_vehicle(booking.vehicle_id):
            logger.bind(log_type="booking").warning(
                f"Vehicle {booking.vehicle_id} was not RESERVED when booking {booking.id} released it"
            )
        return True

    # ---------------------------------------------------------------------
    # NOTIFICATIONS
    # ---------------------------------------------------------------------
    def _notify_confirmation(self, booking: Booking):
        if not self.notifier:
            return

        log = logger.bind(log_type="notification")
        data = {
            "booking_id": booking.id,
            "customer_name": booking.customer_name,
            "customer_email": booking.customer_email,
            "customer_phone": booking.customer_phone,
            "vehicle_name": booking.vehicle.name if booking.vehicle else None,
            "service_type": booking.service_type.value,
            "start_date": booking.start_date.isoformat(),
            "start_time": booking.start_time.strftime("%H:%M"),
            "pickup_location": booking.pickup_location,
            "dropoff_location": booking.dropoff_location,
            "duration_hours": str(booking.duration_hours) if booking.duration_hours is not None else None,
            "total_amount": str(booking.total_amount),
            "notes": booking.notes,
        }

        messages = [(booking.customer_email, "booking_confirmation")]
        if self.admin_email:
            messages.append((self.admin_email, "admin_notification"))

        # A failed email never undoes a confirmed payment
        for to, template in messages:
            try:
                result = self.notifier.send(to, template, data)
            except Exception as e:
                log.error(f"Notification crashed | Booking={booking.id} | template={template} | {e}")
                continue
            if not result.success:
                log.warning(f"Notification failed | Booking={booking.id} | template={template} | {result.error}")
