"""Checkout and payment reconciliation.

A booking can be confirmed by the gateway webhook or by the customer's
return page polling ``confirm_fallback``. Both paths end in
``BookingLifecycleManager.confirm_payment``, which is idempotent, so their
order does not matter.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from limo_booking.core.config import (
    APP_URL,
    PAYMENT_CURRENCY,
    RESERVATION_TTL_MINUTES,
    WEBHOOK_EVENT_TTL_SECONDS,
)
from limo_booking.core.exceptions import (
    BookingAlreadyPaid,
    BookingNotFound,
    InvalidBookingRequest,
    InvalidBookingState,
    InvalidSession,
    InvalidWebhookEvent,
)
from limo_booking.core.logging_config import get_logger
from limo_booking.core.redis import claim_key, release_key
from limo_booking.models.booking import Booking
from limo_booking.models.enums import BookingStatus, PaymentStatus, ServiceType
from limo_booking.services.booking_lifecycle import BookingLifecycleManager, UNPAID
from limo_booking.services.gateway import LineItem, PaymentGateway
from limo_booking.utils.pricing import CENT, ZERO, PriceBreakdown
from limo_booking.utils.timeutils import utcnow

logger = get_logger()

CONFIRM_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")
FAILED_EVENTS = ("checkout.session.async_payment_failed",)

SERVICE_NAMES = {
    ServiceType.AIRPORT_TRANSFER: "Airport Transfer",
    ServiceType.TRIP: "One Way Trip",
    ServiceType.RENTAL: "Hourly Rental",
}


def to_minor_units(amount) -> int:
    """Major currency units to whole cents, half up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class CheckoutResult:
    booking_id: int
    session_id: str
    redirect_url: str
    amount: Decimal
    expires_at: datetime | None = None


@dataclass
class ConfirmationResult:
    status: str  # already_paid | confirmed | pending
    booking: Booking


@dataclass
class Receipt:
    receipt_number: str
    transaction_id: str | None
    booking_id: int
    customer_name: str
    customer_email: str
    vehicle_name: str | None
    service_type: ServiceType
    pickup_location: str
    dropoff_location: str | None
    start_date: object
    start_time: object
    duration_hours: Decimal | None
    breakdown: dict = field(default_factory=dict)
    total_amount: Decimal = ZERO
    currency: str = PAYMENT_CURRENCY
    paid_at: datetime | None = None


class PaymentReconciler:
    def __init__(
        self,
        lifecycle: BookingLifecycleManager,
        gateway: PaymentGateway,
        currency: str = PAYMENT_CURRENCY,
        app_url: str = APP_URL,
        reservation_ttl_minutes: int = RESERVATION_TTL_MINUTES,
        event_ttl: int = WEBHOOK_EVENT_TTL_SECONDS,
    ):
        self.lifecycle = lifecycle
        self.repository = lifecycle.repository
        self.gateway = gateway
        self.currency = currency
        self.app_url = app_url.rstrip("/")
        self.reservation_ttl = timedelta(minutes=reservation_ttl_minutes)
        self.event_ttl = event_ttl

    def quote_for_booking(self, booking: Booking) -> PriceBreakdown:
        """Price a persisted booking from its stored ride details."""
        sheet = self.lifecycle.catalog.get_price_sheet(booking.vehicle_id)
        return self.lifecycle.engine.price(
            sheet,
            booking.service_type,
            booking.pickup_location,
            booking.dropoff_location,
            booking.start_time,
            booking.duration_hours,
        )

    # =====================================================================
    # CHECKOUT
    # =====================================================================
    def create_checkout_session(self, booking_id: int) -> CheckoutResult:
        log = logger.bind(log_type="payment")
        booking = self.lifecycle.get(booking_id)

        if booking.payment_status == PaymentStatus.PAID:
            raise BookingAlreadyPaid(f"Booking {booking_id} has already been paid")
        if booking.status != BookingStatus.PENDING:
            raise InvalidBookingState(f"Booking {booking_id} is {booking.status.value}, checkout is not allowed")

        if booking.stripe_session_id:
            self._retire_session(booking)

        breakdown = self.quote_for_booking(booking)
        self._prepare_for_checkout(booking, breakdown)

        line_items = self._line_items(booking, breakdown)
        expires_at = utcnow() + self.reservation_ttl

        session = self.gateway.create_session(
            amount_minor=to_minor_units(breakdown.total),
            currency=self.currency,
            line_items=line_items,
            success_url=(
                f"{self.app_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}&booking_id={booking.id}"
            ),
            cancel_url=f"{self.app_url}/payment/cancel?booking_id={booking.id}",
            metadata={"bookingId": str(booking.id)},
            customer_email=booking.customer_email,
            expires_at=expires_at,
        )

        # Hold the vehicle for as long as the session can still be paid
        held_until = max(filter(None, [session.expires_at, expires_at, booking.reserved_until]))
        attached = self.repository.transition_booking(
            booking.id,
            expected={"status": BookingStatus.PENDING, "payment_status": UNPAID},
            values={"stripe_session_id": session.session_id, "reserved_until": held_until},
        )
        self.repository.commit()
        self.repository.refresh(booking)

        if not attached and booking.payment_status != PaymentStatus.PAID:
            log.error(
                f"Booking {booking.id} left PENDING while session {session.session_id} was being created "
                f"| Status={booking.status.value}"
            )
            raise InvalidBookingState(f"Booking {booking.id} is {booking.status.value}, checkout is not allowed")

        log.info(
            f"Checkout Session Created | Booking={booking.id} | Session={session.session_id} | "
            f"Amount={breakdown.total} {self.currency.upper()}"
        )
        return CheckoutResult(
            booking_id=booking.id,
            session_id=session.session_id,
            redirect_url=session.redirect_url,
            amount=breakdown.total,
            expires_at=held_until,
        )

    def _retire_session(self, booking: Booking):
        """Close the stored session so only the newest one can take payment."""
        log = logger.bind(log_type="payment")
        try:
            previous = self.gateway.retrieve_session(booking.stripe_session_id)
        except InvalidSession:
            log.warning(f"Stored session {booking.stripe_session_id} not found | Booking={booking.id}")
            return

        if previous.is_paid:
            # Paid but not yet reconciled, so confirm instead of charging again
            self.lifecycle.confirm_payment(booking.id, previous.payment_intent_id)
            raise BookingAlreadyPaid(f"Booking {booking.id} has already been paid")
        if previous.status == "open":
            self.gateway.expire_session(previous.session_id)
            log.info(f"Expired previous session {previous.session_id} | Booking={booking.id}")

    def _prepare_for_checkout(self, booking: Booking, breakdown: PriceBreakdown):
        """Patch a drifted total and reopen a failed payment, in one update."""
        log = logger.bind(log_type="payment")
        values = {}

        if abs(breakdown.total - Decimal(str(booking.total_amount))) > CENT:
            log.warning(
                f"Total drifted | Booking={booking.id} | Stored={booking.total_amount} | Computed={breakdown.total}"
            )
            values["total_amount"] = breakdown.total
            values["price_breakdown"] = breakdown.as_dict()
        elif booking.price_breakdown is None:
            values["price_breakdown"] = breakdown.as_dict()

        if booking.payment_status == PaymentStatus.FAILED:
            values["payment_status"] = PaymentStatus.PENDING

        if not values:
            return

        changed = self.repository.transition_booking(
            booking.id,
            expected={"status": BookingStatus.PENDING, "payment_status": booking.payment_status},
            values=values,
        )
        self.repository.commit()
        self.repository.refresh(booking)
        if not changed:
            raise InvalidBookingState(f"Booking {booking.id} changed state while preparing checkout")

    def _line_items(self, booking: Booking, breakdown: PriceBreakdown) -> list[LineItem]:
        vehicle_name = booking.vehicle.name if booking.vehicle else f"Vehicle {booking.vehicle_id}"
        description = f"{booking.pickup_location}"
        if booking.dropoff_location:
            description += f" to {booking.dropoff_location}"
        if breakdown.service_type == ServiceType.RENTAL and booking.duration_hours is not None:
            description += f" | {booking.duration_hours} hours"
            if breakdown.overage_hours > ZERO:
                description += f" ({breakdown.overage_hours} extra)"

        items = [
            LineItem(
                name=f"{SERVICE_NAMES[breakdown.service_type]} - {vehicle_name}",
                amount_minor=to_minor_units(breakdown.subtotal),
                description=description,
            )
        ]
        if breakdown.tax > ZERO:
            items.append(LineItem(name="Tax", amount_minor=to_minor_units(breakdown.tax)))
        if breakdown.midnight_surcharge > ZERO:
            items.append(
                LineItem(
                    name="Midnight surcharge",
                    amount_minor=to_minor_units(breakdown.midnight_surcharge),
                    description=self._night_window(),
                )
            )
        return items

    def _night_window(self) -> str:
        pricing = self.lifecycle.engine.pricing
        return f"Pickup between {pricing.night_start_hour:02d}:00 and {pricing.night_end_hour:02d}:00"

    # =====================================================================
    # WEBHOOK
    # =====================================================================
    def handle_webhook(self, payload: bytes, signature: str | None) -> str:
        """Apply a gateway webhook. Returns the outcome for the response body."""
        log = logger.bind(log_type="payment")
        event = self.gateway.parse_webhook(payload, signature)
        log.info(f"Webhook received | Event={event.event_id} | Type={event.type} | Booking={event.booking_id}")

        if event.type not in CONFIRM_EVENTS + FAILED_EVENTS:
            return "ignored"

        key = f"webhook:event:{event.event_id}" if event.event_id else None
        if key and not claim_key(key, self.event_ttl):
            log.info(f"Duplicate webhook event {event.event_id}")
            return "duplicate"

        try:
            return self._apply_event(event)
        except Exception:
            # Let the gateway's retry be processed
            if key:
                release_key(key)
            raise

    def _apply_event(self, event) -> str:
        log = logger.bind(log_type="payment")
        booking_id = self._booking_id(event.booking_id)

        if event.type in FAILED_EVENTS:
            self.lifecycle.mark_payment_failed(booking_id)
            return "failed"

        if event.payment_status != "paid":
            log.info(f"Session {event.session_id} completed but not paid yet | Booking={booking_id}")
            return "pending"

        booking = self.lifecycle.get(booking_id)
        if booking.payment_status == PaymentStatus.PAID:
            self._flag_second_payment(booking, event.session_id, event.payment_intent_id)
            return "already_paid"
        if booking.status == BookingStatus.CANCELLED:
            log.error(
                f"Paid session {event.session_id} for CANCELLED booking {booking_id} | "
                f"PaymentIntent={event.payment_intent_id} | needs manual refund"
            )
            return "ignored"

        self.lifecycle.confirm_payment(booking_id, event.payment_intent_id)
        return "confirmed"

    @staticmethod
    def _flag_second_payment(booking: Booking, session_id: str | None, payment_intent_id: str | None):
        """Log a payment that landed on a booking another payment already settled."""

        def differs(seen, recorded):
            return bool(seen and recorded and seen != recorded)

        if not (
            differs(session_id, booking.stripe_session_id)
            or differs(payment_intent_id, booking.stripe_payment_id)
        ):
            return
        logger.bind(log_type="payment").error(
            f"Second payment for PAID booking {booking.id} | Session={session_id} | "
            f"PaymentIntent={payment_intent_id} | Recorded={booking.stripe_session_id}/"
            f"{booking.stripe_payment_id} | needs manual refund"
        )

    @staticmethod
    def _booking_id(raw) -> int:
        if raw is None:
            raise InvalidWebhookEvent("No booking ID in session metadata")
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise InvalidWebhookEvent(f"Invalid booking ID in session metadata: {raw}") from None

    # =====================================================================
    # FALLBACK CONFIRMATION
    # =====================================================================
    def confirm_fallback(self, booking_id: int | None = None, session_id: str | None = None) -> ConfirmationResult:
        """Confirm from the return page when the webhook has not landed yet."""
        log = logger.bind(log_type="payment")

        if booking_id is None and not session_id:
            raise InvalidBookingRequest("Session ID or booking ID is required")

        booking = self.lifecycle.get(booking_id) if booking_id is not None else None
        if (
            booking
            and booking.payment_status == PaymentStatus.PAID
            and not session_id
        ):
            return ConfirmationResult("already_paid", booking)

        session_id = session_id or (booking.stripe_session_id if booking else None)
        if not session_id:
            log.info(f"No checkout session yet | Booking={booking_id}")
            return ConfirmationResult("pending", booking)

        session = self.gateway.retrieve_session(session_id)

        if booking is None:
            booking = self.lifecycle.get(self._session_booking_id(session))
        elif session.booking_id is not None and session.booking_id != str(booking.id):
            raise InvalidBookingState(f"Session {session_id} does not belong to booking {booking.id}")

        if booking.payment_status == PaymentStatus.PAID:
            if session.is_paid:
                self._flag_second_payment(booking, session.session_id, session.payment_intent_id)
            return ConfirmationResult("already_paid", booking)

        if not session.is_paid:
            log.info(
                f"Fallback: session not paid | Booking={booking.id} | "
                f"payment_status={session.payment_status} | status={session.status}"
            )
            return ConfirmationResult("pending", booking)

        booking = self.lifecycle.confirm_payment(booking.id, session.payment_intent_id)
        log.info(f"Fallback confirmation | Booking={booking.id} | Session={session_id}")
        return ConfirmationResult("confirmed", booking)

    @staticmethod
    def _session_booking_id(session) -> int:
        try:
            return int(session.booking_id)
        except (TypeError, ValueError):
            raise BookingNotFound(f"Session {session.session_id} is not linked to a booking") from None

    # =====================================================================
    # RECEIPT
    # =====================================================================
    def build_receipt(self, booking_id: int) -> Receipt:
        booking = self.lifecycle.get(booking_id)
        if booking.payment_status != PaymentStatus.PAID:
            raise InvalidBookingState(f"Booking {booking_id} has not been paid")

        breakdown = booking.price_breakdown or self.quote_for_booking(booking).as_dict()
        return Receipt(
            receipt_number=booking.stripe_session_id or str(booking.id),
            transaction_id=booking.stripe_payment_id,
            booking_id=booking.id,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            vehicle_name=booking.vehicle.name if booking.vehicle else None,
            service_type=booking.service_type,
            pickup_location=booking.pickup_location,
            dropoff_location=booking.dropoff_location,
            start_date=booking.start_date,
            start_time=booking.start_time,
            duration_hours=booking.duration_hours,
            breakdown=breakdown,
            total_amount=booking.total_amount,
            currency=self.currency,
            paid_at=booking.confirmed_at,
        )
