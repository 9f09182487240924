import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

import stripe

from limo_booking.core.config import (
    STRIPE_SECRET_KEY,
    STRIPE_WEBHOOK_SECRET,
    PAYMENT_ALLOW_UNVERIFIED_WEBHOOKS,
)
from limo_booking.core.exceptions import (
    GatewayError,
    InvalidGatewayCredentials,
    InvalidSession,
    InvalidWebhookEvent,
    WebhookSignatureError,
)
from limo_booking.core.logging_config import get_logger
from limo_booking.utils.timeutils import utcnow

logger = get_logger()

# Stripe only accepts a checkout expiry 30 minutes to 24 hours out
MIN_SESSION_TTL = timedelta(minutes=31)
MAX_SESSION_TTL = timedelta(hours=23, minutes=59)


@dataclass
class LineItem:
    name: str
    amount_minor: int
    description: str | None = None
    quantity: int = 1


@dataclass
class CheckoutSession:
    session_id: str
    redirect_url: str
    expires_at: datetime | None = None


@dataclass
class GatewaySession:
    session_id: str
    payment_status: str | None
    status: str | None
    payment_intent_id: str | None = None
    booking_id: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid" and self.status == "complete"


@dataclass
class GatewayEvent:
    event_id: str | None
    type: str
    session_id: str | None = None
    booking_id: str | None = None
    payment_intent_id: str | None = None
    payment_status: str | None = None


class PaymentGateway(Protocol):
    def create_session(
        self,
        amount_minor: int,
        currency: str,
        line_items: list[LineItem],
        success_url: str,
        cancel_url: str,
        metadata: dict,
        customer_email: str | None = None,
        expires_at: datetime | None = None,
    ) -> CheckoutSession:
        ...

    def retrieve_session(self, session_id: str) -> GatewaySession:
        ...

    def expire_session(self, session_id: str) -> None:
        ...

    def parse_webhook(self, payload: bytes, signature: str | None) -> GatewayEvent:
        ...


def _lookup(obj, key):
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError, AttributeError):
        return getattr(obj, key, None)


def _intent_id(value):
    # payment_intent is an id string unless the request expanded it
    if value is None or isinstance(value, str):
        return value
    return _lookup(value, "id")


def clamp_session_expiry(expires_at: datetime, now: datetime | None = None) -> datetime:
    """Fit a naive-UTC expiry into the window Stripe accepts."""
    now = now or utcnow()
    return min(max(expires_at, now + MIN_SESSION_TTL), now + MAX_SESSION_TTL)


def event_from_payload(event: dict) -> GatewayEvent:
    event_type = _lookup(event, "type")
    if not event_type:
        raise InvalidWebhookEvent("Webhook event has no type")

    session = _lookup(_lookup(event, "data"), "object")
    booking_id = _lookup(_lookup(session, "metadata"), "bookingId")

    return GatewayEvent(
        event_id=_lookup(event, "id"),
        type=event_type,
        session_id=_lookup(session, "id"),
        booking_id=str(booking_id) if booking_id is not None else None,
        payment_intent_id=_intent_id(_lookup(session, "payment_intent")),
        payment_status=_lookup(session, "payment_status"),
    )


class StripeGateway:
    """Stripe Checkout behind the ``PaymentGateway`` contract.

    Credentials are checked when the gateway is built, so a misconfigured
    process fails at startup instead of on the first customer request.
    """

    def __init__(
        self,
        api_key: str | None,
        webhook_secret: str | None = None,
        allow_unverified_webhooks: bool = False,
    ):
        self.api_key = self._validate_api_key(api_key)
        self.webhook_secret = webhook_secret or None
        self.allow_unverified_webhooks = allow_unverified_webhooks

        if not self.webhook_secret and not allow_unverified_webhooks:
            raise InvalidGatewayCredentials(
                "STRIPE_WEBHOOK_SECRET is not set. Set it, or set "
                "PAYMENT_ALLOW_UNVERIFIED_WEBHOOKS=true for local development only."
            )
        if not self.webhook_secret:
            logger.bind(log_type="payment").warning(
                "Stripe webhooks will be accepted WITHOUT signature verification (dev mode)"
            )

    @staticmethod
    def _validate_api_key(api_key):
        if not api_key:
            raise InvalidGatewayCredentials("STRIPE_SECRET_KEY environment variable is not set")

        key = api_key.strip()
        if key.startswith("pk_"):
            raise InvalidGatewayCredentials(
                "STRIPE_SECRET_KEY holds a publishable key (pk_); a secret key (sk_) is required"
            )
        if not key.startswith(("sk_", "rk_")):
            raise InvalidGatewayCredentials(
                f"Invalid Stripe secret key, expected it to start with 'sk_' (got '{key[:3]}')"
            )
        return key

    # ---------------- CHECKOUT ----------------
    def create_session(
        self,
        amount_minor,
        currency,
        line_items,
        success_url,
        cancel_url,
        metadata,
        customer_email=None,
        expires_at=None,
    ) -> CheckoutSession:
        items_total = sum(item.amount_minor * item.quantity for item in line_items)
        if items_total != amount_minor:
            raise ValueError(f"Line items add up to {items_total}, expected {amount_minor}")

        params = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {
                            "name": item.name[:100],
                            **({"description": item.description} if item.description else {}),
                        },
                        "unit_amount": item.amount_minor,
                    },
                    "quantity": item.quantity,
                }
                for item in line_items
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "payment_intent_data": {"metadata": metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email
        if expires_at:
            expires_at = clamp_session_expiry(expires_at)
            params["expires_at"] = int(expires_at.replace(tzinfo=timezone.utc).timestamp())

        session = self._call(stripe.checkout.Session.create, **params)
        return CheckoutSession(session_id=session.id, redirect_url=session.url, expires_at=expires_at)

    def retrieve_session(self, session_id: str) -> GatewaySession:
        try:
            session = self._call(stripe.checkout.Session.retrieve, session_id)
        except GatewayError as e:
            if isinstance(e.__cause__, stripe.InvalidRequestError):
                raise InvalidSession(f"Invalid session ID: {session_id}") from e
            raise

        booking_id = _lookup(session.metadata, "bookingId")
        return GatewaySession(
            session_id=session.id,
            payment_status=session.payment_status,
            status=session.status,
            payment_intent_id=_intent_id(session.payment_intent),
            booking_id=str(booking_id) if booking_id is not None else None,
        )

    def expire_session(self, session_id: str) -> None:
        try:
            self._call(stripe.checkout.Session.expire, session_id)
        except GatewayError as e:
            # Already completed or expired on Stripe's side
            if isinstance(e.__cause__, stripe.InvalidRequestError):
                logger.bind(log_type="payment").warning(f"Session {session_id} could not be expired: {e.__cause__}")
                return
            raise

    def _call(self, method, *args, **params):
        try:
            return method(*args, api_key=self.api_key, **params)
        except (stripe.AuthenticationError, stripe.PermissionError) as e:
            raise InvalidGatewayCredentials("Stripe rejected the configured API key") from e
        except stripe.StripeError as e:
            logger.bind(log_type="payment").error(f"Stripe request failed: {e}")
            raise GatewayError(getattr(e, "user_message", None) or "Payment gateway request failed") from e

    # ---------------- WEBHOOKS ----------------
    def parse_webhook(self, payload: bytes, signature: str | None) -> GatewayEvent:
        try:
            body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        except UnicodeDecodeError as e:
            raise InvalidWebhookEvent("Webhook body is not valid UTF-8") from e

        if self.webhook_secret:
            if not signature:
                raise WebhookSignatureError("No signature provided")
            try:
                stripe.WebhookSignature.verify_header(
                    body, signature, self.webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
                )
            except stripe.SignatureVerificationError as e:
                raise WebhookSignatureError(f"Webhook signature verification failed: {e}") from e
        else:
            logger.bind(log_type="payment").warning("Parsing webhook without verification (dev mode)")

        try:
            event = json.loads(body)
        except ValueError as e:
            raise InvalidWebhookEvent("Webhook body is not valid JSON") from e
        return event_from_payload(event)


def build_gateway_from_env() -> StripeGateway:
    return StripeGateway(
        api_key=STRIPE_SECRET_KEY,
        webhook_secret=STRIPE_WEBHOOK_SECRET,
        allow_unverified_webhooks=PAYMENT_ALLOW_UNVERIFIED_WEBHOOKS,
    )
