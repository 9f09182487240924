"""
Stripe gateway: credential checks, session parameters, webhook signatures.
"""
import hashlib
import hmac
import json
import time
from datetime import timedelta
from types import SimpleNamespace

import pytest
import stripe

from limo_booking.core.exceptions import (
    GatewayError,
    InvalidGatewayCredentials,
    InvalidSession,
    InvalidWebhookEvent,
    WebhookSignatureError,
)
from limo_booking.services.gateway import LineItem, StripeGateway, clamp_session_expiry
from limo_booking.utils.timeutils import utcnow

SECRET = "whsec_test_secret"


def sign(payload: str, secret: str = SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    digest = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def completed_event(booking_id="7"):
    return json.dumps({
        "id": "evt_123",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_abc",
                "metadata": {"bookingId": booking_id},
                "payment_intent": "pi_abc",
                "payment_status": "paid",
            }
        },
    })


@pytest.fixture
def gateway():
    return StripeGateway("sk_test_123", webhook_secret=SECRET)


# =============================================================================
# Credentials
# =============================================================================

@pytest.mark.parametrize("key", [None, "", "pk_test_123", "not_a_key"])
def test_invalid_secret_keys_rejected(key):
    with pytest.raises(InvalidGatewayCredentials):
        StripeGateway(key, webhook_secret=SECRET)


def test_restricted_key_accepted():
    assert StripeGateway("rk_live_123", webhook_secret=SECRET).api_key == "rk_live_123"


def test_missing_webhook_secret_is_fatal():
    with pytest.raises(InvalidGatewayCredentials):
        StripeGateway("sk_test_123")


def test_unverified_webhooks_need_explicit_flag():
    gateway = StripeGateway("sk_test_123", allow_unverified_webhooks=True)
    event = gateway.parse_webhook(completed_event().encode(), None)
    assert event.booking_id == "7"


# =============================================================================
# Webhook signatures
# =============================================================================

def test_valid_signature_parses_event(gateway):
    payload = completed_event()

    event = gateway.parse_webhook(payload.encode(), sign(payload))

    assert event.event_id == "evt_123"
    assert event.type == "checkout.session.completed"
    assert event.session_id == "cs_test_abc"
    assert event.booking_id == "7"
    assert event.payment_intent_id == "pi_abc"
    assert event.payment_status == "paid"


def test_wrong_secret_rejected(gateway):
    payload = completed_event()
    with pytest.raises(WebhookSignatureError):
        gateway.parse_webhook(payload.encode(), sign(payload, secret="whsec_other"))


def test_tampered_payload_rejected(gateway):
    header = sign(completed_event("7"))
    with pytest.raises(WebhookSignatureError):
        gateway.parse_webhook(completed_event("8").encode(), header)


def test_missing_signature_rejected(gateway):
    with pytest.raises(WebhookSignatureError):
        gateway.parse_webhook(completed_event().encode(), None)


def test_stale_signature_rejected(gateway):
    payload = completed_event()
    with pytest.raises(WebhookSignatureError):
        gateway.parse_webhook(payload.encode(), sign(payload, timestamp=int(time.time()) - 3600))


def test_event_without_type_rejected(gateway):
    payload = json.dumps({"id": "evt_1", "data": {"object": {}}})
    with pytest.raises(InvalidWebhookEvent):
        gateway.parse_webhook(payload.encode(), sign(payload))


def test_non_utf8_body_rejected(gateway):
    with pytest.raises(InvalidWebhookEvent):
        gateway.parse_webhook(b"\xff\xfe{}", "t=1,v1=abc")


# =============================================================================
# Checkout sessions
# =============================================================================

def test_create_session_parameters(gateway, monkeypatch):
    calls = []

    def fake_create(**params):
        calls.append(params)
        return SimpleNamespace(id="cs_test_new", url="https://checkout.stripe.com/c/pay/cs_test_new")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    expires_at = utcnow() + timedelta(minutes=5)

    session = gateway.create_session(
        amount_minor=9000,
        currency="usd",
        line_items=[LineItem("Airport Transfer", 8000), LineItem("Midnight surcharge", 1000)],
        success_url="https://limo.test/ok",
        cancel_url="https://limo.test/cancel",
        metadata={"bookingId": "7"},
        customer_email="jane@example.com",
        expires_at=expires_at,
    )

    params = calls[0]
    assert session.session_id == "cs_test_new"
    assert params["api_key"] == "sk_test_123"
    assert params["metadata"] == {"bookingId": "7"}
    assert params["payment_intent_data"] == {"metadata": {"bookingId": "7"}}
    assert [item["price_data"]["unit_amount"] for item in params["line_items"]] == [8000, 1000]
    # Stripe rejects expiries under 30 minutes
    assert session.expires_at > expires_at
    assert params["expires_at"] >= int(time.time()) + 30 * 60


def test_line_items_must_match_amount(gateway):
    with pytest.raises(ValueError):
        gateway.create_session(
            amount_minor=9000,
            currency="usd",
            line_items=[LineItem("Airport Transfer", 8000)],
            success_url="https://limo.test/ok",
            cancel_url="https://limo.test/cancel",
            metadata={"bookingId": "7"},
        )


def test_rejected_api_key_maps_to_credentials_error(gateway, monkeypatch):
    def fake_create(**params):
        raise stripe.AuthenticationError("Invalid API Key provided")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    with pytest.raises(InvalidGatewayCredentials):
        gateway.create_session(
            amount_minor=100, currency="usd", line_items=[LineItem("Trip", 100)],
            success_url="https://limo.test/ok", cancel_url="https://limo.test/cancel", metadata={},
        )


def test_retrieve_session(gateway, monkeypatch):
    def fake_retrieve(session_id, **params):
        return SimpleNamespace(
            id=session_id,
            metadata={"bookingId": "7"},
            payment_status="paid",
            status="complete",
            payment_intent={"id": "pi_expanded"},
        )

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)

    session = gateway.retrieve_session("cs_test_abc")

    assert session.is_paid
    assert session.booking_id == "7"
    assert session.payment_intent_id == "pi_expanded"


def test_retrieve_garbage_session(gateway, monkeypatch):
    def fake_retrieve(session_id, **params):
        raise stripe.InvalidRequestError("No such checkout.session", "id")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)

    with pytest.raises(InvalidSession):
        gateway.retrieve_session("garbage")


def test_other_stripe_errors_become_gateway_errors(gateway, monkeypatch):
    def fake_retrieve(session_id, **params):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", fake_retrieve)

    with pytest.raises(GatewayError) as info:
        gateway.retrieve_session("cs_test_abc")
    assert not isinstance(info.value, InvalidSession)


def test_expire_session(gateway, monkeypatch):
    calls = []

    def fake_expire(session_id, **params):
        calls.append((session_id, params))
        return SimpleNamespace(id=session_id, status="expired")

    monkeypatch.setattr(stripe.checkout.Session, "expire", fake_expire)

    gateway.expire_session("cs_test_old")

    assert calls == [("cs_test_old", {"api_key": "sk_test_123"})]


def test_expire_session_no_longer_open(gateway, monkeypatch):
    def fake_expire(session_id, **params):
        raise stripe.InvalidRequestError("Only Checkout Sessions with a status of open can be expired", None)

    monkeypatch.setattr(stripe.checkout.Session, "expire", fake_expire)

    gateway.expire_session("cs_test_done")


def test_expire_session_network_error_propagates(gateway, monkeypatch):
    def fake_expire(session_id, **params):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.checkout.Session, "expire", fake_expire)

    with pytest.raises(GatewayError):
        gateway.expire_session("cs_test_old")


def test_clamp_session_expiry():
    now = utcnow()
    assert clamp_session_expiry(now, now) == now + timedelta(minutes=31)
    assert clamp_session_expiry(now + timedelta(hours=2), now) == now + timedelta(hours=2)
    assert clamp_session_expiry(now + timedelta(days=3), now) == now + timedelta(hours=23, minutes=59)
