import json
from datetime import date, time
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from limo_booking.core.dependencies import get_db
from limo_booking.core.exceptions import InvalidSession, WebhookSignatureError
from limo_booking.db.repository import BookingRepository
from limo_booking.db.session import init_db, make_engine
from limo_booking.main import create_app
from limo_booking.models.vehicle import Vehicle
from limo_booking.services.booking_lifecycle import BookingLifecycleManager
from limo_booking.services.gateway import CheckoutSession, GatewaySession, event_from_payload
from limo_booking.services.notifier import NotificationResult
from limo_booking.services.payments import PaymentReconciler
from limo_booking.utils.timeutils import utcnow


# =============================================================================
# Fakes
# =============================================================================

class FakeNotifier:
    def __init__(self, fail=False, crash=False):
        self.sent = []
        self.fail = fail
        self.crash = crash

    def send(self, to, template, data):
        self.sent.append((to, template, data))
        if self.crash:
            raise RuntimeError("smtp exploded")
        if self.fail:
            return NotificationResult(success=False, error="rejected")
        return NotificationResult(success=True, message_id=f"msg_{len(self.sent)}")

    def templates(self):
        return [template for _, template, _ in self.sent]


class FakeGateway:
    """In-memory checkout sessions; webhooks are accepted unless the signature is "bad"."""

    def __init__(self):
        self.created = []
        self.sessions = {}
        self.expired = []

    def create_session(self, amount_minor, currency, line_items, success_url, cancel_url,
                       metadata, customer_email=None, expires_at=None):
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append(SimpleNamespace(
            session_id=session_id,
            amount_minor=amount_minor,
            currency=currency,
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            customer_email=customer_email,
            expires_at=expires_at,
        ))
        self.sessions[session_id] = GatewaySession(
            session_id=session_id,
            payment_status="unpaid",
            status="open",
            booking_id=metadata.get("bookingId"),
        )
        return CheckoutSession(
            session_id=session_id,
            redirect_url=f"https://checkout.test/{session_id}",
            expires_at=expires_at,
        )

    def pay(self, session_id, payment_intent_id="pi_test_1"):
        session = self.sessions[session_id]
        session.payment_status = "paid"
        session.status = "complete"
        session.payment_intent_id = payment_intent_id

    def retrieve_session(self, session_id):
        if session_id not in self.sessions:
            raise InvalidSession(f"Invalid session ID: {session_id}")
        return self.sessions[session_id]

    def expire_session(self, session_id):
        self.expired.append(session_id)
        self.sessions[session_id].status = "expired"

    def parse_webhook(self, payload, signature):
        if signature == "bad":
            raise WebhookSignatureError("Webhook signature verification failed")
        return event_from_payload(json.loads(payload))


def webhook_event(booking_id, event_type="checkout.session.completed", event_id="evt_1",
                  session_id="cs_test_1", payment_status="paid", payment_intent="pi_test_1"):
    metadata = {"bookingId": str(booking_id)} if booking_id is not None else {}
    return json.dumps({
        "id": event_id,
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "metadata": metadata,
                "payment_intent": payment_intent,
                "payment_status": payment_status,
            }
        },
    }).encode()


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    monkeypatch.setattr("limo_booking.core.redis.REDIS_URL", None)
    monkeypatch.setattr("limo_booking.core.redis._redis_client", None)


@pytest.fixture
def engine(tmp_path):
    # File database so separate sessions (and threads) see each other's commits
    engine = make_engine(f"sqlite:///{tmp_path / 'limo_test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repository(db):
    return BookingRepository(db)


@pytest.fixture
def make_vehicle(db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "name": "Toyota Alphard",
            "model": "Alphard 2024",
            "plate_number": f"SG-{counter['n']:04d}",
            "capacity": 6,
            "price_airport_transfer": Decimal("80"),
            "price_trip_base": Decimal("90"),
            "price_6_hours": Decimal("360"),
            "price_12_hours": Decimal("720"),
            "price_per_hour": Decimal("60"),
        }
        values.update(overrides)
        vehicle = Vehicle(**values)
        db.add(vehicle)
        db.commit()
        db.refresh(vehicle)
        return vehicle

    return _make


@pytest.fixture
def vehicle(make_vehicle):
    return make_vehicle()


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def lifecycle(repository, notifier):
    return BookingLifecycleManager(repository, notifier=notifier, admin_email="ops@limo.test")


@pytest.fixture
def reconciler(lifecycle, gateway):
    return PaymentReconciler(lifecycle, gateway, currency="usd", app_url="https://limo.test/")


def booking_request(vehicle_id, **overrides):
    values = {
        "vehicle_id": vehicle_id,
        "service_type": "AIRPORT_TRANSFER",
        "service": None,
        "customer_name": "Jane Tan",
        "customer_email": "jane@example.com",
        "customer_phone": "+65 8123 4567",
        "pickup_location": "Changi Airport Terminal 1",
        "dropoff_location": "Marina Bay Sands",
        "start_date": date(2026, 12, 1),
        "start_time": time(14, 0),
        "duration_hours": None,
        "notes": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def make_booking(lifecycle):
    def _make(vehicle, **overrides):
        return lifecycle.create(booking_request(vehicle.id, **overrides))

    return _make


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def client(session_factory, gateway, notifier):
    app = create_app(gateway=gateway, notifier=notifier)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def now():
    return utcnow()
