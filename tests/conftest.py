"""Pytest fixtures for grocerycart tests."""

import json

import pytest
import stripe
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from grocerycart.config import Settings
from grocerycart.database import create_db_and_tables
from grocerycart.errors import PaymentGatewayError, TransientError
from grocerycart.models.address import Address
from grocerycart.models.cart import CartItem
from grocerycart.models.product import Product
from grocerycart.models.user import User
from grocerycart.notifications.dispatcher import Notifier
from grocerycart.services.payment_gateway import PaymentGateway

WEBHOOK_SECRET = "whsec_test_secret"


class FakeChannel:
    """Records every message; fails the first ``fail_times`` sends."""

    def __init__(self, fail_times=0):
        self.fail_times = fail_times
        self.attempts = 0
        self.sent = []

    def send(self, to, subject, body):
        self.attempts += 1
        if self.attempts <= self.fail_times:
            raise TransientError("mailbox unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})
        return True

    def subjects(self):
        return [m["subject"] for m in self.sent]


class FakeGateway(PaymentGateway):
    """Stripe client stand-in: sessions are recorded, signatures are real."""

    def __init__(self, fail=False):
        super().__init__(api_key="sk_test", webhook_secret=WEBHOOK_SECRET)
        self.fail = fail
        self.sessions = []

    def create_session(self, **kwargs):
        if self.fail:
            raise PaymentGatewayError("Payment processing failed: card network down")
        self.sessions.append(kwargs)
        return f"https://checkout.stripe.test/{kwargs['metadata']['order_id']}"


def signed_event(order_id, user_id="guest", event_id="evt_1", payment_intent="pi_123",
                 event_type="checkout.session.completed", metadata=None):
    """Webhook body plus a valid Stripe-Signature header for it."""
    if metadata is None:
        metadata = {"order_id": str(order_id), "user_id": str(user_id)}
    payload = json.dumps({
        "id": event_id,
        "type": event_type,
        "data": {"object": {"payment_intent": payment_intent, "metadata": metadata}},
    })
    header = stripe.WebhookSignature.generate_signature_header(payload, WEBHOOK_SECRET)
    return payload.encode("utf-8"), header


@pytest.fixture
def engine():
    """In-memory database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_db_and_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def test_settings():
    return Settings(
        tax_rate=0.02,
        client_url="http://shop.test",
        allow_guest_online_payment=True,
    )


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def notifier(channel):
    return Notifier(channel, retry_delay=0)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def products(session):
    """P1: rice, offer 500, stock 5. P2: oil, offer 300, stock 2."""
    rice = Product(name="Basmati Rice 5kg", category="Grains", price=550,
                   offer_price=500, stock=5, in_stock=True, low_stock_threshold=3)
    oil = Product(name="Olive Oil 1L", category="Oils", price=320,
                  offer_price=300, stock=2, in_stock=True, low_stock_threshold=1)
    session.add(rice)
    session.add(oil)
    session.commit()
    session.refresh(rice)
    session.refresh(oil)
    return {"rice": rice, "oil": oil}


@pytest.fixture
def customer(session):
    user = User(name="Asha", email="asha@example.com", role="user")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def other_customer(session):
    user = User(name="Ravi", email="ravi@example.com", role="user")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def seller(session):
    user = User(name="Store Owner", email="owner@example.com", role="seller")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def saved_address(session, customer):
    address = Address(
        user_id=customer.id, first_name="Asha", last_name="Rao",
        street="12 MG Road", city="Bengaluru", state="KA",
        zipcode="560001", country="India", phone="9999999999",
    )
    session.add(address)
    session.commit()
    session.refresh(address)
    return address


@pytest.fixture
def guest_address():
    return {
        "first_name": "Guest", "last_name": "Buyer", "email": "guest@example.com",
        "street": "4 Park Street", "city": "Kolkata", "state": "WB",
        "zipcode": "700016", "country": "India", "phone": "8888888888",
    }


@pytest.fixture
def guest_details():
    return {"name": "Guest Buyer", "email": "guest@example.com", "phone": "8888888888"}


@pytest.fixture
def cart_item(session, customer, products):
    item = CartItem(user_id=customer.id, product_id=products["rice"].id, quantity=2)
    session.add(item)
    session.commit()
    return item


def stock_of(session, product):
    session.expire_all()
    return session.get(Product, product.id).stock


@pytest.fixture
def client(session, gateway, notifier, test_settings):
    """TestClient with the database, gateway and mailer swapped for fakes."""
    from grocerycart.config import get_settings
    from grocerycart.database import get_session
    from grocerycart.dependencies.notifier import get_notifier
    from grocerycart.main import app
    from grocerycart.services.payment_gateway import get_payment_gateway

    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_settings] = lambda: test_settings

    yield TestClient(app)

    app.dependency_overrides.clear()


def auth_header(user):
    from grocerycart.utils.token import create_access_token

    return {"Authorization": f"Bearer {create_access_token({'user_id': user.id})}"}
