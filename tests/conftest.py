"""Shared fixtures: SQLite database per test, in-memory doubles for Redis, Celery and the payment provider."""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "storefront-test-secret-0123456789abcdef"
os.environ["PAYMENT_GATEWAY_URL"] = ""

from decimal import Decimal

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront.api.deps import get_lock_service, get_notification_service, get_payment_gateway
from storefront.data.database import Base, get_db
from storefront.data.models import ProductModel
from storefront.domain.identity import CurrentUser
from storefront.domain.schemas import ShippingInfoIn
from storefront.main import create_app
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_gateway import PaymentGateway, PaymentResult
from storefront.utils.settings import JWT_SECRET, JWT_ALGORITHM

USER_ID = 1
OTHER_USER_ID = 2
ADMIN_ID = 99


class FakeLockService(LockService):
    """Same lock semantics as the Redis implementation, kept in a dict."""

    def __init__(self):
        self.held = {}
        self.acquired = []

    def acquire_order_lock(self, order_id, token, ttl):
        if order_id in self.held:
            return False
        self.held[order_id] = token
        self.acquired.append(order_id)
        return True

    def release_order_lock(self, order_id, token):
        if self.held.get(order_id) != token:
            return False
        del self.held[order_id]
        return True


class RecordingNotifier(NotificationService):
    def __init__(self):
        self.sent = []

    def send_order_notification(self, user_id, order_id, status):
        self.sent.append((user_id, order_id, status))


class FakeGateway(PaymentGateway):
    def __init__(self, result=None, error=None):
        self.result = result or PaymentResult(status="succeeded", reference="pi_test_1")
        self.error = error
        self.calls = []

    def authorize(self, amount_minor_units, currency, payment_method_ref, idempotency_key=None):
        self.calls.append(
            {
                "amount": amount_minor_units,
                "currency": currency,
                "payment_method": payment_method_ref,
                "idempotency_key": idempotency_key,
            }
        )
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'storefront.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def user():
    return CurrentUser(id=USER_ID, role="user")


@pytest.fixture
def admin():
    return CurrentUser(id=ADMIN_ID, role="admin")


@pytest.fixture
def shipping():
    return ShippingInfoIn(address="1 Main St", city="Springfield", postal_code="12345", country="US")


@pytest.fixture
def make_product(db):
    def _make(name="Widget", price="10.00", stock=5):
        product = ProductModel(name=name, price=Decimal(price), stock=stock, description="", image_urls=[])
        db.add(product)
        db.commit()
        return product

    return _make


def make_token(user_id, role="user", secret=JWT_SECRET):
    return jwt.encode({"id": user_id, "role": role}, secret, algorithm=JWT_ALGORITHM)


def auth_header(user_id=USER_ID, role="user"):
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def client(session_factory, lock_service, notifier, gateway):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    return TestClient(app)
