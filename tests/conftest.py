"""
Shared fixtures: in-memory database, users, plans, gateway and cache doubles,
and a TestClient wired to them.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from careerly.core.cache import get_cache
from careerly.core.errors import GatewayError
from careerly.core.security import create_access_token
from careerly.db.base import Base, utcnow
from careerly.db.models import Plan, Subscription, SubscriptionStatus, User
from careerly.db.session import get_db
from careerly.main import app
from careerly.services.gateway import (
    GatewayStatus,
    HostedSession,
    MidtransGateway,
    compute_signature,
    get_gateway,
)


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

SERVER_KEY = "SB-Mid-server-test-key"


class FakeGateway(MidtransGateway):
    """
    Gateway double: records hosted-session requests and answers status
    queries from a scripted table. Signature checks use the real algorithm.
    """

    def __init__(self, server_key: str = SERVER_KEY):
        super().__init__(server_key=server_key)
        self.sessions = []
        self.status_queries = []
        self.statuses = {}
        self.fail_create = False

    def create_hosted_session(self, order_id, amount, items, customer):
        if self.fail_create:
            raise GatewayError("gateway unavailable")
        self.sessions.append({"order_id": order_id, "amount": amount, "items": items, "customer": customer})
        token = f"snap-{order_id}"
        return HostedSession(token=token, redirect_url=f"https://app.sandbox.midtrans.com/snap/v4/redirection/{token}")

    def set_status(self, order_id, transaction_status, fraud_status="", **extra):
        self.statuses[order_id] = {
            "order_id": order_id,
            "transaction_status": transaction_status,
            "fraud_status": fraud_status,
            "transaction_id": f"gw-{order_id}",
            "payment_type": "bank_transfer",
            "status_code": "200",
            **extra,
        }

    def query_status(self, order_id):
        self.status_queries.append(order_id)
        data = self.statuses.get(order_id)
        if data is None:
            raise GatewayError("Midtrans status check failed: Transaction doesn't exist.")
        return GatewayStatus.from_response(data)


class MemoryCache:
    """Dict-backed cache double counting hits."""

    def __init__(self):
        self.data = {}
        self.hits = 0
        self.misses = 0

    def get(self, key):
        if key in self.data:
            self.hits += 1
            return self.data[key]
        self.misses += 1
        return None

    def set(self, key, value, ttl=None):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


def signed_notification(order_id, status_code="200", gross_amount="150000.00", server_key=SERVER_KEY, **fields):
    """Build a webhook body the way the gateway signs it."""
    body = {
        "order_id": order_id,
        "status_code": status_code,
        "gross_amount": gross_amount,
        "signature_key": compute_signature(order_id, status_code, gross_amount, server_key),
        "transaction_status": "settlement",
    }
    body.update(fields)
    return body


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def make_user(db):
    def _make_user(email="test@example.com", name="Test User", role="user"):
        user = User(email=email, name=name, role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def test_user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user(email="other@example.com", name="Other User")


@pytest.fixture
def admin_user(make_user):
    return make_user(email="admin@example.com", name="Admin", role="admin")


@pytest.fixture
def make_plan(db):
    def _make_plan(name="pro-monthly", price=Decimal("150000"), **kwargs):
        kwargs.setdefault("display_name", name.replace("-", " ").title())
        kwargs.setdefault("duration_days", 30)
        plan = Plan(name=name, price=price, **kwargs)
        db.add(plan)
        db.commit()
        db.refresh(plan)
        return plan
    return _make_plan


@pytest.fixture
def pro_plan(make_plan):
    """150000/month: 2 resumes, 5 ATS checks, unlimited interviews."""
    return make_plan(max_resumes=2, max_ats_checks=5, max_interviews=None)


@pytest.fixture
def make_subscription(db):
    def _make_subscription(user, plan, start=None, days=30, status=SubscriptionStatus.ACTIVE):
        start = start or utcnow() - timedelta(days=1)
        subscription = Subscription(
            user_id=user.id,
            plan_id=plan.id,
            start_date=start,
            end_date=start + timedelta(days=days),
            status=status,
            created_at=start,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription
    return _make_subscription


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def client(db, gateway, cache):
    """TestClient with database, gateway and cache dependencies overridden."""
    def override_get_db():
        session = TestSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_cache] = lambda: cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token({"sub": user.id})
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


@pytest.fixture
def notification():
    """Factory for correctly signed webhook bodies."""
    return signed_notification


@pytest.fixture
def session_factory():
    """Second sessions on the test database, for concurrent-writer scenarios."""
    return TestSessionLocal
