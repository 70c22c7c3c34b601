"""
Photography Portfolio Backend — Test Configuration (conftest.py)
=================================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (mocked DB, a real in-memory
       SQLite database, a fake payment gateway, an API client).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session:  Mock database session (no real DB needed)
    ├── db_engine:        In-memory SQLite engine with all tables created
    ├── db_session:       AsyncSession bound to db_engine
    ├── token_service:    TokenService with the test secret
    ├── fake_gateway:     PaymentGateway double; real Stripe signature checks
    ├── admin_user / regular_user and their tokens
    ├── stripe_signature: Builds a valid Stripe-Signature header
    ├── completed_event:  Builds a checkout.session.completed body
    ├── make_booking:     Inserts a booking row directly
    └── test_client:      HTTPX AsyncClient wired to the app with the above
"""

import hashlib
import hmac
import json
import os
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any app imports
# Why: Prevents tests from using a real database or real Stripe keys
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_not_real"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["FRONTEND_URL"] = "http://frontend.test"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from portfolio import models  # noqa: E402,F401
from portfolio.database import Base, get_db_session  # noqa: E402
from portfolio.dependencies import get_payment_gateway, get_token_service  # noqa: E402
from portfolio.exceptions import PaymentProcessorError  # noqa: E402
from portfolio.models.booking import Booking, BookingStatus, PaymentStatus  # noqa: E402
from portfolio.models.user import User, UserRole  # noqa: E402
from portfolio.services.payment_gateway import (  # noqa: E402
    CheckoutSession,
    CheckoutSessionRequest,
    PaymentGateway,
    WebhookEvent,
)
from portfolio.services.stripe_gateway import StripeGateway  # noqa: E402
from portfolio.services.token_service import TokenService  # noqa: E402

TEST_JWT_SECRET = "test-jwt-secret"
TEST_WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_PASSWORD = "correct-horse"


# ══════════════════════════════════════════════════════════════════════════
# Test Doubles
# ══════════════════════════════════════════════════════════════════════════


class FakeGateway(PaymentGateway):
    """
    PaymentGateway that never touches the network.

    create_checkout_session() records the request and hands out sequential
    session ids; set `error` to make it raise instead. Webhook verification
    is the real Stripe signature check.
    """

    def __init__(self):
        self.requests: List[CheckoutSessionRequest] = []
        self.error: Optional[PaymentProcessorError] = None
        self.configured = True
        self._verifier = StripeGateway(secret_key="")

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        session_id = f"cs_test_{len(self.requests)}"
        return CheckoutSession(
            session_id=session_id,
            url=f"https://checkout.stripe.test/c/pay/{session_id}",
        )

    def verify_webhook(self, payload: bytes, signature_header: str, secret: str) -> WebhookEvent:
        return self._verifier.verify_webhook(payload, signature_header, secret)


def sign_payload(payload: bytes, secret: str = TEST_WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header (`t=<ts>,v1=<hex hmac>`) for `payload`."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def checkout_completed_event(
    session_id: str,
    booking_id: Optional[Any] = None,
    metadata: Optional[Dict[str, Any]] = None,
    event_id: str = "evt_test_1",
) -> bytes:
    session: Dict[str, Any] = {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": "paid",
        "metadata": metadata or {},
    }
    if booking_id is not None:
        session["client_reference_id"] = str(booking_id)
    event = {
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": session},
    }
    return json.dumps(event).encode("utf-8")


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    What:    A MagicMock that simulates AsyncSession behavior.
    Why:     Unit tests of the services should not require a real database.
    How:     Mocks execute, flush, commit, rollback, and close methods.

    Usage:
        async def test_get_booking(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = booking
            result = await booking_ledger.get(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite with every table created.

    StaticPool keeps the single connection alive, otherwise each new
    connection would see an empty database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def token_service():
    return TokenService(secret=TEST_JWT_SECRET, ttl=timedelta(hours=1))


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def stripe_signature():
    """Returns sign_payload, so tests can build valid Stripe-Signature headers."""
    return sign_payload


@pytest.fixture
def completed_event():
    """Returns checkout_completed_event, a builder for raw webhook bodies."""
    return checkout_completed_event


@pytest_asyncio.fixture
async def admin_user(db_session) -> User:
    user = User(
        email="admin@portfolio.test",
        first_name="Ada",
        last_name="Admin",
        role=UserRole.ADMIN.value,
        is_active=True,
    )
    user.set_password(ADMIN_PASSWORD)
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def regular_user(db_session) -> User:
    user = User(
        email="viewer@portfolio.test",
        first_name="Val",
        last_name="Viewer",
        role=UserRole.USER.value,
        is_active=True,
    )
    user.set_password("viewer-password")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def admin_token(token_service, admin_user) -> str:
    return token_service.issue(user_id=admin_user.id, email=admin_user.email, role=admin_user.role)


@pytest.fixture
def user_token(token_service, regular_user) -> str:
    return token_service.issue(
        user_id=regular_user.id,
        email=regular_user.email,
        role=regular_user.role,
    )


@pytest.fixture
def make_booking(db_session):
    """
    Factory that inserts a booking directly, bypassing checkout.

    Usage:
        booking = await make_booking(status="cancelled", checkout_session_id="cs_1")
    """

    async def _make(**overrides: Any) -> Booking:
        fields: Dict[str, Any] = {
            "client_name": "Jane Client",
            "client_email": "jane@example.com",
            "client_phone": "+1 555 0100",
            "service_type": "portrait",
            "description": "Family portraits",
            "location": "Golden Gate Park",
            "notes": "",
            "scheduled_date": datetime(2030, 6, 1, 10, 0, tzinfo=timezone.utc),
            "duration": 2,
            "price": Decimal("300.00"),
            "status": BookingStatus.PENDING.value,
            "payment_status": PaymentStatus.PENDING.value,
            "checkout_session_id": None,
            "paid_at": None,
        }
        fields.update(overrides)
        booking = Booking(**fields)
        db_session.add(booking)
        await db_session.commit()
        return booking

    return _make


@pytest_asyncio.fixture
async def test_client(session_factory, token_service, fake_gateway):
    """
    Provides an async HTTP test client for endpoint testing.

    What:    HTTPX AsyncClient configured to talk to a fresh FastAPI app.
    Why:     Enables testing of HTTP endpoints without running a server.
    How:     Uses ASGITransport to route requests directly to the app, with
             the database, token service and payment gateway overridden.
             ASGITransport does not run the lifespan, so no default admin is
             bootstrapped.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from portfolio.main import create_app

    app = create_app()

    async def _override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _override_db_session
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
