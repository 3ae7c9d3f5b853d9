import os

# Must be set before biztech is imported: settings, the password context and the engine are built at import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("TELEMETRY_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from biztech.core.db import get_db
from biztech.core.errors import UpstreamError
from biztech.main import app
from biztech.models import Base
from biztech.services.payments import PaymentConfirmation, get_payment_gateway
from tests.fixtures_seed import make_account


def _test_db_url() -> str:
    return os.getenv("DATABASE_URL_TEST", "sqlite+aiosqlite:///:memory:")


@pytest.fixture
async def async_engine():
    url = _test_db_url()
    if url.startswith("sqlite"):
        # one shared connection so every session sees the same in-memory database
        engine = create_async_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        engine = create_async_engine(url, pool_pre_ping=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(async_engine):
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


class FakePaymentGateway:
    def __init__(self):
        self.calls: list[dict] = []
        self.fail = False

    async def charge(self, *, amount, currency, reference, payment_token):
        self.calls.append({"amount": amount, "currency": currency, "reference": reference, "payment_token": payment_token})
        if self.fail:
            raise UpstreamError("Payment could not be completed", code="payment_failed")
        return PaymentConfirmation(reference=f"pay_{len(self.calls)}", amount=amount, currency=currency)


@pytest.fixture
def payment_gateway():
    return FakePaymentGateway()


@pytest.fixture
async def client(db_session: AsyncSession, payment_gateway):
    """
    HTTP client that uses the test DB session and the fake payment gateway via dependency overrides.
    """
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def admin(db_session):
    return await make_account(db_session, role="admin", email="admin@example.com")


@pytest.fixture
async def agent(db_session):
    return await make_account(db_session, role="agent", email="agent@example.com")


@pytest.fixture
async def seller(db_session):
    return await make_account(db_session, role="seller", email="seller@example.com", agreed_commission=True)


@pytest.fixture
async def buyer(db_session):
    return await make_account(db_session, role="buyer", email="buyer@example.com", financial_means="1M-5M")
