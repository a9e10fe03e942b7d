"""
Pytest configuration and shared fixtures for backend tests.
"""

import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from datetime import UTC, datetime, timedelta
from typing import AsyncGenerator
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from core.clock import FixedClock
from core.interfaces.services import (
    ContentGenerationGateway,
    GenerationRequest,
    GenerationResult,
)
from infrastructure.database.models import Base, User
from infrastructure.database.connection import get_db


# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Wednesday; the surrounding week starts Monday 2026-10-12 00:00 UTC
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=UTC)


class FakeContentGateway(ContentGenerationGateway):
    """Records calls instead of reaching a model."""

    def __init__(self, fail_with: Exception | None = None):
        self.calls: list[GenerationRequest] = []
        self.fail_with = fail_with

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        self.calls.append(request)
        if self.fail_with:
            raise self.fail_with
        return GenerationResult(
            content=f"Generated {request.content_type.value} copy",
            model="fake-model",
            generation_time=0.01,
        )


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen mid-week."""
    return FixedClock(NOW)


async def _make_account(
    db: AsyncSession,
    plan: str = "free",
    credits: int | None = 3,
    last_reset: datetime = NOW,
    customer_ref: str | None = None,
    subscription_ref: str | None = None,
    account_id: str | None = None,
) -> User:
    """Insert an account row directly, bypassing the services."""
    account = User(
        id=account_id or str(uuid4()),
        email="user@example.com",
        subscription_plan=plan,
        credits_remaining=credits,
        last_credits_reset=last_reset,
        stripe_customer_id=customer_ref,
        stripe_subscription_id=subscription_ref,
    )
    db.add(account)
    await db.commit()
    await db.refresh(account)
    return account


@pytest.fixture
async def free_account(db_session: AsyncSession) -> User:
    """
    Free account with a full allowance, reset this week.

    Used for testing:
    - Credit consumption and exhaustion
    - Upgrade flows
    - Checkout session creation
    """
    return await _make_account(db_session, account_id="u1")


@pytest.fixture
async def premium_account(db_session: AsyncSession) -> User:
    """
    Premium account linked to Stripe customer cus_123 / subscription sub_123.

    Used for testing:
    - Unlimited generation
    - Downgrade webhooks
    """
    return await _make_account(
        db_session,
        plan="premium",
        credits=None,
        last_reset=NOW - timedelta(days=30),
        customer_ref="cus_123",
        subscription_ref="sub_123",
        account_id="u1",
    )


@pytest.fixture
def content_gateway() -> FakeContentGateway:
    return FakeContentGateway()


@pytest.fixture
async def async_client(
    db_session: AsyncSession,
    clock: FixedClock,
    content_gateway: FakeContentGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app
    from api.dependencies import get_clock, get_content_gateway

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_content_gateway] = lambda: content_gateway

    # Reset rate limiter state between tests to prevent cross-test 429s
    app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def account_factory(db_session: AsyncSession):
    """Insert accounts with arbitrary plan and credit state."""

    async def factory(**kwargs) -> User:
        return await _make_account(db_session, **kwargs)

    return factory


@pytest.fixture
def auth_headers() -> dict:
    """Headers the upstream auth gateway sets for verified user u1."""
    return {"X-User-Id": "u1", "X-User-Email": "user@example.com"}
