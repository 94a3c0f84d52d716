# Shared pytest configuration and fixtures for all test types
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import patch

# Create test limiter with no limits and in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.core.security import generate_api_key, hash_api_key, api_key_hint
from common.db.base import Base
from packages.users.models.database.user import UserEntity
from packages.api_keys.models.database.api_key import ApiKeyEntity
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.dependencies import get_current_active_user
from packages.billing.services.credit_service import current_period

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)
    monkeypatch.setattr(
        "common.db.scoped.AsyncSessionLocalReadonly", test_session_factory
    )


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession, test_user):
    """Create a test client signed in as test_user."""

    def override_get_current_active_user():
        return test_user

    app.dependency_overrides[get_current_active_user] = override_get_current_active_user

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def anonymous_client(test_db: AsyncSession):
    """Create a test client with no signed-in user."""
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def sample_user_entity(test_db: AsyncSession):
    """Create a free-plan Google user in the current credit period."""
    user = UserEntity(
        email="test@example.com",
        name="Test User",
        sso_provider="google",
        sso_user_id="google-123456",
        plan="free",
        total_credits=5,
        used_credits=0,
        lifetime_used_credits=0,
        credits_period=current_period(),
        login_count=1,
        user_metadata={},
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def second_user_entity(test_db: AsyncSession):
    """Create another user (for ownership checks)."""
    user = UserEntity(
        email="other@example.com",
        name="Other User",
        sso_provider="google",
        sso_user_id="google-654321",
        plan="pro",
        total_credits=1000,
        credits_period=current_period(),
        login_count=3,
        user_metadata={},
    )
    test_db.add(user)
    await test_db.commit()
    await test_db.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(sample_user_entity):
    """Create a test authenticated user."""
    return AuthenticatedUser(
        user_id=sample_user_entity.id,
        email=sample_user_entity.email,
    )


@pytest_asyncio.fixture(scope="function")
async def make_api_key(test_db: AsyncSession):
    """
    Factory for API key rows.

    Returns (entity, plain_key) so tests can call endpoints with the secret.
    """

    async def _make(user_id: int, name="test key", usage=0, monthly_limit=5, type="dev"):
        secret = generate_api_key()
        entity = ApiKeyEntity(
            user_id=user_id,
            name=name,
            key_hash=hash_api_key(secret),
            key_hint=api_key_hint(secret),
            type=type,
            usage=usage,
            monthly_limit=monthly_limit,
        )
        test_db.add(entity)
        await test_db.commit()
        await test_db.refresh(entity)
        return entity, secret

    return _make


@pytest_asyncio.fixture(scope="function")
async def sample_api_key(make_api_key, sample_user_entity):
    """A fresh dev key for the sample user. Returns (entity, plain_key)."""
    return await make_api_key(sample_user_entity.id)
