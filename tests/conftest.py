# Shared pytest configuration and fixtures for all test types
import itertools
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import AsyncMock, MagicMock, patch

# Create test limiter with no limits and in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.db.base import Base
from common.providers.caching.factory import set_cache_provider
from common.providers.caching.memory_cache import MemoryCache
from packages.auth.dependencies import get_current_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.providers.factory import get_identity_provider
from packages.auth.providers.models import IdentityAccount, IdentityProvider
from packages.billing.models.database.subscription import SubscriptionEntity  # noqa: F401
from packages.billing.models.domain.stripe_webhooks import (
    StripeSubscriptionData,
    StripeSubscriptionStatus,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.directory.models.database import (  # noqa: F401
    OrganizationEntity,
    ParentStudentLinkEntity,
    TenantEntity,
)
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.memory_store import InMemoryDirectoryStore
from packages.directory.providers.store.sql_store import SqlDirectoryStore

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


@pytest.fixture(autouse=True)
def memory_cache():
    """Process-local cache instead of Redis."""
    cache = MemoryCache()
    set_cache_provider(cache)
    yield cache
    set_cache_provider(None)


@pytest.fixture
def memory_store():
    return InMemoryDirectoryStore()


@pytest.fixture
def sql_store():
    return SqlDirectoryStore()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Runs a test once per directory store implementation."""
    if request.param == "memory":
        return InMemoryDirectoryStore()
    return SqlDirectoryStore()


@pytest.fixture
def mock_identity():
    """Identity provider handing out sequential uids."""
    counter = itertools.count(1)

    async def create_user(account):
        return IdentityAccount(
            uid=f"uid-{next(counter)}",
            email=account.email,
            display_name=account.display_name,
        )

    identity = AsyncMock()
    identity.create_user = AsyncMock(side_effect=create_user)
    identity.delete_user = AsyncMock(return_value=None)
    identity.verify_token = AsyncMock()
    identity.get_provider_name = MagicMock(return_value=IdentityProvider.FIREBASE)
    return identity


@pytest.fixture
def mock_payment():
    """Payment provider returning canned Stripe responses."""
    payment = AsyncMock()
    payment.create_checkout_session = AsyncMock(
        return_value="https://checkout.stripe.com/c/pay/cs_test_123"
    )
    payment.create_customer_portal_session = AsyncMock(
        return_value="https://billing.stripe.com/p/session/test_123"
    )
    payment.retrieve_subscription = AsyncMock(
        return_value=StripeSubscriptionData(
            id="sub_123",
            customer="cus_123",
            status=StripeSubscriptionStatus.ACTIVE,
            current_period_start=1760000000,
            current_period_end=1762600000,
        )
    )
    payment.update_subscription_package = AsyncMock(return_value=None)
    payment.set_cancel_at_period_end = AsyncMock(return_value=None)
    return payment


@pytest.fixture
def auth_state():
    """The user the client is authenticated as; tests set uid/email."""
    return {"user": AuthenticatedUser(uid="parent-1", email="parent-1@example.com")}


@pytest_asyncio.fixture(scope="function")
async def client(memory_store, mock_identity, mock_payment, auth_state):
    """Create a test client."""

    def override_get_current_user():
        return auth_state["user"]

    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_directory_store] = lambda: memory_store
    app.dependency_overrides[get_identity_provider] = lambda: mock_identity
    app.dependency_overrides[get_payment_provider] = lambda: mock_payment

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
