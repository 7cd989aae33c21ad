"""
Pytest fixtures for identity service tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Mapping, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from storeauth.kernel.models.base import Base
from storeauth.kernel.models.user import User, UserRole
from storeauth.kernel.identity.errors import DeliveryUnavailableError
from storeauth.kernel.identity.notifications import NotificationGateway
from storeauth.kernel.identity.lifecycle import IdentityConfig, IdentityLifecycle
from storeauth.kernel.identity.password import PasswordHasher
from storeauth.kernel.identity.store import SqlAlchemyCredentialStore
from storeauth.kernel.identity.tokens import TokenCodec


TEST_DATABASE_URL = "sqlite+aiosqlite://"

TEST_PASSWORD = "TestPassword123"


class FrozenClock:
    """Controllable UTC clock; call it to read, ``advance`` to move forward."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingGateway(NotificationGateway):
    """Notification gateway that keeps every message instead of sending it."""

    def __init__(self):
        self.sent: list[dict[str, Any]] = []
        self.failing_templates: set[str] = set()

    async def send(
        self,
        to_address: str,
        subject: str,
        template_id: str,
        template_data: Mapping[str, Any],
    ) -> None:
        if template_id in self.failing_templates:
            raise DeliveryUnavailableError()
        self.sent.append({
            "to": to_address,
            "subject": subject,
            "template_id": template_id,
            "data": dict(template_data),
        })

    def last(self, template_id: Optional[str] = None) -> dict[str, Any]:
        messages = [m for m in self.sent if template_id is None or m["template_id"] == template_id]
        assert messages, f"no message with template {template_id!r} was sent"
        return messages[-1]

    def templates(self) -> list[str]:
        return [m["template_id"] for m in self.sent]


def token_from_link(link: str) -> str:
    """Pull the token off the end of a mailed link."""
    return link.rsplit("/", 1)[1]


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """In-memory SQLite engine shared across connections."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def hasher() -> PasswordHasher:
    """Low-cost hasher so tests stay fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def identity_config() -> IdentityConfig:
    return IdentityConfig(
        registration_key="test-registration-key-for-testing-only",
        reset_key="test-reset-key-for-testing-only",
        session_key="test-session-key-for-testing-only",
        frontend_url="https://shop.example.com",
        brand_name="TCG Store",
    )


@pytest.fixture
def codec(clock: FrozenClock) -> TokenCodec:
    return TokenCodec(clock=clock)


@pytest.fixture
def store(db_session: AsyncSession) -> SqlAlchemyCredentialStore:
    return SqlAlchemyCredentialStore(db_session)


@pytest.fixture
def lifecycle(
    store: SqlAlchemyCredentialStore,
    gateway: RecordingGateway,
    identity_config: IdentityConfig,
    hasher: PasswordHasher,
    codec: TokenCodec,
    clock: FrozenClock,
) -> IdentityLifecycle:
    return IdentityLifecycle(
        store=store,
        gateway=gateway,
        config=identity_config,
        hasher=hasher,
        codec=codec,
        clock=clock,
    )


@pytest_asyncio.fixture
async def registered_user(lifecycle: IdentityLifecycle, store: SqlAlchemyCredentialStore) -> User:
    """An account that registered but never used its verification link."""
    profile = await lifecycle.register("Test User", "testuser@example.com")
    return await store.find_by_id(profile.id)


@pytest_asyncio.fixture
async def active_user(
    lifecycle: IdentityLifecycle,
    gateway: RecordingGateway,
    store: SqlAlchemyCredentialStore,
    registered_user: User,
) -> User:
    """A verified account with TEST_PASSWORD set."""
    token = token_from_link(gateway.last("verify-email")["data"]["verificationLink"])
    await lifecycle.verify_email_and_set_password(token, TEST_PASSWORD)
    gateway.sent.clear()
    return await store.find_by_id(registered_user.id)


@pytest_asyncio.fixture
async def other_user(store: SqlAlchemyCredentialStore, hasher: PasswordHasher) -> User:
    """A second, already active account."""
    user = await store.create("Other User", "other@example.com")
    return await store.update(
        user.id,
        password_hash=hasher.hash("OtherPass123"),
        is_verified=True,
    )


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession, hasher: PasswordHasher) -> User:
    """Create a test admin user."""
    user = User(
        name="Test Admin",
        email="admin@example.com",
        password_hash=hasher.hash("AdminPass123"),
        is_verified=True,
        is_active=True,
        role=UserRole.ADMIN,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user
