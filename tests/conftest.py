"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-guest-chat-tests")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DEBUG", "false")

from collections.abc import AsyncGenerator  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import fakeredis.aioredis  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.database import Base  # noqa: E402
from app.core.limiter import limiter  # noqa: E402
from app.models.guest_chat_session import GuestChatSession  # noqa: E402, F401
from app.models.guest_message import GuestMessage  # noqa: E402, F401
from app.models.job import Job  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.token_service import TokenService  # noqa: E402

# --- Test DB (SQLite in-memory) ---

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool
)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(autouse=True)
async def setup_db() -> AsyncGenerator[None, None]:
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session."""
    async with test_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# --- Test Redis (fakeredis) ---


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Create a fresh fake Redis client."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def patch_redis(
    fake_redis: fakeredis.aioredis.FakeRedis, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Patch the global redis_client used for revocation lookups."""
    monkeypatch.setattr("app.core.redis.redis_client", fake_redis)


@pytest.fixture(autouse=True)
def reset_rate_limits() -> None:
    """Start every test with empty rate limit counters."""
    limiter.reset()


# --- Clock ---


class FakeClock:
    """Settable time source injected in place of the wall clock."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=UTC))


# --- Token helpers ---


def make_auth_headers(
    user_id: int = 1,
    email: str = "recruiter@acme-corp.com",
    role: str = "recruiter",
) -> dict[str, str]:
    """Generate Authorization headers with a valid access token."""
    token = TokenService().create_access_token(user_id=user_id, email=email, role=role)
    return {"Authorization": f"Bearer {token}"}


# --- App override & client fixtures ---


def _get_app(clock: FakeClock):  # type: ignore[no-untyped-def]
    """Import app lazily and apply overrides."""
    from app.core.database import get_async_session as original_dep
    from app.dependencies import get_clock
    from app.main import app

    app.dependency_overrides[original_dep] = override_get_async_session
    app.dependency_overrides[get_clock] = lambda: clock
    return app


@pytest.fixture
async def async_client(clock: FakeClock) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client without credentials."""
    application = _get_app(clock)
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def recruiter_client(
    clock: FakeClock, recruiter: User
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client authenticated as the seeded recruiter."""
    application = _get_app(clock)
    headers = make_auth_headers(user_id=recruiter.id, email=recruiter.email)
    transport = ASGITransport(app=application)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers=headers
    ) as ac:
        yield ac


# --- DB session for tests ---


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a raw async session for repository tests."""
    async with test_session_factory() as session:
        yield session


# --- Seed data ---


async def create_user(
    session: AsyncSession,
    email: str,
    username: str,
    role: str = "user",
    company_name: str | None = None,
) -> User:
    user = User(email=email, username=username, role=role, company_name=company_name)
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


async def create_job(
    session: AsyncSession, recruiter_id: int, title: str = "Backend Engineer"
) -> Job:
    job = Job(
        recruiter_id=recruiter_id,
        title=title,
        description="Build and run the hiring platform APIs.",
        location="Seoul",
    )
    session.add(job)
    await session.flush()
    await session.refresh(job)
    return job


@pytest.fixture
async def recruiter(db_session: AsyncSession) -> User:
    user = await create_user(
        db_session,
        email="recruiter@acme-corp.com",
        username="Dana Recruiter",
        role="recruiter",
        company_name="Acme Corp",
    )
    await db_session.commit()
    return user


@pytest.fixture
async def job(db_session: AsyncSession, recruiter: User) -> Job:
    record = await create_job(db_session, recruiter.id)
    await db_session.commit()
    return record
