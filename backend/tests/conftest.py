"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test gets a fresh engine and a transaction that rolls back afterwards.
- The database defaults to in-memory SQLite; set ``TEST_DATABASE_URL`` to run
  against PostgreSQL instead.
"""

import os

# Settings are read at import time, so these must be set before any app import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from datetime import date, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.auth.jwt import create_token_pair  # noqa: E402
from app.auth.passwords import hash_password  # noqa: E402
from app.auth.rate_limit import LoginRateLimiter, MemoryCounterStore, get_login_rate_limiter  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.property import Property  # noqa: E402
from app.models.user import User  # noqa: E402

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
TEST_PASSWORD = "testpass123"


def _make_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so the in-memory schema survives across sessions.
        return create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(TEST_DATABASE_URL, pool_pre_ping=True)


def future_dates(offset_start: int = 30, nights: int = 5) -> tuple[date, date]:
    """Return a (check_in, check_out) pair safely in the future."""
    check_in = date.today() + timedelta(days=offset_start)
    return check_in, check_in + timedelta(days=nights)


def auth_header(user: User) -> dict[str, str]:
    tokens = create_token_pair(str(user.id), user.role)
    return {"Authorization": f"Bearer {tokens['access_token']}"}


# ---------------------------------------------------------------------------
# Engine and per-test transactional session
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """Function-scoped engine with the full schema created."""
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


@pytest_asyncio.fixture
async def login_limiter() -> LoginRateLimiter:
    return LoginRateLimiter(MemoryCounterStore(), max_attempts=5, window_seconds=900)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, login_limiter: LoginRateLimiter) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the test session and a fresh login limiter."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_login_rate_limiter] = lambda: login_limiter

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def make_user(db: AsyncSession, role: str, name: str | None = None, is_active: bool = True) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{role}-{unique}@test.com",
        hashed_password=hash_password(TEST_PASSWORD),
        name=name or f"Test {role.title()}",
        role=role,
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin")


@pytest_asyncio.fixture
async def owner_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "owner", name="Olivia Owner")


@pytest_asyncio.fixture
async def other_owner(db_session: AsyncSession) -> User:
    return await make_user(db_session, "owner", name="Oscar Other")


@pytest_asyncio.fixture
async def tenant_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "tenant")


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_header(admin_user)


@pytest_asyncio.fixture
async def owner_headers(owner_user: User) -> dict[str, str]:
    return auth_header(owner_user)


@pytest_asyncio.fixture
async def other_owner_headers(other_owner: User) -> dict[str, str]:
    return auth_header(other_owner)


@pytest_asyncio.fixture
async def tenant_headers(tenant_user: User) -> dict[str, str]:
    return auth_header(tenant_user)


# ---------------------------------------------------------------------------
# Properties and bookings
# ---------------------------------------------------------------------------


async def make_property(db: AsyncSession, owner: User, **overrides) -> Property:
    values = {
        "name": "Sea View Apartment",
        "property_type": "short_term",
        "base_price": Decimal("300.00"),
        "cleaning_fee": Decimal("150.00"),
        "max_guests": 4,
        "min_stay_days": 2,
        "max_stay_days": 30,
    }
    values.update(overrides)
    prop = Property(owner_id=owner.id, **values)
    db.add(prop)
    await db.flush()
    await db.refresh(prop)
    return prop


@pytest_asyncio.fixture
async def short_term_property(db_session: AsyncSession, owner_user: User) -> Property:
    """300/night, 150 cleaning, 2-30 nights, up to 4 guests."""
    return await make_property(db_session, owner_user)


async def create_booking(
    client: AsyncClient,
    headers: dict,
    property_id,
    offset_start: int = 30,
    nights: int = 4,
    **extra,
) -> dict:
    """Create a booking through the API and return its JSON."""
    check_in, check_out = future_dates(offset_start, nights)
    payload = {
        "property_id": str(property_id),
        "guest_name": "Dana Guest",
        "guest_phone": "+972500000000",
        "number_of_guests": 2,
        "check_in_date": check_in.isoformat(),
        "check_out_date": check_out.isoformat(),
    }
    payload.update(extra)
    response = await client.post("/api/v1/bookings", json=payload, headers=headers)
    assert response.status_code == 201, f"Failed to create booking: {response.text}"
    return response.json()
