import os
import sys
from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

# Load environment variables from .env file
load_dotenv()

from app.config import settings
from app.core.security import create_access_token
from app.database import build_async_url, create_engine_for, get_db
from app.main import app
from app.models import doctors, metadata, patients

# Test database URL - MUST be different from the application database.
# Without it, every test runs against its own temporary SQLite file.
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

# Safety check: tests drop and recreate every table
if TEST_DATABASE_URL and build_async_url(TEST_DATABASE_URL) == build_async_url(
    settings.database_url
):
    print("\n❌ CRITICAL ERROR: Test database URL is same as application database!")
    print("This would DROP all application data during tests.")
    print("Please set TEST_DATABASE_URL to a separate test database in .env")
    sys.exit(1)


@pytest.fixture
def database_url(tmp_path) -> str:
    """Database for one test: TEST_DATABASE_URL or a throwaway SQLite file."""
    if TEST_DATABASE_URL:
        return build_async_url(TEST_DATABASE_URL)
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture
async def test_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Create a test engine with a fresh schema."""
    # Use NullPool to avoid event loop issues between tests
    engine = create_engine_for(database_url, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory for tests that need several independent sessions."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def create_doctor(db_session: AsyncSession, name: str, specialization: str) -> int:
    """Insert a doctor directly and return its ID."""
    result = await db_session.execute(
        insert(doctors)
        .values(name=name, specialization=specialization)
        .returning(doctors.c.id)
    )
    await db_session.commit()
    return result.scalar_one()


async def create_patient(db_session: AsyncSession, name: str, phone: str) -> int:
    """Insert a patient directly and return its ID."""
    result = await db_session.execute(
        insert(patients).values(name=name, phone=phone).returning(patients.c.id)
    )
    await db_session.commit()
    return result.scalar_one()


@pytest_asyncio.fixture
async def doctor_id(db_session: AsyncSession) -> int:
    """A doctor in the directory."""
    return await create_doctor(db_session, "Dr. Asha Rao", "General Medicine")


@pytest_asyncio.fixture
async def other_doctor_id(db_session: AsyncSession) -> int:
    """A second doctor with an independent schedule."""
    return await create_doctor(db_session, "Dr. Tomas Berg", "Pediatrics")


@pytest_asyncio.fixture
async def patient_id(db_session: AsyncSession) -> int:
    """A registered patient."""
    return await create_patient(db_session, "Maria Lopez", "+15550100")


@pytest_asyncio.fixture
async def other_patient_id(db_session: AsyncSession) -> int:
    """A second registered patient."""
    return await create_patient(db_session, "Daniel Okafor", "+15550101")


def _bearer(user_id: int, role: str) -> dict:
    token = create_access_token(
        data={"sub": str(user_id), "role": role},
        expires_delta=timedelta(minutes=30),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> dict:
    """Authentication headers for a front-desk user."""
    return _bearer(7, "frontdesk")


@pytest.fixture
def admin_headers() -> dict:
    """Authentication headers for an administrator."""
    return _bearer(1, "admin")


@pytest.fixture
def strict_settings():
    """Settings with every status write checked against the transition table."""
    return settings.model_copy(update={"strict_status_transitions": True})
