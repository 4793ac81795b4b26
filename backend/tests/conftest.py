"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests:
an in-memory SQLite database (aiosqlite) with the full schema, session
factories bound to it, and an httpx client for the FastAPI app.
"""

import os
import sys
from datetime import date
from pathlib import Path
from typing import Any, AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE any fixtures run
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# Settings are read when app.config is first imported, which happens while
# test modules are collected, so the database and scheduler overrides must be
# in place at module level.
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite:///:memory:"
os.environ["SCHEDULER_ENABLED"] = "false"

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    This ensures tests run with predictable configuration, overriding
    any values from .env files to ensure test isolation.
    """
    # Store original environment
    original_env = os.environ.copy()

    test_env = {
        "POSTGRES_HOST": "localhost",
        "POSTGRES_PORT": "5432",
        "POSTGRES_USER": "testuser",
        "POSTGRES_PASSWORD": "testpass",
        "POSTGRES_DB": "testdb",
        "DATABASE_URL_OVERRIDE": "sqlite+aiosqlite:///:memory:",
        "SCHEDULER_ENABLED": "false",
        "APP_TIMEZONE": "Asia/Hong_Kong",
        "DEBUG": "false",
    }
    os.environ.update(test_env)

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def engine():
    """
    Fresh in-memory SQLite database with every table created.

    StaticPool keeps a single connection so all sessions see the same
    in-memory database.
    """
    from app.db.base import Base

    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    """Session factory bound to the test database (used by the eviction engine)."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session on the test database."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session() -> MagicMock:
    """
    Create a mock database session for unit testing.
    """
    mock = MagicMock()
    mock.execute = AsyncMock()
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    mock.close = AsyncMock()
    return mock


# ============================================================================
# API Client
# ============================================================================


@pytest_asyncio.fixture
async def async_test_client(db_session: AsyncSession, session_factory):
    """
    httpx client for the FastAPI app, wired to the test database.

    Overrides get_db with the test session and the eviction engine with one
    that opens its sessions on the test database.
    """
    # Import here to defer until after environment is configured
    from app.db.base import get_db
    from app.main import app
    from app.routers.calendar import get_eviction_engine
    from app.services.calendar.eviction import EvictionConfig, EvictionEngine

    async def get_test_db():
        """Yield the test database session instead of production."""
        yield db_session

    app.dependency_overrides[get_db] = get_test_db
    app.dependency_overrides[get_eviction_engine] = lambda: EvictionEngine(
        session_factory=session_factory,
        config=EvictionConfig(retry_wait_seconds=0),
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_eviction_engine, None)


# ============================================================================
# Sample Data
# ============================================================================


@pytest.fixture
def today() -> date:
    """Fixed learner-local day used across tests."""
    return date(2024, 6, 1)


@pytest.fixture
def sample_yaml_config() -> dict[str, Any]:
    """Sample configuration matching config/default.yaml."""
    return {
        "app": {"name": "Study Calendar"},
        "database": {
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": 30,
        },
    }
