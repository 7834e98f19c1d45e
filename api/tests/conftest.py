"""
Pytest fixtures for Appforge API testing infrastructure.

This module provides:
1. Test environment configuration (settings, JWT secret)
2. Database fixtures (per-test SQLite database via aiosqlite)
3. Organization and permission group fixtures
"""

import os
from typing import AsyncGenerator
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from src.models.orm import Base, GroupPermission, Organization
from tests.fixtures.auth import TEST_SECRET_KEY

# ==================== SESSION FIXTURES (Start Once Per Test Run) ====================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment(tmp_path_factory):
    """Set up test environment variables once per session."""
    db_dir = tmp_path_factory.mktemp("appforge")

    os.environ["APPFORGE_ENVIRONMENT"] = "testing"
    os.environ["APPFORGE_SECRET_KEY"] = TEST_SECRET_KEY
    os.environ["APPFORGE_DATABASE_URL"] = f"sqlite+aiosqlite:///{db_dir / 'appforge.db'}"
    # SQLite has no REPEATABLE READ; SERIALIZABLE is its default behaviour
    os.environ["APPFORGE_EXPORT_ISOLATION_LEVEL"] = "SERIALIZABLE"

    from src.config import get_settings
    from src.core.database import reset_db_state

    get_settings.cache_clear()
    reset_db_state()

    yield

    get_settings.cache_clear()
    reset_db_state()


# ==================== DATABASE FIXTURES ====================


@pytest_asyncio.fixture
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create an engine on a fresh database file with the full schema.

    Uses NullPool so every session opens its own connection, which keeps
    the import's two transactions on separate connections as in production.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Create async session factory."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a database session for each test.

    Data written by services through their own sessions is visible here
    once committed.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


# ==================== TEST DATA FIXTURES ====================


@pytest_asyncio.fixture
async def organization(session_factory) -> Organization:
    """Committed organization with a single admin group."""
    async with session_factory() as session:
        async with session.begin():
            org = Organization(name="Test Organization")
            session.add(org)
            await session.flush()
            session.add(GroupPermission(organization_id=org.id, group="admin"))
    return org


@pytest.fixture
def org_id(organization) -> UUID:
    return organization.id


# ==================== MARKERS ====================


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no database)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (real database)"
    )
