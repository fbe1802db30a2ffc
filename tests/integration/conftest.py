"""Integration test fixtures for database operations.

These fixtures require a reachable PostgreSQL database (``DATABASE_URL``).
Tests are skipped when it cannot be reached.
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from src.crewgate.core import db
from src.crewgate.core import redis as redis_core
from src.crewgate.core.config import get_settings
from src.crewgate.core.db import run_migrations_sync
from src.crewgate.core.roles import Role
from src.crewgate.models import Tenant, User
from tests.factories import MembershipFactory, TenantFactory, UserFactory

TABLES = "public.audit_logs, public.invitations, public.memberships, public.users, public.tenants"


@pytest.fixture(autouse=True)
async def _reset_redis_between_tests() -> AsyncGenerator[None]:
    """Redis clients hold on to their event loop; drop them between tests."""
    redis_core.reset_redis_state()
    yield
    await redis_core.close_redis()


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Test engine with the schema migrated to head. Skips if PostgreSQL is down."""
    await db.dispose_engine()

    settings = get_settings()
    test_engine = create_async_engine(settings.database_url, poolclass=NullPool)
    try:
        async with test_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        await test_engine.dispose()
        pytest.skip(f"PostgreSQL not available: {e}")

    await asyncio.to_thread(run_migrations_sync)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.execute(text(f"TRUNCATE {TABLES} CASCADE"))
    await test_engine.dispose()
    # The app engines are bound to this test's event loop
    await db.dispose_engine()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session on the test engine. Nothing is committed unless the test commits."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def tenant(db_session: AsyncSession) -> Tenant:
    tenant = TenantFactory.build(name="Golden Spoon Catering")
    db_session.add(tenant)
    await db_session.commit()
    return tenant


@pytest.fixture
async def owner(db_session: AsyncSession, tenant: Tenant) -> User:
    user = UserFactory.build(email="owner@goldenspoon.example.com", full_name="Olive Owner")
    db_session.add(user)
    await db_session.commit()
    db_session.add(
        MembershipFactory.with_role(Role.OWNER, tenant_id=tenant.id, user_id=user.id)
    )
    await db_session.commit()
    return user


@pytest.fixture
async def manager(db_session: AsyncSession, tenant: Tenant, owner: User) -> User:
    user = UserFactory.build(email="manager@goldenspoon.example.com", full_name="Max Manager")
    db_session.add(user)
    await db_session.commit()
    db_session.add(
        MembershipFactory.with_role(
            Role.MANAGER, tenant_id=tenant.id, user_id=user.id, invited_by_user_id=owner.id
        )
    )
    await db_session.commit()
    return user
