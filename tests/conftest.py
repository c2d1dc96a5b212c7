"""Pytest configuration and shared fixtures.

Integration tests run against a throwaway SQLite database per test
(``sqlite+aiosqlite``) created from the models' metadata, and drive
the FastAPI app in-process through ``httpx.ASGITransport``.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from uuid import UUID

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from erp_access.core.auth import create_access_token
from erp_access.core.database import Base, get_db
from erp_access.core.permissions import (
    InMemoryPermissionCache,
    PermissionResolver,
    SqlAlchemyPermissionStore,
)
from erp_access.core.permissions import models as permission_models  # noqa: F401
from erp_access.main import create_app
from erp_access.modules.tenants.models import Tenant
from erp_access.modules.users.models import User
from tests.factories.rbac import FakePermissionStore


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a SQLite database with every table."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rbac.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging test data. Commit before calling the app."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def permission_cache() -> InMemoryPermissionCache:
    return InMemoryPermissionCache()


@pytest.fixture
def resolver(
    session_factory: async_sessionmaker[AsyncSession],
    permission_cache: InMemoryPermissionCache,
) -> PermissionResolver:
    """Resolver over the SQL store, as the application builds it."""
    return PermissionResolver(SqlAlchemyPermissionStore(session_factory), permission_cache)


@pytest.fixture
def fake_store() -> FakePermissionStore:
    return FakePermissionStore()


@pytest.fixture
def fake_resolver(fake_store: FakePermissionStore) -> PermissionResolver:
    """Resolver over the in-memory store."""
    return PermissionResolver(fake_store, InMemoryPermissionCache())


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    resolver: PermissionResolver,
) -> FastAPI:
    """Application wired to the test database."""
    app = create_app(resolver=resolver)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build an Authorization header carrying a subject."""

    def _headers(user_id: UUID, tenant_id: UUID | None = None) -> dict[str, str]:
        token = create_access_token(user_id, tenant_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def tenant(db: AsyncSession) -> Tenant:
    tenant = Tenant(name="Central Kitchen", slug="central-kitchen")
    db.add(tenant)
    await db.commit()
    return tenant


@pytest.fixture
def make_user(db: AsyncSession, tenant: Tenant) -> Callable[..., Awaitable[User]]:
    """Create committed users in the test tenant."""

    async def _make_user(email: str, tenant_id: UUID | None = None) -> User:
        user = User(
            email=email,
            full_name=email.split("@")[0].title(),
            tenant_id=tenant_id or tenant.id,
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user
