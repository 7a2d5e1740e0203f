"""Shared fixtures for the authorization service tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.database.engine import build_engine, build_session_factory, get_db, init_db
from app.features.permissions.models import UserPermission
from app.features.permissions.rbac import Action, Resource, Role
from app.features.users.models import User
from app.main import app, limiter

# Tokens are decoded without signature verification; any key works
TEST_SIGNING_KEY = "test-signing-key-0123456789abcdef0123456789"


def make_token(appwrite_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    payload = {"userId": appwrite_id, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, TEST_SIGNING_KEY, algorithm="HS256")


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.appwrite_id)}"}


@pytest.fixture
def auth():
    """Build Authorization headers for a user."""
    return auth_headers


@pytest.fixture
def token():
    return make_token


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database for each test."""
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(session_factory):
    """Factory persisting a user with the given role."""
    counter = {"n": 0}

    async def _make(role: Role = Role.GUEST, is_active: bool = True, **kwargs) -> User:
        counter["n"] += 1
        n = counter["n"]
        async with session_factory() as session:
            user = User(
                appwrite_id=kwargs.pop("appwrite_id", f"aw-{role.value.lower()}-{n}"),
                email=kwargs.pop("email", f"{role.value.lower()}{n}@university.edu"),
                name=kwargs.pop("name", f"{role.value.title()} {n}"),
                role=role,
                is_active=is_active,
                **kwargs,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make


@pytest_asyncio.fixture
async def make_grant(session_factory):
    """Factory persisting an explicit grant for a user."""

    async def _make(user: User, action: Action, resource: Resource, is_active: bool = True) -> UserPermission:
        async with session_factory() as session:
            grant = UserPermission(
                user_id=user.id,
                action=action,
                resource=resource,
                title=f"{action.value} {resource.value}",
                is_active=is_active,
            )
            session.add(grant)
            await session.commit()
            await session.refresh(grant)
            return grant

    return _make


@pytest_asyncio.fixture
async def users(make_user):
    """One active account per role."""
    return {role: await make_user(role) for role in Role}


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP test client wired to the per-test database."""

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db

    # Disable rate limiter for tests
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
