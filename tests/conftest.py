"""Pytest configuration and shared fixtures for API tests."""

import os

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test config before app imports so settings pick it up
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from lgu_auth.core.auth import create_access_token, hash_password
from lgu_auth.db.session import Database
from lgu_auth.main import app
from lgu_auth.models.user import User, UserRole
from lgu_auth.repositories import UserRepository

TEST_PASSWORD = "password123"


@pytest_asyncio.fixture
async def database(tmp_path):
    """Fresh SQLite file database per test, tables created on connect."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.connect()
    yield db
    await db.disconnect()


@pytest_asyncio.fixture
async def client(database):
    """AsyncClient bound to the app; lifespan is not run, so the test database is injected."""
    app.state.db = database
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def create_user(
    database: Database,
    email: str,
    username: str,
    password: str = TEST_PASSWORD,
    role: UserRole = UserRole.USER,
    is_active: bool = True,
) -> User:
    async with database.session() as session:
        return await UserRepository(session).create(
            email=email,
            username=username,
            password=hash_password(password),
            first_name=username.capitalize(),
            last_name="Tester",
            role=role,
            is_active=is_active,
        )


def bearer(user: User) -> dict:
    token = create_access_token(user.id, user.email, UserRole(user.role).value)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(database):
    """Plain USER committed to the database."""
    return await create_user(database, "test@test.com", "tester")


@pytest_asyncio.fixture
async def auth_headers(test_user):
    return bearer(test_user)


@pytest_asyncio.fixture
async def admin_user(database):
    return await create_user(database, "admin@test.com", "admin", role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def admin_headers(admin_user):
    return bearer(admin_user)


@pytest_asyncio.fixture
async def super_admin_user(database):
    return await create_user(database, "root@test.com", "root", role=UserRole.SUPER_ADMIN)


@pytest_asyncio.fixture
async def super_admin_headers(super_admin_user):
    return bearer(super_admin_user)
