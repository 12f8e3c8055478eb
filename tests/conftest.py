"""
Pytest fixtures for the enrollment core tests.

All tests run against a file-backed SQLite database so that separate
sessions (and the API) share the same data.
"""

import os
import tempfile
import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio

# Point settings at a throwaway SQLite file before any bootcamp module loads
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
TEST_DB_PATH = _tmp.name
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ENVIRONMENT"] = "test"

from bootcamp.config import get_settings

get_settings.cache_clear()

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bootcamp.database import build_engine, get_db
from bootcamp.kernel.identity.jwt import JWTManager
from bootcamp.kernel.identity.password import hash_password
from bootcamp.kernel.models import Base, Course, User, UserRole, enum_value

TWO_BY_TWO = [
    {"title": "Foundations", "week": 1, "topics": ["html", "css"], "project": "Landing page"},
    {"title": "JavaScript", "week": 2, "topics": ["variables", "functions"], "project": "Todo app"},
]

TEST_PASSWORD = "TestPassword123"

# bcrypt at full cost is slow; one hash serves every fixture user
_PASSWORD_HASH = hash_password(TEST_PASSWORD, rounds=4)


@pytest_asyncio.fixture
async def db_engine():
    """Fresh schema on the shared SQLite file for every test."""
    engine = build_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(db_engine) -> async_sessionmaker:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
        await session.rollback()


async def make_user(session: AsyncSession, role: UserRole = UserRole.USER, name: str = "Test User") -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
        password_hash=_PASSWORD_HASH,
        full_name=name,
        role=role.value,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_course(session: AsyncSession, curriculum=None, slug: str = None) -> Course:
    course = Course(
        title="Full Stack Web Development",
        slug=slug or f"full-stack-{uuid.uuid4().hex[:6]}",
        curriculum=TWO_BY_TWO if curriculum is None else curriculum,
    )
    session.add(course)
    await session.commit()
    await session.refresh(course)
    return course


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> User:
    return await make_user(db_session, UserRole.USER, "Test Student")


@pytest_asyncio.fixture
async def other_student(db_session: AsyncSession) -> User:
    return await make_user(db_session, UserRole.USER, "Other Student")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, UserRole.ADMIN, "Test Admin")


@pytest_asyncio.fixture
async def college_admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, UserRole.COLLEGE_ADMIN, "College Admin")


@pytest_asyncio.fixture
async def course(db_session: AsyncSession) -> Course:
    """Course with two modules of two topics each."""
    return await make_course(db_session)


def _auth_headers(user: User) -> dict:
    token, _, _ = JWTManager().create_access_token(user_id=user.id, email=user.email, role=enum_value(user.role))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def user_factory(db_session: AsyncSession):
    """Create extra users with a given role."""
    async def factory(role: UserRole = UserRole.USER, name: str = "Test User") -> User:
        return await make_user(db_session, role, name)
    return factory


@pytest.fixture
def auth_headers():
    """Bearer headers for a user."""
    return _auth_headers


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test database."""
    from bootcamp.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)


def pytest_sessionfinish(session, exitstatus):
    """Clean up the temp DB file (and WAL side files) after the run."""
    for suffix in ("", "-wal", "-shm"):
        path = TEST_DB_PATH + suffix
        if os.path.exists(path):
            os.unlink(path)
