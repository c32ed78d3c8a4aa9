"""Shared fixtures and utilities for tests."""

import os

# Settings are read once at import time, so the environment goes first.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

import itertools
from datetime import timedelta
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.main import create_app
from core.config import settings
from core.security import create_access_token, hash_password
from core.utils.datetime import now
from database.engine import Base, get_db
from database.models import (
    Company,
    CompanyMember,
    CompanyRole,
    JobPosting,
    JobStatus,
    MemberStatus,
    User,
)

TEST_PASSWORD = "password123"
# Hashed once; bcrypt is deliberately slow
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite database with foreign keys enforced."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory):
    """Fresh application wired to the test database."""
    application = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ==================== Factories ===================== #
def token_for(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        user_id,
        settings.jwt_secret_key,
        settings.jwt_algorithm,
        expires_delta=expires_delta,
    )


@pytest.fixture
def password():
    """Plain-text password of every user built by make_user."""
    return TEST_PASSWORD


@pytest.fixture
def make_token():
    """Sign an access token for a user id."""
    return token_for


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a user."""

    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for(user.id)}"}

    return _headers


@pytest.fixture
def make_user(db_session):
    """Create a committed user."""
    counter = itertools.count(1)

    async def _make(email: Optional[str] = None, is_active: bool = True) -> User:
        user = User(
            email=email or f"user{next(counter)}@example.com",
            password_hash=TEST_PASSWORD_HASH,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_membership(db_session):
    """Attach a user to a company with a role and status."""

    async def _make(
        company: Company,
        user: User,
        role: CompanyRole = CompanyRole.RECRUITER,
        status: MemberStatus = MemberStatus.ACTIVE,
    ) -> CompanyMember:
        membership = CompanyMember(
            company_id=company.id,
            user_id=user.id,
            role=role,
            status=status,
            joined_at=now() if status == MemberStatus.ACTIVE else None,
        )
        db_session.add(membership)
        await db_session.commit()
        return membership

    return _make


@pytest.fixture
def make_company(db_session, make_membership):
    """Create a company with ``owner`` as its ACTIVE OWNER."""

    async def _make(owner: User, name: str = "Acme Corp"):
        company = Company(name=name, created_by_id=owner.id)
        db_session.add(company)
        await db_session.commit()
        membership = await make_membership(company, owner, role=CompanyRole.OWNER)
        return company, membership

    return _make


@pytest.fixture
def make_job(db_session):
    """Create a job posting; ACTIVE unless told otherwise."""

    async def _make(company: Company, **overrides) -> JobPosting:
        fields = {
            "title": "Backend Engineer",
            "description": "Build and run the hiring platform API.",
            "status": JobStatus.ACTIVE,
        }
        fields.update(overrides)
        job = JobPosting(company_id=company.id, **fields)
        db_session.add(job)
        await db_session.commit()
        return job

    return _make
