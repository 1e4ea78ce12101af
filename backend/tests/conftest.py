"""
Shared fixtures: in-memory SQLite database, app client and token helpers.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-bank-book-api-0123456789"
os.environ["SENTRY_DSN"] = ""

from datetime import date
from decimal import Decimal

import pytest
import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from database import create_tables, get_db
from services.auth import create_access_token
from services.journal_service import JournalEntryRepository, JournalEntryCreate, JournalLineCreate

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """HTTP client for the app, with get_db bound to the test database."""
    from server import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


def make_token(role: str = "accountant", tenant_id: str = TENANT_A, user_id: str = "user-1") -> str:
    return create_access_token(
        user_id=user_id,
        email=f"{user_id}@example.com",
        role=role,
        tenant_id=tenant_id,
    )


def auth_headers(role: str = "accountant", tenant_id: str = TENANT_A, user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(role, tenant_id, user_id)}"}


async def make_journal_entry(session, tenant_id: str, on: date, amount: str, user_id: str = "user-1"):
    """Balanced two-line journal entry for the given amount."""
    value = Decimal(amount)
    return await JournalEntryRepository(session).create(
        tenant_id,
        user_id,
        JournalEntryCreate(
            entry_date=on,
            narration="Bank deposit",
            lines=[
                JournalLineCreate(account="1000 Bank", debit=value),
                JournalLineCreate(account="4000 Sales", credit=value),
            ],
        ),
    )
