"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

from typing import AsyncGenerator, Callable, Dict
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from assetdesk.main import app
from assetdesk.models.base import Base
from assetdesk.db.session import get_db
from assetdesk.core.auth import create_access_token
from assetdesk.core.deps import get_ai_client, get_storage
from assetdesk.services.storage_service import AttachmentStorage


# Test database URL
# WHY: Using SQLite for tests eliminates external database dependencies
# and makes tests faster.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state,
    preventing test pollution and ensuring test isolation.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def s3_client() -> MagicMock:
    """
    Mock boto3 S3 client.

    WHY: Tests must never talk to real object storage; the mock records
    put/delete calls so tests can assert on them.
    """
    client = MagicMock()
    client.generate_presigned_url.side_effect = (
        lambda op, Params, ExpiresIn: f"https://s3.test/{Params['Key']}?expires={ExpiresIn}"
    )
    return client


@pytest.fixture
def storage(s3_client) -> AttachmentStorage:
    return AttachmentStorage(s3_client, "test-bucket", url_expiry=600)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, storage: AttachmentStorage) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client.

    WHY: AsyncClient allows testing FastAPI endpoints without running
    a real server. Database, storage and AI client are overridden so no
    request leaves the process.

    Yields:
        AsyncClient: HTTP client for making test requests
    """

    async def override_get_db():
        """Override database dependency with test session."""
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_ai_client] = lambda: None

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    """
    Build bearer headers for a user id.

    Usage:
        response = await client.get(url, headers=auth_headers("u1"))
    """

    def _headers(user_id: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture
def ticking_clock(monkeypatch):
    """
    Make record timestamps advance one second per write.

    WHY: Consecutive writes can land in the same microsecond; tests that
    assert creation order need distinct ``createdAt`` values.
    """
    from datetime import timedelta

    from assetdesk.dao import org_store
    from assetdesk.models.base import utcnow

    state = {"now": utcnow()}

    def tick():
        state["now"] += timedelta(seconds=1)
        return state["now"]

    monkeypatch.setattr(org_store, "utcnow", tick)
    return state
