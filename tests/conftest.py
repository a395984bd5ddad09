"""Pytest configuration and shared fixtures."""

import asyncio
import os
import tempfile
from datetime import datetime, timezone

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUDIT_ENABLED", "false")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="practice-uploads-"))

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

import app.domain  # noqa: F401  (registers every table on Base.metadata)
from app.core.config import settings
from app.db.base import Base, get_db
from app.main import app
from app.repositories.client import ClientRepository
from app.services.tracking import tracking_registry

ORG_ID = "org-test"
CRON_SECRET = "test-cron-secret"


@pytest.fixture
def now() -> datetime:
    """Reference moment for date-rule tests.

    Returns:
        datetime: 2025-03-10 12:00 UTC
    """
    return datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Run every test without real provider keys and with a known cron secret."""
    for key in ("resend_api_key", "sendgrid_api_key", "openai_api_key", "vapi_api_key"):
        monkeypatch.setattr(settings, key, None)
    monkeypatch.setattr(settings, "cron_secret", CRON_SECRET)
    monkeypatch.setattr(settings, "public_app_url", "http://localhost:3000")


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
def clear_trackers():
    """The in-memory document trackers are process-wide."""
    tracking_registry.clear()
    yield
    tracking_registry.clear()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    """Async session bound to the in-memory engine."""
    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def client_factory(session):
    """Create clients for the test organization.

    Returns:
        Callable: ``await client_factory(name="Acme", **fields)``
    """
    repo = ClientRepository(session, ORG_ID)

    async def _create(name: str = "Jane Doe", **fields):
        fields.setdefault("email", f"{name.split()[0].lower()}@example.com")
        return await repo.create(name=name, **fields)

    return _create


@pytest.fixture
def api_client(tmp_path) -> TestClient:
    """FastAPI test client backed by a throwaway SQLite file.

    A file database with ``NullPool`` lets the app open connections on the
    test client's own event loop.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool
    )

    async def _create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(_create_schema())
    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    async def _get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as client:
        yield client


@pytest.fixture
def org_id() -> str:
    return ORG_ID


@pytest.fixture
def org_headers() -> dict[str, str]:
    return {"X-Organization-Id": ORG_ID}


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"X-Organization-Id": ORG_ID, "X-Cron-Secret": CRON_SECRET}
