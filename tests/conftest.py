import os
import tempfile

# Settings are read at import time: configure the test environment first
_TEST_DIR = tempfile.mkdtemp(prefix="abm_api_tests_")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/app.db"
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["APP_URL"] = "https://pages.example.com"
os.environ["ELEVENLABS_WEBHOOK_SECRET"] = ""

import pytest
from typing import AsyncGenerator, Generator, Optional
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from abm_api.database import Base, get_db
from abm_api.models import ApiKey, Organization, Page
from abm_api.services.api_key_service import ApiKeyService
from abm_api.services.page_service import PageService

# Test database URL
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{_TEST_DIR}/test_abm_pages.db"

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    # Create tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    # Drop tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
def client() -> Generator:
    """Create a sync test client (doesn't require db_session)."""
    from fastapi.testclient import TestClient
    from abm_api.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
async def async_client(db_session: AsyncSession) -> AsyncGenerator:
    """Create an async test client with database session override."""
    from httpx import AsyncClient, ASGITransport
    from abm_api.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def make_organization(db_session: AsyncSession):
    """Factory for tenants."""
    async def _make(slug: str = "acme", name: Optional[str] = None) -> Organization:
        organization = Organization(slug=slug, name=name or slug.title())
        db_session.add(organization)
        await db_session.commit()
        await db_session.refresh(organization)
        return organization

    return _make


@pytest.fixture
async def organization(make_organization) -> Organization:
    return await make_organization("acme", "Acme Inc")


@pytest.fixture
async def make_api_key(db_session: AsyncSession):
    """Factory returning (raw_key, ApiKey) for an organization."""
    async def _make(organization: Organization, name: str = "Test Key", expiry_days: int = 0):
        return await ApiKeyService.create_api_key(
            db_session,
            organization_id=organization.id,
            name=name,
            expiry_days=expiry_days
        )

    return _make


@pytest.fixture
async def api_key(make_api_key, organization) -> tuple[str, ApiKey]:
    return await make_api_key(organization)


@pytest.fixture
def auth_headers(api_key) -> dict:
    raw_key, _ = api_key
    return {"Authorization": f"Bearer {raw_key}"}


@pytest.fixture
async def make_page(db_session: AsyncSession, organization: Organization):
    """Factory for pages owned by the default organization unless another one is given."""
    async def _make(slug: str = "globex", owner: Optional[Organization] = None, **fields) -> Page:
        data = {
            "slug": slug,
            "company_name": fields.pop("company_name", "Globex"),
            "title": fields.pop("title", "Hello Globex"),
            "hero_title": fields.pop("hero_title", "Built for Globex"),
            "body_markdown": fields.pop("body_markdown", "# Welcome"),
            "is_published": fields.pop("is_published", True),
            **fields,
        }
        return await PageService.create_page(
            db_session,
            organization_id=(owner or organization).id,
            data=data
        )

    return _make
