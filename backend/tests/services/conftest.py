"""Service test fixtures — async DB, store config, seeded catalog, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session
    - get_store_config overridden with the `store_config` fixture (no env leakage)
    - db_manager patched for the readiness probe, which bypasses get_db

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - Assertions after an HTTP call read through a fresh session (`read_db`), so the
      identity map of the seeding session never hides a committed change
"""

from dataclasses import replace

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from storefront.api.dependencies import get_store_config
from storefront.config import Settings
from storefront.core.checkout_rules import CartLine
from storefront.db.base import Base
from storefront.infrastructure.database import get_db, DatabaseSessionManager
from storefront.models.product import Product
from storefront.services.settings_resolver import build_store_config
import storefront.infrastructure.database as db_module
from storefront.main import app

from tests.services.mock_providers import ADMIN_KEY, KEY_SECRET


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def read_db(test_session_factory):
    """Open a fresh session for post-request assertions."""
    return test_session_factory


@pytest.fixture
def store_config(tmp_path):
    """Production-like config: real signature checks, dry-run messaging."""
    settings = Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        store_name="Test Store",
        public_base_url="https://shop.example.com",
        file_storage_root=str(tmp_path),
        razorpay_key_id="rzp_test_key",
        razorpay_key_secret=KEY_SECRET,
        razorpay_test_mode=False,
        whatsapp_access_token="dummy-token",
        whatsapp_phone_number_id="1234567890",
        whatsapp_webhook_verify_token="verify-me",
        resend_api_key="test-key",
        resend_webhook_secret="whsec_c2VjcmV0LWtleS1mb3ItdGVzdHM=",
        email_from="Test Store <downloads@example.com>",
        admin_api_key=ADMIN_KEY,
    )
    return build_store_config(settings)


@pytest.fixture
def live_config(store_config):
    """Config with real (non-sentinel) messaging credentials."""
    return replace(
        store_config,
        whatsapp_access_token="EAAG-live-token",
        resend_api_key="re_live_key",
    )


@pytest.fixture
async def products(test_db, tmp_path):
    """Two active products with files on disk: 199.00 and 99.00."""
    (tmp_path / "guide.pdf").write_bytes(b"%PDF-1.4 guide")
    (tmp_path / "templates.zip").write_bytes(b"PK templates")
    guide = Product(
        name="Study Guide", price_minor=19900, file_path="guide.pdf",
        content_type="application/pdf",
    )
    templates = Product(
        name="Template Pack", price_minor=9900, file_path="templates.zip",
    )
    test_db.add_all([guide, templates])
    await test_db.commit()
    return [guide, templates]


@pytest.fixture
def cart_lines(products):
    return [
        CartLine(p.id, p.name, p.price_minor)
        for p in products
    ]


@pytest.fixture
async def client(test_engine, test_session_factory, store_config):
    """FastAPI test client with DB and config dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_store_config] = lambda: store_config

    # Patch db_manager for the readiness probe
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
