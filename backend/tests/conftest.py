"""Pytest configuration and fixtures for onboarding tests.

Tests run against an in-memory SQLite database (aiosqlite + StaticPool),
one fresh database per test.  Environment overrides are applied before
anything from ``onboarding`` is imported so ``settings`` picks them up.
"""

import copy
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("STORE_RETRY_BASE_DELAY", "0")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from onboarding import models  # noqa: E402,F401
from onboarding.auth.jwt import create_access_token  # noqa: E402
from onboarding.auth.permissions import resolve_permissions  # noqa: E402
from onboarding.database import Base  # noqa: E402
from onboarding.main import app  # noqa: E402
from onboarding.routers.deps import get_store  # noqa: E402
from onboarding.services.applications import ApplicationService  # noqa: E402
from onboarding.services.notifications import get_notifier  # noqa: E402
from onboarding.services.store import ApplicationStore  # noqa: E402


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory) -> ApplicationStore:
    return ApplicationStore(session_factory)


@pytest.fixture
def service(store) -> ApplicationService:
    return ApplicationService(store)


class RecordingNotifier:
    """Collects status notices instead of sending them."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def notify_status_change(self, application, status: str) -> None:
        self.sent.append((application.application_id, status))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(store, notifier) -> AsyncGenerator[AsyncClient, None]:
    """Test client wired to the scratch database and recording notifier."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Auth Fixtures ────────────────────────────────────────────────

def _headers(role: str) -> dict:
    token = create_access_token(
        user_id=f"{role}-1",
        role=role,
        permissions=resolve_permissions(role),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def reviewer_headers() -> dict:
    return _headers("reviewer")


@pytest.fixture
def auditor_headers() -> dict:
    """Read-only reviewer token."""
    return _headers("auditor")


# ── Test Data ────────────────────────────────────────────────────

COMPLETE_SECTIONS = {
    "personal_info": {
        "first_name": "Maria",
        "last_name": "Santos",
        "email": "maria.santos@gmail.com",
        "mobile_number": "09171234567",
    },
    "background_check": {
        "first_time_applying": "yes",
        "ever_charged": "no",
        "declared_bankruptcy": "no",
        "income_source": "Sari-sari store",
    },
    "business_info": {
        "business_name": "Santos Store",
        "business_type": "retail",
        "business_nature": "convenience store",
        "years_operating": "3-5",
        "daily_transactions": "50-100",
        "has_existing_business": True,
        "is_first_time_business": False,
    },
    "location": {
        "address": {
            "region": "NCR",
            "province": "Metro Manila",
            "city": "Quezon City",
            "barangay": "Bagong Pag-asa",
            "street_address": "12 Mabini St",
        },
        "business_location_same_as_address": True,
        "latitude": 14.6507,
        "longitude": 121.0494,
    },
    "package": {"package_type": "starter", "monthly_fee": 999, "setup_fee": 1500},
    "documents": {
        "uploaded": {
            "id_front": "files/id-front.jpg",
            "id_back": "files/id-back.jpg",
            "proof_of_address": "files/bill.pdf",
        }
    },
    "signature": {"terms_accepted": True, "signature_url": "files/signature.png"},
}


@pytest.fixture
def complete_sections() -> dict:
    return copy.deepcopy(COMPLETE_SECTIONS)


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: API endpoint tests")
    config.addinivalue_line("markers", "integration: Integration tests")
