import os
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Settings are read at import time; keep tests off MySQL and the rate limiter.
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DEBUG", "false")

# Add the backend directory so `app` package imports resolve during tests
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.append(str(BACKEND_DIR))

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.db import build_engine  # noqa: E402
from app.models import Base, Campaign  # noqa: E402
from app.services.campaign_store import SqlCampaignStore  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factory(anyio_backend):
    engine = build_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlCampaignStore(session_factory, timeout=5, atomic_counters=False)


@pytest.fixture
def make_campaign(session_factory):
    """Insert a campaign row directly, bypassing the store's creation defaults."""

    async def _make(**fields) -> Campaign:
        data = {
            "title": "Save the riverside park",
            "description": "Stop the car park being built over the riverside.",
            "target_signatures": 100,
            "signatures_count": 0,
            "is_active": True,
            "created_at": datetime(2024, 1, 1, 12, 0, 0),
        }
        data.update(fields)
        campaign = Campaign(**data)
        async with session_factory() as session:
            session.add(campaign)
            await session.commit()
        return campaign

    return _make


@pytest.fixture
async def client(store):
    from app.core.deps import get_store
    from app.main import app

    app.dependency_overrides[get_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
