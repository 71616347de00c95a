"""
Shared test fixtures.

These replace real infrastructure with lightweight in-process alternatives:
- PostgreSQL → SQLite file in tmp_path (via aiosqlite); a file rather than
  :memory: so every session the stores open sees the same data
- Redis → fakeredis (pure Python Redis mock)
- HTTP server → httpx.AsyncClient with ASGI transport (no network)
- Wall-clock time → ManualClock, which parks every staged sleep until the
  test advances virtual time past it
- Notification delivery → RecordingBroker / RecordingEmailSender

This means tests:
- Run without Docker
- Drive a full 13-unit staged run in milliseconds
- Are fully isolated (each test gets a fresh database)
"""

from typing import Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from fakeredis.aioredis import FakeRedis

from models.base import Base
from api.main import create_app
from api.dependencies import get_db, get_redis
from notifications.fanout import NotificationFanout
from pipeline.engine import ExportPipeline
from pipeline.faults import FixedFaultPolicy
from pipeline.recovery import RecoverySupervisor
from pipeline.retry import RetryHandler
from pipeline.runner import RunScheduler
from services.exports import ExportService
from store.jobs import JobStore
from store.transactions import TransactionQuery
from tests.helpers import Harness, ManualClock, RecordingBroker, RecordingEmailSender


# ── Database / Redis ────────────────────────────────────────────

@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """Create a fresh SQLite database file for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'reports.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(async_engine):
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def async_session(session_factory):
    """Create a database session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def fake_redis():
    """Create a fake Redis instance (in-memory, no real Redis needed)."""
    r = FakeRedis()
    yield r
    await r.flushall()
    await r.aclose()


@pytest.fixture
def store(session_factory):
    return JobStore(session_factory)


# ── Pipeline harness ────────────────────────────────────────────

@pytest_asyncio.fixture
async def make_harness(session_factory):
    """Factory: build a fully wired pipeline on virtual time with a chosen fault policy."""
    built: list[Harness] = []

    def _make(fault_policy=None, broker: Optional[RecordingBroker] = None,
              email: Optional[RecordingEmailSender] = None) -> Harness:
        clock = ManualClock()
        broker = broker or RecordingBroker()
        email = email or RecordingEmailSender()
        scheduler = RunScheduler(sleep=clock.sleep, time_unit=1.0)
        store = JobStore(session_factory)
        fanout = NotificationFanout(broker, email)
        pipeline = ExportPipeline(store, fanout, scheduler, fault_policy or FixedFaultPolicy(False), clock=clock)
        retry = RetryHandler(store, pipeline, fanout)
        recovery = RecoverySupervisor(store, pipeline, default_total_rows=50_000, clock=clock)
        service = ExportService(
            store, TransactionQuery(session_factory), pipeline, retry, recovery, fanout, clock=clock
        )
        harness = Harness(store, pipeline, retry, recovery, service, scheduler, clock, broker, email)
        built.append(harness)
        return harness

    yield _make

    for harness in built:
        await harness.scheduler.stop()


@pytest_asyncio.fixture
async def harness(make_harness):
    return make_harness()


# ── HTTP client ─────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(async_session, fake_redis, harness):
    """
    Create a test HTTP client that talks directly to the FastAPI app.

    The lifespan does not run under ASGITransport, so the long-lived objects
    it would build are put on app.state by hand: the export service comes
    from the virtual-time harness. dependency_overrides swaps the real
    get_db and get_redis for the test versions.
    """
    app = create_app()
    app.state.export_service = harness.service
    app.state.run_scheduler = harness.scheduler

    async def override_get_db():
        yield async_session

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
