"""
SQLAlchemy engine and session factories.

Two separate engines exist because:
- The API and the export pipeline run on the event loop → asyncpg driver + async sessions
- Maintenance scripts (seeding) are plain sync programs → psycopg2 driver + sync sessions

Engines are created lazily by SQLAlchemy on first connect, so importing this
module never opens a connection.
"""

from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy import create_engine

from config.settings import settings


class Base(DeclarativeBase):
    """Base class for all ORM models. SQLAlchemy uses this to track table metadata."""
    pass


# ── Async engine (API + pipeline) ───────────────────────────────
async_engine = create_async_engine(settings.database_url, echo=False)
AsyncSessionLocal = async_sessionmaker(async_engine, expire_on_commit=False)

# ── Sync engine (scripts) ───────────────────────────────────────
sync_engine = create_engine(settings.sync_database_url, echo=False)
SyncSessionLocal = sessionmaker(sync_engine)
