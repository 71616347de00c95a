"""
FastAPI application factory.

This file:
1. Creates the FastAPI app
2. Runs startup logic (create DB tables, connect to Redis, wire the pipeline,
   recover jobs orphaned by the previous process)
3. Registers all routers (health, reports, admin, downloads, notifications)
4. Runs shutdown logic (cancel pending runs, close connections)

The `lifespan` context manager is FastAPI's way of handling startup/shutdown.

To run:  uvicorn api.main:app --host 0.0.0.0 --port 8000 --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from redis.asyncio import Redis as AsyncRedis

from config.settings import settings
from models.base import AsyncSessionLocal, async_engine, Base
from api.routers import admin, downloads, exports, health, notifications
from api.sessions import SessionStore
from notifications.broker import NotificationBroker
from notifications.email import NullEmailSender, SmtpEmailSender
from notifications.fanout import NotificationFanout
from pipeline.faults import RandomFaultPolicy
from pipeline.runner import RunScheduler
from services.exports import build_export_service

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Runs on startup (before yield) and shutdown (after yield).

    Startup:
    - Creates all DB tables if they don't exist (safe to run multiple times)
    - Connects to Redis, builds the notification broker and session store
    - Builds the export service and its run scheduler
    - Resets and restarts jobs left in processing by a previous process

    Shutdown:
    - Cancels runs still in flight (they are recovered on the next start)
    - Closes subscriptions and the Redis connection
    - Disposes the DB engine (closes connection pool)
    """
    # ── Startup ─────────────────────────────────────────────────
    logger.info("Creating database tables...")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.redis = AsyncRedis.from_url(settings.redis_url)
    app.state.broker = NotificationBroker(app.state.redis)
    app.state.sessions = SessionStore(app.state.redis)

    if settings.EMAIL_ENABLED:
        email_sender = SmtpEmailSender(
            settings.SMTP_HOST, settings.SMTP_PORT, settings.MAIL_FROM, settings.SMTP_TIMEOUT_SECONDS
        )
    else:
        email_sender = NullEmailSender("EMAIL_ENABLED is off")
    fanout = NotificationFanout(app.state.broker, email_sender, email_enabled=settings.EMAIL_ENABLED)

    app.state.run_scheduler = RunScheduler()
    app.state.run_scheduler.start()
    app.state.export_service = build_export_service(
        AsyncSessionLocal,
        fanout,
        app.state.run_scheduler,
        RandomFaultPolicy(settings.FAULT_PROBABILITY),
    )

    if settings.RECOVER_ON_STARTUP:
        recovered = await app.state.export_service.recover_stuck_jobs()
        logger.info(f"Startup recovery restarted {len(recovered)} job(s)")

    logger.info(f"API ready: fault probability {settings.FAULT_PROBABILITY}, email {'on' if settings.EMAIL_ENABLED else 'off'}")

    yield  # app is running and serving requests between startup and shutdown

    # ── Shutdown ────────────────────────────────────────────────
    await app.state.run_scheduler.stop()
    await app.state.broker.close()
    await app.state.redis.aclose()
    await async_engine.dispose()
    logger.info("API shut down")


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    app = FastAPI(
        title="Report Exports",
        description="Filtered transaction previews and asynchronous PDF/XLSX export jobs with real-time progress",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Register routers: each one adds its endpoints to the app
    app.include_router(health.router)
    app.include_router(exports.router)
    app.include_router(admin.router)
    app.include_router(downloads.router)
    app.include_router(notifications.router)

    return app


# This is what uvicorn imports: `uvicorn api.main:app`
app = create_app()
