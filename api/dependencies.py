"""
FastAPI dependency injection.

How this works:
- An endpoint declares `service: ExportService = Depends(get_export_service)`
- FastAPI calls the dependency before your endpoint runs
- Everything long-lived (Redis client, broker, export service) is built once in
  the app lifespan and stored on `app.state`; dependencies just hand it out

Tests swap any of these with `app.dependency_overrides[...]`.
"""

from typing import AsyncGenerator, Optional

from fastapi import Request, WebSocket
from sqlalchemy.ext.asyncio import AsyncSession
from redis.asyncio import Redis

from models.base import AsyncSessionLocal
from notifications.broker import NotificationBroker
from pipeline.runner import RunScheduler
from services.exports import ExportService

SESSION_COOKIE = "session"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yields an async database session, auto-closes when the request ends."""
    async with AsyncSessionLocal() as session:
        yield session


async def get_redis(request: Request) -> Redis:
    """Returns the Redis client stored on the app during startup."""
    return request.app.state.redis


def get_export_service(request: Request) -> ExportService:
    return request.app.state.export_service


def get_run_scheduler(request: Request) -> RunScheduler:
    return request.app.state.run_scheduler


def get_broker(websocket: WebSocket) -> NotificationBroker:
    return websocket.app.state.broker


async def get_socket_user(websocket: WebSocket) -> Optional[str]:
    """
    Resolve the session behind a WebSocket handshake to a user id.

    The token comes from `?token=...` or the `session` cookie. Returns None when
    there is no token or it does not map to a live session.
    """
    token = websocket.query_params.get("token") or websocket.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    return await websocket.app.state.sessions.resolve(token)
