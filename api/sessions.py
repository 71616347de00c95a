"""
Session lookup for WebSocket handshakes.

The authentication layer in front of this service writes one Redis key per
signed-in session:

    reports:session:<token>  →  <user id>

The WebSocket endpoint resolves the token it was given (query string or
`session` cookie) to the user id and uses that id for targeted delivery.
`issue()` exists for the auth layer and for local tooling.
"""

import secrets
from typing import Optional

from redis.asyncio import Redis

SESSION_PREFIX = "reports:session:"
SESSION_TTL_SECONDS = 60 * 60 * 24


class SessionStore:

    def __init__(self, redis: Redis, prefix: str = SESSION_PREFIX):
        self._redis = redis
        self._prefix = prefix

    async def resolve(self, token: str) -> Optional[str]:
        user_id = await self._redis.get(f"{self._prefix}{token}")
        if user_id is None:
            return None
        return user_id.decode() if isinstance(user_id, bytes) else str(user_id)

    async def issue(self, user_id: str, ttl_seconds: int = SESSION_TTL_SECONDS) -> str:
        token = secrets.token_urlsafe(32)
        await self._redis.set(f"{self._prefix}{token}", user_id, ex=ttl_seconds)
        return token
