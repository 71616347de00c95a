"""
WebSocket /ws/jobs → real-time job lifecycle events.

Handshake:
- The session token (query `token` or `session` cookie) must resolve to a user,
  otherwise the socket is closed with 1008 before it is accepted
- An accepted socket is subscribed to its user's topic right away

Client → server messages:
    {"action": "subscribe_jobs"}    start receiving every job event
    {"action": "unsubscribe_jobs"}  stop receiving them

Server → client: acknowledgements ({"type": "subscribed", ...}) and
NotificationEvent JSON objects.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from api.dependencies import get_broker, get_socket_user
from notifications.broker import JOBS_TOPIC, NotificationBroker, Subscription, user_topic

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


async def _receive_commands(websocket: WebSocket, subscription: Subscription) -> None:
    while True:
        message = await websocket.receive_json()
        action = message.get("action") if isinstance(message, dict) else None
        if action == "subscribe_jobs":
            await subscription.add(JOBS_TOPIC)
            await websocket.send_json({"type": "subscribed", "topic": JOBS_TOPIC})
        elif action == "unsubscribe_jobs":
            await subscription.remove(JOBS_TOPIC)
            await websocket.send_json({"type": "unsubscribed", "topic": JOBS_TOPIC})
        else:
            await websocket.send_json({"type": "error", "message": f"Unknown action: {action}"})


async def _forward_events(websocket: WebSocket, subscription: Subscription) -> None:
    async for event in subscription.events():
        await websocket.send_text(event.model_dump_json())


@router.websocket("/ws/jobs")
async def job_events(
    websocket: WebSocket,
    user_id: Optional[str] = Depends(get_socket_user),
    broker: NotificationBroker = Depends(get_broker),
) -> None:
    if user_id is None:
        logger.info("Rejected WebSocket connection without a valid session")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    subscription = broker.subscribe()
    await subscription.add(user_topic(user_id))
    logger.info(f"WebSocket connected for user {user_id}")

    tasks = [
        asyncio.create_task(_receive_commands(websocket, subscription)),
        asyncio.create_task(_forward_events(websocket, subscription)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if task.cancelled():
                continue
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.error(f"WebSocket for user {user_id} closed on error: {exc}", exc_info=exc)
    finally:
        for task in tasks:
            task.cancel()
        try:
            await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            await subscription.close()
            logger.info(f"WebSocket disconnected for user {user_id}")
