"""
Notification fanout — what the pipeline calls on lifecycle transitions.

Two independent, best-effort channels:
1. Real-time push: every event is published on the "jobs" topic
2. Email: only for completed/failed, and only if the job's filters carry a
   recipient address

Nothing raised by either channel ever reaches the caller. The pipeline has
already committed the state transition by the time it notifies, and a broken
mail server or Redis hiccup must not change that.
"""

import asyncio
import logging
from typing import Optional

from models.enums import NotificationKind
from models.job import ExportJob
from notifications.broker import NotificationBroker
from notifications.email import EmailNotification, EmailSender
from notifications.events import NotificationEvent
from notifications.templates import job_completed_email, job_failed_email

logger = logging.getLogger(__name__)


def recipient_of(job: ExportJob) -> Optional[str]:
    filters = job.filters if isinstance(job.filters, dict) else {}
    email = filters.get("email")
    return email.strip() if isinstance(email, str) and email.strip() else None


class NotificationFanout:

    def __init__(self, broker: NotificationBroker, email_sender: EmailSender, *, email_enabled: bool = True):
        self._broker = broker
        self._email_sender = email_sender
        self._email_enabled = email_enabled

    async def job_queued(self, job: ExportJob) -> None:
        await self._push(NotificationEvent(
            kind=NotificationKind.QUEUED,
            job_id=job.job_id,
            job_name=job.name,
            progress=0,
        ))

    async def job_progress(self, job_id: str, progress: int) -> None:
        await self._push(NotificationEvent(
            kind=NotificationKind.PROGRESS,
            job_id=job_id,
            progress=progress,
        ))

    async def job_completed(self, job: ExportJob) -> None:
        await self._push(NotificationEvent(
            kind=NotificationKind.COMPLETED,
            job_id=job.job_id,
            job_name=job.name,
            progress=100,
            download_url=job.download_url,
        ))
        recipient = recipient_of(job)
        if recipient and job.download_url:
            await self._email(job_completed_email(recipient, job.name, job.download_url))

    async def job_failed(self, job: ExportJob) -> None:
        message = job.error_message or "Export failed"
        await self._push(NotificationEvent(
            kind=NotificationKind.FAILED,
            job_id=job.job_id,
            job_name=job.name,
            progress=job.progress,
            message=message,
        ))
        recipient = recipient_of(job)
        if recipient:
            await self._email(job_failed_email(recipient, job.name, message))

    async def notify_user(self, user_id: str, event: NotificationEvent) -> None:
        """Targeted delivery to one session identity's channel."""
        try:
            await self._broker.publish_to_user(user_id, event)
        except Exception as e:
            logger.error(f"Push to user {user_id} failed for job {event.job_id}: {e}", exc_info=True)

    async def _push(self, event: NotificationEvent) -> None:
        try:
            await self._broker.publish(event)
        except Exception as e:
            logger.error(f"Push notification failed for job {event.job_id} ({event.kind.value}): {e}", exc_info=True)

    async def _email(self, notification: EmailNotification) -> None:
        if not self._email_enabled:
            return
        try:
            await asyncio.to_thread(self._email_sender.send, notification)
        except Exception as e:
            logger.error(f"Email to {notification.to_address} failed ({notification.subject}): {e}")
