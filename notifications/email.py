"""
Email delivery.

SmtpEmailSender talks plain SMTP (MailHog in development, a relay in
production). Sending is synchronous; the fanout runs it in the threadpool so
the event loop is never blocked by a slow mail server.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailNotification:
    to_address: str
    subject: str
    text: str
    html: str


class NotificationError(Exception):
    """Raised when a delivery channel rejects a notification."""


class EmailSender(Protocol):

    def send(self, notification: EmailNotification) -> None:
        """Deliver one email synchronously. Raises NotificationError on failure."""
        ...


class SmtpEmailSender:

    def __init__(self, host: str, port: int, from_address: str, timeout: float = 10.0):
        self._host = host
        self._port = port
        self._from_address = from_address
        self._timeout = timeout

    def build_message(self, notification: EmailNotification) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._from_address
        message["To"] = notification.to_address
        message["Subject"] = notification.subject
        message.set_content(notification.text)
        message.add_alternative(notification.html, subtype="html")
        return message

    def send(self, notification: EmailNotification) -> None:
        message = self.build_message(notification)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP delivery to {notification.to_address} failed: {e}") from e
        logger.info(f"Email sent to {notification.to_address}: {notification.subject}")


class NullEmailSender:
    """Used when email is disabled."""

    def __init__(self, reason: Optional[str] = None):
        self._reason = reason or "email disabled"

    def send(self, notification: EmailNotification) -> None:
        logger.debug(f"Dropping email to {notification.to_address} ({self._reason}): {notification.subject}")
