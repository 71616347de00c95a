"""Job lifecycle events pushed to real-time subscribers. Never persisted."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from models.enums import NotificationKind


class NotificationEvent(BaseModel):
    kind: NotificationKind
    job_id: str
    job_name: Optional[str] = None
    progress: Optional[int] = None
    message: Optional[str] = None
    download_url: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
