from datetime import datetime
from typing import Any

from pydantic import BaseModel


class NotificationResult(BaseModel):
    id: str
    type: str
    title: str
    message: str
    related_id: str | None = None
    data: dict[str, Any] | None = None
    is_read: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class NotificationList(BaseModel):
    notifications: list[NotificationResult]
    unread_count: int
