"""
Notification sink for chat lifecycle events.

`emit` turns an event into an in-app Notification row for its recipient.
Delivery beyond that (email, push) is not handled here. Callers treat
emission as fire-and-forget; this module itself lets errors propagate.
"""
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.repos import notification_repo

logger = logging.getLogger(__name__)

EVENT_NEW_MESSAGE = "NewMessage"
EVENT_CHAT_CLOSED = "ChatClosed"
EVENT_CHAT_REOPENED = "ChatReopened"

_NOTIFICATION_TYPES = {
    EVENT_NEW_MESSAGE: "new_message",
    EVENT_CHAT_CLOSED: "chat_closed",
    EVENT_CHAT_REOPENED: "chat_reopened",
}


def _subject(payload: dict[str, Any]) -> str:
    return payload.get("job_title") or "your conversation"


def format_event(event_type: str, payload: dict[str, Any]) -> tuple[str, str]:
    """Return (title, message) shown to the recipient."""
    if event_type == EVENT_NEW_MESSAGE:
        sender = payload.get("sender_name") or "Someone"
        if payload.get("job_title"):
            return "New Message", f'{sender} sent you a message about "{payload["job_title"]}"'
        return "New Message", f"{sender} sent you a message"
    if event_type == EVENT_CHAT_CLOSED:
        return "Chat Closed", f'The chat for "{_subject(payload)}" has been closed by the employer'
    if event_type == EVENT_CHAT_REOPENED:
        return "Chat Reopened", f'The chat for "{_subject(payload)}" has been reopened by the employer'
    raise ValueError(f"Unknown notification event: {event_type}")


def emit(db: Session, event_type: str, payload: dict[str, Any]):
    """Persist a notification for payload["recipient_id"]."""
    if event_type not in _NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification event: {event_type}")
    title, message = format_event(event_type, payload)
    notification = notification_repo.create(
        db,
        user_id=payload["recipient_id"],
        type=_NOTIFICATION_TYPES[event_type],
        title=title,
        message=message,
        related_id=payload.get("conversation_id"),
        data=payload,
    )
    logger.debug("Notification %s (%s) stored for user=%s", notification.id, event_type, payload["recipient_id"])
    return notification
