from app.models.user import User
from app.models.job import Job
from app.models.application import Application
from app.models.connection import ConnectionRequest
from app.models.conversation import Conversation, ChatMessage
from app.models.notification import Notification

__all__ = [
    "User",
    "Job",
    "Application",
    "ConnectionRequest",
    "Conversation",
    "ChatMessage",
    "Notification",
]
