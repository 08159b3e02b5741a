from datetime import datetime

from pydantic import BaseModel, Field


class MessageCreate(BaseModel):
    message: str = Field(max_length=20000)


class MessageResult(BaseModel):
    id: str
    position: int
    sender_id: str
    sender_role: str
    text: str
    timestamp: datetime | None = None
    read: bool = False


class UnreadCount(BaseModel):
    employer: int = 0
    job_seeker: int = 0


class ConversationResult(BaseModel):
    id: str
    chat_type: str
    job_id: str | None
    job_title: str | None = None
    employer_id: str
    job_seeker_id: str
    other_user_id: str
    other_user_name: str | None = None
    last_message: str
    last_message_time: datetime | None = None
    unread_count: UnreadCount
    my_unread: int = 0
    accepted_by_employer: bool
    accepted_at: datetime | None = None
    closed_by_employer: bool
    closed_at: datetime | None = None
    is_permanent: bool
    phase: str  # pending | accepted | closed | closed_pending
    messages: list[MessageResult] | None = None


class ConversationEnvelope(BaseModel):
    message: str | None = None
    chat: ConversationResult


class MarkReadResult(BaseModel):
    message: str = "Messages marked as read"
    marked: int
