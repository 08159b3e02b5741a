from dataclasses import dataclass

from sqlalchemy import Column, String, Text, Boolean, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base
from app.models.user import ROLE_EMPLOYER, ROLE_JOB_SEEKER

CHAT_TYPE_JOB = "job"
CHAT_TYPE_DIRECT = "direct"


def compute_conversation_key(employer_id: str, job_seeker_id: str, job_id: str | None = None) -> str:
    """Deterministic uniqueness key: one job chat per (job, employer, seeker), one direct chat per pair."""
    if job_id is None:
        return f"direct|{employer_id}|{job_seeker_id}"
    return f"job|{job_id}|{employer_id}|{job_seeker_id}"


@dataclass(frozen=True)
class ChatState:
    """The two independent employer flags of a job chat, read together."""

    accepted: bool
    closed: bool

    @property
    def phase(self) -> str:
        if self.closed:
            return "closed" if self.accepted else "closed_pending"
        return "accepted" if self.accepted else "pending"


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True, index=True)
    scope_key = Column(String, unique=True, nullable=False, index=True)
    chat_type = Column(String, nullable=False, default=CHAT_TYPE_JOB)
    job_id = Column(String, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True)
    employer_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    job_seeker_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    last_message = Column(Text, nullable=False, default="")
    last_message_time = Column(DateTime(timezone=True), server_default=func.now())
    message_count = Column(Integer, nullable=False, default=0)
    unread_employer = Column(Integer, nullable=False, default=0)
    unread_job_seeker = Column(Integer, nullable=False, default=0)
    accepted_by_employer = Column(Boolean, nullable=False, default=False)
    accepted_at = Column(DateTime(timezone=True))
    closed_by_employer = Column(Boolean, nullable=False, default=False)
    closed_at = Column(DateTime(timezone=True))
    is_permanent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    job = relationship("Job")
    employer = relationship("User", foreign_keys=[employer_id])
    job_seeker = relationship("User", foreign_keys=[job_seeker_id])
    messages = relationship(
        "ChatMessage",
        back_populates="conversation",
        order_by="ChatMessage.position",
        cascade="all, delete-orphan",
    )

    @property
    def is_direct(self) -> bool:
        return (self.chat_type or CHAT_TYPE_JOB) == CHAT_TYPE_DIRECT or bool(self.is_permanent)

    @property
    def state(self) -> ChatState:
        return ChatState(accepted=bool(self.accepted_by_employer), closed=bool(self.closed_by_employer))

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.employer_id, self.job_seeker_id)

    def slot_of(self, user_id: str) -> str | None:
        """Participant slot (employer/jobSeeker) a user occupies, independent of their account role."""
        if user_id == self.employer_id:
            return ROLE_EMPLOYER
        if user_id == self.job_seeker_id:
            return ROLE_JOB_SEEKER
        return None

    def other_participant(self, user_id: str) -> str:
        return self.job_seeker_id if user_id == self.employer_id else self.employer_id

    def unread_for(self, user_id: str) -> int:
        slot = self.slot_of(user_id)
        if slot == ROLE_EMPLOYER:
            return self.unread_employer or 0
        if slot == ROLE_JOB_SEEKER:
            return self.unread_job_seeker or 0
        return 0


class ChatMessage(Base):
    """One message in a conversation. Append-only; only `read` ever changes."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        UniqueConstraint("conversation_id", "position", name="uq_chat_messages_position"),
    )

    id = Column(String, primary_key=True, index=True)
    conversation_id = Column(String, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    sender_id = Column(String, nullable=False)
    sender_role = Column(String, nullable=False)
    text = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now())
    read = Column(Boolean, nullable=False, default=False)

    conversation = relationship("Conversation", back_populates="messages")
