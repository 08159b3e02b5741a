import logging
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import ConflictError
from app.core.security import generate_id
from app.models.conversation import (
    Conversation,
    ChatMessage,
    CHAT_TYPE_DIRECT,
    CHAT_TYPE_JOB,
    compute_conversation_key,
)
from app.models.user import ROLE_EMPLOYER, ROLE_JOB_SEEKER

logger = logging.getLogger(__name__)

UNREAD_COLUMNS = {
    ROLE_EMPLOYER: Conversation.unread_employer,
    ROLE_JOB_SEEKER: Conversation.unread_job_seeker,
}


def get_by_id(db: Session, conversation_id: str) -> Conversation | None:
    return db.query(Conversation).filter(Conversation.id == conversation_id).first()


def get_by_key(db: Session, scope_key: str) -> Conversation | None:
    return db.query(Conversation).filter(Conversation.scope_key == scope_key).first()


def _get_or_create(db: Session, scope_key: str, **fields) -> tuple[Conversation, bool]:
    """
    Find-or-create on the unique scope_key. A concurrent insert of the same key
    surfaces as IntegrityError, a dropped connection as OperationalError; either
    way roll back and look again, a bounded number of times.
    """
    attempts = max(settings.find_or_create_max_retries, 1)
    for attempt in range(1, attempts + 1):
        try:
            existing = get_by_key(db, scope_key)
            if existing:
                return existing, False
            conversation = Conversation(id=generate_id(), scope_key=scope_key, **fields)
            db.add(conversation)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("Conversation %s created concurrently (attempt %d/%d); re-reading", scope_key, attempt, attempts)
            continue
        except OperationalError:
            db.rollback()
            logger.warning("Storage error resolving conversation %s (attempt %d/%d)", scope_key, attempt, attempts)
            continue
        db.refresh(conversation)
        return conversation, True
    logger.warning("Find-or-create exhausted %d attempts for %s", attempts, scope_key)
    raise ConflictError()


def find_job_conversation(db: Session, job_id: str, employer_id: str, job_seeker_id: str) -> Conversation | None:
    return get_by_key(db, compute_conversation_key(employer_id, job_seeker_id, job_id))


def find_direct_conversation(db: Session, employer_id: str, job_seeker_id: str) -> Conversation | None:
    return get_by_key(db, compute_conversation_key(employer_id, job_seeker_id))


def get_or_create_job_conversation(
    db: Session, job_id: str, employer_id: str, job_seeker_id: str
) -> tuple[Conversation, bool]:
    return _get_or_create(
        db,
        compute_conversation_key(employer_id, job_seeker_id, job_id),
        chat_type=CHAT_TYPE_JOB,
        job_id=job_id,
        employer_id=employer_id,
        job_seeker_id=job_seeker_id,
        last_message="",
        message_count=0,
        unread_employer=0,
        unread_job_seeker=0,
        accepted_by_employer=False,
        closed_by_employer=False,
        is_permanent=False,
    )


def get_or_create_direct_conversation(
    db: Session, employer_id: str, job_seeker_id: str
) -> tuple[Conversation, bool]:
    return _get_or_create(
        db,
        compute_conversation_key(employer_id, job_seeker_id),
        chat_type=CHAT_TYPE_DIRECT,
        job_id=None,
        employer_id=employer_id,
        job_seeker_id=job_seeker_id,
        last_message="",
        message_count=0,
        unread_employer=0,
        unread_job_seeker=0,
        accepted_by_employer=True,
        accepted_at=datetime.now(timezone.utc),
        closed_by_employer=False,
        is_permanent=True,
    )


def append_message(
    db: Session,
    conversation: Conversation,
    sender_id: str,
    sender_role: str,
    text: str,
    recipient_slot: str,
) -> ChatMessage:
    """
    Append one message. Position, last-message cache and the recipient's unread
    counter move in a single UPDATE so concurrent senders never lose an increment.
    """
    now = datetime.now(timezone.utc)
    unread_col = UNREAD_COLUMNS[recipient_slot]
    db.query(Conversation).filter(Conversation.id == conversation.id).update(
        {
            Conversation.message_count: Conversation.message_count + 1,
            unread_col: unread_col + 1,
            Conversation.last_message: text,
            Conversation.last_message_time: now,
        },
        synchronize_session=False,
    )
    position = (
        db.query(Conversation.message_count)
        .filter(Conversation.id == conversation.id)
        .scalar()
    )
    message = ChatMessage(
        id=generate_id(),
        conversation_id=conversation.id,
        position=position,
        sender_id=sender_id,
        sender_role=sender_role,
        text=text,
        timestamp=now,
        read=False,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    db.refresh(conversation)
    return message


def mark_read(db: Session, conversation: Conversation, reader_id: str, reader_slot: str) -> int:
    """Flip read on messages from the other party and zero the reader's counter. Returns messages flipped."""
    flipped = (
        db.query(ChatMessage)
        .filter(
            ChatMessage.conversation_id == conversation.id,
            ChatMessage.sender_id != reader_id,
            ChatMessage.read == False,  # noqa: E712
        )
        .update({ChatMessage.read: True}, synchronize_session=False)
    )
    db.query(Conversation).filter(Conversation.id == conversation.id).update(
        {UNREAD_COLUMNS[reader_slot]: 0},
        synchronize_session=False,
    )
    db.commit()
    db.refresh(conversation)
    return flipped or 0


def set_accepted(db: Session, conversation: Conversation, accepted: bool = True) -> Conversation:
    conversation.accepted_by_employer = accepted
    conversation.accepted_at = datetime.now(timezone.utc) if accepted else None
    db.commit()
    db.refresh(conversation)
    return conversation


def set_closed(db: Session, conversation: Conversation, closed: bool) -> Conversation:
    conversation.closed_by_employer = closed
    conversation.closed_at = datetime.now(timezone.utc) if closed else None
    db.commit()
    db.refresh(conversation)
    return conversation


def delete(db: Session, conversation: Conversation) -> None:
    db.delete(conversation)
    db.commit()


def get_messages(db: Session, conversation_id: str) -> list[ChatMessage]:
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.conversation_id == conversation_id)
        .order_by(ChatMessage.position.asc())
        .all()
    )


def get_for_user(db: Session, user_id: str, chat_type: str | None = None) -> list[Conversation]:
    """Conversations where the user holds either slot, most recent activity first."""
    q = db.query(Conversation).filter(
        or_(Conversation.employer_id == user_id, Conversation.job_seeker_id == user_id)
    )
    if chat_type == CHAT_TYPE_DIRECT:
        q = q.filter(Conversation.chat_type == CHAT_TYPE_DIRECT)
    elif chat_type == CHAT_TYPE_JOB:
        q = q.filter(or_(Conversation.chat_type == CHAT_TYPE_JOB, Conversation.chat_type.is_(None)))
    return q.order_by(Conversation.last_message_time.desc()).all()


def get_for_job(db: Session, job_id: str, employer_id: str) -> list[Conversation]:
    return (
        db.query(Conversation)
        .filter(Conversation.job_id == job_id, Conversation.employer_id == employer_id)
        .order_by(Conversation.last_message_time.desc())
        .all()
    )


def recipient_slot_for(conversation: Conversation, sender_id: str) -> str:
    return ROLE_JOB_SEEKER if conversation.slot_of(sender_id) == ROLE_EMPLOYER else ROLE_EMPLOYER
