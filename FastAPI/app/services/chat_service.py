"""
Conversation lifecycle: opening job and direct chats, sending and reading
messages, employer accept/close/reopen, deletion.

Every mutation commits before any notification is emitted. Notifications
are advisory: a failure to emit is logged and never undoes or fails the
operation that triggered it.

Job chat:    pending --accept--> accepted <--close/reopen--> closed
Direct chat: created accepted and permanent; cannot be accepted, closed or reopened.
"""
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import (
    AlreadyAcceptedError,
    AlreadyClosedError,
    EmptyMessageError,
    InvalidInputError,
    InvalidStateError,
    MessageTooLongError,
    NotAParticipantError,
    NotAuthorizedError,
    NotClosedError,
    NotFoundError,
)
from app.models.conversation import Conversation, ChatMessage
from app.models.user import ROLE_EMPLOYER, normalize_role
from app.repos import application_repo, connection_repo, conversation_repo, job_repo, user_repo
from app.services.gating import can_create_conversation, can_message, ensure_allowed
from app.services.notification_service import (
    EVENT_CHAT_CLOSED,
    EVENT_CHAT_REOPENED,
    EVENT_NEW_MESSAGE,
    emit as emit_notification,
)

logger = logging.getLogger(__name__)


def canonical_participants(user_a: str, role_a: str, user_b: str, role_b: str) -> tuple[str, str]:
    """
    Map two users onto (employer_id, job_seeker_id) slots for a direct chat.

    Mixed-role pairs go to their own slots. Same-role pairs are ordered by
    comparing the ids as strings: the smaller id takes the employer slot.
    The result does not depend on argument order, so either user resolves
    to the same conversation.
    """
    role_a, role_b = normalize_role(role_a), normalize_role(role_b)
    if role_a != role_b:
        return (user_a, user_b) if role_a == ROLE_EMPLOYER else (user_b, user_a)
    first, second = sorted((str(user_a), str(user_b)))
    return first, second


def _get_for_participant(db: Session, conversation_id: str, user_id: str) -> Conversation:
    conversation = conversation_repo.get_by_id(db, conversation_id)
    if not conversation:
        raise NotFoundError("Chat not found")
    if not conversation.has_participant(user_id):
        raise NotAParticipantError()
    return conversation


def _get_for_employer(db: Session, conversation_id: str, employer_id: str, action: str) -> Conversation:
    conversation = conversation_repo.get_by_id(db, conversation_id)
    if not conversation:
        raise NotFoundError("Chat not found")
    if conversation.employer_id != employer_id:
        raise NotAuthorizedError(f"Only the employer of this chat can {action} it")
    if conversation.is_direct:
        raise InvalidStateError("Direct conversations are permanent; this action only applies to job chats")
    return conversation


def _event_payload(db: Session, conversation: Conversation, recipient_id: str, sender_id: str | None = None) -> dict[str, Any]:
    job = job_repo.get_by_id(db, conversation.job_id) if conversation.job_id else None
    payload = {
        "conversation_id": conversation.id,
        "chat_type": conversation.chat_type,
        "recipient_id": recipient_id,
        "job_id": conversation.job_id,
        "job_title": job.title if job else None,
    }
    if sender_id is not None:
        sender = user_repo.get_by_id(db, sender_id)
        payload["sender_id"] = sender_id
        payload["sender_name"] = sender.full_name if sender else None
    return payload


def _notify(db: Session, event_type: str, conversation: Conversation, recipient_id: str, sender_id: str | None = None) -> None:
    try:
        payload = _event_payload(db, conversation, recipient_id, sender_id)
        emit_notification(db, event_type, payload)
    except Exception as e:
        logger.exception("Notification %s for chat=%s failed: %s", event_type, conversation.id, e)
        db.rollback()


# Create-or-fetch

def open_job_conversation(
    db: Session,
    job_id: str,
    user_id: str,
    user_role: str,
    job_seeker_id: str | None = None,
) -> tuple[Conversation, bool]:
    """
    Get or create the chat for (job, employer, job seeker).
    Job seekers open it for themselves; employers must name the job seeker and own the job.
    """
    job = job_repo.get_by_id(db, job_id)
    if not job:
        raise NotFoundError("Job not found")

    role = normalize_role(user_role)
    if role == ROLE_EMPLOYER:
        if not job_seeker_id:
            raise InvalidInputError("Job seeker ID required")
        if job.employer_id != user_id:
            raise NotAuthorizedError("You can only open chats for your own jobs")
        if not user_repo.get_by_id(db, job_seeker_id):
            raise NotFoundError("User not found")
        employer_id = user_id
    else:
        employer_id = job.employer_id
        job_seeker_id = user_id
    if employer_id == job_seeker_id:
        raise InvalidInputError("Cannot start a conversation with yourself")

    existing = conversation_repo.find_job_conversation(db, job_id, employer_id, job_seeker_id)
    if existing:
        return existing, False

    job_state = job_repo.get_job_state(db, job_id)
    ensure_allowed(can_create_conversation(role, job_state, connection_exists=False, requires_connection=False))
    conversation, created = conversation_repo.get_or_create_job_conversation(db, job_id, employer_id, job_seeker_id)
    if created:
        logger.info("Job chat %s created: job=%s employer=%s seeker=%s", conversation.id, job_id, employer_id, job_seeker_id)
    return conversation, created


def open_direct_conversation(db: Session, user_id: str, user_role: str, other_user_id: str) -> tuple[Conversation, bool]:
    """Get or create the permanent chat between two connected users."""
    if user_id == other_user_id:
        raise InvalidInputError("Cannot start a conversation with yourself")
    other = user_repo.get_by_id(db, other_user_id)
    if not other:
        raise NotFoundError("User not found")

    employer_id, job_seeker_id = canonical_participants(user_id, user_role, other.id, other.role)
    existing = conversation_repo.find_direct_conversation(db, employer_id, job_seeker_id)
    if existing:
        return existing, False

    connected = connection_repo.is_connected(db, user_id, other_user_id)
    ensure_allowed(can_create_conversation(user_role, None, connection_exists=connected, requires_connection=True))
    conversation, created = conversation_repo.get_or_create_direct_conversation(db, employer_id, job_seeker_id)
    if created:
        logger.info("Direct chat %s created between %s and %s", conversation.id, employer_id, job_seeker_id)
    return conversation, created


# Reads

def get_conversation(db: Session, conversation_id: str, user_id: str) -> Conversation:
    return _get_for_participant(db, conversation_id, user_id)


def list_conversations(db: Session, user_id: str, chat_type: str | None = None) -> list[Conversation]:
    return conversation_repo.get_for_user(db, user_id, chat_type=chat_type)


def list_job_conversations(db: Session, job_id: str, employer_id: str) -> list[Conversation]:
    job = job_repo.get_by_id(db, job_id)
    if not job:
        raise NotFoundError("Job not found")
    if job.employer_id != employer_id:
        raise NotAuthorizedError("Unauthorized")
    return conversation_repo.get_for_job(db, job_id, employer_id)


# Messaging

def append_message(
    db: Session,
    conversation_id: str,
    sender_id: str,
    sender_role: str,
    text: str | None,
) -> tuple[Conversation, ChatMessage]:
    """
    Append a message after validation and gating, bump the recipient's unread
    counter by one and notify the recipient.
    """
    text = (text or "").strip()
    if not text:
        raise EmptyMessageError()
    if len(text) > settings.chat_message_max_length:
        raise MessageTooLongError(f"Message cannot exceed {settings.chat_message_max_length} characters")

    conversation = _get_for_participant(db, conversation_id, sender_id)
    job_state = None if conversation.is_direct else job_repo.get_job_state(db, conversation.job_id)
    ensure_allowed(can_message(conversation, job_state))

    recipient_slot = conversation_repo.recipient_slot_for(conversation, sender_id)
    message = conversation_repo.append_message(
        db,
        conversation,
        sender_id=sender_id,
        sender_role=normalize_role(sender_role),
        text=text,
        recipient_slot=recipient_slot,
    )
    logger.info("Message %s appended to chat=%s by %s", message.id, conversation.id, sender_id)

    _notify(db, EVENT_NEW_MESSAGE, conversation, conversation.other_participant(sender_id), sender_id=sender_id)
    return conversation, message


def mark_read(db: Session, conversation_id: str, reader_id: str) -> int:
    conversation = _get_for_participant(db, conversation_id, reader_id)
    flipped = conversation_repo.mark_read(db, conversation, reader_id, conversation.slot_of(reader_id))
    logger.debug("Chat %s marked read by %s (%d messages)", conversation_id, reader_id, flipped)
    return flipped


# Employer transitions

def accept_chat(db: Session, conversation_id: str, employer_id: str) -> Conversation:
    """Accept a job seeker's chat request and make sure an application exists for the job."""
    conversation = _get_for_employer(db, conversation_id, employer_id, "accept")
    if conversation.accepted_by_employer:
        raise AlreadyAcceptedError("Chat request already accepted")
    conversation = conversation_repo.set_accepted(db, conversation)
    logger.info("Chat %s accepted by employer %s", conversation.id, employer_id)

    if conversation.job_id:
        application, created = application_repo.create_if_absent(
            db,
            job_id=conversation.job_id,
            applicant_id=conversation.job_seeker_id,
            employer_id=conversation.employer_id,
        )
        if created:
            logger.info("Application %s created from chat %s", application.id, conversation.id)
    return conversation


def close_chat(db: Session, conversation_id: str, employer_id: str) -> Conversation:
    conversation = _get_for_employer(db, conversation_id, employer_id, "close")
    if conversation.closed_by_employer:
        raise AlreadyClosedError()
    conversation = conversation_repo.set_closed(db, conversation, True)
    logger.info("Chat %s closed by employer %s", conversation.id, employer_id)
    _notify(db, EVENT_CHAT_CLOSED, conversation, conversation.job_seeker_id)
    return conversation


def reopen_chat(db: Session, conversation_id: str, employer_id: str) -> Conversation:
    conversation = _get_for_employer(db, conversation_id, employer_id, "reopen")
    if not conversation.closed_by_employer:
        raise NotClosedError()
    conversation = conversation_repo.set_closed(db, conversation, False)
    logger.info("Chat %s reopened by employer %s", conversation.id, employer_id)
    _notify(db, EVENT_CHAT_REOPENED, conversation, conversation.job_seeker_id)
    return conversation


def delete_conversation(db: Session, conversation_id: str, requester_id: str) -> None:
    conversation = conversation_repo.get_by_id(db, conversation_id)
    if not conversation:
        raise NotFoundError("Chat not found")
    if not conversation.has_participant(requester_id):
        raise NotAuthorizedError("Unauthorized")
    conversation_repo.delete(db, conversation)
    logger.info("Chat %s deleted by %s", conversation_id, requester_id)
