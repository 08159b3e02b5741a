import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.core.errors import DomainError, to_http_exception
from app.database import get_db
from app.dependencies import get_current_user
from app.models.conversation import Conversation, ChatMessage
from app.models.user import User
from app.repos import conversation_repo, job_repo, user_repo
from app.schemas.chat import (
    ConversationEnvelope,
    ConversationResult,
    MarkReadResult,
    MessageCreate,
    MessageResult,
    UnreadCount,
)
from app.services import chat_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chats", tags=["chats"])


def _message_to_result(m: ChatMessage) -> MessageResult:
    return MessageResult(
        id=m.id,
        position=m.position,
        sender_id=m.sender_id,
        sender_role=m.sender_role,
        text=m.text,
        timestamp=m.timestamp,
        read=bool(m.read),
    )


def _chat_to_result(
    c: Conversation,
    viewer_id: str,
    users: dict[str, User],
    titles: dict[str, str],
    messages: list[ChatMessage] | None = None,
) -> ConversationResult:
    other_id = c.other_participant(viewer_id)
    other = users.get(other_id)
    return ConversationResult(
        id=c.id,
        chat_type=c.chat_type,
        job_id=c.job_id,
        job_title=titles.get(c.job_id) if c.job_id else None,
        employer_id=c.employer_id,
        job_seeker_id=c.job_seeker_id,
        other_user_id=other_id,
        other_user_name=other.full_name if other else None,
        last_message=c.last_message or "",
        last_message_time=c.last_message_time,
        unread_count=UnreadCount(employer=c.unread_employer or 0, job_seeker=c.unread_job_seeker or 0),
        my_unread=c.unread_for(viewer_id),
        accepted_by_employer=bool(c.accepted_by_employer),
        accepted_at=c.accepted_at,
        closed_by_employer=bool(c.closed_by_employer),
        closed_at=c.closed_at,
        is_permanent=bool(c.is_permanent),
        phase=c.state.phase,
        messages=[_message_to_result(m) for m in messages] if messages is not None else None,
    )


def _chats_to_results(db: Session, chats: list[Conversation], viewer_id: str) -> list[ConversationResult]:
    users = user_repo.get_many(db, [c.other_participant(viewer_id) for c in chats])
    titles = job_repo.get_titles(db, [c.job_id for c in chats])
    return [_chat_to_result(c, viewer_id, users, titles) for c in chats]


def _one_chat(db: Session, c: Conversation, viewer_id: str, with_messages: bool = False) -> ConversationResult:
    users = user_repo.get_many(db, [c.other_participant(viewer_id)])
    titles = job_repo.get_titles(db, [c.job_id])
    messages = conversation_repo.get_messages(db, c.id) if with_messages else None
    return _chat_to_result(c, viewer_id, users, titles, messages)


@router.get("", response_model=list[ConversationResult])
def list_chats(
    chat_type: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """All chats the user takes part in, most recent activity first. chat_type: job or direct."""
    try:
        chats = chat_service.list_conversations(db, user.id, chat_type=chat_type)
        logger.debug("GET /chats user=%s chat_type=%s count=%d", user.id, chat_type, len(chats))
        return _chats_to_results(db, chats, user.id)
    except Exception as e:
        logger.exception("List chats failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch chats") from e


@router.get("/job/{job_id}/all", response_model=list[ConversationResult])
def list_job_chats(
    job_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Every chat for one job. Employer who owns the job only."""
    try:
        chats = chat_service.list_job_conversations(db, job_id, user.id)
        return _chats_to_results(db, chats, user.id)
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("List job chats failed for job=%s user=%s: %s", job_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch chats") from e


@router.get("/job/{job_id}", response_model=ConversationResult)
def get_or_create_job_chat(
    job_id: str,
    response: Response,
    job_seeker_id: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Fetch the chat for this job, creating it on first contact. Employers pass job_seeker_id."""
    try:
        chat, created = chat_service.open_job_conversation(
            db, job_id, user.id, user.normalized_role, job_seeker_id=job_seeker_id
        )
        if created:
            response.status_code = status.HTTP_201_CREATED
        return _one_chat(db, chat, user.id, with_messages=True)
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Open job chat failed for job=%s user=%s: %s", job_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to open chat") from e


@router.post("/direct/{other_user_id}", response_model=ConversationResult)
def get_or_create_direct_chat(
    other_user_id: str,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Fetch or create the permanent chat with a connected user."""
    try:
        chat, created = chat_service.open_direct_conversation(db, user.id, user.normalized_role, other_user_id)
        if created:
            response.status_code = status.HTTP_201_CREATED
        return _one_chat(db, chat, user.id, with_messages=True)
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Open direct chat failed user=%s other=%s: %s", user.id, other_user_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to open chat") from e


@router.get("/{chat_id}", response_model=ConversationResult)
def get_chat(
    chat_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        chat = chat_service.get_conversation(db, chat_id, user.id)
        return _one_chat(db, chat, user.id, with_messages=True)
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Get chat failed chat=%s user=%s: %s", chat_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch chat") from e


@router.post("/{chat_id}/message", response_model=MessageResult, status_code=status.HTTP_201_CREATED)
def send_message(
    chat_id: str,
    data: MessageCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        _, message = chat_service.append_message(db, chat_id, user.id, user.normalized_role, data.message)
        return _message_to_result(message)
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Send message failed chat=%s user=%s: %s", chat_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send message") from e


@router.put("/{chat_id}/read", response_model=MarkReadResult)
def mark_chat_read(
    chat_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        marked = chat_service.mark_read(db, chat_id, user.id)
        return MarkReadResult(marked=marked)
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Mark read failed chat=%s user=%s: %s", chat_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to mark messages as read") from e


@router.post("/{chat_id}/accept", response_model=ConversationEnvelope)
def accept_chat(
    chat_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        chat = chat_service.accept_chat(db, chat_id, user.id)
        return ConversationEnvelope(message="Chat request accepted", chat=_one_chat(db, chat, user.id))
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Accept chat failed chat=%s user=%s: %s", chat_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to accept chat") from e


@router.post("/{chat_id}/close", response_model=ConversationEnvelope)
def close_chat(
    chat_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        chat = chat_service.close_chat(db, chat_id, user.id)
        return ConversationEnvelope(message="Chat closed successfully", chat=_one_chat(db, chat, user.id))
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Close chat failed chat=%s user=%s: %s", chat_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to close chat") from e


@router.post("/{chat_id}/reopen", response_model=ConversationEnvelope)
def reopen_chat(
    chat_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        chat = chat_service.reopen_chat(db, chat_id, user.id)
        return ConversationEnvelope(message="Chat reopened successfully", chat=_one_chat(db, chat, user.id))
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Reopen chat failed chat=%s user=%s: %s", chat_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to reopen chat") from e


@router.delete("/{chat_id}")
def delete_chat(
    chat_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        chat_service.delete_conversation(db, chat_id, user.id)
        return {"message": "Chat deleted"}
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Delete chat failed chat=%s user=%s: %s", chat_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete chat") from e
