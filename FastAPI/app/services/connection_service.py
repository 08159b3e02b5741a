"""
Connection requests between users: send, respond, cancel, and the read
views (accepted connections, pending/sent requests, pair status).

A pair of users has at most one request row regardless of direction. A
rejected row is reused when either party asks again, so its id survives a
resend. Connection events do not notify anyone.
"""
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.errors import (
    AlreadyAcceptedError,
    AlreadyConnectedError,
    InvalidInputError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
    RequestAlreadyPendingError,
    SelfConnectionError,
)
from app.models.connection import (
    ConnectionRequest,
    CONNECTION_ACCEPTED,
    CONNECTION_PENDING,
    CONNECTION_REJECTED,
)
from app.models.user import ROLE_EMPLOYER, normalize_role
from app.repos import connection_repo, user_repo

logger = logging.getLogger(__name__)

DECISION_ACCEPT = "accept"
DECISION_REJECT = "reject"


def _check_existing(existing: ConnectionRequest) -> None:
    if existing.status == CONNECTION_ACCEPTED:
        raise AlreadyConnectedError()
    if existing.status == CONNECTION_PENDING:
        raise RequestAlreadyPendingError()


def request_connection(
    db: Session,
    sender_id: str,
    receiver_id: str,
    message: str | None = None,
) -> tuple[ConnectionRequest, bool]:
    """
    Send (or resend after rejection) a connection request.
    Returns (connection, created) where created is False for a resend.
    """
    if sender_id == receiver_id:
        raise SelfConnectionError()
    if message is not None:
        message = message.strip() or None
    if message and len(message) > settings.connection_message_max_length:
        raise InvalidInputError(
            f"Connection message cannot exceed {settings.connection_message_max_length} characters"
        )
    if not user_repo.get_by_id(db, receiver_id):
        raise NotFoundError("User not found")

    existing = connection_repo.get_between(db, sender_id, receiver_id)
    if existing:
        _check_existing(existing)
        # Only rejected rows reach here.
        connection = connection_repo.reset_to_pending(db, existing, sender_id, receiver_id, message)
        logger.info("Connection request resent: %s -> %s (id=%s)", sender_id, receiver_id, connection.id)
        return connection, False

    try:
        connection = connection_repo.create(db, sender_id, receiver_id, message)
    except IntegrityError as e:
        # Lost a race with the same pair (either direction); report what won.
        db.rollback()
        winner = connection_repo.get_between(db, sender_id, receiver_id)
        if winner is None:
            raise
        _check_existing(winner)
        raise RequestAlreadyPendingError() from e
    logger.info("Connection request sent: %s -> %s (id=%s)", sender_id, receiver_id, connection.id)
    return connection, True


def respond_to_connection(db: Session, connection_id: str, responder_id: str, decision: str) -> ConnectionRequest:
    if decision not in (DECISION_ACCEPT, DECISION_REJECT):
        raise InvalidInputError("Decision must be accept or reject")
    connection = connection_repo.get_by_id(db, connection_id)
    if not connection:
        raise NotFoundError("Connection request not found")
    if connection.receiver_id != responder_id:
        raise NotAuthorizedError(f"Not authorized to {decision} this request")
    if connection.status == CONNECTION_ACCEPTED:
        if decision == DECISION_ACCEPT:
            raise AlreadyAcceptedError("Connection already accepted")
        raise InvalidStateError("Cannot reject an accepted connection")
    if connection.status != CONNECTION_PENDING:
        raise InvalidStateError("Connection request is no longer pending")

    status = CONNECTION_ACCEPTED if decision == DECISION_ACCEPT else CONNECTION_REJECTED
    connection = connection_repo.set_status(db, connection, status)
    logger.info("Connection %s %s by %s", connection.id, status, responder_id)
    return connection


def cancel_connection(db: Session, connection_id: str, requester_id: str) -> None:
    connection = connection_repo.get_by_id(db, connection_id)
    if not connection:
        raise NotFoundError("Connection request not found")
    if connection.sender_id != requester_id:
        raise NotAuthorizedError("Not authorized to cancel this request")
    if connection.status != CONNECTION_PENDING:
        raise InvalidStateError("Can only cancel pending requests")
    connection_repo.delete(db, connection)
    logger.info("Connection request %s cancelled by %s", connection_id, requester_id)


def is_connected(db: Session, user_a: str, user_b: str) -> bool:
    return connection_repo.is_connected(db, user_a, user_b)


def get_connection_status(db: Session, user_id: str, other_user_id: str) -> dict[str, Any]:
    connection = connection_repo.get_between(db, user_id, other_user_id)
    if not connection:
        return {"status": "none", "can_send_request": True}
    return {
        "status": connection.status,
        "is_sender": connection.sender_id == user_id,
        "connection_id": connection.id,
        "can_send_request": connection.status == CONNECTION_REJECTED,
    }


def list_connections(
    db: Session,
    user_id: str,
    search: str | None = None,
    role: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict[str, Any]:
    """Accepted connections, each shown as the other party."""
    page = max(page, 1)
    connections = connection_repo.get_accepted_for_user(db, user_id, limit=limit, offset=(page - 1) * limit)
    others = user_repo.get_many(db, [c.other_party(user_id) for c in connections])
    wanted_role = normalize_role(role) if role else None
    term = (search or "").strip().lower()

    items = []
    for conn in connections:
        other = others.get(conn.other_party(user_id))
        if other is None:
            continue
        if term and term not in (other.full_name or "").lower():
            continue
        if wanted_role and normalize_role(other.role) != wanted_role:
            continue
        items.append(
            {
                "connection_id": conn.id,
                "user_id": other.id,
                "full_name": other.full_name,
                "email": other.email,
                "role": normalize_role(other.role),
                "connected_at": conn.responded_at,
                "status": conn.status,
            }
        )
    return {"connections": items, "page": page, "total": len(items)}


def list_pending_requests(db: Session, user_id: str) -> list[ConnectionRequest]:
    return connection_repo.get_pending_received(db, user_id)


def list_sent_requests(db: Session, user_id: str) -> list[ConnectionRequest]:
    return connection_repo.get_sent(db, user_id)


def browse_job_seekers(
    db: Session,
    employer_id: str,
    employer_role: str,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> dict[str, Any]:
    """Employer-only listing of job seekers annotated with the pair's connection status."""
    if normalize_role(employer_role) != ROLE_EMPLOYER:
        raise NotAuthorizedError("Only employers can view job seekers")
    page = max(page, 1)
    seekers, total = user_repo.list_job_seekers(db, employer_id, search=search, limit=limit, offset=(page - 1) * limit)
    by_other = connection_repo.get_for_pairs(db, employer_id, [s.id for s in seekers])
    items = []
    for seeker in seekers:
        conn = by_other.get(seeker.id)
        items.append(
            {
                "user_id": seeker.id,
                "full_name": seeker.full_name,
                "email": seeker.email,
                "connection_status": conn.status if conn else "none",
                "connection_id": conn.id if conn else None,
                "is_sender": bool(conn and conn.sender_id == employer_id),
            }
        )
    return {"job_seekers": items, "page": page, "total": total}
