from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.security import generate_id
from app.models.connection import (
    ConnectionRequest,
    CONNECTION_ACCEPTED,
    CONNECTION_PENDING,
    compute_pair_key,
)


def get_by_id(db: Session, connection_id: str) -> ConnectionRequest | None:
    return db.query(ConnectionRequest).filter(ConnectionRequest.id == connection_id).first()


def get_between(db: Session, user_a: str, user_b: str) -> ConnectionRequest | None:
    """The single record for the pair, in either direction."""
    return (
        db.query(ConnectionRequest)
        .filter(
            or_(
                (ConnectionRequest.sender_id == user_a) & (ConnectionRequest.receiver_id == user_b),
                (ConnectionRequest.sender_id == user_b) & (ConnectionRequest.receiver_id == user_a),
            )
        )
        .first()
    )


def is_connected(db: Session, user_a: str, user_b: str) -> bool:
    return (
        db.query(ConnectionRequest.id)
        .filter(
            ConnectionRequest.pair_key == compute_pair_key(user_a, user_b),
            ConnectionRequest.status == CONNECTION_ACCEPTED,
        )
        .first()
        is not None
    )


def create(db: Session, sender_id: str, receiver_id: str, message: str | None = None) -> ConnectionRequest:
    """Insert a pending request. Raises IntegrityError if the pair already has a row."""
    connection = ConnectionRequest(
        id=generate_id(),
        sender_id=sender_id,
        receiver_id=receiver_id,
        pair_key=compute_pair_key(sender_id, receiver_id),
        status=CONNECTION_PENDING,
        message=message,
    )
    db.add(connection)
    db.commit()
    db.refresh(connection)
    return connection


def reset_to_pending(
    db: Session,
    connection: ConnectionRequest,
    sender_id: str,
    receiver_id: str,
    message: str | None,
) -> ConnectionRequest:
    """Reuse a rejected record as a fresh pending request from sender_id (record id unchanged)."""
    connection.sender_id = sender_id
    connection.receiver_id = receiver_id
    connection.status = CONNECTION_PENDING
    connection.message = message
    connection.responded_at = None
    db.commit()
    db.refresh(connection)
    return connection


def set_status(db: Session, connection: ConnectionRequest, status: str) -> ConnectionRequest:
    connection.status = status
    connection.responded_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(connection)
    return connection


def delete(db: Session, connection: ConnectionRequest) -> None:
    db.delete(connection)
    db.commit()


def get_accepted_for_user(
    db: Session,
    user_id: str,
    limit: int = 20,
    offset: int = 0,
) -> list[ConnectionRequest]:
    return (
        db.query(ConnectionRequest)
        .filter(
            or_(ConnectionRequest.sender_id == user_id, ConnectionRequest.receiver_id == user_id),
            ConnectionRequest.status == CONNECTION_ACCEPTED,
        )
        .order_by(ConnectionRequest.responded_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_pending_received(db: Session, user_id: str) -> list[ConnectionRequest]:
    return (
        db.query(ConnectionRequest)
        .filter(
            ConnectionRequest.receiver_id == user_id,
            ConnectionRequest.status == CONNECTION_PENDING,
        )
        .order_by(ConnectionRequest.created_at.desc())
        .all()
    )


def get_sent(db: Session, user_id: str) -> list[ConnectionRequest]:
    return (
        db.query(ConnectionRequest)
        .filter(ConnectionRequest.sender_id == user_id)
        .order_by(ConnectionRequest.created_at.desc())
        .all()
    )


def get_for_pairs(db: Session, user_id: str, other_ids: list[str]) -> dict[str, ConnectionRequest]:
    """Map other-user id -> connection record for every pair (user_id, other) that has one."""
    if not other_ids:
        return {}
    keys = {compute_pair_key(user_id, other): other for other in other_ids}
    rows = db.query(ConnectionRequest).filter(ConnectionRequest.pair_key.in_(list(keys))).all()
    return {keys[row.pair_key]: row for row in rows}
