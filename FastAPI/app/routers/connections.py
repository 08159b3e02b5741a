import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.core.errors import DomainError, to_http_exception
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.connection import (
    ConnectionEnvelope,
    ConnectionList,
    ConnectionRequestCreate,
    ConnectionResult,
    ConnectionStatusResult,
    JobSeekerList,
)
from app.services import connection_service
from app.services.connection_service import DECISION_ACCEPT, DECISION_REJECT

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("", response_model=ConnectionList)
def list_connections(
    search: str | None = None,
    role: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        return connection_service.list_connections(db, user.id, search=search, role=role, page=page, limit=limit)
    except Exception as e:
        logger.exception("List connections failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch connections") from e


@router.get("/pending", response_model=list[ConnectionResult])
def list_pending(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Requests waiting for this user's answer."""
    try:
        return connection_service.list_pending_requests(db, user.id)
    except Exception as e:
        logger.exception("List pending connections failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch requests") from e


@router.get("/sent", response_model=list[ConnectionResult])
def list_sent(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        return connection_service.list_sent_requests(db, user.id)
    except Exception as e:
        logger.exception("List sent connections failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch requests") from e


@router.get("/job-seekers", response_model=JobSeekerList)
def browse_job_seekers(
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Employers only: job seekers with the connection status of each pair."""
    try:
        return connection_service.browse_job_seekers(
            db, user.id, user.normalized_role, search=search, page=page, limit=limit
        )
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Browse job seekers failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch job seekers") from e


@router.get("/status/{other_user_id}", response_model=ConnectionStatusResult)
def connection_status(
    other_user_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        return connection_service.get_connection_status(db, user.id, other_user_id)
    except Exception as e:
        logger.exception("Connection status failed user=%s other=%s: %s", user.id, other_user_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch status") from e


@router.post("/request", response_model=ConnectionEnvelope)
def send_request(
    data: ConnectionRequestCreate,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        connection, created = connection_service.request_connection(db, user.id, data.receiver_id, data.message)
        if created:
            response.status_code = status.HTTP_201_CREATED
            return ConnectionEnvelope(message="Connection request sent", connection=ConnectionResult.model_validate(connection))
        return ConnectionEnvelope(message="Connection request resent", connection=ConnectionResult.model_validate(connection))
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Connection request failed %s -> %s: %s", user.id, data.receiver_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to send request") from e


def _respond(db: Session, connection_id: str, user: User, decision: str, done_message: str) -> ConnectionEnvelope:
    try:
        connection = connection_service.respond_to_connection(db, connection_id, user.id, decision)
        return ConnectionEnvelope(message=done_message, connection=ConnectionResult.model_validate(connection))
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Connection %s failed for id=%s user=%s: %s", decision, connection_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {decision} request") from e


@router.put("/{connection_id}/accept", response_model=ConnectionEnvelope)
def accept_request(
    connection_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _respond(db, connection_id, user, DECISION_ACCEPT, "Connection request accepted")


@router.put("/{connection_id}/reject", response_model=ConnectionEnvelope)
def reject_request(
    connection_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _respond(db, connection_id, user, DECISION_REJECT, "Connection request rejected")


@router.delete("/{connection_id}/cancel")
def cancel_request(
    connection_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        connection_service.cancel_connection(db, connection_id, user.id)
        return {"message": "Connection request cancelled"}
    except DomainError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception("Cancel connection failed id=%s user=%s: %s", connection_id, user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to cancel request") from e
