import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.core.security import decode_access_token
from app.models.user import ROLE_EMPLOYER, User
from app.repos.user_repo import get_by_id

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    """Resolve the bearer token to an active user. Every chat and connection route runs behind this."""
    if not credentials:
        logger.info("Auth failed: missing bearer credentials")
        raise _unauthorized("Not authenticated")
    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        logger.info("Auth failed: invalid or expired token")
        raise _unauthorized("Invalid or expired token")
    user = get_by_id(db, user_id)
    if not user:
        logger.info("Auth failed: token subject %s no longer exists", user_id)
        raise _unauthorized("User not found")
    if not user.is_active:
        logger.info("Auth failed: account %s is disabled", user_id)
        raise _unauthorized("Account is disabled")
    return user


def get_current_employer(user=Depends(get_current_user)):
    """Employer-only routes: job management, job chat lists, job seeker browsing."""
    if user.normalized_role != ROLE_EMPLOYER:
        logger.info("User %s (%s) denied employer-only route", user.id, user.normalized_role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Employer access required",
        )
    return user
