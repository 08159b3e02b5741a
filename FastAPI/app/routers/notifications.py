import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.repos import notification_repo
from app.schemas.notification import NotificationList, NotificationResult

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationList)
def list_notifications(
    unread_only: bool = False,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        items = notification_repo.get_for_user(
            db, user.id, unread_only=unread_only, limit=settings.notifications_page_size
        )
        return NotificationList(
            notifications=[NotificationResult.model_validate(n) for n in items],
            unread_count=notification_repo.count_unread(db, user.id),
        )
    except Exception as e:
        logger.exception("List notifications failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch notifications") from e


@router.put("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    try:
        updated = notification_repo.mark_all_read(db, user.id)
        return {"message": "All notifications marked as read", "updated": updated}
    except Exception as e:
        logger.exception("Mark all notifications read failed for user=%s: %s", user.id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update notifications") from e


@router.put("/{notification_id}/read", response_model=NotificationResult)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    notification = notification_repo.mark_read(db, notification_id, user.id)
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not notification_repo.delete(db, notification_id, user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"message": "Notification deleted"}
