from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from thesisguide.api.deps import get_current_user, get_db
from thesisguide.models.notification import NotificationType
from thesisguide.schemas.notification import NotificationOut
from thesisguide.schemas.scheduling import UserRecord
from thesisguide.services import notifications as notification_service
from thesisguide.services.audit import log_activity

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    notification_type: NotificationType | None = Query(default=None),
    is_read: bool | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    current_user: UserRecord = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    return notification_service.list_notifications(
        db,
        user_id=current_user.id,
        notification_type=notification_type,
        is_read=is_read,
        limit=limit,
        offset=offset,
    )


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(
    notification_id: str,
    current_user: UserRecord = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> NotificationOut:
    notification = notification_service.mark_read(db, user_id=current_user.id, notification_id=notification_id)
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    log_activity(
        db,
        actor_id=current_user.id,
        action="notification.read",
        entity_type="notification",
        entity_id=notification_id,
    )
    db.commit()
    db.refresh(notification)
    return notification
