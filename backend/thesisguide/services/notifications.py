from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from thesisguide.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None: ...


def create_notification(
    db: Session,
    *,
    user_id: str,
    title: str,
    message: str,
    notification_type: NotificationType,
    link: str | None = None,
) -> Notification:
    record = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        link=link,
    )
    db.add(record)
    db.flush()
    return record


class DatabaseNotifier:
    """Stores notifications in their own transaction, separate from the session write."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def notify(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None:
        with self._session_factory() as db:
            create_notification(
                db,
                user_id=user_id,
                title=title,
                message=message,
                notification_type=notification_type,
                link=link,
            )
            db.commit()
        logger.debug("Notification %s queued for user %s", notification_type.value, user_id)


def list_notifications(
    db: Session,
    *,
    user_id: str,
    notification_type: NotificationType | None = None,
    is_read: bool | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Notification]:
    query = select(Notification).where(Notification.user_id == user_id).order_by(Notification.created_at.desc())
    if notification_type is not None:
        query = query.where(Notification.notification_type == notification_type)
    if is_read is not None:
        query = query.where(Notification.is_read == is_read)
    return list(db.execute(query.offset(offset).limit(limit)).scalars())


def mark_read(db: Session, *, user_id: str, notification_id: str) -> Notification | None:
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        return None
    notification.is_read = True
    db.flush()
    return notification
