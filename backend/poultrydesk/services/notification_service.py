# Overview: Service-layer operations for notifications; persisted in-app messages plus live push.

from __future__ import annotations

from ..broadcast import publish_event
from ..extensions import db
from ..models import Notification
from .tenant_service import scoped_get


NOTIFICATION_TYPES = {"info", "success", "warning", "error"}


def notify(
    user_id: int,
    title: str,
    body: str | None = None,
    type: str = "info",
    url: str | None = None,
) -> Notification:
    """
    Store a notification and push it to the user's open connections.

    The push is best-effort; the stored row is the source of truth.
    """
    if type not in NOTIFICATION_TYPES:
        type = "info"

    notification = Notification(user_id=user_id, title=title, body=body, type=type, url=url)
    db.session.add(notification)
    db.session.commit()

    publish_event("notification", "notification", notification.to_dict(), user_id=user_id)
    return notification


def list_notifications(user_id: int, unread_only: bool = False, limit: int = 100) -> list[Notification]:
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(user_id: int) -> int:
    return db.session.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    ).count()


def mark_read(user_id: int, notification_id: int) -> Notification:
    notification = scoped_get(Notification, notification_id, user_id, label="Notification")
    notification.is_read = True
    db.session.commit()
    return notification


def mark_all_read(user_id: int) -> int:
    count = db.session.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    ).update({"is_read": True}, synchronize_session=False)
    db.session.commit()
    return count


def delete_notification(user_id: int, notification_id: int) -> None:
    notification = scoped_get(Notification, notification_id, user_id, label="Notification")
    db.session.delete(notification)
    db.session.commit()
