# Overview: Operator notifications (low stock alerts, system messages).

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Notification, NOTIFICATION_TYPES, NOTIFICATION_PRIORITIES
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised for notification operation errors."""
    pass


def emit(
    type: str,
    title: str,
    message: str,
    priority: str = "LOW",
    *,
    commit: bool = True,
) -> Notification:
    """
    Record a notification.

    commit=False lets a caller write the notification inside its own
    transaction, so the message only exists if the triggering change does.
    """
    if type not in NOTIFICATION_TYPES:
        raise NotificationError(f"Unknown notification type {type!r}")
    if priority not in NOTIFICATION_PRIORITIES:
        raise NotificationError(f"Unknown notification priority {priority!r}")

    notification = Notification(
        type=type,
        title=title,
        message=message,
        priority=priority,
        is_read=False,
        created_at=utcnow(),
    )
    db.session.add(notification)

    if commit:
        db.session.commit()
    else:
        db.session.flush()

    logger.info("Notification emitted [%s/%s] %s", type, priority, title)
    return notification


def notify_low_stock(part, *, commit: bool = True) -> Notification:
    """Alert that a part reached its reorder threshold."""
    priority = "HIGH" if part.stock == 0 else "MEDIUM"
    return emit(
        "LOW_STOCK",
        f"Low stock: {part.name}",
        f"{part.name} ({part.part_number}) is down to {part.stock} units "
        f"(reorder level {part.min_stock}).",
        priority,
        commit=commit,
    )


def list_notifications(*, unread_only: bool = False, limit: int = 100) -> list[Notification]:
    q = db.session.query(Notification)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return q.order_by(Notification.id.desc()).limit(limit).all()


def unread_count() -> int:
    return db.session.query(Notification).filter(Notification.is_read.is_(False)).count()


def mark_all_read() -> int:
    updated = db.session.query(Notification).filter(
        Notification.is_read.is_(False)
    ).update({Notification.is_read: True}, synchronize_session=False)
    db.session.commit()
    return updated


def delete_notification(notification_id: int) -> bool:
    notification = db.session.get(Notification, notification_id)
    if notification is None:
        return False
    db.session.delete(notification)
    db.session.commit()
    return True
