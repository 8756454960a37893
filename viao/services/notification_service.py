"""Notification service — feed entries for the notification dropdown."""

import logging
from datetime import datetime, timezone

from viao.extensions import db
from viao.models.notification import Notification

logger = logging.getLogger(__name__)

MAX_LIMIT = 200


def create_notification(user_id, type, title, body=None, data=None):
    """Add a notification row.

    Uses flush() so the caller controls the commit boundary; the boost
    reconciler relies on this to keep the notification inside its
    claim-and-apply transaction.
    """
    if not user_id:
        return None
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        body=body,
        data=data,
    )
    db.session.add(notification)
    db.session.flush()
    return notification


def list_notifications(user_id, limit=50):
    """Newest-first notifications for a user.

    Returns (notifications, unread_count) where unread_count covers the
    returned page only.
    """
    limit = min(max(int(limit), 1), MAX_LIMIT)
    notifications = (
        Notification.query
        .filter_by(user_id=user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .all()
    )
    unread = sum(1 for n in notifications if n.read_at is None)
    return notifications, unread


def mark_read(user_id, ids=None, mark_all=False):
    """Mark unread notifications as read. Returns the timestamp used."""
    now = datetime.now(timezone.utc)
    query = Notification.query.filter(
        Notification.user_id == user_id,
        Notification.read_at.is_(None),
    )
    if mark_all:
        query.update({"read_at": now}, synchronize_session=False)
    elif ids:
        query.filter(Notification.id.in_(ids)).update(
            {"read_at": now}, synchronize_session=False
        )
    db.session.commit()
    return now
