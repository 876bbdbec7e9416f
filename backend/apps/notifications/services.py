# apps/notifications/services.py

import logging

from django.db import DatabaseError, transaction

from .models import Notification

logger = logging.getLogger(__name__)


def notify(user_id: int, message: str, link: str = "") -> Notification | None:
    """
    Store a notification for a user.

    Best-effort: a failure here must never undo or fail the operation that
    triggered it, so storage errors are logged and None is returned.
    """
    try:
        with transaction.atomic():
            return Notification.objects.create(user_id=user_id, message=message, link=link)
    except DatabaseError as e:
        logger.error(f"Failed to store notification for user {user_id}: {e}")
        return None


def notify_on_commit(user_id: int, message: str, link: str = "") -> None:
    """Queue a notification to be stored once the current transaction commits."""
    transaction.on_commit(lambda: notify(user_id, message, link))


def mark_all_read(user) -> int:
    """Mark every unread notification of a user as read. Returns the count."""
    return Notification.objects.filter(user=user, is_read=False).update(is_read=True)
