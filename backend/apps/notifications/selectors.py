# apps/notifications/selectors.py

from django.db.models import QuerySet

from .models import Notification


def get_notifications_for_user(user, limit: int = 20) -> QuerySet[Notification]:
    return Notification.objects.filter(user=user).order_by("-created_at")[:limit]


def count_unread(user) -> int:
    return Notification.objects.filter(user=user, is_read=False).count()
