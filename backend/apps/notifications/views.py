# apps/notifications/views.py

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .serializers import NotificationSerializer
from .selectors import get_notifications_for_user, count_unread
from .services import mark_all_read


class NotificationViewSet(viewsets.ViewSet):
    """
    list:       GET    /api/v1/notifications/
    read_all:   POST   /api/v1/notifications/read_all/
    """

    def list(self, request):
        notifications = get_notifications_for_user(request.user)
        return Response({
            "unread": count_unread(request.user),
            "results": NotificationSerializer(notifications, many=True).data,
        })

    @action(detail=False, methods=["post"])
    def read_all(self, request):
        return Response({"marked": mark_all_read(request.user)})
