# apps/subscriptions/serializers.py

from rest_framework import serializers

from .models import Subscription
from .quota import remaining_quota


class SubscriptionSerializer(serializers.ModelSerializer):
    """Subscription with its criteria and current quota usage."""

    remaining_today = serializers.SerializerMethodField()

    class Meta:
        model = Subscription
        fields = [
            "id",
            "name",
            "vertical",
            "risk",
            "min_score",
            "max_price",
            "min_requested_amount",
            "max_daily_purchases",
            "daily_purchases",
            "window_started_at",
            "remaining_today",
            "is_active",
            "auto_buy",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id", "daily_purchases", "window_started_at", "created_at", "updated_at",
        ]

    def get_remaining_today(self, obj) -> int:
        return remaining_quota(obj)

    def validate_max_price(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("max_price cannot be negative")
        return value

    def validate_min_requested_amount(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("min_requested_amount cannot be negative")
        return value
