# apps/subscriptions/quota.py

"""
Rolling-window daily quota for subscriptions.

A window lasts SUBSCRIPTION_QUOTA_WINDOW (24h) from ``window_started_at``.
Once it has elapsed the counter goes back to zero and the window restarts
at the moment of the next purchase (or of the periodic reset).
"""

import logging
from datetime import datetime

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from apps.common.exceptions import QuotaExceeded

from .models import Subscription

logger = logging.getLogger(__name__)


def window_expired(subscription: Subscription, now: datetime | None = None) -> bool:
    now = now or timezone.now()
    return subscription.window_started_at <= now - settings.SUBSCRIPTION_QUOTA_WINDOW


def remaining_quota(subscription: Subscription, now: datetime | None = None) -> int:
    if window_expired(subscription, now):
        return subscription.max_daily_purchases
    return max(0, subscription.max_daily_purchases - subscription.daily_purchases)


def consume_quota(subscription_id: int, now: datetime | None = None) -> None:
    """
    Take one purchase from the subscription's quota.

    Must run inside the purchase transaction: both statements are
    conditional UPDATEs, so the counter can never pass the maximum.
    """
    now = now or timezone.now()
    cutoff = now - settings.SUBSCRIPTION_QUOTA_WINDOW

    Subscription.objects.filter(id=subscription_id, window_started_at__lte=cutoff).update(
        daily_purchases=0,
        window_started_at=now,
        updated_at=now,
    )
    consumed = Subscription.objects.filter(
        id=subscription_id,
        is_active=True,
        daily_purchases__lt=F("max_daily_purchases"),
    ).update(
        daily_purchases=F("daily_purchases") + 1,
        updated_at=now,
    )
    if not consumed:
        if not Subscription.objects.filter(id=subscription_id, is_active=True).exists():
            raise QuotaExceeded("Subscription is inactive or does not exist.")
        raise QuotaExceeded()


def reset_expired_windows(now: datetime | None = None) -> int:
    """Zero every counter whose window has elapsed. Returns rows reset."""
    now = now or timezone.now()
    cutoff = now - settings.SUBSCRIPTION_QUOTA_WINDOW
    reset = Subscription.objects.filter(window_started_at__lte=cutoff).update(
        daily_purchases=0,
        window_started_at=now,
        updated_at=now,
    )
    if reset:
        logger.info(f"Reset daily quota on {reset} subscription(s)")
    return reset
