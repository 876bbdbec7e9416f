# apps/subscriptions/services.py

import logging

from django.db import transaction

from apps.common.enums import LeadStatus
from apps.common.exceptions import (
    CompanyInactive,
    InsufficientFunds,
    LeadUnavailable,
    QuotaExceeded,
)
from apps.leads.models import Lead
from apps.leads.services import purchase_lead
from apps.notifications.services import notify

from .matching import MatchCriteria
from .models import Subscription
from .selectors import find_matching_subscriptions

logger = logging.getLogger(__name__)

CRITERIA_FIELDS = ("vertical", "risk", "min_score", "max_price", "min_requested_amount")


def create_subscription(
    company,
    name: str,
    criteria: MatchCriteria | None = None,
    max_daily_purchases: int = 10,
    auto_buy: bool = False,
    is_active: bool = True,
) -> Subscription:
    """Create a subscription for a company."""
    criteria = criteria or MatchCriteria()
    return Subscription.objects.create(
        company=company,
        name=name,
        vertical=criteria.vertical,
        risk=criteria.risk,
        min_score=criteria.min_score,
        max_price=criteria.max_price,
        min_requested_amount=criteria.min_requested_amount,
        max_daily_purchases=max_daily_purchases,
        auto_buy=auto_buy,
        is_active=is_active,
    )


def update_subscription(subscription: Subscription, **kwargs) -> Subscription:
    """
    Update name, criteria, quota or flags.

    Lowering ``max_daily_purchases`` below the purchases already made in the
    current window clamps the counter so it never exceeds the maximum.
    """
    allowed = {"name", "max_daily_purchases", "auto_buy", "is_active", *CRITERIA_FIELDS}
    for key, value in kwargs.items():
        if key in allowed:
            setattr(subscription, key, value)

    with transaction.atomic():
        subscription.save()
        if subscription.daily_purchases > subscription.max_daily_purchases:
            Subscription.objects.filter(id=subscription.id).update(
                daily_purchases=subscription.max_daily_purchases,
            )
    subscription.refresh_from_db()
    return subscription


def set_active(subscription: Subscription, is_active: bool) -> Subscription:
    subscription.is_active = is_active
    subscription.save(update_fields=["is_active", "updated_at"])
    return subscription


def delete_subscription(subscription: Subscription) -> None:
    subscription.delete()


def process_new_lead(lead_id: int) -> dict:
    """
    React to a lead becoming available.

    Companies with a matching subscription are told about it. Subscriptions
    with ``auto_buy`` then try to buy it, oldest first, until one succeeds;
    each attempt goes through purchase_lead so funds and quota are checked
    inside the purchase transaction.
    """
    lead = Lead.objects.filter(id=lead_id).first()
    if lead is None or lead.status != LeadStatus.OFFERED:
        logger.info(f"Lead {lead_id} is not on offer, skipping matching")
        return {"lead_id": lead_id, "matched": 0, "notified": 0, "bought_by": None}

    matches = list(find_matching_subscriptions(lead))

    notified_companies = set()
    for subscription in matches:
        if subscription.company_id in notified_companies:
            continue
        notified_companies.add(subscription.company_id)
        notify(
            subscription.company.user_id,
            f"New lead #{lead.id} matches your subscription '{subscription.name}'.",
            link=f"/marketplace/{lead.id}",
        )

    bought_by = None
    for subscription in matches:
        if not subscription.auto_buy:
            continue
        try:
            purchase = purchase_lead(
                subscription.company_id,
                lead.id,
                subscription_id=subscription.id,
            )
        except LeadUnavailable:
            break
        except (InsufficientFunds, QuotaExceeded, CompanyInactive) as e:
            logger.info(f"Auto-buy of lead {lead.id} by subscription {subscription.id} skipped: {e.message}")
            continue
        bought_by = str(purchase.company_id)
        break

    summary = {
        "lead_id": lead.id,
        "matched": len(matches),
        "notified": len(notified_companies),
        "bought_by": bought_by,
    }
    logger.info(f"Matching for lead {lead.id} complete: {summary}")
    return summary
