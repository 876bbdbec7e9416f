# apps/subscriptions/selectors.py

from collections.abc import Iterable

from django.db.models import Q, QuerySet

from apps.leads.models import Lead
from apps.leads.selectors import get_available_leads

from .models import Subscription


def get_subscriptions_for_company(company) -> QuerySet[Subscription]:
    return Subscription.objects.filter(company=company).order_by("-created_at")


def get_active_subscriptions_for_company(company) -> QuerySet[Subscription]:
    return Subscription.objects.filter(company=company, is_active=True)


def find_matching_subscriptions(lead: Lead) -> QuerySet[Subscription]:
    """Active subscriptions of active companies whose criteria accept ``lead``."""
    return (
        Subscription.objects
        .filter(is_active=True, company__is_active=True)
        .filter(Q(vertical__isnull=True) | Q(vertical="") | Q(vertical=lead.vertical))
        .filter(Q(risk__isnull=True) | Q(risk="") | Q(risk=lead.risk))
        .filter(Q(min_score__isnull=True) | Q(min_score__lte=lead.score))
        .filter(Q(max_price__isnull=True) | Q(max_price__gte=lead.price))
        .filter(Q(min_requested_amount__isnull=True) | Q(min_requested_amount__lte=lead.requested_amount))
        .select_related("company")
        .order_by("created_at", "id")
    )


def get_recommended_lead_ids(company, leads: Iterable[Lead]) -> set[int]:
    """IDs of ``leads`` that match at least one active subscription of ``company``."""
    subscriptions = list(get_active_subscriptions_for_company(company))
    if not subscriptions:
        return set()
    return {
        lead.id
        for lead in leads
        if any(subscription.matches(lead) for subscription in subscriptions)
    }


def get_recommended_leads(company) -> list[Lead]:
    """Leads on offer right now that match the company's subscriptions."""
    leads = list(get_available_leads())
    recommended = get_recommended_lead_ids(company, leads)
    return [lead for lead in leads if lead.id in recommended]
