# apps/leads/selectors.py

from datetime import datetime
from decimal import Decimal
from typing import Optional

from django.db.models import Q, QuerySet

from apps.common.enums import LeadStatus
from apps.leads.models import Lead, Purchase


def get_available_leads(
    vertical: Optional[str] = None,
    risk: Optional[str] = None,
    min_score: Optional[int] = None,
    max_price: Optional[Decimal] = None,
) -> QuerySet[Lead]:
    """Leads currently on offer in the marketplace, with optional filters."""
    qs = Lead.objects.filter(status=LeadStatus.OFFERED)

    if vertical:
        qs = qs.filter(vertical=vertical)
    if risk:
        qs = qs.filter(risk=risk)
    if min_score is not None:
        qs = qs.filter(score__gte=min_score)
    if max_price is not None:
        qs = qs.filter(price__lte=max_price)

    return qs.order_by("-created_at")


def search_leads(
    query: Optional[str] = None,
    status: Optional[str] = None,
    vertical: Optional[str] = None,
    risk: Optional[str] = None,
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
) -> QuerySet[Lead]:
    """
    Admin search over all leads.

    Args:
        query: Search in name, national id, email, phone
        status: Filter by lifecycle status
        vertical: Filter by vertical
        risk: Filter by risk tier
        created_after: Filter by creation date
        created_before: Filter by creation date
    """
    qs = Lead.objects.all()

    if query:
        qs = qs.filter(
            Q(name__icontains=query) |
            Q(national_id__icontains=query) |
            Q(email__icontains=query) |
            Q(phone__icontains=query)
        )

    if status:
        qs = qs.filter(status=status)

    if vertical:
        qs = qs.filter(vertical=vertical)

    if risk:
        qs = qs.filter(risk=risk)

    if created_after:
        qs = qs.filter(created_at__gte=created_after)

    if created_before:
        qs = qs.filter(created_at__lte=created_before)

    return qs


def get_purchases_for_company(company) -> QuerySet[Purchase]:
    return (
        Purchase.objects
        .filter(company=company)
        .select_related("lead")
        .order_by("-purchased_at")
    )
