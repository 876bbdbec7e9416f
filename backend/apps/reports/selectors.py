# apps/reports/selectors.py

from typing import Optional

from django.db.models import QuerySet

from .models import Report


def get_reports_for_company(company) -> QuerySet[Report]:
    return Report.objects.filter(company=company).select_related("lead").order_by("-created_at")


def get_all_reports(status: Optional[str] = None) -> QuerySet[Report]:
    """Admin queue, optionally filtered by status."""
    qs = Report.objects.select_related("lead", "company")
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("-created_at")
