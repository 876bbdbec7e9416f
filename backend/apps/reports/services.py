# apps/reports/services.py

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.common.enums import LedgerKind, ReportStatus
from apps.common.exceptions import (
    AlreadyResolved,
    DuplicateReport,
    InvalidTransition,
    ReportNotAllowed,
    ReportNotFound,
)
from apps.common.retry import retry_on_conflict
from apps.companies.services import credit
from apps.leads.models import Purchase
from apps.notifications.services import notify_on_commit

from .models import Report

logger = logging.getLogger(__name__)

OPEN_STATUSES = (ReportStatus.PENDING, ReportStatus.IN_REVIEW)
DECISIONS = (ReportStatus.APPROVED, ReportStatus.REJECTED)


def create_report(company, lead_id: int, reason: str, comment: str = "") -> Report:
    """
    File a quality report on a purchased lead.

    Raises:
        ReportNotAllowed: the company did not buy this lead
        DuplicateReport: the company already reported it
    """
    if not Purchase.objects.filter(company=company, lead_id=lead_id).exists():
        raise ReportNotAllowed()

    try:
        with transaction.atomic():
            report = Report.objects.create(
                company=company,
                lead_id=lead_id,
                reason=reason,
                comment=comment,
            )
            notify_on_commit(
                company.user_id,
                f"Your report on lead #{lead_id} was received and is pending review.",
                link=f"/reports/{report.id}",
            )
    except IntegrityError:
        raise DuplicateReport()

    logger.info(f"Company {company.id} reported lead {lead_id} ({reason})")
    return report


def mark_in_review(report_id: int) -> Report:
    """pending -> in_review. Only pending reports can be put in review."""
    updated = Report.objects.filter(id=report_id, status=ReportStatus.PENDING).update(
        status=ReportStatus.IN_REVIEW,
        updated_at=timezone.now(),
    )
    if not updated:
        report = Report.objects.filter(id=report_id).first()
        if report is None:
            raise ReportNotFound()
        if report.is_resolved:
            raise AlreadyResolved()
        raise InvalidTransition("Only pending reports can be put in review.")
    return Report.objects.get(id=report_id)


@retry_on_conflict
def resolve_report(report_id: int, decision: str) -> Report:
    """
    Approve or reject an open report.

    The status change is a conditional UPDATE from pending/in_review, so a
    report is resolved once no matter how many admins click. Approval
    refunds what the company paid for the lead in the same transaction.

    Raises:
        ReportNotFound, AlreadyResolved, InvalidTransition
    """
    if decision not in DECISIONS:
        raise InvalidTransition(f"'{decision}' is not a resolution.")

    now = timezone.now()
    with transaction.atomic():
        updated = Report.objects.filter(id=report_id, status__in=OPEN_STATUSES).update(
            status=decision,
            resolved_at=now,
            updated_at=now,
        )
        if not updated:
            if not Report.objects.filter(id=report_id).exists():
                raise ReportNotFound()
            raise AlreadyResolved()

        report = Report.objects.select_related("company").get(id=report_id)

        if decision == ReportStatus.APPROVED:
            purchase = Purchase.objects.filter(company_id=report.company_id, lead_id=report.lead_id).first()
            if purchase is not None and purchase.price > 0:
                credit(
                    report.company_id,
                    purchase.price,
                    kind=LedgerKind.REFUND,
                    reference=f"purchase:{purchase.id}",
                )
                message = f"Your report on lead #{report.lead_id} was approved; ${purchase.price:,.0f} was refunded."
            else:
                message = f"Your report on lead #{report.lead_id} was approved."
        else:
            message = f"Your report on lead #{report.lead_id} was rejected."

        notify_on_commit(report.company.user_id, message, link=f"/reports/{report.id}")

    logger.info(f"Report {report_id} resolved as {decision}")
    return report
