# apps/leads/services.py

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.common.enums import LeadStatus, LedgerKind, PlanTier
from apps.common.exceptions import (
    CompanyInactive,
    CompanyNotFound,
    InsufficientFunds,
    InvalidTransition,
    LeadNotFound,
    LeadUnavailable,
    PurchaseNotFound,
)
from apps.common.retry import retry_on_conflict
from apps.companies.models import Company
from apps.companies.services import debit
from apps.notifications.services import notify_on_commit
from apps.pricing.selectors import price_for_risk
from apps.subscriptions.quota import consume_quota

from .models import Lead, Purchase

logger = logging.getLogger(__name__)

# Admin-driven moves. SOLD is only reachable through purchase_lead.
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    LeadStatus.CAPTURED: {LeadStatus.OFFERED, LeadStatus.REJECTED},
    LeadStatus.OFFERED: {LeadStatus.RESERVED, LeadStatus.REJECTED, LeadStatus.IN_REVIEW},
    LeadStatus.RESERVED: {LeadStatus.OFFERED, LeadStatus.REJECTED},
    LeadStatus.IN_REVIEW: {LeadStatus.OFFERED, LeadStatus.REJECTED},
    LeadStatus.SOLD: set(),
    LeadStatus.REJECTED: set(),
}


def _schedule_matching(lead_id: int) -> None:
    from apps.subscriptions.tasks import match_new_lead

    transaction.on_commit(lambda: match_new_lead.delay(lead_id))


def create_lead(
    name: str,
    vertical: str,
    risk: str,
    price: Decimal | None = None,
    status: str = LeadStatus.OFFERED,
    **fields,
) -> Lead:
    """
    Create a lead, priced from the active pricing config when no price is given.

    Leads created directly as OFFERED are run through subscription matching
    once the transaction commits.
    """
    if status == LeadStatus.SOLD:
        raise InvalidTransition("Leads cannot be created as sold.")
    if price is None:
        price = price_for_risk(risk)

    with transaction.atomic():
        lead = Lead.objects.create(
            name=name,
            vertical=vertical,
            risk=risk,
            price=price,
            status=status,
            **fields,
        )
        if status == LeadStatus.OFFERED:
            _schedule_matching(lead.id)

    logger.info(f"Created lead {lead.id} ({vertical}/{risk}) at {price}, status {status}")
    return lead


def transition_lead(lead_id: int, new_status: str) -> Lead:
    """
    Move a lead to ``new_status`` if the lifecycle allows it.

    The UPDATE is conditional on the status we validated against, so a
    concurrent purchase turns this into InvalidTransition instead of
    overwriting SOLD.
    """
    lead = Lead.objects.filter(id=lead_id).first()
    if lead is None:
        raise LeadNotFound()

    if new_status not in ALLOWED_TRANSITIONS.get(lead.status, set()):
        raise InvalidTransition(f"Cannot move a lead from {lead.status} to {new_status}.")

    with transaction.atomic():
        updated = Lead.objects.filter(id=lead_id, status=lead.status).update(
            status=new_status,
            updated_at=timezone.now(),
        )
        if not updated:
            raise InvalidTransition("The lead changed while updating it. Reload and try again.")
        if new_status == LeadStatus.OFFERED:
            _schedule_matching(lead_id)

    lead.refresh_from_db()
    return lead


def bulk_transition_leads(lead_ids: list[int], new_status: str) -> dict:
    """Apply ``transition_lead`` to many leads, collecting failures."""
    updated = 0
    errors = []
    for lead_id in lead_ids:
        try:
            transition_lead(lead_id, new_status)
            updated += 1
        except (LeadNotFound, InvalidTransition) as e:
            errors.append({"lead_id": lead_id, "error": e.message})
    return {"updated": updated, "skipped": len(errors), "errors": errors}


@retry_on_conflict
def purchase_lead(
    company_id,
    lead_id: int,
    *,
    subscription_id: int | None = None,
) -> Purchase:
    """
    Sell a lead to a company as one all-or-nothing unit.

    The lead is claimed with ``UPDATE ... WHERE status = 'offered'``; only
    one concurrent caller can match that row, every other caller gets
    LeadUnavailable. Debit, counters, quota and the Purchase row are written
    in the same transaction, so any failure leaves no trace.

    Args:
        company_id: Buying company
        lead_id: Lead to buy
        subscription_id: Auto-buy subscription whose daily quota is consumed

    Raises:
        LeadNotFound, LeadUnavailable, CompanyNotFound, CompanyInactive,
        InsufficientFunds, QuotaExceeded
    """
    lead = Lead.objects.filter(id=lead_id).first()
    if lead is None:
        raise LeadNotFound()
    if lead.status != LeadStatus.OFFERED:
        raise LeadUnavailable()

    company = Company.objects.filter(id=company_id).first()
    if company is None:
        raise CompanyNotFound()
    if not company.is_active:
        raise CompanyInactive()
    wants_free_lead = company.free_leads_remaining > 0
    if not wants_free_lead and company.balance < lead.price:
        raise InsufficientFunds()

    now = timezone.now()
    with transaction.atomic():
        claimed = Lead.objects.filter(id=lead_id, status=LeadStatus.OFFERED).update(
            status=LeadStatus.SOLD,
            is_sold=True,
            buyer_id=company_id,
            sold_at=now,
            updated_at=now,
        )
        if not claimed:
            raise LeadUnavailable()

        # Row is ours now; read the price it was sold at.
        price = Lead.objects.values_list("price", flat=True).get(id=lead_id)

        if subscription_id is not None:
            consume_quota(subscription_id, now)

        paid = price
        if wants_free_lead:
            took_free = Company.objects.filter(
                id=company_id,
                plan=PlanTier.FREEMIUM,
                free_leads_used__lt=F("free_leads_limit"),
            ).update(free_leads_used=F("free_leads_used") + 1)
            if took_free:
                paid = Decimal("0")

        if paid > 0:
            debit(company_id, paid, kind=LedgerKind.PURCHASE, reference=f"lead:{lead_id}")

        Company.objects.filter(id=company_id).update(
            purchased_leads=F("purchased_leads") + 1,
            updated_at=now,
        )

        try:
            with transaction.atomic():
                purchase = Purchase.objects.create(
                    company_id=company_id,
                    lead_id=lead_id,
                    price=paid,
                    plan=company.plan,
                    subscription_id=subscription_id,
                )
        except IntegrityError:
            raise LeadUnavailable()

        notify_on_commit(
            company.user_id,
            f"You bought lead #{lead_id} for ${paid:,.0f}.",
            link=f"/purchases/{purchase.id}",
        )

    logger.info(f"Company {company_id} bought lead {lead_id} for {paid}")
    return purchase


def mark_converted(purchase_id: int, company_id) -> Purchase:
    """Flag a purchase (and its lead) as converted. Idempotent."""
    with transaction.atomic():
        purchase = Purchase.objects.filter(id=purchase_id, company_id=company_id).first()
        if purchase is None:
            raise PurchaseNotFound()
        updated = Purchase.objects.filter(id=purchase_id, is_converted=False).update(is_converted=True)
        if updated:
            Lead.objects.filter(id=purchase.lead_id).update(
                is_converted=True,
                updated_at=timezone.now(),
            )
            logger.info(f"Purchase {purchase_id} marked as converted")

    purchase.refresh_from_db()
    return purchase
