from decimal import Decimal
from unittest import mock

import pytest

from apps.common.enums import LeadStatus, LedgerKind, PlanTier, RiskTier
from apps.common.exceptions import (
    CompanyInactive,
    InsufficientFunds,
    InvalidTransition,
    LeadNotFound,
    LeadUnavailable,
    PurchaseNotFound,
    QuotaExceeded,
)
from apps.companies.models import Company, LedgerEntry
from apps.companies.selectors import get_balance
from apps.leads.models import Lead, Purchase
from apps.leads.selectors import get_available_leads, search_leads
from apps.leads.services import (
    bulk_transition_leads,
    create_lead,
    mark_converted,
    purchase_lead,
    transition_lead,
)
from apps.notifications.models import Notification
from apps.subscriptions.services import create_subscription


@pytest.mark.django_db
class TestPurchaseLead:
    def test_purchase_debits_and_marks_sold(self, company, make_lead):
        lead = make_lead(price=15000, risk=RiskTier.LOW)

        purchase = purchase_lead(company.id, lead.id)

        lead.refresh_from_db()
        company.refresh_from_db()
        assert company.balance == Decimal("85000.00")
        assert company.purchased_leads == 1
        assert lead.status == LeadStatus.SOLD
        assert lead.is_sold is True
        assert lead.buyer_id == company.id
        assert lead.sold_at is not None
        assert purchase.price == Decimal("15000.00")
        assert purchase.plan == PlanTier.BASIC

        entry = LedgerEntry.objects.get(company=company)
        assert entry.kind == LedgerKind.PURCHASE
        assert entry.reference == f"lead:{lead.id}"
        assert entry.amount == Decimal("-15000.00")

    def test_exact_balance_is_enough(self, make_company, make_lead):
        company = make_company(balance=15000)
        lead = make_lead(price=15000)

        purchase_lead(company.id, lead.id)

        assert get_balance(company.id) == Decimal("0.00")

    def test_insufficient_funds_leaves_no_trace(self, make_company, make_lead):
        company = make_company(balance="14999.99")
        lead = make_lead(price=15000)

        with pytest.raises(InsufficientFunds):
            purchase_lead(company.id, lead.id)

        lead.refresh_from_db()
        assert lead.status == LeadStatus.OFFERED
        assert get_balance(company.id) == Decimal("14999.99")
        assert not Purchase.objects.exists()

    def test_sold_lead_is_unavailable(self, company, make_company, make_lead):
        lead = make_lead(price=15000)
        purchase_lead(company.id, lead.id)
        other = make_company(balance=100000)

        with pytest.raises(LeadUnavailable):
            purchase_lead(other.id, lead.id)

        assert get_balance(other.id) == Decimal("100000.00")

    @pytest.mark.parametrize("status", [LeadStatus.CAPTURED, LeadStatus.RESERVED, LeadStatus.REJECTED])
    def test_only_offered_leads_are_purchasable(self, company, make_lead, status):
        lead = make_lead(status=status)
        with pytest.raises(LeadUnavailable):
            purchase_lead(company.id, lead.id)

    def test_unknown_lead(self, company):
        with pytest.raises(LeadNotFound):
            purchase_lead(company.id, 999999)

    def test_inactive_company(self, make_company, make_lead):
        company = make_company(balance=100000, is_active=False)
        lead = make_lead()
        with pytest.raises(CompanyInactive):
            purchase_lead(company.id, lead.id)

    def test_buyers_in_turn_one_winner(self, make_company, make_lead):
        lead = make_lead(price=15000)
        buyers = [make_company(balance=100000) for _ in range(5)]

        results = []
        for buyer in buyers:
            try:
                purchase_lead(buyer.id, lead.id)
                results.append("ok")
            except LeadUnavailable:
                results.append("unavailable")

        assert results.count("ok") == 1
        assert Purchase.objects.filter(lead=lead).count() == 1
        total = sum(get_balance(buyer.id) for buyer in buyers)
        assert total == Decimal("500000.00") - Decimal("15000.00")

    def test_lead_sold_between_check_and_claim(self, company, make_company, make_lead):
        lead = make_lead(price=15000)
        rival = make_company(balance=100000)

        def sell_to_rival():
            Lead.objects.filter(id=lead.id).update(status=LeadStatus.SOLD, is_sold=True, buyer=rival)
            return 0

        with mock.patch.object(
            Company, "free_leads_remaining",
            new_callable=mock.PropertyMock, side_effect=sell_to_rival,
        ):
            with pytest.raises(LeadUnavailable):
                purchase_lead(company.id, lead.id)

        assert get_balance(company.id) == Decimal("100000.00")
        assert not Purchase.objects.exists()
        assert not LedgerEntry.objects.exists()

    def test_purchase_row_collision_rolls_back_everything(self, company, make_company, make_lead):
        lead = make_lead(price=15000)
        other = make_company(balance=100000)
        # Inconsistent data: a purchase row exists while the lead is still offered.
        Purchase.objects.create(company=other, lead=lead, price=lead.price, plan=other.plan)

        with pytest.raises(LeadUnavailable):
            purchase_lead(company.id, lead.id)

        lead.refresh_from_db()
        company.refresh_from_db()
        assert lead.status == LeadStatus.OFFERED
        assert company.balance == Decimal("100000.00")
        assert company.purchased_leads == 0
        assert not LedgerEntry.objects.filter(company=company).exists()

    def test_notification_sent_after_commit(self, company, make_lead, django_capture_on_commit_callbacks):
        lead = make_lead()
        with django_capture_on_commit_callbacks(execute=True):
            purchase_lead(company.id, lead.id)

        notification = Notification.objects.get(user=company.user)
        assert f"#{lead.id}" in notification.message


@pytest.mark.django_db
class TestFreemium:
    def test_free_lead_costs_nothing(self, make_company, make_lead):
        company = make_company(balance=0, plan=PlanTier.FREEMIUM)
        lead = make_lead(price=15000)

        purchase = purchase_lead(company.id, lead.id)

        company.refresh_from_db()
        assert purchase.price == Decimal("0")
        assert company.balance == Decimal("0.00")
        assert company.free_leads_used == 1
        assert not LedgerEntry.objects.filter(company=company).exists()

    def test_exhausted_free_leads_require_funds(self, make_company, make_lead, settings):
        company = make_company(balance=0, plan=PlanTier.FREEMIUM)
        Company.objects.filter(id=company.id).update(free_leads_used=settings.FREEMIUM_FREE_LEADS)
        lead = make_lead(price=15000)

        with pytest.raises(InsufficientFunds):
            purchase_lead(company.id, lead.id)

    def test_paid_plans_get_no_free_leads(self, make_company):
        company = make_company(balance=0, plan=PlanTier.PROFESSIONAL)
        assert company.free_leads_remaining == 0


@pytest.mark.django_db
class TestPurchaseWithSubscription:
    def test_quota_is_consumed_in_the_purchase(self, company, make_lead):
        subscription = create_subscription(company, "Low risk", max_daily_purchases=1)
        first = make_lead()
        second = make_lead()

        purchase = purchase_lead(company.id, first.id, subscription_id=subscription.id)
        assert purchase.subscription_id == subscription.id

        with pytest.raises(QuotaExceeded):
            purchase_lead(company.id, second.id, subscription_id=subscription.id)

        second.refresh_from_db()
        subscription.refresh_from_db()
        assert second.status == LeadStatus.OFFERED
        assert subscription.daily_purchases == 1
        assert get_balance(company.id) == Decimal("85000.00")


@pytest.mark.django_db
class TestMarkConverted:
    def test_mark_converted(self, company, make_lead):
        lead = make_lead()
        purchase = purchase_lead(company.id, lead.id)

        purchase = mark_converted(purchase.id, company.id)
        assert purchase.is_converted is True
        lead.refresh_from_db()
        assert lead.is_converted is True

        # Idempotent
        assert mark_converted(purchase.id, company.id).is_converted is True

    def test_other_company_cannot_convert(self, company, make_company, make_lead):
        lead = make_lead()
        purchase = purchase_lead(company.id, lead.id)
        other = make_company()

        with pytest.raises(PurchaseNotFound):
            mark_converted(purchase.id, other.id)


@pytest.mark.django_db
class TestLeadLifecycle:
    def test_create_lead_uses_active_pricing(self):
        lead = create_lead(name="Ana", vertical="fopep", risk=RiskTier.LOW)
        assert lead.price == Decimal("20000")
        assert lead.status == LeadStatus.OFFERED

    def test_create_offered_lead_schedules_matching(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            create_lead(name="Ana", vertical="fopep", risk=RiskTier.HIGH)
        assert len(callbacks) == 1

    def test_create_captured_lead_does_not_schedule(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            create_lead(name="Ana", vertical="fopep", risk=RiskTier.HIGH, status=LeadStatus.CAPTURED)
        assert callbacks == []

    def test_create_sold_lead_is_rejected(self):
        with pytest.raises(InvalidTransition):
            create_lead(name="Ana", vertical="fopep", risk=RiskTier.HIGH, status=LeadStatus.SOLD)

    def test_allowed_transition(self, make_lead):
        lead = make_lead(status=LeadStatus.CAPTURED)
        lead = transition_lead(lead.id, LeadStatus.OFFERED)
        assert lead.status == LeadStatus.OFFERED

    def test_sold_is_terminal(self, company, make_lead):
        lead = make_lead()
        purchase_lead(company.id, lead.id)
        with pytest.raises(InvalidTransition):
            transition_lead(lead.id, LeadStatus.OFFERED)

    def test_sold_only_through_purchase(self, make_lead):
        lead = make_lead()
        with pytest.raises(InvalidTransition):
            transition_lead(lead.id, LeadStatus.SOLD)

    def test_bulk_transition_collects_errors(self, make_lead):
        captured = make_lead(status=LeadStatus.CAPTURED)
        rejected = make_lead(status=LeadStatus.REJECTED)

        result = bulk_transition_leads([captured.id, rejected.id, 999999], LeadStatus.OFFERED)

        assert result["updated"] == 1
        assert result["skipped"] == 2
        assert {error["lead_id"] for error in result["errors"]} == {rejected.id, 999999}


@pytest.mark.django_db
class TestLeadSelectors:
    def test_search_leads(self, make_lead):
        ana = make_lead(national_id="1020304050", risk=RiskTier.HIGH)
        make_lead(national_id="999", risk=RiskTier.LOW)

        assert list(search_leads(query="10203")) == [ana]
        assert list(search_leads(risk=RiskTier.HIGH)) == [ana]

    def test_available_leads_filters(self, make_lead):
        cheap = make_lead(price=5000, score=90)
        make_lead(price=5000, score=10)
        make_lead(price=50000, score=90)

        assert list(get_available_leads(min_score=50, max_price=Decimal("10000"))) == [cheap]
