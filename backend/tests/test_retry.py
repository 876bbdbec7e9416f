from decimal import Decimal
from unittest import mock

import pytest
from django.db import OperationalError

from apps.common.enums import LeadStatus, RechargeSource, ReportReason, ReportStatus
from apps.common.exceptions import StorageConflict
from apps.common.retry import retry_on_conflict
from apps.companies import services as company_services
from apps.companies.models import LedgerEntry
from apps.companies.selectors import get_balance
from apps.leads.models import Lead, Purchase
from apps.leads.services import purchase_lead
from apps.payments.models import Recharge
from apps.payments.services import CREDITED, apply_approved_transaction, build_reference
from apps.reports.services import create_report, resolve_report


def deadlocking_ledger(failures):
    """Make the first ``failures`` ledger writes fail like a deadlock victim."""
    real = company_services._record_entry
    calls = {"count": 0}

    def record(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] <= failures:
            raise OperationalError("deadlock detected")
        return real(*args, **kwargs)

    return mock.patch("apps.companies.services._record_entry", side_effect=record)


class TestRetryOnConflict:
    def test_retries_then_succeeds(self):
        calls = mock.Mock(side_effect=[OperationalError("deadlock detected"), "done"])

        @retry_on_conflict(retry_delay=0)
        def operation():
            return calls()

        assert operation() == "done"
        assert calls.call_count == 2

    def test_gives_up_after_max_attempts(self, settings):
        settings.STORAGE_CONFLICT_MAX_ATTEMPTS = 3
        calls = mock.Mock(side_effect=OperationalError("could not serialize access"))

        @retry_on_conflict(retry_delay=0)
        def operation():
            return calls()

        with pytest.raises(StorageConflict):
            operation()
        assert calls.call_count == 3

    def test_conflict_from_nested_call_is_retried(self):
        calls = mock.Mock(side_effect=[StorageConflict(), "done"])

        @retry_on_conflict(retry_delay=0)
        def operation():
            return calls()

        assert operation() == "done"
        assert calls.call_count == 2

    def test_domain_errors_are_not_retried(self):
        calls = mock.Mock(side_effect=ValueError("nope"))

        @retry_on_conflict(retry_delay=0)
        def operation():
            return calls()

        with pytest.raises(ValueError):
            operation()
        assert calls.call_count == 1

    def test_bare_decorator(self):
        @retry_on_conflict
        def operation(x):
            return x * 2

        assert operation(21) == 42
        assert operation.__name__ == "operation"

    @pytest.mark.django_db
    def test_no_retry_inside_outer_transaction(self):
        # pytest-django wraps each test in a transaction
        calls = mock.Mock(side_effect=OperationalError("deadlock detected"))

        @retry_on_conflict(retry_delay=0)
        def operation():
            return calls()

        with pytest.raises(StorageConflict):
            operation()
        assert calls.call_count == 1


@pytest.mark.django_db(transaction=True)
class TestCoreOperationsRetry:
    def test_purchase_retried_after_ledger_deadlock(self, company, make_lead):
        lead = make_lead(price=15000)

        with deadlocking_ledger(failures=1) as record:
            purchase = purchase_lead(company.id, lead.id)

        assert record.call_count == 2
        assert purchase.price == Decimal("15000.00")
        assert get_balance(company.id) == Decimal("85000.00")
        assert LedgerEntry.objects.filter(company=company).count() == 1
        assert Purchase.objects.filter(lead=lead).count() == 1

    def test_purchase_gives_up_cleanly(self, company, make_lead, settings):
        settings.STORAGE_CONFLICT_MAX_ATTEMPTS = 3
        lead = make_lead(price=15000)

        with deadlocking_ledger(failures=10) as record:
            with pytest.raises(StorageConflict):
                purchase_lead(company.id, lead.id)

        assert record.call_count == 3
        assert get_balance(company.id) == Decimal("100000.00")
        assert Lead.objects.get(id=lead.id).status == LeadStatus.OFFERED
        assert not Purchase.objects.exists()

    def test_recharge_retried_after_ledger_deadlock(self, company):
        reference = build_reference(company.id, 1700000000000)

        with deadlocking_ledger(failures=1) as record:
            outcome = apply_approved_transaction(
                "tx-retry", 5000000, reference,
                source=RechargeSource.WEBHOOK, payload={},
            )

        assert outcome == CREDITED
        assert record.call_count == 2
        assert get_balance(company.id) == Decimal("150000.00")
        assert Recharge.objects.filter(gateway_transaction_id="tx-retry").count() == 1

    def test_refund_retried_after_ledger_deadlock(self, company, make_lead):
        lead = make_lead(price=15000)
        purchase_lead(company.id, lead.id)
        report = create_report(company, lead.id, ReportReason.WRONG_DATA)

        with deadlocking_ledger(failures=1) as record:
            report = resolve_report(report.id, ReportStatus.APPROVED)

        assert record.call_count == 2
        assert report.status == ReportStatus.APPROVED
        assert get_balance(company.id) == Decimal("100000.00")
