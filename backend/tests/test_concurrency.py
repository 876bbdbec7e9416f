import threading
from decimal import Decimal

import pytest
from django.db import connection

from apps.common.exceptions import InsufficientFunds, LeadUnavailable
from apps.companies.models import LedgerEntry
from apps.companies.selectors import get_balance
from apps.leads.models import Lead, Purchase
from apps.leads.services import purchase_lead
from apps.payments.models import Recharge
from apps.payments.services import CREDITED, DUPLICATE, build_reference, process_webhook_event
from apps.payments.signatures import event_checksum

WORKERS = 5


def run_together(target, args_list):
    """Start one thread per args tuple at the same moment and collect outcomes."""
    barrier = threading.Barrier(len(args_list))
    outcomes = [None] * len(args_list)

    def worker(index, args):
        try:
            barrier.wait()
            outcomes[index] = target(*args)
        except Exception as e:
            outcomes[index] = e
        finally:
            connection.close()

    threads = [
        threading.Thread(target=worker, args=(index, args))
        for index, args in enumerate(args_list)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes


@pytest.mark.django_db(transaction=True)
class TestConcurrentPurchases:
    def test_exactly_one_buyer_wins(self, make_company, make_lead):
        lead = make_lead(price=15000)
        buyers = [make_company(balance=100000) for _ in range(WORKERS)]

        outcomes = run_together(
            lambda company_id: purchase_lead(company_id, lead.id).company_id,
            [(buyer.id,) for buyer in buyers],
        )

        winners = [o for o in outcomes if not isinstance(o, Exception)]
        losers = [o for o in outcomes if isinstance(o, Exception)]
        assert len(winners) == 1
        assert len(losers) == WORKERS - 1
        assert all(isinstance(o, LeadUnavailable) for o in losers)

        lead.refresh_from_db()
        assert lead.buyer_id == winners[0]
        assert Purchase.objects.filter(lead=lead).count() == 1
        assert LedgerEntry.objects.count() == 1
        total = sum(get_balance(buyer.id) for buyer in buyers)
        assert total == Decimal("500000.00") - Decimal("15000.00")

    def test_one_company_cannot_overspend(self, make_company, make_lead):
        company = make_company(balance=30000)
        leads = [make_lead(price=15000) for _ in range(WORKERS)]

        outcomes = run_together(purchase_lead, [(company.id, lead.id) for lead in leads])

        bought = [o for o in outcomes if isinstance(o, Purchase)]
        refused = [o for o in outcomes if isinstance(o, InsufficientFunds)]
        assert len(bought) == 2
        assert len(refused) == WORKERS - 2
        assert get_balance(company.id) == Decimal("0.00")
        assert Lead.objects.filter(is_sold=True).count() == 2


@pytest.mark.django_db(transaction=True)
class TestConcurrentWebhookDelivery:
    def test_duplicate_deliveries_credit_once(self, company, settings):
        reference = build_reference(company.id, 1700000000000)
        checksum = event_checksum("tx-777", "APPROVED", 5000000, 1700000000, settings.WOMPI_EVENTS_SECRET)
        payload = {
            "event": "transaction.updated",
            "timestamp": 1700000000,
            "signature": {"checksum": checksum},
            "data": {
                "transaction": {
                    "id": "tx-777",
                    "status": "APPROVED",
                    "amount_in_cents": 5000000,
                    "reference": reference,
                }
            },
        }

        outcomes = run_together(process_webhook_event, [(payload,) for _ in range(WORKERS)])

        assert outcomes.count(CREDITED) == 1
        assert outcomes.count(DUPLICATE) == WORKERS - 1
        assert get_balance(company.id) == Decimal("150000.00")
        assert Recharge.objects.filter(gateway_transaction_id="tx-777").count() == 1
