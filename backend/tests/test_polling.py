import json
import threading
from decimal import Decimal

import httpx
import pytest

from apps.common.exceptions import InsufficientFunds, InvalidAmount
from apps.payments.client import CrebitClient
from apps.payments.polling import BalancePoller, PollOutcome, poll_company_balance


def reads(*values):
    """fetch_balance stub returning (or raising) each value in turn."""
    pending = list(values)

    def fetch():
        value = pending.pop(0)
        if isinstance(value, Exception):
            raise value
        return value
    fetch.remaining = pending
    return fetch


class TestBalancePoller:
    def test_confirmed_when_balance_rises(self):
        poller = BalancePoller(reads(100, 100, 150), initial_balance=100, interval=0, max_attempts=8)

        result = poller.run()

        assert result.outcome is PollOutcome.CONFIRMED
        assert result.confirmed
        assert result.attempts == 3
        assert result.balance == Decimal("150")

    def test_inconclusive_after_max_attempts(self):
        poller = BalancePoller(reads(*[100] * 8), initial_balance=100, interval=0, max_attempts=8)

        result = poller.run()

        assert result.outcome is PollOutcome.INCONCLUSIVE
        assert result.attempts == 8
        assert "could not confirm your payment instantly" in result.message

    def test_transient_errors_spend_an_attempt(self):
        fetch = reads(httpx.ConnectError("down"), 150)
        result = BalancePoller(fetch, initial_balance=100, interval=0, max_attempts=3).run()

        assert result.outcome is PollOutcome.CONFIRMED
        assert result.attempts == 2

    def test_only_errors_is_inconclusive_not_failure(self):
        fetch = reads(httpx.ReadTimeout("slow"), httpx.ReadTimeout("slow"))
        result = BalancePoller(fetch, initial_balance=100, interval=0, max_attempts=2).run()

        assert result.outcome is PollOutcome.INCONCLUSIVE
        assert result.balance is None

    def test_unexpected_errors_propagate(self):
        fetch = reads(KeyError("balance"))
        with pytest.raises(KeyError):
            BalancePoller(fetch, initial_balance=100, interval=0, max_attempts=2).run()

    def test_cancelled_before_first_read(self):
        cancel = threading.Event()
        cancel.set()
        fetch = reads(150)

        result = BalancePoller(fetch, initial_balance=100, interval=0, max_attempts=8, cancel_event=cancel).run()

        assert result.outcome is PollOutcome.CANCELLED
        assert result.attempts == 0
        assert fetch.remaining == [150]

    def test_cancelled_mid_way(self):
        poller = None

        def fetch():
            poller.cancel()
            return 100

        poller = BalancePoller(fetch, initial_balance=100, interval=0, max_attempts=8)
        result = poller.run()

        assert result.outcome is PollOutcome.CANCELLED
        assert result.attempts == 1

    def test_defaults_from_settings(self, settings):
        settings.RECHARGE_POLL_INTERVAL_SECONDS = 2.0
        settings.RECHARGE_POLL_MAX_ATTEMPTS = 8
        poller = BalancePoller(reads(), initial_balance=0)
        assert poller.interval == 2.0
        assert poller.max_attempts == 8


@pytest.mark.django_db
class TestPollCompanyBalance:
    def test_reads_database_balance(self, company):
        result = poll_company_balance(company.id, Decimal("90000"), interval=0, max_attempts=1)
        assert result.outcome is PollOutcome.CONFIRMED

    def test_unchanged_balance(self, company):
        result = poll_company_balance(company.id, company.balance, interval=0, max_attempts=2)
        assert result.outcome is PollOutcome.INCONCLUSIVE


class TestCrebitClient:
    def make_client(self, handler):
        return CrebitClient(
            "https://api.crebit.test/api/v1",
            token="abc123",
            transport=httpx.MockTransport(handler),
        )

    def test_create_checkout(self):
        def handler(request):
            assert request.url.path == "/api/v1/payments/checkout/"
            assert request.headers["Authorization"] == "Token abc123"
            assert json.loads(request.content) == {"amountInCents": 5000000}
            return httpx.Response(200, json={"reference": "crebit-x-1", "signature": "s"})

        with self.make_client(handler) as client:
            assert client.create_checkout(5000000)["reference"] == "crebit-x-1"

    def test_domain_errors_are_raised(self):
        def handler(request):
            return httpx.Response(400, json={"error": "bad amount", "code": "invalid_amount"})

        with self.make_client(handler) as client:
            with pytest.raises(InvalidAmount, match="bad amount"):
                client.create_checkout(1)

    def test_other_errors_raise_http_errors(self):
        def handler(request):
            return httpx.Response(500, text="boom")

        with self.make_client(handler) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.get_company()

    def test_wait_for_recharge(self):
        balances = iter(["100000.00", "100000.00", "150000.00"])

        def handler(request):
            assert request.url.path == "/api/v1/companies/me/"
            return httpx.Response(200, json={"balance": next(balances)})

        with self.make_client(handler) as client:
            result = client.wait_for_recharge(interval=0, max_attempts=5)

        assert result.outcome is PollOutcome.CONFIRMED
        assert result.balance == Decimal("150000.00")

    def test_wait_for_recharge_survives_server_errors(self):
        responses = iter([
            httpx.Response(503, text="unavailable"),
            httpx.Response(200, json={"balance": "150000.00"}),
        ])

        def handler(request):
            return next(responses)

        with self.make_client(handler) as client:
            result = client.wait_for_recharge(initial_balance=Decimal("100000"), interval=0, max_attempts=3)

        assert result.outcome is PollOutcome.CONFIRMED
        assert result.attempts == 2

    def test_payment_required_maps_to_insufficient_funds(self):
        def handler(request):
            return httpx.Response(402, json={"error": "no money", "code": "insufficient_funds"})

        with self.make_client(handler) as client:
            with pytest.raises(InsufficientFunds):
                client.get_company()
