# apps/payments/client.py

import logging
import threading
from decimal import Decimal

import httpx

from apps.common.exceptions import CrebitError, GatewayError, StorageConflict

from .polling import BalancePoller, PollResult

logger = logging.getLogger(__name__)


def _error_classes() -> dict[str, type[CrebitError]]:
    classes = {}
    pending = list(CrebitError.__subclasses__())
    while pending:
        cls = pending.pop()
        classes[cls.code] = cls
        pending.extend(cls.__subclasses__())
    return classes


class CrebitClient:
    """
    Client for the marketplace API, for buyers integrating programmatically.

    Domain errors returned by the API (``{"error", "code"}``) are raised
    again as the matching CrebitError subclass.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/",
            headers={
                "Authorization": f"Token {token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _raise_for_error(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        code = body.get("code") if isinstance(body, dict) else None
        error_class = _error_classes().get(code)
        if error_class is not None:
            raise error_class(body.get("error"))
        response.raise_for_status()

    def create_checkout(self, amount_in_cents: int) -> dict:
        """Returns reference, signature, amountInCents, currency and publicKey."""
        response = self._client.post("payments/checkout/", json={"amountInCents": amount_in_cents})
        self._raise_for_error(response)
        return response.json()

    def get_company(self) -> dict:
        response = self._client.get("companies/me/")
        self._raise_for_error(response)
        return response.json()

    def get_balance(self) -> Decimal:
        return Decimal(str(self.get_company()["balance"]))

    def wait_for_recharge(
        self,
        initial_balance=None,
        interval: float | None = None,
        max_attempts: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PollResult:
        """
        Watch the balance after a checkout until it rises or attempts run out.

        An inconclusive result is not a failure; the webhook may just be late.
        """
        if initial_balance is None:
            initial_balance = self.get_balance()
        poller = BalancePoller(
            self.get_balance,
            initial_balance,
            interval=interval,
            max_attempts=max_attempts,
            cancel_event=cancel_event,
            transient_errors=(httpx.HTTPError, GatewayError, StorageConflict),
        )
        return poller.run()
