# apps/payments/polling.py

"""
Observation-only balance polling after a checkout.

The webhook is what credits a recharge. The poller only watches the
balance so a caller can tell the user early; giving up never means the
payment failed.
"""

import enum
import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

import httpx
from django.conf import settings
from django.db import DatabaseError

from apps.common.exceptions import GatewayError
from apps.companies.selectors import get_balance

logger = logging.getLogger(__name__)

CONFIRMED_MESSAGE = "Recharge successful! Your new balance has been credited."
INCONCLUSIVE_MESSAGE = (
    "We could not confirm your payment instantly. "
    "If it was approved, your balance will update shortly."
)
CANCELLED_MESSAGE = "Balance check cancelled."


class PollOutcome(enum.Enum):
    CONFIRMED = "confirmed"
    INCONCLUSIVE = "inconclusive"
    CANCELLED = "cancelled"


@dataclass
class PollResult:
    outcome: PollOutcome
    attempts: int
    balance: Decimal | None
    message: str

    @property
    def confirmed(self) -> bool:
        return self.outcome is PollOutcome.CONFIRMED


class BalancePoller:
    """
    Poll ``fetch_balance`` until it rises above ``initial_balance``.

    Waits ``interval`` seconds before every read, for at most
    ``max_attempts`` reads. A read that raises one of ``transient_errors``
    is logged and spends an attempt. Setting ``cancel_event`` (or calling
    cancel()) stops the loop at the next wait.
    """

    def __init__(
        self,
        fetch_balance: Callable[[], Decimal],
        initial_balance,
        interval: float | None = None,
        max_attempts: int | None = None,
        cancel_event: threading.Event | None = None,
        transient_errors: tuple[type[BaseException], ...] = (httpx.HTTPError, DatabaseError, GatewayError),
    ):
        self.fetch_balance = fetch_balance
        self.initial_balance = Decimal(str(initial_balance))
        self.interval = settings.RECHARGE_POLL_INTERVAL_SECONDS if interval is None else interval
        self.max_attempts = settings.RECHARGE_POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.cancel_event = cancel_event or threading.Event()
        self.transient_errors = transient_errors

    def cancel(self) -> None:
        self.cancel_event.set()

    def run(self) -> PollResult:
        last_balance = None

        for attempt in range(1, self.max_attempts + 1):
            if self.cancel_event.wait(self.interval):
                return PollResult(PollOutcome.CANCELLED, attempt - 1, last_balance, CANCELLED_MESSAGE)

            try:
                last_balance = Decimal(str(self.fetch_balance()))
            except self.transient_errors as e:
                logger.warning(f"Balance read failed (attempt {attempt}/{self.max_attempts}): {e}")
                continue

            if last_balance > self.initial_balance:
                logger.info(f"Balance rose to {last_balance} after {attempt} attempt(s)")
                return PollResult(PollOutcome.CONFIRMED, attempt, last_balance, CONFIRMED_MESSAGE)

        logger.info(f"Balance unchanged after {self.max_attempts} attempt(s)")
        return PollResult(PollOutcome.INCONCLUSIVE, self.max_attempts, last_balance, INCONCLUSIVE_MESSAGE)


def poll_company_balance(company_id, initial_balance, **kwargs) -> PollResult:
    """Run a BalancePoller against the database balance of a company."""
    return BalancePoller(lambda: get_balance(company_id), initial_balance, **kwargs).run()
