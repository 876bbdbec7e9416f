# apps/payments/gateway.py

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx
from django.conf import settings

from apps.common.exceptions import GatewayError

logger = logging.getLogger(__name__)


@dataclass
class GatewayConfig:
    """Configuration for the payment gateway API client."""
    base_url: str
    private_key: str
    timeout: float = 10.0
    max_retries: int = 2
    retry_delay: float = 0.5
    retry_backoff: float = 2.0  # Exponential backoff multiplier

    @classmethod
    def from_settings(cls) -> "GatewayConfig":
        return cls(
            base_url=settings.WOMPI_API_URL,
            private_key=settings.WOMPI_PRIVATE_KEY,
            timeout=settings.WOMPI_TIMEOUT_SECONDS,
        )


@dataclass
class GatewayTransaction:
    """The parts of a gateway transaction we act on."""
    id: str
    status: str
    amount_in_cents: int
    reference: str
    currency: str = "COP"
    raw: dict | None = None

    @property
    def is_approved(self) -> bool:
        return self.status == "APPROVED"

    @classmethod
    def from_api(cls, data: dict) -> "GatewayTransaction":
        return cls(
            id=str(data["id"]),
            status=data.get("status", ""),
            amount_in_cents=data.get("amount_in_cents") or 0,
            reference=data.get("reference", ""),
            currency=data.get("currency", "COP"),
            raw=data,
        )


class WompiClient:
    """
    Read-only client for the gateway transactions API.

    Retries connection errors, timeouts, 5xx and 429 with exponential
    backoff; anything else that is not a 2xx raises GatewayError.
    """

    def __init__(self, config: GatewayConfig | None = None, transport: httpx.BaseTransport | None = None):
        self.config = config or GatewayConfig.from_settings()
        self._transport = transport

    def _should_retry(self, status_code: int | None, attempt: int) -> bool:
        if attempt >= self.config.max_retries:
            return False
        if status_code is None:  # Connection error
            return True
        return status_code >= 500 or status_code == 429

    def _request(self, method: str, path: str, params: dict | None = None) -> dict[str, Any]:
        url = f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self.config.private_key}",
            "Accept": "application/json",
        }
        attempt = 0

        while True:
            status_code = None
            try:
                with httpx.Client(timeout=self.config.timeout, transport=self._transport) as client:
                    response = client.request(method, url, headers=headers, params=params)
                status_code = response.status_code
                if 200 <= status_code < 300:
                    body = response.json()
                    if not isinstance(body, dict):
                        raise GatewayError("Gateway returned an unexpected body.")
                    return body
                error = f"HTTP {status_code}"
            except httpx.TimeoutException as e:
                error = f"Timeout: {e}"
                logger.warning(f"Timeout calling gateway {url}: {e}")
            except httpx.HTTPError as e:
                error = f"Connection error: {e}"
                logger.warning(f"Connection error calling gateway {url}: {e}")
            except ValueError as e:
                raise GatewayError(f"Gateway returned invalid JSON: {e}") from e

            if not self._should_retry(status_code, attempt):
                logger.error(f"Gateway request {method} {url} failed: {error}")
                raise GatewayError(f"Gateway request failed: {error}")

            attempt += 1
            delay = self.config.retry_delay * (self.config.retry_backoff ** (attempt - 1))
            logger.warning(
                f"Retry {attempt}/{self.config.max_retries} for {url} "
                f"({error}), waiting {delay:.1f}s"
            )
            time.sleep(delay)

    def get_transaction(self, transaction_id: str) -> GatewayTransaction:
        body = self._request("GET", f"transactions/{transaction_id}")
        data = body.get("data")
        if not isinstance(data, dict) or "id" not in data:
            raise GatewayError(f"Gateway returned no transaction for {transaction_id}")
        return GatewayTransaction.from_api(data)

    def find_transactions_by_reference(self, reference: str) -> list[GatewayTransaction]:
        body = self._request("GET", "transactions", params={"reference": reference})
        data = body.get("data") or []
        return [GatewayTransaction.from_api(item) for item in data if isinstance(item, dict) and "id" in item]
