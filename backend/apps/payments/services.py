# apps/payments/services.py

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.common.enums import LedgerKind, RechargeSource
from apps.common.exceptions import (
    DuplicateLedgerEntry,
    GatewayError,
    InvalidAmount,
    InvalidSignature,
    MalformedReference,
    StorageConflict,
    Unauthenticated,
)
from apps.common.retry import retry_on_conflict
from apps.companies.models import Company
from apps.companies.selectors import get_company_for_user
from apps.companies.services import credit
from apps.notifications.services import notify_on_commit

from .gateway import WompiClient
from .models import CheckoutAttempt, Recharge
from .signatures import event_checksum, integrity_signature, signatures_match

logger = logging.getLogger(__name__)

APPROVED_EVENT = "transaction.updated"
APPROVED_STATUS = "APPROVED"
REFERENCE_ATTEMPTS = 5

# Webhook / reconciliation outcomes
CREDITED = "credited"
DUPLICATE = "duplicate"
IGNORED = "ignored"


@dataclass
class Checkout:
    """Everything the payment widget needs to open a checkout."""
    reference: str
    signature: str
    amount_in_cents: int
    currency: str
    public_key: str

    def to_dict(self) -> dict:
        return {
            "reference": self.reference,
            "signature": self.signature,
            "amountInCents": self.amount_in_cents,
            "currency": self.currency,
            "publicKey": self.public_key,
        }


# === References ===

def build_reference(company_id, epoch_millis: int | None = None) -> str:
    """``crebit-<companyUUID>-<epochMillis>``"""
    if epoch_millis is None:
        epoch_millis = int(time.time() * 1000)
    return f"{settings.CHECKOUT_REFERENCE_PREFIX}-{company_id}-{epoch_millis}"


def parse_reference(reference) -> uuid.UUID:
    """
    Extract the company id from a checkout reference.

    The company id is a UUID and contains dashes itself, so the reference
    is split on its last dash only.
    """
    prefix = f"{settings.CHECKOUT_REFERENCE_PREFIX}-"
    if not isinstance(reference, str) or not reference.startswith(prefix):
        raise MalformedReference(f"Unexpected reference: {reference!r}")

    company_part, sep, millis = reference[len(prefix):].rpartition("-")
    if not sep or not millis.isdigit():
        raise MalformedReference(f"Reference has no timestamp: {reference!r}")
    try:
        return uuid.UUID(company_part)
    except ValueError:
        raise MalformedReference(f"Reference has no valid company id: {reference!r}")


def whole_cents(value) -> int | None:
    """Positive whole number of cents, or None. ``5000000.0`` counts as whole."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def _amount_in_cents(value) -> int:
    cents = whole_cents(value)
    if cents is None:
        raise MalformedReference(f"Invalid amount: {value!r}")
    return cents


# === Checkout ===

def create_checkout(user, amount_in_cents) -> Checkout:
    """
    Prepare a signed checkout for a balance recharge.

    Args:
        user: Request user; must be authenticated and own a company
        amount_in_cents: Positive whole number within the recharge bounds

    Raises:
        Unauthenticated, InvalidAmount, StorageConflict
    """
    company = get_company_for_user(user)
    if company is None:
        raise Unauthenticated()

    amount_in_cents = whole_cents(amount_in_cents)
    if amount_in_cents is None:
        raise InvalidAmount('A valid "amountInCents" must be provided.')
    if not settings.RECHARGE_MIN_CENTS <= amount_in_cents <= settings.RECHARGE_MAX_CENTS:
        raise InvalidAmount(
            f"Recharges must be between ${settings.RECHARGE_MIN_CENTS // 100:,} "
            f"and ${settings.RECHARGE_MAX_CENTS // 100:,}."
        )

    currency = settings.CHECKOUT_CURRENCY
    epoch_millis = int(time.time() * 1000)
    for _ in range(REFERENCE_ATTEMPTS):
        reference = build_reference(company.id, epoch_millis)
        signature = integrity_signature(reference, amount_in_cents, currency, settings.WOMPI_INTEGRITY_SECRET)
        try:
            with transaction.atomic():
                CheckoutAttempt.objects.create(
                    reference=reference,
                    company=company,
                    amount_in_cents=amount_in_cents,
                    currency=currency,
                    signature=signature,
                )
            break
        except IntegrityError:
            # Same company, same millisecond
            epoch_millis += 1
    else:
        raise StorageConflict("Could not allocate a checkout reference. Try again.")

    logger.info(f"Checkout {reference} created for {amount_in_cents} cents")

    return Checkout(
        reference=reference,
        signature=signature,
        amount_in_cents=amount_in_cents,
        currency=currency,
        public_key=settings.WOMPI_PUBLIC_KEY,
    )


# === Webhook ===

def verify_event_signature(payload) -> dict:
    """
    Check the event checksum and return the transaction dict.

    Missing or malformed signature material counts as an invalid signature.
    """
    if not isinstance(payload, dict):
        raise InvalidSignature("Event body is not an object.")

    data = payload.get("data")
    transaction_data = data.get("transaction") if isinstance(data, dict) else None
    signature = payload.get("signature")
    timestamp = payload.get("timestamp")
    if not isinstance(transaction_data, dict) or not isinstance(signature, dict) or timestamp is None:
        raise InvalidSignature("Event is missing signature material.")

    expected = event_checksum(
        transaction_data.get("id"),
        transaction_data.get("status"),
        transaction_data.get("amount_in_cents"),
        timestamp,
        settings.WOMPI_EVENTS_SECRET,
    )
    if not signatures_match(expected, signature.get("checksum")):
        raise InvalidSignature()
    return transaction_data


def process_webhook_event(payload) -> str:
    """
    Handle one gateway event.

    Returns CREDITED, DUPLICATE or IGNORED.

    Raises:
        InvalidSignature: checksum mismatch; the caller answers 401
        MalformedReference: approved event we cannot attribute; the caller
            logs it and still acknowledges
    """
    transaction_data = verify_event_signature(payload)

    event = payload.get("event")
    status = transaction_data.get("status")
    if event != APPROVED_EVENT or status != APPROVED_STATUS:
        logger.info(f"Ignoring gateway event {event} with status {status}")
        return IGNORED

    return apply_approved_transaction(
        transaction_data.get("id"),
        transaction_data.get("amount_in_cents"),
        transaction_data.get("reference"),
        source=RechargeSource.WEBHOOK,
        payload=payload,
    )


@retry_on_conflict
def apply_approved_transaction(
    transaction_id,
    amount_in_cents,
    reference,
    *,
    source: str = RechargeSource.WEBHOOK,
    payload: dict | None = None,
) -> str:
    """
    Credit an approved gateway transaction exactly once.

    The Recharge row (unique on the gateway transaction id) and the ledger
    credit are written in one transaction; a second delivery of the same
    transaction hits the unique constraint and is a no-op.
    """
    if not transaction_id:
        raise MalformedReference("Transaction has no id.")
    transaction_id = str(transaction_id)
    company_id = parse_reference(reference)
    cents = _amount_in_cents(amount_in_cents)

    company = Company.objects.filter(id=company_id).only("id", "user_id").first()
    if company is None:
        raise MalformedReference(f"Reference {reference} points to an unknown company.")

    attempt = CheckoutAttempt.objects.filter(reference=reference).first()
    if attempt is not None and (attempt.company_id != company.id or attempt.amount_in_cents != cents):
        raise MalformedReference(f"Transaction {transaction_id} does not match checkout {reference}.")

    if Recharge.objects.filter(gateway_transaction_id=transaction_id).exists():
        logger.info(f"Transaction {transaction_id} already credited")
        return DUPLICATE

    amount = Decimal(cents) / 100
    with transaction.atomic():
        try:
            with transaction.atomic():
                Recharge.objects.create(
                    gateway_transaction_id=transaction_id,
                    company=company,
                    reference=reference,
                    amount=amount,
                    amount_in_cents=cents,
                    status=APPROVED_STATUS,
                    payload=payload or {},
                    source=source,
                )
        except IntegrityError:
            logger.info(f"Transaction {transaction_id} already credited")
            return DUPLICATE

        try:
            credit(company.id, amount, kind=LedgerKind.RECHARGE, reference=transaction_id)
        except DuplicateLedgerEntry:
            logger.warning(f"Ledger already holds transaction {transaction_id}; recording it as credited")
            return DUPLICATE

        notify_on_commit(
            company.user_id,
            f"Recharge successful: ${amount:,.0f} has been credited to your balance.",
        )

    logger.info(f"Credited {amount} to company {company.id} from transaction {transaction_id} ({source})")
    return CREDITED


# === Reconciliation ===

def get_open_checkouts(now: datetime | None = None):
    """Recent checkout attempts that have not been credited yet."""
    now = now or timezone.now()
    cutoff = now - timedelta(hours=settings.RECONCILE_CHECKOUT_MAX_AGE_HOURS)
    credited = Recharge.objects.values("reference")
    return (
        CheckoutAttempt.objects
        .filter(created_at__gte=cutoff)
        .exclude(reference__in=credited)
        .order_by("created_at")
    )


def reconcile_checkouts(client: WompiClient | None = None, now: datetime | None = None) -> dict:
    """
    Ask the gateway about open checkouts and credit approved ones.

    Covers webhooks that never arrived. Crediting goes through
    apply_approved_transaction, so a late webhook is still a no-op.
    """
    client = client or WompiClient()
    stats = {"checked": 0, "credited": 0, "errors": 0}

    for attempt in get_open_checkouts(now):
        stats["checked"] += 1
        try:
            transactions = client.find_transactions_by_reference(attempt.reference)
        except GatewayError as e:
            logger.warning(f"Could not reconcile checkout {attempt.reference}: {e.message}")
            stats["errors"] += 1
            continue

        for tx in transactions:
            if not tx.is_approved or tx.reference != attempt.reference:
                continue
            try:
                outcome = apply_approved_transaction(
                    tx.id,
                    tx.amount_in_cents,
                    tx.reference,
                    source=RechargeSource.RECONCILIATION,
                    payload=tx.raw or {},
                )
            except MalformedReference as e:
                logger.error(f"Gateway transaction {tx.id} rejected during reconciliation: {e.message}")
                stats["errors"] += 1
                continue
            if outcome == CREDITED:
                stats["credited"] += 1

    logger.info(f"Checkout reconciliation complete: {stats}")
    return stats
