# apps/companies/services.py

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.authtoken.models import Token

from apps.common.enums import LedgerKind, PlanTier
from apps.common.exceptions import (
    CompanyNotFound,
    DuplicateLedgerEntry,
    InsufficientFunds,
    InvalidAmount,
)
from apps.common.retry import retry_on_conflict
from apps.notifications.services import notify_on_commit

from .models import Company, LedgerEntry

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_amount(amount) -> Decimal:
    """
    Coerce ``amount`` to a positive money Decimal.

    Raises InvalidAmount for anything that is not a positive finite number.
    """
    if isinstance(amount, bool):
        raise InvalidAmount()
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount()
    if not value.is_finite():
        raise InvalidAmount()
    value = value.quantize(CENT, rounding=ROUND_HALF_UP)
    if value <= 0:
        raise InvalidAmount()
    return value


def _record_entry(company_id, amount: Decimal, kind: str, reference: str) -> LedgerEntry:
    # Runs right after the balance UPDATE, so the row lock is held.
    balance_after = Company.objects.values_list("balance", flat=True).get(id=company_id)
    try:
        with transaction.atomic():
            return LedgerEntry.objects.create(
                company_id=company_id,
                kind=kind,
                amount=amount,
                balance_after=balance_after,
                reference=reference,
            )
    except IntegrityError:
        raise DuplicateLedgerEntry(f"{kind} '{reference}' was already applied.")


@retry_on_conflict
def credit(
    company_id,
    amount,
    *,
    kind: str = LedgerKind.ADJUSTMENT,
    reference: str = "",
) -> LedgerEntry:
    """
    Atomically add ``amount`` to a company's balance.

    Args:
        company_id: Company primary key
        amount: Positive finite number
        kind: LedgerKind of the movement
        reference: Idempotency key; a repeated (kind, reference) raises
            DuplicateLedgerEntry and leaves the balance untouched.
    """
    value = to_amount(amount)
    with transaction.atomic():
        updated = Company.objects.filter(id=company_id).update(
            balance=F("balance") + value,
            updated_at=timezone.now(),
        )
        if not updated:
            raise CompanyNotFound()
        entry = _record_entry(company_id, value, kind, reference)

    logger.info(f"Credited {value} to company {company_id} ({kind} {reference or '-'})")
    return entry


@retry_on_conflict
def debit(
    company_id,
    amount,
    *,
    kind: str = LedgerKind.ADJUSTMENT,
    reference: str = "",
) -> LedgerEntry:
    """
    Atomically subtract ``amount`` from a company's balance.

    The sufficiency check and the decrement are one conditional UPDATE,
    so concurrent debits can never drive the balance below zero.
    """
    value = to_amount(amount)
    with transaction.atomic():
        updated = Company.objects.filter(id=company_id, balance__gte=value).update(
            balance=F("balance") - value,
            updated_at=timezone.now(),
        )
        if not updated:
            if not Company.objects.filter(id=company_id).exists():
                raise CompanyNotFound()
            raise InsufficientFunds()
        entry = _record_entry(company_id, -value, kind, reference)

    logger.info(f"Debited {value} from company {company_id} ({kind} {reference or '-'})")
    return entry


def adjust_balance(company_id, amount) -> LedgerEntry:
    """Admin adjustment: positive amounts credit, negative amounts debit."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount()
    if not value.is_finite() or value == 0:
        raise InvalidAmount()

    if value > 0:
        entry = credit(company_id, value, kind=LedgerKind.ADJUSTMENT)
    else:
        entry = debit(company_id, -value, kind=LedgerKind.ADJUSTMENT)

    company = Company.objects.only("user_id").get(id=company_id)
    notify_on_commit(
        company.user_id,
        f"An administrator adjusted your balance by ${entry.amount:,.0f}.",
    )
    return entry


def create_company(
    user,
    name: str,
    tax_id: str = "",
    plan: str = PlanTier.FREEMIUM,
) -> Company:
    """Register the buyer account for a user."""
    free_limit = settings.FREEMIUM_FREE_LEADS if plan == PlanTier.FREEMIUM else 0
    return Company.objects.create(
        user=user,
        name=name,
        tax_id=tax_id,
        plan=plan,
        free_leads_limit=free_limit,
    )


def register_company(
    email: str,
    password: str,
    name: str,
    tax_id: str = "",
    plan: str = PlanTier.FREEMIUM,
) -> tuple[Company, Token]:
    """
    Sign up a buyer: login user, company account and first API key.

    The email doubles as the username.
    """
    with transaction.atomic():
        user = get_user_model().objects.create_user(username=email, email=email, password=password)
        company = create_company(user, name=name, tax_id=tax_id, plan=plan)
        token = Token.objects.create(user=user)
    logger.info(f"Registered company {company.id} ({plan}) for {email}")
    return company, token


def rotate_api_key(user) -> Token:
    """Replace the user's API key; the previous one stops working at once."""
    with transaction.atomic():
        Token.objects.filter(user=user).delete()
        token = Token.objects.create(user=user)
    logger.info(f"API key rotated for user {user.pk}")
    return token


def change_plan(company: Company, plan: str) -> Company:
    company.plan = plan
    company.save(update_fields=["plan", "updated_at"])
    logger.info(f"Company {company.id} moved to plan {plan}")
    return company


def set_active(company: Company, is_active: bool) -> Company:
    company.is_active = is_active
    company.save(update_fields=["is_active", "updated_at"])
    return company
