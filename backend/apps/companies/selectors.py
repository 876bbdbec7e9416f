# apps/companies/selectors.py

from decimal import Decimal

from django.db.models import QuerySet

from apps.common.exceptions import CompanyNotFound, Unauthenticated

from .models import Company, LedgerEntry


def get_company_for_user(user) -> Company | None:
    if user is None or not user.is_authenticated:
        return None
    return Company.objects.filter(user=user).first()


def require_company(user) -> Company:
    """Company of an authenticated buyer; raises Unauthenticated otherwise."""
    company = get_company_for_user(user)
    if company is None:
        raise Unauthenticated()
    return company


def get_balance(company_id) -> Decimal:
    """Fresh balance read straight from the database."""
    balance = Company.objects.filter(id=company_id).values_list("balance", flat=True).first()
    if balance is None:
        raise CompanyNotFound()
    return balance


def get_ledger_for_company(company: Company) -> QuerySet[LedgerEntry]:
    return company.ledger_entries.all().order_by("-created_at", "-id")
