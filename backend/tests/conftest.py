import itertools
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from apps.common.enums import LeadStatus, PlanTier, RiskTier, Vertical
from apps.companies.models import Company
from apps.companies.services import create_company
from apps.leads.models import Lead


@pytest.fixture
def make_user(django_user_model):
    counter = itertools.count(1)

    def _make(**kwargs):
        n = next(counter)
        return django_user_model.objects.create_user(
            username=f"user{n}",
            email=f"user{n}@example.com",
            password="pass1234",
            **kwargs,
        )
    return _make


@pytest.fixture
def make_company(make_user):
    counter = itertools.count(1)

    def _make(balance=0, plan=PlanTier.BASIC, user=None, **kwargs):
        company = create_company(
            user or make_user(),
            name=f"Company {next(counter)}",
            plan=plan,
        )
        updates = {"balance": Decimal(str(balance)), **kwargs}
        Company.objects.filter(id=company.id).update(**updates)
        company.refresh_from_db()
        return company
    return _make


@pytest.fixture
def make_lead():
    counter = itertools.count(1)

    def _make(
        price=15000,
        risk=RiskTier.LOW,
        vertical=Vertical.COLPENSIONES,
        status=LeadStatus.OFFERED,
        **kwargs,
    ):
        kwargs.setdefault("score", 70)
        kwargs.setdefault("requested_amount", Decimal("20000000"))
        return Lead.objects.create(
            name=f"Prospect {next(counter)}",
            price=Decimal(str(price)),
            risk=risk,
            vertical=vertical,
            status=status,
            **kwargs,
        )
    return _make


@pytest.fixture
def company(make_company):
    return make_company(balance=100000)


@pytest.fixture
def admin_user(make_user):
    return make_user(is_staff=True, is_superuser=True)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def company_client(api_client, company):
    api_client.force_authenticate(user=company.user)
    return api_client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client
