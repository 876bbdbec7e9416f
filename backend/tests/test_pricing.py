from decimal import Decimal

import pytest

from apps.common.enums import RiskTier
from apps.pricing.selectors import get_active_pricing, price_for_risk
from apps.pricing.services import update_pricing

PRICING_URL = "/api/v1/pricing/"


@pytest.mark.django_db
class TestPricing:
    def test_defaults(self):
        pricing = get_active_pricing()
        assert pricing["version"] == 0
        assert pricing["lead_prices"] == {"low": 20000, "medium": 10000, "high": 5000}
        assert pricing["commission_rates"]["enterprise"] == 15

    def test_update_publishes_new_version(self, admin_user):
        first = update_pricing({"low": 25000, "medium": 12000, "high": 6000}, {}, user=admin_user)
        second = update_pricing({"low": 30000, "medium": 12000, "high": 6000}, {"basic": 7})

        assert (first.version, second.version) == (1, 2)
        assert price_for_risk(RiskTier.LOW) == Decimal("30000")
        assert get_active_pricing()["commission_rates"]["basic"] == 7
        # Unspecified plans keep their defaults
        assert get_active_pricing()["commission_rates"]["professional"] == 10


@pytest.mark.django_db
class TestPricingAPI:
    def test_buyers_can_read(self, company_client):
        response = company_client.get(PRICING_URL)
        assert response.status_code == 200
        assert response.json()["version"] == 0

    def test_buyers_cannot_update(self, company_client):
        response = company_client.put(PRICING_URL, {
            "lead_prices": {"low": 1, "medium": 1, "high": 1},
            "commission_rates": {},
        }, format="json")
        assert response.status_code == 403

    def test_admin_update(self, admin_client):
        response = admin_client.put(PRICING_URL, {
            "lead_prices": {"low": 22000, "medium": 11000, "high": 5500},
            "commission_rates": {"basic": 6},
        }, format="json")

        assert response.status_code == 200
        assert response.json()["version"] == 1
        assert price_for_risk(RiskTier.MEDIUM) == Decimal("11000")

    def test_missing_risk_tier(self, admin_client):
        response = admin_client.put(PRICING_URL, {
            "lead_prices": {"low": 22000},
            "commission_rates": {},
        }, format="json")
        assert response.status_code == 400
