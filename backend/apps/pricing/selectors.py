# apps/pricing/selectors.py

from decimal import Decimal

from .models import DEFAULT_COMMISSION_RATES, DEFAULT_LEAD_PRICES, PricingConfig


def get_active_config() -> PricingConfig | None:
    return PricingConfig.objects.order_by("-version").first()


def get_active_pricing() -> dict:
    """Pricing currently in force, falling back to the built-in defaults."""
    config = get_active_config()
    if config is None:
        return {
            "version": 0,
            "lead_prices": dict(DEFAULT_LEAD_PRICES),
            "commission_rates": dict(DEFAULT_COMMISSION_RATES),
        }
    return {
        "version": config.version,
        "lead_prices": {**DEFAULT_LEAD_PRICES, **config.lead_prices},
        "commission_rates": {**DEFAULT_COMMISSION_RATES, **config.commission_rates},
    }


def price_for_risk(risk: str) -> Decimal:
    return Decimal(str(get_active_pricing()["lead_prices"][risk]))
