# apps/pricing/serializers.py

from rest_framework import serializers

from apps.common.enums import PlanTier, RiskTier


class PricingSerializer(serializers.Serializer):
    version = serializers.IntegerField(read_only=True)
    lead_prices = serializers.DictField(child=serializers.DecimalField(max_digits=14, decimal_places=2))
    commission_rates = serializers.DictField(child=serializers.DecimalField(max_digits=5, decimal_places=2))

    def validate_lead_prices(self, value):
        missing = set(RiskTier.values) - set(value)
        if missing:
            raise serializers.ValidationError(f"Missing prices for: {', '.join(sorted(missing))}")
        unknown = set(value) - set(RiskTier.values)
        if unknown:
            raise serializers.ValidationError(f"Unknown risk tiers: {', '.join(sorted(unknown))}")
        if any(price <= 0 for price in value.values()):
            raise serializers.ValidationError("Prices must be positive")
        return {risk: int(price) if price == int(price) else float(price) for risk, price in value.items()}

    def validate_commission_rates(self, value):
        unknown = set(value) - set(PlanTier.values)
        if unknown:
            raise serializers.ValidationError(f"Unknown plans: {', '.join(sorted(unknown))}")
        if any(rate < 0 or rate > 100 for rate in value.values()):
            raise serializers.ValidationError("Commission rates must be between 0 and 100")
        return {plan: float(rate) for plan, rate in value.items()}
