# apps/companies/serializers.py

from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.common.enums import PlanTier
from .models import Company, LedgerEntry


class CompanySerializer(serializers.ModelSerializer):
    """Company account as seen by its owner and by admins."""

    free_leads_remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = Company
        fields = [
            "id",
            "name",
            "tax_id",
            "plan",
            "balance",
            "is_active",
            "purchased_leads",
            "free_leads_limit",
            "free_leads_used",
            "free_leads_remaining",
            "created_at",
        ]
        read_only_fields = fields


class LedgerEntrySerializer(serializers.ModelSerializer):

    class Meta:
        model = LedgerEntry
        fields = ["id", "kind", "amount", "balance_after", "reference", "created_at"]


class BalanceAdjustmentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)

    def validate_amount(self, value):
        if value == 0:
            raise serializers.ValidationError("Amount cannot be zero")
        return value


class PlanChangeSerializer(serializers.Serializer):
    plan = serializers.ChoiceField(choices=PlanTier.choices)


class SignupSerializer(serializers.Serializer):
    company_name = serializers.CharField(max_length=255)
    tax_id = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    plan = serializers.ChoiceField(choices=PlanTier.choices, default=PlanTier.FREEMIUM)

    def validate_email(self, value):
        value = value.lower()
        if get_user_model().objects.filter(username=value).exists():
            raise serializers.ValidationError("An account with this email already exists")
        return value
