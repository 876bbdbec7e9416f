# apps/leads/serializers.py

from rest_framework import serializers

from apps.common.enums import LeadStatus
from .models import Lead, Purchase


class LeadSerializer(serializers.ModelSerializer):
    """Full lead serializer with contact data (admins and buyers)."""

    class Meta:
        model = Lead
        fields = [
            "id",
            "name",
            "national_id",
            "age",
            "email",
            "phone",
            "payroll_entity",
            "vertical",
            "risk",
            "intention",
            "score",
            "requested_amount",
            "price",
            "status",
            "is_sold",
            "is_converted",
            "sold_at",
            "buyer",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id", "status", "is_sold", "is_converted", "sold_at", "buyer",
            "created_at", "updated_at",
        ]


class LeadCreateSerializer(serializers.ModelSerializer):
    """Serializer for creating leads; price defaults from active pricing."""

    price = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, min_value=0)
    status = serializers.ChoiceField(
        choices=[LeadStatus.CAPTURED, LeadStatus.OFFERED],
        default=LeadStatus.OFFERED,
    )

    class Meta:
        model = Lead
        fields = [
            "name",
            "national_id",
            "age",
            "email",
            "phone",
            "payroll_entity",
            "vertical",
            "risk",
            "intention",
            "score",
            "requested_amount",
            "price",
            "status",
        ]


class MarketplaceLeadSerializer(serializers.ModelSerializer):
    """Anonymised lead for the marketplace; contact data stays hidden until bought."""

    recommended = serializers.SerializerMethodField()

    class Meta:
        model = Lead
        fields = [
            "id",
            "age",
            "payroll_entity",
            "vertical",
            "risk",
            "intention",
            "score",
            "requested_amount",
            "price",
            "created_at",
            "recommended",
        ]

    def get_recommended(self, obj):
        return obj.id in self.context.get("recommended_ids", set())


class LeadTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=LeadStatus.choices)


class BulkLeadTransitionSerializer(serializers.Serializer):
    lead_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    status = serializers.ChoiceField(choices=LeadStatus.choices)


class PurchaseSerializer(serializers.ModelSerializer):
    lead = LeadSerializer(read_only=True)

    class Meta:
        model = Purchase
        fields = [
            "id",
            "lead",
            "price",
            "plan",
            "subscription",
            "is_converted",
            "purchased_at",
        ]
        read_only_fields = fields
