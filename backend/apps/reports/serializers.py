# apps/reports/serializers.py

from rest_framework import serializers

from apps.common.enums import ReportReason, ReportStatus
from .models import Report


class ReportSerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source="company.name", read_only=True)

    class Meta:
        model = Report
        fields = [
            "id",
            "company",
            "company_name",
            "lead",
            "reason",
            "comment",
            "status",
            "created_at",
            "resolved_at",
        ]
        read_only_fields = fields


class ReportCreateSerializer(serializers.Serializer):
    lead = serializers.IntegerField()
    reason = serializers.ChoiceField(choices=ReportReason.choices)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class ReportResolveSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=[ReportStatus.APPROVED, ReportStatus.REJECTED])
