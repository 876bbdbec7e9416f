# apps/reports/models.py

from django.db import models

from apps.common.enums import ReportReason, ReportStatus
from apps.common.models import TimestampedModel


class Report(TimestampedModel):
    """A buyer's quality complaint about a lead it purchased."""

    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.CASCADE,
        related_name="reports",
    )
    lead = models.ForeignKey(
        "leads.Lead",
        on_delete=models.CASCADE,
        related_name="reports",
    )
    reason = models.CharField(max_length=30, choices=ReportReason.choices)
    comment = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.PENDING,
        db_index=True,
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "lead"],
                name="unique_report_per_company_lead",
            ),
        ]

    def __str__(self):
        return f"Report {self.id} on lead {self.lead_id} ({self.status})"

    @property
    def is_resolved(self) -> bool:
        return self.status in (ReportStatus.APPROVED, ReportStatus.REJECTED)
