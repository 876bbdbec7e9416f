# apps/companies/models.py

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from apps.common.enums import LedgerKind, PlanTier
from apps.common.models import TimestampedModel


class Company(TimestampedModel):
    """A buyer account on the marketplace."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="company",
    )
    name = models.CharField(max_length=255)
    tax_id = models.CharField(max_length=50, blank=True, default="")
    plan = models.CharField(
        max_length=20,
        choices=PlanTier.choices,
        default=PlanTier.FREEMIUM,
        db_index=True,
    )

    # Only ever changed through apps.companies.services.credit/debit
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    is_active = models.BooleanField(default=True, db_index=True)

    purchased_leads = models.PositiveIntegerField(default=0)
    free_leads_limit = models.PositiveIntegerField(default=0)
    free_leads_used = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name_plural = "Companies"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name="company_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(free_leads_used__lte=models.F("free_leads_limit")),
                name="company_free_leads_within_limit",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.plan})"

    @property
    def free_leads_remaining(self) -> int:
        if self.plan != PlanTier.FREEMIUM:
            return 0
        return max(0, self.free_leads_limit - self.free_leads_used)


class LedgerEntry(models.Model):
    """
    Append-only record of one balance movement.

    ``amount`` is signed: credits are positive, debits negative.
    A non-empty ``reference`` is unique per ``kind``; that uniqueness is what
    makes recharges (gateway transaction id) and refunds (purchase id)
    apply exactly once.
    """
    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )
    kind = models.CharField(max_length=20, choices=LedgerKind.choices, db_index=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)
    reference = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name_plural = "Ledger entries"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["kind", "reference"],
                condition=~Q(reference=""),
                name="unique_ledger_reference_per_kind",
            )
        ]
        indexes = [
            models.Index(fields=["company", "created_at"]),
        ]

    def __str__(self):
        return f"{self.kind} {self.amount} -> {self.company_id}"
