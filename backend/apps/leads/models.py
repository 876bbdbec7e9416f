# apps/leads/models.py

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from apps.common.enums import IntentionTier, LeadStatus, PlanTier, RiskTier, Vertical
from apps.common.models import TimestampedModel


class Lead(TimestampedModel):
    """A credit prospect offered for sale on the marketplace."""

    # Contact data, only revealed to the buyer
    name = models.CharField(max_length=255)
    national_id = models.CharField(max_length=30, blank=True, default="")
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=30, blank=True, default="")
    payroll_entity = models.CharField(max_length=255, blank=True, default="")

    # Qualification
    vertical = models.CharField(max_length=20, choices=Vertical.choices, db_index=True)
    risk = models.CharField(max_length=10, choices=RiskTier.choices, db_index=True)
    intention = models.CharField(
        max_length=10,
        choices=IntentionTier.choices,
        default=IntentionTier.MEDIUM,
    )
    score = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(100)],
    )
    requested_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        help_text="Credit amount the prospect is asking for",
    )
    price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(0)],
    )

    # Lifecycle
    status = models.CharField(
        max_length=20,
        choices=LeadStatus.choices,
        default=LeadStatus.CAPTURED,
        db_index=True,
    )
    is_sold = models.BooleanField(default=False)
    is_converted = models.BooleanField(default=False)
    sold_at = models.DateTimeField(null=True, blank=True)
    buyer = models.ForeignKey(
        "companies.Company",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bought_leads",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "vertical", "risk"]),
            models.Index(fields=["status", "-created_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(price__gte=0),
                name="lead_price_non_negative",
            ),
        ]

    def __str__(self):
        return f"Lead {self.id} ({self.vertical}, {self.risk}, {self.status})"


class Purchase(models.Model):
    """
    Completed sale of a lead to a company.

    Immutable after creation except ``is_converted``, which only ever
    goes from False to True.
    """
    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.PROTECT,
        related_name="purchases",
    )
    lead = models.OneToOneField(
        Lead,
        on_delete=models.PROTECT,
        related_name="purchase",
    )
    price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="Amount actually paid; 0 for freemium free leads",
    )
    plan = models.CharField(max_length=20, choices=PlanTier.choices)
    subscription = models.ForeignKey(
        "subscriptions.Subscription",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases",
        help_text="Set when the lead was bought automatically",
    )
    is_converted = models.BooleanField(default=False)
    purchased_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-purchased_at"]
        indexes = [
            models.Index(fields=["company", "-purchased_at"]),
        ]

    def __str__(self):
        return f"Purchase {self.id}: lead {self.lead_id} -> {self.company_id}"
