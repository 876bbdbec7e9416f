# apps/subscriptions/models.py

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from apps.common.enums import RiskTier, Vertical
from apps.common.models import TimestampedModel

from .matching import MatchCriteria


class Subscription(TimestampedModel):
    """
    A saved lead filter with a daily purchase quota.

    Every criterion column is nullable; NULL means "any". The quota is a
    rolling 24h window anchored at ``window_started_at``.
    """
    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.CASCADE,
        related_name="subscriptions",
    )
    name = models.CharField(max_length=255)

    # Match criteria
    vertical = models.CharField(max_length=20, choices=Vertical.choices, null=True, blank=True)
    risk = models.CharField(max_length=10, choices=RiskTier.choices, null=True, blank=True)
    min_score = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MaxValueValidator(100)],
    )
    max_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    min_requested_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    # Quota
    max_daily_purchases = models.PositiveIntegerField(
        default=10,
        validators=[MinValueValidator(1)],
    )
    daily_purchases = models.PositiveIntegerField(default=0)
    window_started_at = models.DateTimeField(default=timezone.now)

    is_active = models.BooleanField(default=True, db_index=True)
    auto_buy = models.BooleanField(
        default=False,
        help_text="Buy matching leads automatically instead of only recommending them",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["is_active", "company"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.company_id})"

    @property
    def criteria(self) -> MatchCriteria:
        return MatchCriteria(
            vertical=self.vertical or None,
            risk=self.risk or None,
            min_score=self.min_score,
            max_price=self.max_price,
            min_requested_amount=self.min_requested_amount,
        )

    def matches(self, lead) -> bool:
        return self.criteria.matches(lead)
