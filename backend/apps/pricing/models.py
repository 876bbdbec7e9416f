# apps/pricing/models.py

from django.conf import settings
from django.db import models

DEFAULT_LEAD_PRICES = {"low": 20000, "medium": 10000, "high": 5000}
DEFAULT_COMMISSION_RATES = {"freemium": 0, "basic": 5, "professional": 10, "enterprise": 15}


class PricingConfig(models.Model):
    """
    One immutable version of the platform pricing.

    Updates insert a new row with the next version; the highest version is
    the one in force. Older rows remain as history.
    """
    version = models.PositiveIntegerField(unique=True)
    lead_prices = models.JSONField(
        default=dict,
        help_text="Default lead price per risk tier, e.g. {'low': 20000}",
    )
    commission_rates = models.JSONField(
        default=dict,
        help_text="Commission percentage per plan tier",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-version"]

    def __str__(self):
        return f"Pricing v{self.version}"
