# apps/payments/models.py

from django.db import models

from apps.common.enums import RechargeSource


class CheckoutAttempt(models.Model):
    """
    A signed checkout handed to the payment widget.

    Kept so reconciliation knows which references to ask the gateway about,
    and so webhook events can be checked against what was actually offered.
    """
    reference = models.CharField(max_length=100, unique=True)
    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.CASCADE,
        related_name="checkout_attempts",
    )
    amount_in_cents = models.BigIntegerField()
    currency = models.CharField(max_length=3, default="COP")
    signature = models.CharField(max_length=64)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.reference} ({self.amount_in_cents} {self.currency})"


class Recharge(models.Model):
    """
    An approved gateway transaction that has been credited.

    The unique ``gateway_transaction_id`` is what makes crediting
    exactly-once across webhook retries and reconciliation.
    """
    gateway_transaction_id = models.CharField(max_length=100, unique=True)
    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.PROTECT,
        related_name="recharges",
    )
    reference = models.CharField(max_length=100, db_index=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    amount_in_cents = models.BigIntegerField()
    status = models.CharField(max_length=20)
    payload = models.JSONField(default=dict, blank=True)
    source = models.CharField(
        max_length=20,
        choices=RechargeSource.choices,
        default=RechargeSource.WEBHOOK,
    )
    credited_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-credited_at"]

    def __str__(self):
        return f"Recharge {self.gateway_transaction_id}: {self.amount} -> {self.company_id}"
