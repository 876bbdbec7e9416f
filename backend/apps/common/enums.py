# apps/common/enums.py

from django.db import models


class RiskTier(models.TextChoices):
    """Credit risk of a lead."""
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"


class IntentionTier(models.TextChoices):
    """How likely the prospect is to take the credit."""
    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"
    LOW = "low", "Low"


class Vertical(models.TextChoices):
    """Pension/payroll segment the lead belongs to."""
    COLPENSIONES = "colpensiones", "Colpensiones"
    FOPEP = "fopep", "Fopep"
    MAGISTERIO = "magisterio", "Magisterio"
    MILITARY = "military", "Fuerzas Militares"


class LeadStatus(models.TextChoices):
    """Lifecycle states for leads."""
    CAPTURED = "captured", "Captured"
    OFFERED = "offered", "Offered"
    RESERVED = "reserved", "Reserved"
    SOLD = "sold", "Sold"
    REJECTED = "rejected", "Rejected"
    IN_REVIEW = "in_review", "In review"


class PlanTier(models.TextChoices):
    """Company subscription plans."""
    FREEMIUM = "freemium", "Freemium"
    BASIC = "basic", "Basic"
    PROFESSIONAL = "professional", "Professional"
    ENTERPRISE = "enterprise", "Enterprise"


class ReportStatus(models.TextChoices):
    """Status states for lead reports."""
    PENDING = "pending", "Pending"
    IN_REVIEW = "in_review", "In review"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class ReportReason(models.TextChoices):
    WRONG_DATA = "wrong_data", "Wrong data"
    NO_ANSWER = "no_answer", "Does not answer"
    ALREADY_HAS_CREDIT = "already_has_credit", "Already has a credit"
    NOT_INTERESTED = "not_interested", "Not interested"
    OTHER = "other", "Other"


class LedgerKind(models.TextChoices):
    """Kinds of balance movements."""
    RECHARGE = "recharge", "Recharge"
    PURCHASE = "purchase", "Purchase"
    REFUND = "refund", "Refund"
    ADJUSTMENT = "adjustment", "Adjustment"


class RechargeSource(models.TextChoices):
    WEBHOOK = "webhook", "Webhook"
    RECONCILIATION = "reconciliation", "Reconciliation"
