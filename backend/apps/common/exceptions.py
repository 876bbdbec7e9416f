# apps/common/exceptions.py

"""
Domain errors raised by the marketplace services.

Services raise these; views let them propagate and the DRF exception
handler below renders them as ``{"error": ..., "code": ...}`` with the
status code carried by the exception class.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class CrebitError(Exception):
    """Base class for all marketplace domain errors."""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    default_message = "The operation could not be completed."
    retryable = False

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# === Ledger ===

class InsufficientFunds(CrebitError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "insufficient_funds"
    default_message = "Insufficient balance to complete the purchase."


class InvalidAmount(CrebitError):
    code = "invalid_amount"
    default_message = "Amount must be a positive finite number."


class DuplicateLedgerEntry(CrebitError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_ledger_entry"
    default_message = "This balance movement was already recorded."


class CompanyNotFound(CrebitError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "company_not_found"
    default_message = "Company not found."


class CompanyInactive(CrebitError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "company_inactive"
    default_message = "This company account is inactive."


# === Leads & purchases ===

class LeadNotFound(CrebitError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "lead_not_found"
    default_message = "Lead not found."


class LeadUnavailable(CrebitError):
    status_code = status.HTTP_409_CONFLICT
    code = "lead_unavailable"
    default_message = "This lead is no longer available."


class InvalidTransition(CrebitError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"
    default_message = "Status change not allowed."


class PurchaseNotFound(CrebitError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "purchase_not_found"
    default_message = "Purchase not found."


class QuotaExceeded(CrebitError):
    status_code = status.HTTP_409_CONFLICT
    code = "quota_exceeded"
    default_message = "Daily purchase limit reached for this subscription."


# === Payments ===

class InvalidSignature(CrebitError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_signature"
    default_message = "Invalid signature."


class MalformedReference(CrebitError):
    code = "malformed_reference"
    default_message = "Malformed payment reference."


class Unauthenticated(CrebitError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Authentication required. Please sign in again."


class GatewayError(CrebitError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "gateway_error"
    default_message = "The payment gateway could not be reached."
    retryable = True


# === Reports ===

class ReportNotFound(CrebitError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "report_not_found"
    default_message = "Report not found."


class AlreadyResolved(CrebitError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_resolved"
    default_message = "This report has already been resolved."


class ReportNotAllowed(CrebitError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "report_not_allowed"
    default_message = "Only the buyer of a lead can report it."


class DuplicateReport(CrebitError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_report"
    default_message = "This lead has already been reported."


# === Storage ===

class StorageConflict(CrebitError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "storage_conflict"
    default_message = "The operation conflicted with a concurrent update. Try again."
    retryable = True


def api_exception_handler(exc, context):
    """Render domain errors; defer everything else to DRF."""
    if isinstance(exc, CrebitError):
        view = context.get("view")
        logger.info(f"{exc.code} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}")
        return Response(
            {"error": exc.message, "code": exc.code},
            status=exc.status_code,
        )
    return exception_handler(exc, context)
