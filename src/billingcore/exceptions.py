"""Domain errors raised by billingcore services.

Each error carries a machine-readable ``code`` and the HTTP status the API
layer maps it to. The global exception handler in ``billingcore.main``
renders them as structured error responses.
"""
from typing import Any, Optional

from fastapi import status


class BillingCoreError(Exception):
    """Base class for all billingcore domain errors."""

    code: str = "billingcore_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    error_type: str = "BillingError"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class InvalidAmountError(BillingCoreError):
    """Amount is out of range for the requested ledger operation."""

    code = "invalid_amount"
    error_type = "ValidationError"


class InsufficientCreditsError(BillingCoreError):
    """Removing credits would take the balance below zero."""

    code = "insufficient_credits"

    def __init__(self, user_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient credits. User has {available} credits",
            user_id=user_id,
            available=available,
            requested=requested,
        )
        self.user_id = user_id
        self.available = available
        self.requested = requested


class UserNotFoundError(BillingCoreError):
    """No panel user with the given id."""

    code = "user_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "NotFound"

    def __init__(self, user_id: Any):
        super().__init__("User not found", user_id=user_id)
        self.user_id = user_id


class IncompleteProfileError(BillingCoreError):
    """A billing profile cannot be created without its mandatory fields."""

    code = "incomplete_profile"
    error_type = "ValidationError"

    def __init__(self, message: str, missing_fields: Optional[list[str]] = None):
        super().__init__(message, missing_fields=missing_fields or [])
        self.missing_fields = missing_fields or []


class UserMissingBillingProfileError(BillingCoreError):
    """Invoices can only be issued to users with a billing profile."""

    code = "billing_info_required"

    def __init__(self, user_id: int):
        super().__init__(
            "User must have billing information before creating an invoice",
            user_id=user_id,
        )
        self.user_id = user_id


class InvoiceNotFoundError(BillingCoreError):
    """Invoice is missing or not visible to the caller."""

    code = "invoice_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "NotFound"

    def __init__(self, invoice_id: Any):
        super().__init__("Invoice not found", invoice_id=invoice_id)
        self.invoice_id = invoice_id


class ItemNotFoundError(BillingCoreError):
    """Invoice item is missing or belongs to a different invoice."""

    code = "item_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "NotFound"

    def __init__(self, item_id: Any, invoice_id: Any):
        super().__init__("Invoice item not found", item_id=item_id, invoice_id=invoice_id)
        self.item_id = item_id
        self.invoice_id = invoice_id


class InvalidCurrencyCodeError(BillingCoreError):
    """Currency code is not in the list of available currencies."""

    code = "invalid_currency_code"
    error_type = "ValidationError"

    def __init__(self, currency_code: Any):
        super().__init__("Invalid currency code", currency_code=currency_code)
        self.currency_code = currency_code


class InvalidCreditsModeError(BillingCoreError):
    """Credits mode must be ``currency`` or ``token``."""

    code = "invalid_credits_mode"
    error_type = "ValidationError"

    def __init__(self, mode: Any):
        super().__init__("Invalid credits mode. Must be 'currency' or 'token'", credits_mode=mode)
        self.mode = mode


class InvalidTokenRatioError(BillingCoreError):
    """Tokens per currency unit must be a positive number."""

    code = "invalid_tokens_per_currency"
    error_type = "ValidationError"

    def __init__(self, value: Any):
        super().__init__("Tokens per currency must be a positive number", tokens_per_currency=value)
        self.value = value


class InvalidQueryError(BillingCoreError):
    """Search query is too short or otherwise unusable."""

    code = "invalid_query"
    error_type = "ValidationError"


class LedgerWriteFailedError(BillingCoreError):
    """The balance store failed mid-transaction; nothing was changed."""

    code = "ledger_write_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "InternalServerError"


class InvoiceWriteFailedError(BillingCoreError):
    """The invoice could not be persisted."""

    code = "create_invoice_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "InternalServerError"
