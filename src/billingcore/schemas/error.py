"""Structured error response schemas."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    field: str | None = Field(default=None, description="Field that caused the error (for validation errors)")
    value: Any | None = Field(default=None, description="Invalid value (for validation errors)")


class ErrorResponse(BaseModel):
    """Standard error response structure.

    This provides consistent error responses across the API with:
    - Machine-readable error codes
    - Human-readable messages
    - Remediation hints
    - Request tracing information
    """

    error: str = Field(..., description="Error type (e.g., 'ValidationError', 'NotFound', 'Forbidden')")
    message: str = Field(..., description="Primary error message")
    details: list[ErrorDetail] | None = Field(
        default=None, description="Detailed error information (for validation errors)"
    )
    remediation: str | None = Field(default=None, description="Suggestion for fixing the error")
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Error timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "BillingError",
                "message": "Insufficient credits. User has 20 credits",
                "details": [
                    {
                        "code": "insufficient_credits",
                        "message": "Insufficient credits. User has 20 credits",
                    }
                ],
                "remediation": "Remove at most the user's current balance, or add credits first",
                "request_id": "req_1234567890ab",
                "timestamp": "2025-01-15T10:30:00Z",
            }
        }
    )


# Error codes enum for consistency
class ErrorCode:
    """Standard error codes used across the API."""

    # Validation errors (400)
    INVALID_JSON = "invalid_json"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_USER_ID = "invalid_user_id"
    INVALID_CURRENCY = "invalid_currency"
    INVALID_CURRENCY_CODE = "invalid_currency_code"
    INVALID_CREDITS_MODE = "invalid_credits_mode"
    INVALID_TOKENS_PER_CURRENCY = "invalid_tokens_per_currency"
    INVALID_QUERY = "invalid_query"
    INVALID_ENUM_VALUE = "invalid_enum_value"
    INVALID_DATE = "invalid_date"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    VALUE_TOO_LONG = "value_too_long"
    VALIDATION_ERROR = "validation_error"

    # Business logic errors (400)
    INSUFFICIENT_CREDITS = "insufficient_credits"
    INCOMPLETE_PROFILE = "incomplete_profile"
    BILLING_INFO_REQUIRED = "billing_info_required"

    # Not found errors (404)
    USER_NOT_FOUND = "user_not_found"
    INVOICE_NOT_FOUND = "invoice_not_found"
    ITEM_NOT_FOUND = "item_not_found"

    # Authentication/authorization errors (401, 403)
    UNAUTHORIZED = "unauthorized"
    INSUFFICIENT_PERMISSIONS = "insufficient_permissions"

    # External service errors (503)
    DATABASE_ERROR = "database_error"

    # Internal errors (500)
    LEDGER_WRITE_FAILED = "ledger_write_failed"
    CREATE_INVOICE_FAILED = "create_invoice_failed"
    INTERNAL_ERROR = "internal_error"


# Remediation hints for common errors
REMEDIATION_HINTS = {
    ErrorCode.INVALID_JSON: "Send a valid JSON body matching the endpoint schema at /docs",
    ErrorCode.INVALID_AMOUNT: "Provide a whole number of credits (greater than 0, or 0 or more when setting a balance)",
    ErrorCode.INVALID_CURRENCY_CODE: "Use one of the codes returned by /v1/admin/currency/list",
    ErrorCode.INVALID_CREDITS_MODE: "Use 'currency' or 'token'",
    ErrorCode.INVALID_TOKENS_PER_CURRENCY: "Provide a positive number, e.g. '1' or '100'",
    ErrorCode.INVALID_QUERY: "Search with at least 2 characters",
    ErrorCode.INSUFFICIENT_CREDITS: "Remove at most the user's current balance, or add credits first",
    ErrorCode.INCOMPLETE_PROFILE: "Provide full_name, address_line1, city, postal_code and country_code",
    ErrorCode.BILLING_INFO_REQUIRED: "Ask the user to complete their billing profile before invoicing them",
    ErrorCode.USER_NOT_FOUND: "Verify the user ID is correct and the user exists in the panel",
    ErrorCode.INVOICE_NOT_FOUND: "Verify the invoice ID is correct and the invoice exists",
    ErrorCode.ITEM_NOT_FOUND: "Verify the item belongs to the given invoice",
    ErrorCode.LEDGER_WRITE_FAILED: "No credits were changed. Please retry the operation.",
    ErrorCode.CREATE_INVOICE_FAILED: "No invoice was created. Please retry the operation.",
    ErrorCode.DATABASE_ERROR: "Database temporarily unavailable. Please try again in a few moments.",
}
