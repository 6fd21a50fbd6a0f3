"""Pydantic schemas for credit balances."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from billingcore.schemas.billing_profile import BillingProfile
from billingcore.schemas.currency import Currency


class CreditAmount(BaseModel):
    """Schema for add/remove/set credit requests.

    Booleans and numeric strings are rejected rather than coerced. Range
    checks happen in the ledger so every rejection carries the
    ``invalid_amount`` code.
    """

    amount: int = Field(..., strict=True, description="Whole number of credits")


class UserCredits(BaseModel):
    """Schema for the caller's own balance."""

    user_id: int
    credits: int
    credits_formatted: str
    currency: Currency


class UserBilling(UserCredits):
    """Schema for the caller's balance together with their billing profile."""

    billing_info: Optional[BillingProfile] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminUserCredits(UserCredits):
    """Schema for a user's balance as seen by an admin."""

    username: str
    email: str
    uuid: str
    credits_mode: str


class CreditsAdded(BaseModel):
    """Schema returned after adding credits."""

    user_id: int
    amount_added: int
    old_balance: int
    new_balance: int
    new_balance_formatted: str
    currency: Currency


class CreditsRemoved(BaseModel):
    """Schema returned after removing credits."""

    user_id: int
    amount_removed: int
    old_balance: int
    new_balance: int
    new_balance_formatted: str
    currency: Currency


class CreditsSet(BaseModel):
    """Schema returned after overwriting a balance."""

    user_id: int
    old_balance: int
    new_balance: int
    new_balance_formatted: str
    currency: Currency


class UserStatistics(BaseModel):
    """User counts over balance rows."""

    total_with_billing: int
    with_credits: int
    with_zero_credits: int


class CreditStatistics(BaseModel):
    """Credit totals over balance rows."""

    total: int
    total_formatted: str
    average_per_user: Decimal
    average_per_user_formatted: str


class BillingStatistics(BaseModel):
    """Schema for the admin statistics dashboard."""

    users: UserStatistics
    credits: CreditStatistics
    currency: Currency
    credits_mode: str

    @classmethod
    def from_stats(cls, stats: dict[str, Any], display) -> "BillingStatistics":
        return cls(
            users=UserStatistics(
                total_with_billing=stats["total_with_billing"],
                with_credits=stats["with_credits"],
                with_zero_credits=stats["with_zero_credits"],
            ),
            credits=CreditStatistics(
                total=stats["total_credits"],
                total_formatted=display.format(stats["total_credits"]),
                average_per_user=stats["average_per_user"],
                average_per_user_formatted=display.format(stats["average_per_user"]),
            ),
            currency=display.currency,
            credits_mode=display.credits_mode,
        )
