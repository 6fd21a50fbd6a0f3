"""Pydantic schemas for API request/response validation."""

from billingcore.schemas.billing_profile import (
    BillingProfile,
    BillingProfileFields,
    BillingProfileUpdate,
)
from billingcore.schemas.credit import (
    AdminUserCredits,
    BillingStatistics,
    CreditAmount,
    CreditsAdded,
    CreditsRemoved,
    CreditsSet,
    UserBilling,
    UserCredits,
)
from billingcore.schemas.currency import (
    CreditsSettings,
    CreditsSettingsUpdate,
    Currency,
    CurrencyList,
    CurrencySettings,
    CurrencySettingsUpdate,
)
from billingcore.schemas.invoice import (
    Invoice,
    InvoiceCreate,
    InvoiceCustomer,
    InvoiceDetail,
    InvoiceItem,
    InvoiceItemCreate,
    InvoiceItemUpdate,
    InvoiceList,
    InvoiceSeller,
    InvoiceUpdate,
)
from billingcore.schemas.pagination import ListMeta, Pagination
from billingcore.schemas.user import UserList, UserSearchResult, UserWithCredits

__all__ = [
    # Billing profile schemas
    "BillingProfile",
    "BillingProfileFields",
    "BillingProfileUpdate",
    # Credit schemas
    "AdminUserCredits",
    "BillingStatistics",
    "CreditAmount",
    "CreditsAdded",
    "CreditsRemoved",
    "CreditsSet",
    "UserBilling",
    "UserCredits",
    # Currency schemas
    "CreditsSettings",
    "CreditsSettingsUpdate",
    "Currency",
    "CurrencyList",
    "CurrencySettings",
    "CurrencySettingsUpdate",
    # Invoice schemas
    "Invoice",
    "InvoiceCreate",
    "InvoiceCustomer",
    "InvoiceDetail",
    "InvoiceItem",
    "InvoiceItemCreate",
    "InvoiceItemUpdate",
    "InvoiceList",
    "InvoiceSeller",
    "InvoiceUpdate",
    # Pagination
    "ListMeta",
    "Pagination",
    # User directory schemas
    "UserList",
    "UserSearchResult",
    "UserWithCredits",
]
