"""SQLAlchemy ORM models for billingcore."""
# Import all models here to ensure they are registered with Alembic

from billingcore.models.base import Base
from billingcore.models.user import User
from billingcore.models.balance import Balance
from billingcore.models.billing_profile import BillingProfile, PROFILE_FIELDS, REQUIRED_PROFILE_FIELDS
from billingcore.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from billingcore.models.setting import Setting
from billingcore.models.activity import Activity

__all__ = [
    "Base",
    "User",
    "Balance",
    "BillingProfile",
    "PROFILE_FIELDS",
    "REQUIRED_PROFILE_FIELDS",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "Setting",
    "Activity",
]
