"""Pydantic schemas for Invoice and InvoiceItem models."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from billingcore.models.invoice import InvoiceStatus
from billingcore.schemas.billing_profile import BillingProfile, BillingProfileFields
from billingcore.schemas.pagination import ListMeta


class InvoiceItemCreate(BaseModel):
    """Schema for adding an invoice item."""

    description: str = Field(..., min_length=1, max_length=500, description="Line item description")
    quantity: Decimal = Field(default=Decimal("1"), ge=0, max_digits=10, decimal_places=2, description="Quantity")
    unit_price: Decimal = Field(default=Decimal("0"), max_digits=15, decimal_places=2, description="Price per unit")
    sort_order: Optional[int] = Field(default=None, description="Position on the invoice (defaults to last)")


class InvoiceItemUpdate(BaseModel):
    """Schema for updating an invoice item."""

    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    quantity: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    unit_price: Optional[Decimal] = Field(default=None, max_digits=15, decimal_places=2)
    sort_order: Optional[int] = None


class InvoiceCreate(BaseModel):
    """Schema for creating a new invoice."""

    user_id: int = Field(..., gt=0, description="Panel user ID the invoice is issued to")
    invoice_number: Optional[str] = Field(default=None, max_length=64, description="Generated when omitted")
    status: InvoiceStatus = Field(default=InvoiceStatus.DRAFT, description="Initial status")
    due_date: Optional[date] = Field(default=None, description="Payment due date")
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=100, decimal_places=2, description="Tax percentage")
    notes: Optional[str] = Field(default=None, description="Free-form notes")
    items: list[InvoiceItemCreate] = Field(default_factory=list, description="Invoice line items")


class InvoiceUpdate(BaseModel):
    """Schema for updating an invoice.

    ``currency_code`` is accepted for compatibility and ignored; an
    invoice keeps the currency it was created in.
    """

    status: Optional[InvoiceStatus] = None
    due_date: Optional[date] = None
    paid_at: Optional[datetime] = None
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100, decimal_places=2)
    notes: Optional[str] = None
    currency_code: Optional[str] = None


class InvoiceItem(BaseModel):
    """Schema for returning an invoice item."""

    id: int
    invoice_id: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal
    sort_order: int
    unit_price_formatted: str
    total_formatted: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_item(cls, item: Any, display) -> "InvoiceItem":
        return cls(
            id=item.id,
            invoice_id=item.invoice_id,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=item.total,
            sort_order=item.sort_order,
            unit_price_formatted=display.format(item.unit_price),
            total_formatted=display.format(item.total),
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class Invoice(BaseModel):
    """Schema for returning invoice data with display-formatted amounts."""

    id: int
    user_id: int
    invoice_number: str
    status: InvoiceStatus
    due_date: Optional[date]
    paid_at: Optional[datetime]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    currency_code: str
    notes: Optional[str]
    subtotal_formatted: str
    tax_amount_formatted: str
    total_formatted: str
    username: Optional[str] = None
    email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_invoice(cls, invoice: Any, display) -> "Invoice":
        return cls(**cls._fields_from(invoice, display))

    @staticmethod
    def _fields_from(invoice: Any, display) -> dict[str, Any]:
        user = invoice.user
        return {
            "id": invoice.id,
            "user_id": invoice.user_id,
            "invoice_number": invoice.invoice_number,
            "status": invoice.status,
            "due_date": invoice.due_date,
            "paid_at": invoice.paid_at,
            "subtotal": invoice.subtotal,
            "tax_rate": invoice.tax_rate,
            "tax_amount": invoice.tax_amount,
            "total": invoice.total,
            "currency_code": invoice.currency_code,
            "notes": invoice.notes,
            "subtotal_formatted": display.format(invoice.subtotal),
            "tax_amount_formatted": display.format(invoice.tax_amount),
            "total_formatted": display.format(invoice.total),
            "username": user.username if user is not None else None,
            "email": user.email if user is not None else None,
            "created_at": invoice.created_at,
            "updated_at": invoice.updated_at,
        }


class InvoiceCustomer(BaseModel):
    """Buyer block printed on an invoice."""

    billing_info: Optional[BillingProfile]
    username: Optional[str] = None
    email: Optional[str] = None


class InvoiceSeller(BaseModel):
    """Seller block printed on an invoice."""

    billing_info: BillingProfileFields


class InvoiceDetail(Invoice):
    """Schema for a single invoice with items and both billing parties."""

    items: list[InvoiceItem]
    customer: Optional[InvoiceCustomer] = None
    admin: Optional[InvoiceSeller] = None

    @classmethod
    def from_invoice(
        cls,
        invoice: Any,
        display,
        customer: Optional[InvoiceCustomer] = None,
        admin: Optional[InvoiceSeller] = None,
    ) -> "InvoiceDetail":
        return cls(
            **cls._fields_from(invoice, display),
            items=[InvoiceItem.from_item(item, display) for item in invoice.items],
            customer=customer,
            admin=admin,
        )


class InvoiceList(BaseModel):
    """Schema for paginated invoice list."""

    data: list[Invoice]
    meta: ListMeta
