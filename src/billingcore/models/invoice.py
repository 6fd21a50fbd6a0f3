"""Invoice and invoice item models."""
import enum

from sqlalchemy import Column, Date, DateTime, Enum as SQLEnum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from billingcore.models.base import Base


class InvoiceStatus(str, enum.Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(Base):
    """
    Invoice issued to a single user.

    ``subtotal``, ``tax_amount`` and ``total`` are derived from the item set
    and recomputed whenever items or the tax rate change.
    """

    __tablename__ = "billing_invoices"
    __table_args__ = (Index("ix_billing_invoices_status_created", "status", "created_at"),)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_number = Column(String(64), nullable=False, unique=True, index=True)  # INV-20250101-1A2B3C4D
    status = Column(
        SQLEnum(
            InvoiceStatus,
            name="invoicestatus",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=InvoiceStatus.DRAFT,
        index=True,
    )
    due_date = Column(Date, nullable=True, index=True)
    paid_at = Column(DateTime, nullable=True)
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)  # Percentage
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    currency_code = Column(String(3), nullable=False, default="EUR")
    notes = Column(Text, nullable=True)

    # Relationships
    user = relationship("User", back_populates="invoices", lazy="joined")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="(InvoiceItem.sort_order, InvoiceItem.id)",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Invoice(id={self.id}, number={self.invoice_number}, status={self.status.value}, total={self.total})>"


class InvoiceItem(Base):
    """A single billable line on an invoice."""

    __tablename__ = "billing_invoice_items"

    invoice_id = Column(Integer, ForeignKey("billing_invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False, default=1)
    unit_price = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)  # quantity * unit_price
    sort_order = Column(Integer, nullable=False, default=0, index=True)

    # Relationships
    invoice = relationship("Invoice", back_populates="items")

    def __repr__(self) -> str:
        """String representation."""
        return f"<InvoiceItem(id={self.id}, invoice_id={self.invoice_id}, total={self.total})>"
