"""Service for invoices, their items and derived totals."""
import secrets
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from billingcore.config import settings
from billingcore.exceptions import (
    InvalidAmountError,
    InvoiceNotFoundError,
    InvoiceWriteFailedError,
    ItemNotFoundError,
    UserMissingBillingProfileError,
    UserNotFoundError,
)
from billingcore.metrics import invoice_number_collisions_total, invoices_created_total, invoices_deleted_total
from billingcore.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from billingcore.models.user import User
from billingcore.services.billing_profile_service import BillingProfileService

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")

# Invoice columns an update may touch directly
UPDATABLE_INVOICE_FIELDS = ("status", "due_date", "paid_at", "notes")

# Item columns an update may touch directly
UPDATABLE_ITEM_FIELDS = ("description", "quantity", "unit_price", "sort_order")


def generate_invoice_number() -> str:
    """
    Generate a random invoice number.

    Format: INV-{YYYYMMDD}-{8 upper-case hex} (e.g., INV-20250101-1A2B3C4D)

    Returns:
        Invoice number string
    """
    return f"INV-{datetime.utcnow():%Y%m%d}-{secrets.token_hex(4).upper()}"


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Convert a numeric request value to Decimal without float rounding."""
    if value is None:
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError("Amount must be a number", amount=value)


def line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    """quantity x unit_price, rounded half-up to cents."""
    return (quantity * unit_price).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_totals(subtotal: Decimal, tax_rate: Decimal) -> tuple[Decimal, Decimal, Decimal]:
    """
    Derive invoice totals.

    Args:
        subtotal: Sum of item totals
        tax_rate: Tax percentage (e.g., 10 for 10%)

    Returns:
        Tuple of (subtotal, tax_amount, total)
    """
    subtotal = subtotal.quantize(CENT, rounding=ROUND_HALF_UP)
    tax_amount = (subtotal * tax_rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)
    return subtotal, tax_amount, subtotal + tax_amount


class InvoiceService:
    """Service for invoice and invoice item management."""

    def __init__(self, db: AsyncSession):
        """Initialize invoice service with database session."""
        self.db = db

    async def create_invoice(
        self,
        user_id: int,
        invoice_data: dict[str, Any],
        items: Optional[list[dict[str, Any]]] = None,
    ) -> Invoice:
        """
        Create an invoice and its items for a user.

        Generates an invoice number when none is given and retries with a
        fresh number when the chosen one already exists.

        Args:
            user_id: Panel user ID
            invoice_data: Invoice fields (invoice_number, status, due_date,
                tax_rate, currency_code, notes, subtotal)
            items: Item dicts with description, quantity, unit_price and
                optional sort_order

        Returns:
            Created invoice with items loaded

        Raises:
            UserNotFoundError: If the user does not exist
            UserMissingBillingProfileError: If the user has no billing profile
            InvoiceWriteFailedError: If no unique invoice number could be stored
        """
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        if not await BillingProfileService(self.db).has_profile(user_id):
            raise UserMissingBillingProfileError(user_id)

        items = items or []
        item_rows = [self._build_item(item, position) for position, item in enumerate(items)]

        if invoice_data.get("subtotal") is not None:
            subtotal = to_decimal(invoice_data["subtotal"])
        else:
            subtotal = sum((row["total"] for row in item_rows), Decimal("0"))

        tax_rate = to_decimal(invoice_data.get("tax_rate"))
        subtotal, tax_amount, total = compute_totals(subtotal, tax_rate)

        invoice_number = invoice_data.get("invoice_number") or generate_invoice_number()
        status = InvoiceStatus(invoice_data.get("status") or InvoiceStatus.DRAFT)

        for attempt in range(1, settings.invoice_number_attempts + 1):
            invoice = Invoice(
                user_id=user_id,
                invoice_number=invoice_number,
                status=status,
                due_date=invoice_data.get("due_date"),
                subtotal=subtotal,
                tax_rate=tax_rate,
                tax_amount=tax_amount,
                total=total,
                currency_code=invoice_data.get("currency_code") or "EUR",
                notes=invoice_data.get("notes"),
                items=[InvoiceItem(**row) for row in item_rows],
            )

            try:
                async with self.db.begin_nested():
                    self.db.add(invoice)
                    await self.db.flush()
            except IntegrityError:
                invoice_number_collisions_total.inc()
                logger.warning(
                    "invoice_number_collision",
                    user_id=user_id,
                    invoice_number=invoice_number,
                    attempt=attempt,
                )
                invoice_number = generate_invoice_number()
                continue

            invoices_created_total.labels(currency=invoice.currency_code).inc()
            logger.info(
                "invoice_created",
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                user_id=user_id,
                item_count=len(item_rows),
                total=str(total),
            )
            return await self.get_invoice(invoice.id)

        logger.error("invoice_create_failed", user_id=user_id, attempts=settings.invoice_number_attempts)
        raise InvoiceWriteFailedError("Failed to create invoice", user_id=user_id)

    async def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """
        Get invoice by ID with its items.

        Args:
            invoice_id: Invoice ID

        Returns:
            Invoice if found, None otherwise
        """
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .options(selectinload(Invoice.items))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_invoice_or_raise(self, invoice_id: int) -> Invoice:
        """Get invoice by ID, raising InvoiceNotFoundError when missing."""
        invoice = await self.get_invoice(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    async def get_invoice_for_user(self, invoice_id: int, user_id: int) -> Invoice:
        """
        Get an invoice only if it belongs to the given user.

        Raises:
            InvoiceNotFoundError: If missing or owned by someone else
        """
        invoice = await self.get_invoice(invoice_id)
        if invoice is None or invoice.user_id != user_id:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    async def list_invoices(
        self,
        user_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Invoice], int]:
        """
        List invoices with filtering and pagination, newest first.

        Args:
            user_id: Filter by owner
            status: Filter by status
            search: Matches invoice number, username and email; a numeric
                search also matches invoice ID and user ID
            page: Page number (1-indexed)
            limit: Items per page

        Returns:
            Tuple of (invoices list, total count)
        """
        filters = []
        if user_id is not None:
            filters.append(Invoice.user_id == user_id)
        if status is not None:
            filters.append(Invoice.status == InvoiceStatus(status))

        search = search.strip() if search else None
        if search:
            pattern = f"%{search.lower()}%"
            conditions = [
                func.lower(Invoice.invoice_number).like(pattern),
                func.lower(User.username).like(pattern),
                func.lower(User.email).like(pattern),
            ]
            if search.isdigit():
                conditions.append(Invoice.id == int(search))
                conditions.append(Invoice.user_id == int(search))
            filters.append(or_(*conditions))

        count_query = (
            select(func.count(Invoice.id)).select_from(Invoice).outerjoin(User, Invoice.user_id == User.id).where(*filters)
        )
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            select(Invoice)
            .outerjoin(User, Invoice.user_id == User.id)
            .where(*filters)
            .options(selectinload(Invoice.items))
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.unique().scalars().all()), total

    async def update_invoice(self, invoice_id: int, fields: dict[str, Any]) -> Invoice:
        """
        Update invoice fields.

        Only status, due_date, paid_at and notes are written directly.
        Passing tax_rate recalculates the totals with the new rate. Totals
        and currency_code cannot be set by the caller.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist
        """
        invoice = await self.get_invoice_or_raise(invoice_id)

        for field in UPDATABLE_INVOICE_FIELDS:
            if field not in fields:
                continue
            value = fields[field]
            if field == "status" and value is not None:
                value = InvoiceStatus(value)
            setattr(invoice, field, value)

        await self.db.flush()

        if fields.get("tax_rate") is not None:
            return await self.recalculate_totals(invoice_id, tax_rate=to_decimal(fields["tax_rate"]))

        logger.info("invoice_updated", invoice_id=invoice_id, fields=sorted(k for k in fields if k in UPDATABLE_INVOICE_FIELDS))
        return await self.get_invoice_or_raise(invoice_id)

    async def delete_invoice(self, invoice_id: int) -> Invoice:
        """
        Delete an invoice together with its items.

        Returns:
            The deleted invoice (detached)

        Raises:
            InvoiceNotFoundError: If the invoice does not exist
        """
        invoice = await self.get_invoice_or_raise(invoice_id)
        await self.db.delete(invoice)
        await self.db.flush()

        invoices_deleted_total.inc()
        logger.info("invoice_deleted", invoice_id=invoice_id, invoice_number=invoice.invoice_number)
        return invoice

    async def add_item(self, invoice_id: int, data: dict[str, Any]) -> InvoiceItem:
        """
        Append an item to an invoice and recalculate its totals.

        ``sort_order`` defaults to the position after the last item.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist
        """
        await self.get_invoice_or_raise(invoice_id)

        if data.get("sort_order") is None:
            result = await self.db.execute(
                select(func.max(InvoiceItem.sort_order)).where(InvoiceItem.invoice_id == invoice_id)
            )
            last = result.scalar()
            position = 0 if last is None else last + 1
        else:
            position = data["sort_order"]

        item = InvoiceItem(invoice_id=invoice_id, **self._build_item(data, position))
        self.db.add(item)
        await self.db.flush()
        await self.db.refresh(item)

        await self.recalculate_totals(invoice_id)
        logger.info("invoice_item_added", invoice_id=invoice_id, item_id=item.id, total=str(item.total))
        return item

    async def update_item(self, invoice_id: int, item_id: int, data: dict[str, Any]) -> InvoiceItem:
        """
        Update an invoice item; its total is recomputed when quantity or
        unit price changes.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist
            ItemNotFoundError: If the item is not on this invoice
        """
        item = await self._get_item(invoice_id, item_id)

        for field in UPDATABLE_ITEM_FIELDS:
            if field not in data or data[field] is None:
                continue
            value = data[field]
            if field in ("quantity", "unit_price"):
                value = to_decimal(value)
            setattr(item, field, value)

        if data.get("quantity") is not None or data.get("unit_price") is not None:
            item.total = line_total(to_decimal(item.quantity), to_decimal(item.unit_price))

        await self.db.flush()
        await self.db.refresh(item)

        await self.recalculate_totals(invoice_id)
        logger.info("invoice_item_updated", invoice_id=invoice_id, item_id=item_id)
        return item

    async def delete_item(self, invoice_id: int, item_id: int) -> None:
        """
        Remove an item from an invoice and recalculate its totals.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist
            ItemNotFoundError: If the item is not on this invoice
        """
        item = await self._get_item(invoice_id, item_id)
        await self.db.delete(item)
        await self.db.flush()

        await self.recalculate_totals(invoice_id)
        logger.info("invoice_item_deleted", invoice_id=invoice_id, item_id=item_id)

    async def recalculate_totals(self, invoice_id: int, tax_rate: Optional[Decimal] = None) -> Invoice:
        """
        Recompute subtotal, tax and total from the stored items.

        Args:
            invoice_id: Invoice ID
            tax_rate: New tax percentage; defaults to the invoice's current rate

        Returns:
            The updated invoice with items loaded

        Raises:
            InvoiceNotFoundError: If the invoice does not exist
        """
        invoice = await self.get_invoice_or_raise(invoice_id)

        result = await self.db.execute(select(InvoiceItem.total).where(InvoiceItem.invoice_id == invoice_id))
        subtotal = sum((to_decimal(value) for value in result.scalars().all()), Decimal("0"))

        rate = to_decimal(invoice.tax_rate) if tax_rate is None else tax_rate
        invoice.subtotal, invoice.tax_amount, invoice.total = compute_totals(subtotal, rate)
        invoice.tax_rate = rate
        await self.db.flush()

        logger.info(
            "invoice_totals_recalculated",
            invoice_id=invoice_id,
            subtotal=str(invoice.subtotal),
            tax_amount=str(invoice.tax_amount),
            total=str(invoice.total),
        )
        return await self.get_invoice_or_raise(invoice_id)

    async def _get_item(self, invoice_id: int, item_id: int) -> InvoiceItem:
        await self.get_invoice_or_raise(invoice_id)

        result = await self.db.execute(
            select(InvoiceItem).where(InvoiceItem.id == item_id, InvoiceItem.invoice_id == invoice_id)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(item_id, invoice_id)
        return item

    @staticmethod
    def _build_item(data: dict[str, Any], position: int) -> dict[str, Any]:
        quantity = to_decimal(data.get("quantity"), Decimal("1"))
        unit_price = to_decimal(data.get("unit_price"))
        sort_order = data.get("sort_order")
        return {
            "description": data["description"],
            "quantity": quantity,
            "unit_price": unit_price,
            "total": line_total(quantity, unit_price),
            "sort_order": position if sort_order is None else sort_order,
        }
