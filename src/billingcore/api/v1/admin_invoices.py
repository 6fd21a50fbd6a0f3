"""Admin endpoints for invoices and invoice items."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.api.deps import (
    PageParams,
    get_admin_billing_info_service,
    get_current_user,
    get_db,
    get_display,
    get_page_params,
    get_request_ip,
)
from billingcore.auth.rbac import Role, require_roles
from billingcore.models.invoice import InvoiceStatus
from billingcore.schemas.invoice import (
    Invoice,
    InvoiceCreate,
    InvoiceCustomer,
    InvoiceDetail,
    InvoiceItemCreate,
    InvoiceItemUpdate,
    InvoiceList,
    InvoiceSeller,
    InvoiceUpdate,
)
from billingcore.schemas.pagination import ListMeta, Pagination
from billingcore.services.billing_profile_service import AdminBillingInfoService, BillingProfileService
from billingcore.services.currency_service import CurrencyDisplay
from billingcore.services.invoice_service import InvoiceService
from billingcore.utils.activity import record_activity

router = APIRouter(prefix="/admin/invoices", tags=["Admin - Invoices"])


def _owner(invoice) -> str:
    username = invoice.user.username if invoice.user is not None else None
    return f"user: {username} (ID: {invoice.user_id})"


@router.get("", response_model=InvoiceList)
@require_roles(Role.ADMIN)
async def list_invoices(
    user_id: Optional[int] = Query(default=None, description="Filter by user ID"),
    status: Optional[InvoiceStatus] = Query(default=None, description="Filter by status"),
    search: Optional[str] = Query(default=None, description="Invoice number, username, email or numeric ID"),
    paging: PageParams = Depends(get_page_params),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> InvoiceList:
    """
    List invoices across all users, newest first.

    A numeric search also matches invoice IDs and user IDs.
    """
    invoices, total = await InvoiceService(db).list_invoices(
        user_id=user_id if user_id and user_id > 0 else None,
        status=status,
        search=search,
        page=paging.page,
        limit=paging.limit,
    )

    return InvoiceList(
        data=[Invoice.from_invoice(invoice, display) for invoice in invoices],
        meta=ListMeta(
            pagination=Pagination.build(total, len(invoices), paging.page, paging.limit),
            currency=display.currency,
            credits_mode=display.credits_mode,
        ),
    )


@router.get("/{invoice_id}", response_model=InvoiceDetail)
@require_roles(Role.ADMIN)
async def get_invoice(
    invoice_id: int,
    display: CurrencyDisplay = Depends(get_display),
    seller: AdminBillingInfoService = Depends(get_admin_billing_info_service),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> InvoiceDetail:
    """Get any invoice with items, the customer's profile and the seller's info."""
    seller_info = await seller.get()

    invoice = await InvoiceService(db).get_invoice_or_raise(invoice_id)
    customer_info = await BillingProfileService(db).get_or_default(invoice.user_id)

    return InvoiceDetail.from_invoice(
        invoice,
        display,
        customer=InvoiceCustomer(
            billing_info=customer_info,
            username=invoice.user.username if invoice.user is not None else None,
            email=invoice.user.email if invoice.user is not None else None,
        ),
        admin=InvoiceSeller(billing_info=seller_info),
    )


@router.post("", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
@require_roles(Role.ADMIN)
async def create_invoice(
    invoice_data: InvoiceCreate,
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> InvoiceDetail:
    """
    Create an invoice for a user in the active currency.

    The user must have a billing profile. The invoice number is generated
    when omitted; totals are derived from the items and tax rate.
    """
    fields = invoice_data.model_dump(exclude={"user_id", "items"})
    fields["currency_code"] = display.currency["code"]

    invoice = await InvoiceService(db).create_invoice(
        invoice_data.user_id,
        fields,
        [item.model_dump() for item in invoice_data.items],
    )

    await record_activity(
        db,
        name="billingcore_create_invoice",
        context=f"Created invoice {invoice.invoice_number} for {_owner(invoice)}",
        actor=current_user,
        ip_address=ip_address,
    )

    return InvoiceDetail.from_invoice(invoice, display)


@router.api_route("/{invoice_id}", methods=["PATCH", "PUT"], response_model=InvoiceDetail)
@require_roles(Role.ADMIN)
async def update_invoice(
    invoice_id: int,
    invoice_data: InvoiceUpdate,
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> InvoiceDetail:
    """
    Update invoice status, dates, notes or tax rate.

    A new tax rate recalculates the totals. The currency cannot be changed.
    """
    invoice = await InvoiceService(db).update_invoice(invoice_id, invoice_data.model_dump(exclude_unset=True))

    await record_activity(
        db,
        name="billingcore_update_invoice",
        context=f"Updated invoice {invoice.invoice_number} for {_owner(invoice)}",
        actor=current_user,
        ip_address=ip_address,
    )

    return InvoiceDetail.from_invoice(invoice, display)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
@require_roles(Role.ADMIN)
async def delete_invoice(
    invoice_id: int,
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> None:
    """Delete an invoice and all of its items."""
    invoice = await InvoiceService(db).delete_invoice(invoice_id)

    await record_activity(
        db,
        name="billingcore_delete_invoice",
        context=f"Deleted invoice {invoice.invoice_number} for {_owner(invoice)}",
        actor=current_user,
        ip_address=ip_address,
    )


@router.post("/{invoice_id}/items", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
@require_roles(Role.ADMIN)
async def add_invoice_item(
    invoice_id: int,
    item_data: InvoiceItemCreate,
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> InvoiceDetail:
    """Add an item to an invoice; returns the invoice with recalculated totals."""
    service = InvoiceService(db)
    await service.add_item(invoice_id, item_data.model_dump())
    invoice = await service.get_invoice_or_raise(invoice_id)

    await record_activity(
        db,
        name="billingcore_add_invoice_item",
        context=f"Added item to invoice {invoice.invoice_number} for {_owner(invoice)}",
        actor=current_user,
        ip_address=ip_address,
    )

    return InvoiceDetail.from_invoice(invoice, display)


@router.api_route("/{invoice_id}/items/{item_id}", methods=["PATCH", "PUT"], response_model=InvoiceDetail)
@require_roles(Role.ADMIN)
async def update_invoice_item(
    invoice_id: int,
    item_id: int,
    item_data: InvoiceItemUpdate,
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> InvoiceDetail:
    """Update an invoice item; returns the invoice with recalculated totals."""
    service = InvoiceService(db)
    await service.update_item(invoice_id, item_id, item_data.model_dump(exclude_unset=True))
    invoice = await service.get_invoice_or_raise(invoice_id)

    await record_activity(
        db,
        name="billingcore_update_invoice_item",
        context=f"Updated item in invoice {invoice.invoice_number} for {_owner(invoice)}",
        actor=current_user,
        ip_address=ip_address,
    )

    return InvoiceDetail.from_invoice(invoice, display)


@router.delete("/{invoice_id}/items/{item_id}", response_model=InvoiceDetail)
@require_roles(Role.ADMIN)
async def delete_invoice_item(
    invoice_id: int,
    item_id: int,
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
    ip_address: Optional[str] = Depends(get_request_ip),
    current_user: dict = Depends(get_current_user),
) -> InvoiceDetail:
    """Remove an item from an invoice; returns the invoice with recalculated totals."""
    service = InvoiceService(db)
    await service.delete_item(invoice_id, item_id)
    invoice = await service.get_invoice_or_raise(invoice_id)

    await record_activity(
        db,
        name="billingcore_delete_invoice_item",
        context=f"Deleted item from invoice {invoice.invoice_number} for {_owner(invoice)}",
        actor=current_user,
        ip_address=ip_address,
    )

    return InvoiceDetail.from_invoice(invoice, display)
