"""Invoice endpoints for the signed-in user."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from billingcore.api.deps import (
    PageParams,
    get_admin_billing_info_service,
    get_current_user,
    get_db,
    get_display,
    get_page_params,
)
from billingcore.models.invoice import InvoiceStatus
from billingcore.schemas.invoice import Invoice, InvoiceCustomer, InvoiceDetail, InvoiceList, InvoiceSeller
from billingcore.schemas.pagination import ListMeta, Pagination
from billingcore.services.billing_profile_service import AdminBillingInfoService, BillingProfileService
from billingcore.services.currency_service import CurrencyDisplay
from billingcore.services.invoice_service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.get("", response_model=InvoiceList)
async def list_invoices(
    status: Optional[InvoiceStatus] = Query(default=None, description="Filter by status"),
    paging: PageParams = Depends(get_page_params),
    current_user: dict = Depends(get_current_user),
    display: CurrencyDisplay = Depends(get_display),
    db: AsyncSession = Depends(get_db),
) -> InvoiceList:
    """
    List the caller's invoices, newest first.

    Amounts are returned raw and formatted with the active currency.
    """
    service = InvoiceService(db)
    invoices, total = await service.list_invoices(
        user_id=current_user["sub"],
        status=status,
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
async def get_invoice(
    invoice_id: int,
    current_user: dict = Depends(get_current_user),
    display: CurrencyDisplay = Depends(get_display),
    seller: AdminBillingInfoService = Depends(get_admin_billing_info_service),
    db: AsyncSession = Depends(get_db),
) -> InvoiceDetail:
    """
    Get one of the caller's invoices with items and both billing parties.

    Invoices owned by other users are reported as not found.
    """
    seller_info = await seller.get()

    invoice = await InvoiceService(db).get_invoice_for_user(invoice_id, current_user["sub"])
    profile = await BillingProfileService(db).get_by_user(current_user["sub"])

    return InvoiceDetail.from_invoice(
        invoice,
        display,
        customer=InvoiceCustomer(
            billing_info=profile.to_dict() if profile else None,
            username=current_user.get("username"),
            email=current_user.get("email"),
        ),
        admin=InvoiceSeller(billing_info=seller_info),
    )
